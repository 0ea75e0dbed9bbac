"""Request/response helpers shared by the UniTrack routes."""

from .request_parser import parse_int_arg, parse_json_object
from .response_builder import build_json_response

__all__ = [
    "build_json_response",
    "parse_int_arg",
    "parse_json_object",
]
