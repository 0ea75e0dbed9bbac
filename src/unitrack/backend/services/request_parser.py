"""Helpers for normalising incoming JSON requests."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from flask import Request
from werkzeug.exceptions import BadRequest


def parse_json_object(req: Request) -> dict[str, Any]:
    """Extract a JSON object from ``req`` or raise ``BadRequest``."""

    data = req.get_json(silent=True)
    if data is None:
        raise BadRequest("Invalid JSON body")
    if not isinstance(data, Mapping):
        raise BadRequest("Request JSON must be an object")

    return dict(data)


def parse_int_arg(req: Request, name: str) -> int:
    """Return the integer query argument ``name`` or raise ``BadRequest``."""

    raw = req.args.get(name)
    if raw is None or not raw.strip():
        raise BadRequest(f"{name} required")
    try:
        return int(raw)
    except ValueError as exc:
        raise BadRequest(f"{name} must be an integer") from exc
