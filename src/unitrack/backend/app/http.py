"""HTTP helper utilities shared across Flask blueprints."""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from flask import jsonify


@dataclass(frozen=True)
class ProblemResponse:
    """Lightweight representation of an RFC 7807-style error payload."""

    error: str
    status: int
    message: str | None = None
    extra: Mapping[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return the serialisable payload for this problem response."""

        payload: dict[str, Any] = {"error": self.error}
        if self.message:
            payload["message"] = self.message
        if self.extra:
            payload.update(self.extra)
        return payload

    def to_response(self) -> tuple[Any, int]:
        """Convert the problem payload into a Flask response tuple."""

        return jsonify(self.as_dict()), self.status


def problem_response(
    error: str,
    *,
    status: int,
    message: str | None = None,
    **extra: Any,
) -> ProblemResponse:
    """Convenience factory mirroring Flask's ``jsonify`` interface."""

    additional: Mapping[str, Any] | None = extra or None
    return ProblemResponse(error=error, status=status, message=message, extra=additional)


class ApiError(Exception):
    """Base class for errors that map directly onto a problem response."""

    error = "error"
    status = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str | None = None, **extra: Any) -> None:
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_problem(self) -> ProblemResponse:
        return problem_response(
            self.error, status=int(self.status), message=self.message, **self.extra
        )


class UnauthorizedError(ApiError):
    error = "unauthorized"
    status = HTTPStatus.UNAUTHORIZED


class NotFoundError(ApiError):
    error = "not_found"
    status = HTTPStatus.NOT_FOUND


class UpstreamError(ApiError):
    """An external service (quotes, FX rates) failed."""

    error = "upstream_error"
    status = HTTPStatus.BAD_GATEWAY


__all__ = [
    "ApiError",
    "NotFoundError",
    "ProblemResponse",
    "UnauthorizedError",
    "UpstreamError",
    "problem_response",
]
