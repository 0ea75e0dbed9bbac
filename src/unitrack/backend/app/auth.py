"""Session identity for API requests.

Login and signup live outside this backend; they hand the browser a signed
``auth-token`` cookie carrying the user id. Routes only need to verify that
token and read the id back.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar, cast

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from unitrack.backend.app.http import UnauthorizedError

AUTH_COOKIE = "auth-token"
TOKEN_SALT = "unitrack-auth"

F = TypeVar("F", bound=Callable[..., Any])


def _serializer(secret_key: str) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key, salt=TOKEN_SALT)


def issue_token(user_id: int, secret_key: str) -> str:
    """Return a signed token identifying ``user_id``."""

    return _serializer(secret_key).dumps({"user_id": int(user_id)})


def resolve_user_id(token: str, secret_key: str, *, max_age: int) -> int:
    """Return the user id carried by ``token`` or raise ``UnauthorizedError``."""

    try:
        payload = _serializer(secret_key).loads(token, max_age=max_age)
    except SignatureExpired as exc:
        raise UnauthorizedError("Session expired") from exc
    except BadSignature as exc:
        raise UnauthorizedError("Unauthorized") from exc

    user_id = payload.get("user_id") if isinstance(payload, dict) else None
    if not isinstance(user_id, int) or isinstance(user_id, bool):
        raise UnauthorizedError("Unauthorized")
    return user_id


def _request_token() -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return request.cookies.get(AUTH_COOKIE)


def require_user(view: F) -> F:
    """Reject unauthenticated requests and expose ``g.user_id`` to the view."""

    @wraps(view)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        token = _request_token()
        if not token:
            raise UnauthorizedError("Unauthorized")
        g.user_id = resolve_user_id(
            token,
            current_app.config["SECRET_KEY"],
            max_age=current_app.config["AUTH_TOKEN_MAX_AGE"],
        )
        return view(*args, **kwargs)

    return cast(F, wrapper)


__all__ = ["AUTH_COOKIE", "issue_token", "require_user", "resolve_user_id"]
