from __future__ import annotations

from dataclasses import dataclass

from flask import g, request
from werkzeug.exceptions import Unauthorized

from propertyhub.utils.jwt_utils import decode_token, get_bearer_token


@dataclass(frozen=True)
class AuthContext:
    """Authenticated caller identity handed to every engine operation."""

    user_id: int
    is_seller: bool = False

    def is_user(self, user_id) -> bool:
        try:
            return int(user_id) == int(self.user_id)
        except (TypeError, ValueError):
            return False


def auth_from_request() -> AuthContext | None:
    token = get_bearer_token(request.headers.get("Authorization", ""))
    if not token:
        return None
    payload = decode_token(token)
    if not payload:
        return None
    try:
        uid = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    ctx = AuthContext(user_id=uid, is_seller=bool(payload.get("is_seller", False)))
    g.auth_user_id = uid
    return ctx


def require_auth() -> AuthContext:
    ctx = auth_from_request()
    if ctx is None:
        raise Unauthorized("Missing or invalid bearer token")
    return ctx
