import os
import time
import logging
from typing import Optional, Dict, Any, Tuple

import jwt

logger = logging.getLogger(__name__)


def _secret() -> str:
    return os.getenv("SECRET_KEY") or "dev-secret-change-me"


def access_token_ttl_seconds() -> int:
    raw = (os.getenv("ACCESS_TOKEN_TTL_SECONDS") or "").strip()
    try:
        value = int(raw) if raw else 60 * 60
    except ValueError:
        value = 60 * 60
    return max(60, value)


def create_access_token(user_id: int, ttl_seconds: Optional[int] = None, *, is_seller: bool = False) -> str:
    now = int(time.time())
    ttl = int(ttl_seconds) if ttl_seconds is not None else access_token_ttl_seconds()
    payload = {
        "sub": str(user_id),
        "iat": now,
        "exp": now + ttl,
        "type": "access",
        "is_seller": bool(is_seller),
    }
    return jwt.encode(payload, _secret(), algorithm="HS256")


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        return jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.PyJWTError:
        return None


def parse_auth_header(auth_header: str) -> Tuple[Optional[str], Optional[str]]:
    if not auth_header:
        return None, None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1], "bearer"
    if len(parts) == 2 and parts[0].lower() == "token":
        logger.warning("Deprecated auth scheme Token used")
        return parts[1], "token"
    return None, None


def get_bearer_token(auth_header: str) -> Optional[str]:
    if not auth_header:
        return None
    token, _scheme = parse_auth_header(auth_header)
    return token
