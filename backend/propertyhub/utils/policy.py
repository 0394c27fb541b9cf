"""Behavioural policy switches read from the environment on every call."""

from __future__ import annotations

import os


def _coerce_bool(value, default: bool = False) -> bool:
    if value is None:
        return bool(default)
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return int(value) == 1
    if isinstance(value, str):
        raw = value.strip().lower()
        if not raw:
            return bool(default)
        return raw in ("1", "true", "yes", "y", "on")
    return bool(default)


def _env_int(name: str, default: int, *, minimum: int = 0, maximum: int = 1_000_000) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        value = int(default)
    else:
        try:
            value = int(raw)
        except ValueError:
            value = int(default)
    if value < minimum:
        value = minimum
    if value > maximum:
        value = maximum
    return value


def default_bedrooms_min() -> int:
    # 1 hides studio (0-bedroom) listings unless the caller asks for them.
    return _env_int("LISTINGS_DEFAULT_BEDROOMS_MIN", 1, minimum=0, maximum=1000)


def max_page_limit() -> int:
    """0 means no upper bound on ``limit``."""
    return _env_int("LISTINGS_MAX_PAGE_LIMIT", 0, minimum=0, maximum=100000)


def interested_buyers_owner_only() -> bool:
    return _coerce_bool(os.getenv("INTERESTED_BUYERS_OWNER_ONLY"), False)


def likes_allow_unlike() -> bool:
    return _coerce_bool(os.getenv("LIKES_ALLOW_UNLIKE"), False)


def snapshot() -> dict:
    return {
        "listings_default_bedrooms_min": default_bedrooms_min(),
        "listings_max_page_limit": max_page_limit(),
        "interested_buyers_owner_only": interested_buyers_owner_only(),
        "likes_allow_unlike": likes_allow_unlike(),
    }
