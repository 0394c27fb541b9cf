"""Engine error taxonomy.

Each service operation maps one failure condition to exactly one of these.
The application factory renders them with the shared JSON error shape.
"""

from __future__ import annotations


class PropertyHubError(Exception):
    """Base exception for engine failures."""

    kind = "InternalError"
    status = 500

    def __init__(self, message: str = "", *, details: dict | None = None):
        super().__init__(message or self.kind)
        self.message = message or self.kind
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {
            "ok": False,
            "error": self.kind,
            "message": self.message,
            "status": int(self.status),
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(PropertyHubError):
    """Malformed input."""

    kind = "ValidationError"
    status = 400


class NotFound(PropertyHubError):
    """Referenced entity absent."""

    kind = "NotFound"
    status = 404


class NotFoundOrUnauthorized(PropertyHubError):
    """Owner-guarded operation denied.

    Missing listings and listings owned by someone else are reported the same
    way so non-owners cannot tell which listings exist.
    """

    kind = "NotFoundOrUnauthorized"
    status = 404


class Conflict(PropertyHubError):
    """Duplicate membership registration."""

    kind = "Conflict"
    status = 409


class InternalError(PropertyHubError):
    """Store or unexpected failure."""

    kind = "InternalError"
    status = 500
