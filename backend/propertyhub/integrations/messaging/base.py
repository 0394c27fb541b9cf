from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MessageResult:
    ok: bool
    code: str = ""
    message: str = ""
    provider_ref: str = ""
    raw: dict | None = None


class EmailProvider:
    name = "unknown"

    def send_email(self, *, to: str, subject: str, body: str, reference: str = "") -> MessageResult:
        raise NotImplementedError
