from __future__ import annotations

import os
import uuid

from propertyhub.integrations.messaging.base import EmailProvider, MessageResult


class MockEmailProvider(EmailProvider):
    name = "mock"

    def _force_failure(self, body: str) -> bool:
        return "[fail]" in (body or "").lower() or (os.getenv("MOCK_NOTIFY_FORCE_FAIL") or "").strip() == "1"

    def send_email(self, *, to: str, subject: str, body: str, reference: str = "") -> MessageResult:
        if self._force_failure(body):
            return MessageResult(ok=False, code="EMAIL_PROVIDER_DOWN", message="mock forced failure")
        return MessageResult(
            ok=True,
            code="OK",
            message="mock_sent",
            provider_ref=f"mock-{uuid.uuid4().hex[:12]}",
            raw={"to": to, "subject": subject, "reference": reference},
        )
