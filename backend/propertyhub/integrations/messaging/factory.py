from __future__ import annotations

import os

from propertyhub.integrations.common import (
    IntegrationDisabledError,
    IntegrationMisconfiguredError,
    integrations_mode,
)
from propertyhub.integrations.messaging.base import EmailProvider
from propertyhub.integrations.messaging.mock_provider import MockEmailProvider
from propertyhub.integrations.messaging.smtp_provider import SmtpEmailProvider, smtp_health


def build_email_provider() -> EmailProvider:
    mode = integrations_mode()
    if mode == "disabled":
        raise IntegrationDisabledError("INTEGRATION_DISABLED:email")
    # Sandbox keeps deterministic, network-free delivery for dev and tests.
    if mode == "sandbox":
        return MockEmailProvider()

    missing = smtp_health().get("missing", [])
    if missing:
        raise IntegrationMisconfiguredError(f"INTEGRATION_MISCONFIGURED:missing {', '.join(missing)}")
    try:
        port = int((os.getenv("SMTP_PORT") or "587").strip() or 587)
    except ValueError:
        port = 587
    user = (os.getenv("SMTP_USER") or "").strip()
    return SmtpEmailProvider(
        host=(os.getenv("SMTP_HOST") or "").strip(),
        port=port,
        user=user,
        password=(os.getenv("SMTP_PASS") or "").strip(),
        sender=((os.getenv("SMTP_FROM") or "").strip() or user),
        reply_to=(os.getenv("SMTP_REPLY_TO") or "").strip(),
    )


def messaging_health() -> dict:
    mode = integrations_mode()
    missing = smtp_health().get("missing", [])
    if mode == "disabled":
        status = "disabled"
    elif mode == "sandbox":
        status = "sandbox"
    elif missing:
        status = "misconfigured"
    else:
        status = "configured"
    return {"status": status, "mode": mode, "missing": missing if mode == "live" else []}
