from __future__ import annotations

import os
import smtplib
import socket
from email.message import EmailMessage
from email.utils import make_msgid

from propertyhub.integrations.messaging.base import EmailProvider, MessageResult


def _map_smtp_error(exc: Exception) -> str:
    if isinstance(exc, smtplib.SMTPAuthenticationError):
        return "SMTP_AUTH_FAILED"
    if isinstance(exc, smtplib.SMTPRecipientsRefused):
        return "SMTP_INVALID_RECIPIENT"
    if isinstance(exc, smtplib.SMTPSenderRefused):
        return "SMTP_INVALID_SENDER"
    if isinstance(exc, (socket.timeout, TimeoutError)):
        return "EMAIL_PROVIDER_DOWN"
    return "EMAIL_PROVIDER_DOWN"


class SmtpEmailProvider(EmailProvider):
    name = "smtp"

    def __init__(self, *, host: str, port: int, user: str, password: str, sender: str, reply_to: str = ""):
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.sender = sender
        self.reply_to = reply_to

    def send_email(self, *, to: str, subject: str, body: str, reference: str = "") -> MessageResult:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = (to or "").strip()
        if self.reply_to:
            msg["Reply-To"] = self.reply_to
        message_id = make_msgid()
        msg["Message-ID"] = message_id
        msg.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                server.ehlo()
                if server.has_extn("starttls"):
                    server.starttls()
                    server.ehlo()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
            return MessageResult(ok=True, code="OK", message="sent", provider_ref=message_id)
        except (smtplib.SMTPException, OSError) as exc:
            return MessageResult(ok=False, code=_map_smtp_error(exc), message=str(exc)[:200])


def smtp_health() -> dict:
    missing = []
    if not (os.getenv("SMTP_HOST") or "").strip():
        missing.append("SMTP_HOST")
    if not ((os.getenv("SMTP_FROM") or "").strip() or (os.getenv("SMTP_USER") or "").strip()):
        missing.append("SMTP_FROM")
    return {"missing": missing}
