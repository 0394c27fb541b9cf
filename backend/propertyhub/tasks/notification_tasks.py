from __future__ import annotations

import json
import time
from datetime import datetime

from celery import shared_task
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from propertyhub.extensions import db
from propertyhub.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from propertyhub.integrations.messaging.factory import build_email_provider
from propertyhub.models import Notification


def _task_log(task_name: str, *, status: str, started_at: float, trace_id: str = "", **extra):
    duration_ms = int(max(0.0, (time.perf_counter() - float(started_at))) * 1000.0)
    payload = {
        "task_name": task_name,
        "status": status,
        "duration_ms": duration_ms,
        "trace_id": str(trace_id or ""),
        "timestamp": datetime.utcnow().isoformat(),
    }
    payload.update(extra or {})
    current_app.logger.info(json.dumps(payload))


def _record_queued(*, user_id: int, to: str, subject: str, body: str, reference: str) -> Notification | None:
    row = Notification(
        user_id=int(user_id),
        channel="email",
        recipient=(to or "")[:255],
        title=(subject or "")[:160],
        message=body or "",
        status="queued",
    )
    row.update_meta(reference=reference)
    try:
        db.session.add(row)
        db.session.commit()
        return row
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("notification_record_failed user_id=%s reference=%s", user_id, reference)
        return None


def _finish(row: Notification | None, *, ok: bool, provider: str = "", provider_ref: str = "", error: str = "") -> None:
    if row is None:
        return
    row.status = "sent" if ok else "failed"
    row.provider = provider or None
    row.provider_ref = (provider_ref or "")[:120] or None
    if ok:
        row.sent_at = datetime.utcnow()
    if error:
        row.update_meta(error=error[:240])
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("notification_status_update_failed id=%s", row.id)


@shared_task(
    bind=True,
    name="propertyhub.tasks.notification_tasks.send_email_notification",
    max_retries=0,
)
def send_email_notification(
    self,
    *,
    user_id: int,
    to: str,
    subject: str,
    body: str,
    reference: str = "",
    trace_id: str = "",
):
    """Deliver one email at most once. Failures are logged, never raised."""
    started = time.perf_counter()
    row = _record_queued(user_id=user_id, to=to, subject=subject, body=body, reference=reference)

    try:
        provider = build_email_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as exc:
        _finish(row, ok=False, error=str(exc))
        _task_log("send_email_notification", status="skipped", started_at=started, trace_id=trace_id, reference=reference, detail=str(exc))
        return {"ok": False, "error": str(exc)}

    try:
        result = provider.send_email(to=to, subject=subject, body=body, reference=reference)
    except Exception as exc:
        current_app.logger.exception("notification_provider_crashed provider=%s reference=%s", provider.name, reference)
        _finish(row, ok=False, provider=provider.name, error=str(exc))
        return {"ok": False, "error": "EMAIL_PROVIDER_CRASHED"}

    _finish(
        row,
        ok=result.ok,
        provider=provider.name,
        provider_ref=result.provider_ref,
        error="" if result.ok else f"{result.code}:{result.message}",
    )
    _task_log(
        "send_email_notification",
        status="sent" if result.ok else "failed",
        started_at=started,
        trace_id=trace_id,
        reference=reference,
        provider=provider.name,
        code=result.code,
    )
    return {"ok": bool(result.ok), "code": result.code}
