"""Hand-off point between the engine and outbound notification delivery.

Delivery is at-most-once and best-effort: the engine enqueues a task and
returns. Nothing here raises to the caller and nothing is retried.
"""

from __future__ import annotations

from flask import current_app

from propertyhub.tasks.notification_tasks import send_email_notification
from propertyhub.utils.observability import get_request_id


def dispatch_email(*, user_id: int, to: str, subject: str, body: str, reference: str = "") -> bool:
    """Enqueue one email. Returns whether the hand-off itself succeeded."""
    if not (to or "").strip():
        current_app.logger.warning("notification_skipped_no_recipient user_id=%s reference=%s", user_id, reference)
        return False
    try:
        send_email_notification.delay(
            user_id=int(user_id),
            to=to.strip(),
            subject=subject,
            body=body,
            reference=reference,
            trace_id=get_request_id(),
        )
        return True
    except Exception:
        current_app.logger.exception("notification_enqueue_failed user_id=%s reference=%s", user_id, reference)
        return False


def interest_owner_message(*, owner, buyer, listing) -> tuple[str, str]:
    subject = "Someone is interested in your property"
    body = (
        f"Hi {owner.first_name},\n\n"
        f"{buyer.full_name} is interested in your property located at "
        f"{listing.location}. You can contact them at {buyer.email}."
    )
    return subject, body


def interest_buyer_message(*, owner, buyer, listing) -> tuple[str, str]:
    subject = "You expressed interest in a property"
    body = (
        f"Hi {buyer.first_name},\n\n"
        f"You expressed interest in the property located at {listing.location}. "
        f"The seller's contact details are {owner.email}."
    )
    return subject, body
