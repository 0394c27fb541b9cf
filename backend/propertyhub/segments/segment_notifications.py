from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from propertyhub.extensions import db
from propertyhub.models import Notification
from propertyhub.utils.auth_context import require_auth
from propertyhub.utils.errors import InternalError, NotFound

notifications_bp = Blueprint("notifications_bp", __name__, url_prefix="/api")


def _limit() -> int:
    try:
        limit = int(request.args.get("limit") or 80)
    except ValueError:
        limit = 80
    return max(1, min(limit, 200))


@notifications_bp.get("/notifications")
def list_notifications():
    auth = require_auth()
    rows = (
        Notification.query.filter_by(user_id=int(auth.user_id))
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(_limit())
        .all()
    )
    return jsonify({"ok": True, "items": [x.to_dict() for x in rows]}), 200


@notifications_bp.post("/notifications/<int:notification_id>/read")
def mark_notification_read(notification_id: int):
    auth = require_auth()
    row = Notification.query.filter_by(id=int(notification_id), user_id=int(auth.user_id)).first()
    if row is None:
        raise NotFound("Notification not found")
    try:
        stamped = row.mark_read()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("notification_mark_read_failed id=%s", notification_id)
        raise InternalError("Could not update notification") from None
    return jsonify({"ok": True, "id": int(row.id), "is_read": True, "read_at": stamped.isoformat()}), 200
