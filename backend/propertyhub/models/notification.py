from datetime import datetime
import json

from propertyhub.extensions import db


class Notification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    channel = db.Column(db.String(32), nullable=False, default="email")
    recipient = db.Column(db.String(255), nullable=False, default="")
    title = db.Column(db.String(160), nullable=True)
    message = db.Column(db.Text, nullable=False)

    status = db.Column(db.String(24), nullable=False, default="queued")  # queued | sent | failed
    provider = db.Column(db.String(64), nullable=True)  # mock | smtp
    provider_ref = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    sent_at = db.Column(db.DateTime, nullable=True)

    meta = db.Column(db.Text, nullable=True)  # JSON string

    def meta_dict(self) -> dict:
        raw = (self.meta or "").strip()
        if not raw:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def update_meta(self, **values) -> None:
        meta = self.meta_dict()
        meta.update(values)
        self.meta = json.dumps(meta, separators=(",", ":"))

    def mark_read(self) -> datetime:
        stamped = datetime.utcnow()
        self.update_meta(is_read=True, read_at=stamped.isoformat())
        return stamped

    def to_dict(self):
        meta = self.meta_dict()
        return {
            "id": self.id,
            "user_id": self.user_id,
            "channel": self.channel or "email",
            "recipient": self.recipient or "",
            "title": self.title or "",
            "message": self.message or "",
            "status": self.status or "queued",
            "provider": self.provider or "",
            "provider_ref": self.provider_ref or "",
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "reference": meta.get("reference") or "",
            "error": meta.get("error") or "",
            "is_read": bool(meta.get("is_read", False)),
        }
