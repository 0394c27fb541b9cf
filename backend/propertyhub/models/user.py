from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash

from propertyhub.extensions import db


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(80), nullable=False, default="")
    last_name = db.Column(db.String(80), nullable=False, default="")
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    phone = db.Column(db.String(32), nullable=True)

    password_hash = db.Column(db.String(255), nullable=False)

    is_seller = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return check_password_hash(self.password_hash, raw_password)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def contact_dict(self) -> dict:
        return {
            "firstName": self.first_name or "",
            "lastName": self.last_name or "",
            "email": self.email or "",
            "phone": self.phone or "",
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "firstName": self.first_name or "",
            "lastName": self.last_name or "",
            "email": self.email,
            "phone": self.phone or "",
            "isSeller": bool(self.is_seller),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
