from __future__ import annotations

import re

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from werkzeug.exceptions import Unauthorized

from propertyhub.extensions import db
from propertyhub.models import User
from propertyhub.utils.auth_context import require_auth
from propertyhub.utils.errors import Conflict, InternalError, NotFound, ValidationError
from propertyhub.utils.jwt_utils import access_token_ttl_seconds, create_access_token

users_bp = Blueprint("users_bp", __name__, url_prefix="/api/users")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 3


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = request.form.to_dict() if request.form else {}
    return data


def _text(data: dict, *names: str) -> str:
    for name in names:
        value = data.get(name)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def _is_seller(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


@users_bp.post("/register")
def register():
    data = _payload()
    first_name = _text(data, "firstName", "first_name")
    last_name = _text(data, "lastName", "last_name")
    email = _text(data, "email").lower()
    phone = _text(data, "phone") or None
    password = data.get("password") or ""

    if not first_name or not last_name:
        raise ValidationError("First name and last name are required")
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email address", details={"field": "email"})
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
            details={"field": "password"},
        )
    if User.query.filter_by(email=email).first():
        raise Conflict("Email already in use")

    user = User(
        first_name=first_name[:80],
        last_name=last_name[:80],
        email=email,
        phone=phone,
        is_seller=_is_seller(data.get("isSeller", data.get("is_seller"))),
    )
    user.set_password(password)
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("Email already in use") from None
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("register_failed email_domain=%s", email.split("@")[-1])
        raise InternalError("Could not create account") from None

    current_app.logger.info("user_registered user_id=%s", user.id)
    return jsonify({"ok": True, "user": user.to_dict()}), 201


@users_bp.post("/login")
def login():
    data = _payload()
    email = _text(data, "email").lower()
    password = data.get("password") or ""
    if not email or not password:
        raise ValidationError("Email and password are required")

    user = User.query.filter_by(email=email).first()
    if user is None or not user.check_password(password):
        current_app.logger.info("login_failed email_domain=%s", email.split("@")[-1])
        raise Unauthorized("Invalid email or password")

    ttl = access_token_ttl_seconds()
    token = create_access_token(int(user.id), ttl_seconds=ttl, is_seller=bool(user.is_seller))
    return jsonify({"ok": True, "token": token, "expires_in": ttl, "user": user.to_dict()}), 200


@users_bp.get("/me")
def me():
    auth = require_auth()
    user = db.session.get(User, int(auth.user_id))
    if user is None:
        raise NotFound("User not found")
    return jsonify({"ok": True, "user": user.to_dict()}), 200
