from __future__ import annotations

import math

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload

from propertyhub.extensions import db
from propertyhub.models import Listing, ListingLike, User
from propertyhub.utils.auth_context import AuthContext
from propertyhub.utils.errors import InternalError, NotFound, ValidationError


MUTABLE_FIELDS = ("title", "description", "price", "bedrooms", "bathrooms", "location", "amenities")
IMMUTABLE_FIELDS = ("id", "owner", "user_id", "userId", "likes", "likedBy", "interestedBuyers", "created_at")


def _clean_text(value, *, field: str, max_len: int, required: bool = False) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string", details={"field": field})
    text = value.strip()
    if required and not text:
        raise ValidationError(f"{field} is required", details={"field": field})
    if len(text) > max_len:
        raise ValidationError(f"{field} is too long", details={"field": field, "max": max_len})
    return text


def _clean_price(value) -> float:
    if isinstance(value, bool):
        raise ValidationError("price must be a non-negative number", details={"field": "price"})
    try:
        price = float(value)
    except (TypeError, ValueError):
        raise ValidationError("price must be a non-negative number", details={"field": "price"}) from None
    if math.isnan(price) or math.isinf(price) or price < 0:
        raise ValidationError("price must be a non-negative number", details={"field": "price"})
    return price


def _clean_count(value, *, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a non-negative integer", details={"field": field})
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be a non-negative integer", details={"field": field})
        value = int(value)
    try:
        count = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a non-negative integer", details={"field": field}) from None
    if count < 0:
        raise ValidationError(f"{field} must be a non-negative integer", details={"field": field})
    return count


def _clean_amenities(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        raise ValidationError("amenities must be a list of strings", details={"field": "amenities"})
    out = []
    for item in items:
        if not isinstance(item, str):
            raise ValidationError("amenities must be a list of strings", details={"field": "amenities"})
        item = item.strip()
        if item and item not in out:
            out.append(item[:80])
    return out


_CLEANERS = {
    "title": lambda v: _clean_text(v, field="title", max_len=160, required=True),
    "description": lambda v: _clean_text(v, field="description", max_len=20000),
    "price": _clean_price,
    "bedrooms": lambda v: _clean_count(v, field="bedrooms"),
    "bathrooms": lambda v: _clean_count(v, field="bathrooms"),
    "location": lambda v: _clean_text(v, field="location", max_len=255),
    "amenities": _clean_amenities,
}


def clean_listing_fields(payload, *, partial: bool) -> dict:
    """Validate a listing body and return column values.

    ``partial`` is used for updates: only supplied fields are returned and at
    least one is required. Creation requires ``title`` and ``price``.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")

    forbidden = sorted(k for k in payload if k in IMMUTABLE_FIELDS)
    if forbidden:
        raise ValidationError(
            "Field(s) cannot be modified: " + ", ".join(forbidden),
            details={"fields": forbidden},
        )
    unknown = sorted(k for k in payload if k not in MUTABLE_FIELDS)
    if unknown:
        raise ValidationError("Unknown field(s): " + ", ".join(unknown), details={"fields": unknown})

    if partial:
        if not payload:
            raise ValidationError("No fields to update")
    else:
        for required in ("title", "price"):
            if payload.get(required) is None:
                raise ValidationError(f"{required} is required", details={"field": required})

    return {name: _CLEANERS[name](payload[name]) for name in MUTABLE_FIELDS if name in payload}


def create_listing(auth: AuthContext, payload) -> dict:
    values = clean_listing_fields(payload, partial=False)
    owner = db.session.get(User, int(auth.user_id))
    if owner is None:
        raise NotFound("User not found")

    listing = Listing(user_id=int(owner.id), likes=0, **values)
    try:
        db.session.add(listing)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("listing_create_failed user_id=%s", auth.user_id)
        raise InternalError("Could not save listing") from None
    current_app.logger.info("listing_created listing_id=%s user_id=%s", listing.id, owner.id)
    return listing.to_dict()


def get_owner_contact(listing_id: int) -> dict:
    listing = db.session.get(Listing, int(listing_id))
    if listing is None:
        raise NotFound("Property not found")
    if listing.owner is None:
        raise NotFound("Owner not found")
    return listing.owner.contact_dict()


def list_my_listings(auth: AuthContext) -> list[dict]:
    rows = (
        Listing.query.filter(Listing.user_id == int(auth.user_id))
        .options(
            selectinload(Listing.like_rows).joinedload(ListingLike.user),
            selectinload(Listing.interest_rows),
        )
        .order_by(Listing.created_at.desc(), Listing.id.desc())
        .all()
    )
    return [row.to_dict(populate_liked_by=True) for row in rows]
