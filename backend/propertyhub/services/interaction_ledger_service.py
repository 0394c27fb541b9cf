"""Likes and interested-buyer membership.

The unique constraints on ``listing_likes`` and ``listing_interests`` are the
compare-and-swap predicate: the membership insert either lands or raises
``IntegrityError``, and the ``likes`` counter only moves in the same
transaction as a landed insert.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import joinedload

from propertyhub.extensions import db
from propertyhub.models import Listing, ListingInterest, ListingLike, User
from propertyhub.services.notification_dispatcher import (
    dispatch_email,
    interest_buyer_message,
    interest_owner_message,
)
from propertyhub.utils import policy
from propertyhub.utils.auth_context import AuthContext
from propertyhub.utils.errors import Conflict, InternalError, NotFound, NotFoundOrUnauthorized


def _require_listing(listing_id: int) -> Listing:
    listing = db.session.get(Listing, int(listing_id))
    if listing is None:
        raise NotFound("Property not found")
    return listing


def _require_user(user_id: int) -> User:
    user = db.session.get(User, int(user_id))
    if user is None:
        raise NotFound("User not found")
    return user


def like_counts(listing_id: int) -> dict:
    listing = db.session.get(Listing, int(listing_id), populate_existing=True)
    if listing is None:
        raise NotFound("Property not found")
    members = (
        db.session.query(func.count(ListingLike.id))
        .filter(ListingLike.listing_id == int(listing_id))
        .scalar()
    )
    return {"likes": int(listing.likes or 0), "likedBy": int(members or 0)}


def register_like(listing_id: int, auth: AuthContext) -> dict:
    _require_listing(listing_id)
    _require_user(auth.user_id)

    created = False
    try:
        db.session.add(ListingLike(listing_id=int(listing_id), user_id=int(auth.user_id)))
        db.session.flush()
        result = db.session.execute(
            update(Listing)
            .where(Listing.id == int(listing_id))
            .values(likes=Listing.likes + 1)
            .execution_options(synchronize_session=False)
        )
        if int(result.rowcount or 0) == 0:
            db.session.rollback()
            raise NotFound("Property not found")
        db.session.commit()
        created = True
    except IntegrityError:
        # Already a member (or the listing vanished under us).
        db.session.rollback()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("like_register_failed listing_id=%s user_id=%s", listing_id, auth.user_id)
        raise InternalError("Could not register like") from None

    counts = like_counts(listing_id)
    current_app.logger.info(
        "like_registered listing_id=%s user_id=%s created=%s likes=%s",
        listing_id,
        auth.user_id,
        created,
        counts["likes"],
    )
    return counts


def remove_like(listing_id: int, auth: AuthContext) -> dict:
    _require_listing(listing_id)

    removed = False
    try:
        result = db.session.execute(
            delete(ListingLike)
            .where(ListingLike.listing_id == int(listing_id), ListingLike.user_id == int(auth.user_id))
            .execution_options(synchronize_session=False)
        )
        if int(result.rowcount or 0) > 0:
            db.session.execute(
                update(Listing)
                .where(Listing.id == int(listing_id), Listing.likes > 0)
                .values(likes=Listing.likes - 1)
                .execution_options(synchronize_session=False)
            )
            removed = True
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("like_remove_failed listing_id=%s user_id=%s", listing_id, auth.user_id)
        raise InternalError("Could not remove like") from None

    counts = like_counts(listing_id)
    current_app.logger.info("like_removed listing_id=%s user_id=%s removed=%s", listing_id, auth.user_id, removed)
    return counts


def register_interest(listing_id: int, auth: AuthContext) -> dict:
    listing = _require_listing(listing_id)
    buyer = _require_user(auth.user_id)

    try:
        db.session.add(ListingInterest(listing_id=int(listing.id), user_id=int(buyer.id)))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise Conflict("You have already expressed interest in this property") from None
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("interest_register_failed listing_id=%s user_id=%s", listing_id, auth.user_id)
        raise InternalError("Could not register interest") from None

    owner = listing.owner
    if owner is None:
        current_app.logger.warning("interest_owner_missing listing_id=%s", listing_id)
        return {"firstName": "", "lastName": "", "email": "", "phone": ""}

    reference = f"interest:{int(listing.id)}:{int(buyer.id)}"
    subject, body = interest_owner_message(owner=owner, buyer=buyer, listing=listing)
    dispatch_email(user_id=int(owner.id), to=owner.email, subject=subject, body=body, reference=f"{reference}:owner")
    subject, body = interest_buyer_message(owner=owner, buyer=buyer, listing=listing)
    dispatch_email(user_id=int(buyer.id), to=buyer.email, subject=subject, body=body, reference=f"{reference}:buyer")

    current_app.logger.info("interest_registered listing_id=%s user_id=%s", listing_id, buyer.id)
    return owner.contact_dict()


def list_interested_buyers(listing_id: int, auth: AuthContext) -> list[dict]:
    listing = db.session.get(Listing, int(listing_id))
    if policy.interested_buyers_owner_only():
        if listing is None or not auth.is_user(listing.user_id):
            raise NotFoundOrUnauthorized("Property not found or not owned by you")
    elif listing is None:
        raise NotFound("Property not found")

    rows = (
        ListingInterest.query.filter(ListingInterest.listing_id == int(listing_id))
        .options(joinedload(ListingInterest.user))
        .order_by(ListingInterest.id.asc())
        .all()
    )
    buyers = []
    for row in rows:
        if row.user is None:
            continue
        summary = row.user.contact_dict()
        summary["id"] = int(row.user.id)
        buyers.append(summary)
    return buyers
