"""Owner-only listing mutation.

Both operations fold the ownership check into the store statement itself, so
there is no window between "is this yours" and "change it".
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from propertyhub.extensions import db
from propertyhub.models import Listing
from propertyhub.services.listing_service import clean_listing_fields
from propertyhub.utils.auth_context import AuthContext
from propertyhub.utils.errors import InternalError, NotFoundOrUnauthorized


def update_listing_as_owner(listing_id: int, auth: AuthContext, updates) -> dict:
    values = clean_listing_fields(updates, partial=True)
    stmt = (
        update(Listing)
        .where(Listing.id == int(listing_id), Listing.user_id == int(auth.user_id))
        .values(**values)
        .execution_options(synchronize_session="fetch")
    )
    try:
        result = db.session.execute(stmt)
        if int(result.rowcount or 0) == 0:
            db.session.rollback()
            raise NotFoundOrUnauthorized("Property not found or not owned by you")
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("listing_update_failed listing_id=%s user_id=%s", listing_id, auth.user_id)
        raise InternalError("Could not update listing") from None

    listing = db.session.get(Listing, int(listing_id), populate_existing=True)
    if listing is None:
        # Deleted between commit and read.
        raise NotFoundOrUnauthorized("Property not found or not owned by you")
    current_app.logger.info(
        "listing_updated listing_id=%s user_id=%s fields=%s",
        listing_id,
        auth.user_id,
        ",".join(sorted(values)),
    )
    return listing.to_dict()


def delete_listing_as_owner(listing_id: int, auth: AuthContext) -> dict:
    try:
        listing = (
            Listing.query.filter(Listing.id == int(listing_id), Listing.user_id == int(auth.user_id))
            .with_for_update()
            .first()
        )
        if listing is None:
            db.session.rollback()
            raise NotFoundOrUnauthorized("Property not found or not owned by you")
        payload = listing.to_dict()
        db.session.delete(listing)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("listing_delete_failed listing_id=%s user_id=%s", listing_id, auth.user_id)
        raise InternalError("Could not delete listing") from None

    current_app.logger.info("listing_deleted listing_id=%s user_id=%s", listing_id, auth.user_id)
    return payload
