from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update

from propertyhub.extensions import db
from propertyhub.models import Listing, ListingLike


def find_like_drift() -> tuple[int, list[dict]]:
    """Return the listing count and every listing whose ``likes`` differs from its membership rows."""
    member_counts = dict(
        db.session.query(ListingLike.listing_id, func.count(ListingLike.id))
        .group_by(ListingLike.listing_id)
        .all()
    )
    listings = db.session.query(Listing.id, Listing.likes).order_by(Listing.id.asc()).all()
    drift_items = []
    for listing_id, likes in listings:
        computed = int(member_counts.get(listing_id, 0) or 0)
        stored = int(likes or 0)
        if stored != computed:
            drift_items.append(
                {
                    "listing_id": int(listing_id),
                    "stored_likes": stored,
                    "computed_likes": computed,
                    "drift": stored - computed,
                }
            )
    return len(listings), drift_items


def rewrite_like_counters(listing_ids: list[int]) -> int:
    """Set ``likes`` to the membership count inside a single UPDATE.

    The count is a correlated subquery, so likes committed after the drift
    report was read are still counted.
    """
    if not listing_ids:
        return 0
    members = (
        select(func.count(ListingLike.id))
        .where(ListingLike.listing_id == Listing.id)
        .scalar_subquery()
    )
    result = db.session.execute(
        update(Listing)
        .where(Listing.id.in_([int(x) for x in listing_ids]))
        .values(likes=members)
        .execution_options(synchronize_session=False)
    )
    db.session.commit()
    return int(result.rowcount or 0)


def recompute_like_counters(*, fix: bool = False) -> dict:
    """Compare each listing's ``likes`` with its membership rows.

    With ``fix`` the drifted counters are rewritten to the membership count.
    """
    listing_count, drift_items = find_like_drift()

    fixed = 0
    if fix and drift_items:
        fixed = rewrite_like_counters([item["listing_id"] for item in drift_items])

    return {
        "ok": True,
        "scope": "listing_likes",
        "listing_count": listing_count,
        "drift_count": max(0, len(drift_items) - fixed),
        "fixed_count": fixed,
        "drift_items": drift_items,
        "generated_at": datetime.utcnow().isoformat(),
    }
