from datetime import datetime
import sqlalchemy as sa

from propertyhub.extensions import db


class Listing(db.Model):
    __tablename__ = "listings"

    id = db.Column(db.Integer, primary_key=True)

    # Owner. Assigned once at creation; updates never touch it.
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(160), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Float, nullable=False, default=0.0, index=True)
    bedrooms = db.Column(db.Integer, nullable=False, default=0, index=True)
    bathrooms = db.Column(db.Integer, nullable=False, default=0)
    location = db.Column(db.String(255), nullable=True)
    amenities = db.Column(db.JSON, nullable=False, default=list)

    # Ledger counter; kept equal to the number of listing_likes rows.
    likes = db.Column(db.Integer, nullable=False, default=0, server_default="0")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=datetime.utcnow, server_default=sa.func.now())

    owner = db.relationship("User", lazy="select")
    like_rows = db.relationship(
        "ListingLike",
        cascade="all, delete-orphan",
        order_by="ListingLike.id",
        lazy="select",
    )
    interest_rows = db.relationship(
        "ListingInterest",
        cascade="all, delete-orphan",
        order_by="ListingInterest.id",
        lazy="select",
    )

    def to_dict(self, *, populate_liked_by: bool = False):
        if populate_liked_by:
            liked_by = [
                {
                    "id": int(row.user_id),
                    "firstName": (row.user.first_name if row.user else "") or "",
                    "lastName": (row.user.last_name if row.user else "") or "",
                    "email": (row.user.email if row.user else "") or "",
                }
                for row in self.like_rows
            ]
        else:
            liked_by = [int(row.user_id) for row in self.like_rows]

        return {
            "id": self.id,
            "title": self.title,
            "description": self.description or "",
            "price": float(self.price or 0.0),
            "bedrooms": int(self.bedrooms or 0),
            "bathrooms": int(self.bathrooms or 0),
            "location": self.location or "",
            "amenities": list(self.amenities or []),
            "owner": int(self.user_id) if self.user_id is not None else None,
            "likes": int(self.likes or 0),
            "likedBy": liked_by,
            "interestedBuyers": [int(row.user_id) for row in self.interest_rows],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class ListingLike(db.Model):
    __tablename__ = "listing_likes"
    __table_args__ = (
        db.UniqueConstraint("listing_id", "user_id", name="uq_listing_likes_listing_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(db.Integer, db.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", lazy="select")


class ListingInterest(db.Model):
    __tablename__ = "listing_interests"
    __table_args__ = (
        db.UniqueConstraint("listing_id", "user_id", name="uq_listing_interests_listing_user"),
    )

    id = db.Column(db.Integer, primary_key=True)
    listing_id = db.Column(db.Integer, db.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    user = db.relationship("User", lazy="select")
