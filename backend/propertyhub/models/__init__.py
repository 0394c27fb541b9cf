from propertyhub.models.user import User
from propertyhub.models.listing import Listing, ListingLike, ListingInterest
from propertyhub.models.notification import Notification

__all__ = [
    "User",
    "Listing",
    "ListingLike",
    "ListingInterest",
    "Notification",
]
