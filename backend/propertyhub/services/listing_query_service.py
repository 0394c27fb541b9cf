"""Listing search: parameter parsing, filter construction and pagination."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import selectinload

from propertyhub.extensions import db
from propertyhub.models import Listing
from propertyhub.utils import policy
from propertyhub.utils.errors import ValidationError


DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_PRICE_MIN = 0.0
DEFAULT_PRICE_MAX = 10_000_000.0
SORT_PRICE = "price"
SORT_DATE = "date"
# Offsets and limits are bound as signed 64-bit integers by every supported driver.
MAX_SQL_INT = 2**63 - 1


def _first_present(args, *names):
    for name in names:
        raw = args.get(name)
        if raw is not None and str(raw).strip() != "":
            return raw
    return None


def _positive_int(raw, *, field: str, default: int) -> int:
    if raw is None:
        return default
    if isinstance(raw, bool):
        raise ValidationError(f"{field} must be a positive integer", details={"field": field})
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{field} must be a positive integer", details={"field": field}) from None
    if value < 1:
        raise ValidationError(f"{field} must be a positive integer", details={"field": field})
    return value


def _non_negative_int(raw, *, field: str) -> int | None:
    if raw is None:
        return None
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{field} must be a non-negative integer", details={"field": field}) from None
    if value < 0:
        raise ValidationError(f"{field} must be a non-negative integer", details={"field": field})
    return value


def _non_negative_float(raw, *, field: str) -> float | None:
    if raw is None:
        return None
    try:
        value = float(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{field} must be a non-negative number", details={"field": field}) from None
    if math.isnan(value) or math.isinf(value) or value < 0:
        raise ValidationError(f"{field} must be a non-negative number", details={"field": field})
    return value


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass(frozen=True)
class ListingSearchParams:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    search: str = ""
    bedrooms_min: int | None = None
    price_min: float | None = None
    price_max: float | None = None
    sort: str = SORT_DATE

    @classmethod
    def from_args(cls, args) -> "ListingSearchParams":
        page = _positive_int(_first_present(args, "page"), field="page", default=DEFAULT_PAGE)
        limit = _positive_int(_first_present(args, "limit"), field="limit", default=DEFAULT_LIMIT)
        cap = policy.max_page_limit()
        if cap and limit > cap:
            limit = cap
        if limit > MAX_SQL_INT:
            raise ValidationError("limit is too large", details={"field": "limit"})
        if (page - 1) * limit > MAX_SQL_INT:
            raise ValidationError("page is too large", details={"field": "page"})
        sort = str(_first_present(args, "sort") or SORT_DATE).strip().lower()
        return cls(
            page=page,
            limit=limit,
            search=str(args.get("search") or "").strip(),
            bedrooms_min=_non_negative_int(
                _first_present(args, "bedroomsMin", "bedrooms_min", "bedrooms"),
                field="bedroomsMin",
            ),
            price_min=_non_negative_float(_first_present(args, "priceMin", "price_min"), field="priceMin"),
            price_max=_non_negative_float(_first_present(args, "priceMax", "price_max"), field="priceMax"),
            sort=SORT_PRICE if sort == SORT_PRICE else SORT_DATE,
        )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def effective_bounds(self) -> dict[str, Any]:
        return {
            "price_min": DEFAULT_PRICE_MIN if self.price_min is None else self.price_min,
            "price_max": DEFAULT_PRICE_MAX if self.price_max is None else self.price_max,
            "bedrooms_min": policy.default_bedrooms_min() if self.bedrooms_min is None else self.bedrooms_min,
        }


def _title_matches(search: str):
    pattern = _escape_like(search)
    if db.session.get_bind().dialect.name == "sqlite":
        # SQLite folds ASCII only; the connection registers a Unicode casefold().
        return func.casefold(Listing.title).like(f"%{pattern.casefold()}%", escape="\\")
    return Listing.title.ilike(f"%{pattern}%", escape="\\")


def build_listing_query(params: ListingSearchParams):
    bounds = params.effective_bounds()
    q = Listing.query
    if params.search:
        q = q.filter(_title_matches(params.search))
    q = q.filter(
        Listing.price >= bounds["price_min"],
        Listing.price <= bounds["price_max"],
        Listing.bedrooms >= bounds["bedrooms_min"],
    )
    return q


def _apply_ordering(q, sort: str):
    if sort == SORT_PRICE:
        return q.order_by(Listing.price.asc(), Listing.id.asc())
    return q.order_by(Listing.created_at.desc(), Listing.id.desc())


def total_pages(total: int, limit: int) -> int:
    return int(math.ceil(int(total) / int(limit))) if limit else 0


def search_listings(params: ListingSearchParams) -> dict:
    q = build_listing_query(params)
    total = q.count()
    rows = (
        _apply_ordering(q, params.sort)
        .options(selectinload(Listing.like_rows), selectinload(Listing.interest_rows))
        .offset(params.offset)
        .limit(params.limit)
        .all()
    )
    return {
        "ok": True,
        "listings": [row.to_dict() for row in rows],
        "totalPages": total_pages(total, params.limit),
        "currentPage": params.page,
        "total": int(total),
        "limit": params.limit,
    }
