"""
Listing filters -- translate facet selections into a SQLAlchemy predicate
and ordering for the businesses table.

The builder is pure: it only produces expressions, it never touches a session.
Facets are combined with AND; values inside one facet (several categories,
cities or rating buckets) are combined with OR / IN.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

from sqlalchemy import and_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from citylocal.errors import ValidationError
from citylocal.models import Business
from citylocal.security import Identity

Multi = Union[None, str, int, Iterable[Union[str, int]]]

SORT_KEYS = ("relevance", "rating", "name", "views", "newest", "oldest")


@dataclass
class Facets:
    """Raw facet selections as they arrive from a request."""

    search: Optional[str] = None
    category: Multi = None
    city: Multi = None
    state: Optional[str] = None
    ratings: Multi = None
    min_rating: Union[None, str, float] = None
    featured: Optional[bool] = None
    sort: Optional[str] = None
    public_only: bool = False


@dataclass
class ListingQuery:
    predicate: ColumnElement
    ordering: list = field(default_factory=list)


def _as_list(value: Multi) -> list[str]:
    """Normalise a single value or a collection into non-empty trimmed strings."""
    if value is None:
        return []
    if isinstance(value, (str, int, float)):
        value = [value]
    values = []
    for v in value:
        if v is None:
            continue
        s = str(v).strip()
        if s:
            values.append(s)
    return values


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_category_ids(value: Multi) -> list[int]:
    ids = []
    for v in _as_list(value):
        try:
            ids.append(int(v))
        except ValueError:
            raise ValidationError(f"Invalid category id: {v!r}")
    return ids


def parse_rating_buckets(value: Multi) -> list[int]:
    buckets = []
    for v in _as_list(value):
        try:
            bucket = int(float(v))
        except (ValueError, OverflowError):
            raise ValidationError(f"Invalid rating filter: {v!r}")
        if float(v) != bucket or not 1 <= bucket <= 5:
            raise ValidationError(f"Rating filter must be a whole number from 1 to 5, got {v!r}")
        if bucket not in buckets:
            buckets.append(bucket)
    return sorted(buckets)


def parse_min_rating(value) -> Optional[float]:
    if _blank(value):
        return None
    try:
        rating = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid minimum rating: {value!r}")
    if not 0 <= rating <= 5:
        raise ValidationError("Minimum rating must be between 0 and 5")
    return rating


def rating_bucket_clause(bucket: int) -> ColumnElement:
    """Bucket k matches [k, k+1); bucket 5 matches >= 5."""
    if bucket >= 5:
        return Business.rating_average >= 5
    return and_(Business.rating_average >= bucket, Business.rating_average < bucket + 1)


def visibility_clause(identity: Optional[Identity], public_only: bool = False) -> ColumnElement:
    """Public callers see active listings; owners and admins also see their own."""
    if identity is not None and identity.can_own and not public_only:
        return or_(Business.owner_id == identity.id, Business.is_active.is_(True))
    return Business.is_active.is_(True)


def build_ordering(sort: Optional[str]) -> list:
    """Ordering for a sort key; every ordering ends on id for stable paging."""
    key = (sort or "").strip().lower()
    if key == "name":
        order = [Business.name.asc()]
    elif key == "views":
        order = [Business.views.desc()]
    elif key == "newest":
        order = [Business.created_at.desc()]
    elif key == "oldest":
        order = [Business.created_at.asc()]
    else:
        # relevance, rating and anything unrecognised
        order = [
            Business.is_featured.desc(),
            Business.rating_average.desc(),
            Business.rating_count.desc(),
            Business.created_at.desc(),
        ]
    return order + [Business.id.asc()]


def facet_clauses(facets: Facets) -> list[ColumnElement]:
    """One clause per active facet, in a fixed order."""
    clauses: list[ColumnElement] = []

    if not _blank(facets.search):
        term = facets.search.strip()
        clauses.append(
            or_(
                Business.name.icontains(term, autoescape=True),
                Business.description.icontains(term, autoescape=True),
            )
        )

    category_ids = parse_category_ids(facets.category)
    if category_ids:
        clauses.append(Business.category_id.in_(category_ids))

    cities = _as_list(facets.city)
    if cities:
        clauses.append(or_(*(Business.city.icontains(c, autoescape=True) for c in cities)))

    if not _blank(facets.state):
        clauses.append(Business.state == facets.state.strip())

    # Buckets win over the legacy minimum when both are supplied
    buckets = parse_rating_buckets(facets.ratings)
    if buckets:
        clauses.append(or_(*(rating_bucket_clause(b) for b in buckets)))
    else:
        min_rating = parse_min_rating(facets.min_rating)
        if min_rating is not None:
            clauses.append(Business.rating_average >= min_rating)

    if facets.featured:
        clauses.append(Business.is_featured.is_(True))

    return clauses


def build_listing_query(facets: Facets, identity: Optional[Identity] = None) -> ListingQuery:
    clauses = facet_clauses(facets)
    clauses.append(visibility_clause(identity, facets.public_only))
    return ListingQuery(predicate=and_(true(), *clauses), ordering=build_ordering(facets.sort))
