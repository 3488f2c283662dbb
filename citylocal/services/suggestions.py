"""Autocomplete for the search box and the location box."""

from __future__ import annotations

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from citylocal.errors import storage_errors
from citylocal.models import Business, Category

MIN_QUERY_LENGTH = 2
BUSINESS_LIMIT = 8
CATEGORY_LIMIT = 5
LOCATION_LIMIT = 10
LOCATION_SCAN_LIMIT = 150


def _usable(q) -> str:
    q = (q or "").strip()
    return q if len(q) >= MIN_QUERY_LENGTH else ""


def rank_locations(rows, q: str, limit: int = LOCATION_LIMIT) -> list[dict]:
    """Unique "City, State" pairs, city-prefix matches first, then alphabetical."""
    needle = q.lower()
    seen: dict[str, dict] = {}
    for city, state in rows:
        if not city or not state:
            continue
        name = f"{city}, {state}"
        key = name.lower()
        if key in seen:
            continue
        if needle in city.lower() or needle in state.lower() or needle in key:
            seen[key] = {"type": "location", "name": name, "city": city, "state": state}

    locations = sorted(
        seen.values(),
        key=lambda loc: (not loc["city"].lower().startswith(needle), loc["name"].lower(), loc["name"]),
    )
    return locations[:limit]


class SuggestionService:
    def __init__(self, session: AsyncSession):
        self.session = session

    @storage_errors
    async def suggest(self, q: str) -> list[dict]:
        """Categories then businesses whose name contains ``q``."""
        q = _usable(q)
        if not q:
            return []

        categories = (
            await self.session.execute(
                select(Category)
                .where(Category.name.icontains(q, autoescape=True), Category.is_active.is_(True))
                .order_by(Category.name.asc())
                .limit(CATEGORY_LIMIT)
            )
        ).scalars().all()
        businesses = (
            await self.session.execute(
                select(Business)
                .where(Business.name.icontains(q, autoescape=True), Business.is_active.is_(True))
                .order_by(Business.name.asc(), Business.id.asc())
                .limit(BUSINESS_LIMIT)
            )
        ).scalars().all()

        return [
            {"type": "category", "id": c.id, "name": c.name, "slug": c.slug, "icon": c.icon}
            for c in categories
        ] + [
            {
                "type": "business",
                "id": b.id,
                "name": b.name,
                "slug": b.slug,
                "icon": "building",
                "city": b.city,
                "state": b.state,
            }
            for b in businesses
        ]

    @storage_errors
    async def suggest_locations(self, q: str) -> list[dict]:
        q = _usable(q)
        if not q:
            return []

        rows = (
            await self.session.execute(
                select(Business.city, Business.state)
                .where(
                    Business.is_active.is_(True),
                    or_(
                        Business.city.icontains(q, autoescape=True),
                        Business.state.icontains(q, autoescape=True),
                    ),
                )
                .order_by(Business.id.asc())
                .limit(LOCATION_SCAN_LIMIT)
            )
        ).all()
        return rank_locations(rows, q)
