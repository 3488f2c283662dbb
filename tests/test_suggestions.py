import pytest

from citylocal.services.suggestions import (
    BUSINESS_LIMIT,
    CATEGORY_LIMIT,
    LOCATION_LIMIT,
    SuggestionService,
    rank_locations,
)

from conftest import make_business, make_category


def test_rank_locations_prefix_first_then_alphabetical():
    rows = [
        ("West Springfield", "MA"),
        ("Springfield", "IL"),
        ("springfield", "il"),
        ("Springdale", "AR"),
        ("Springfield", "MO"),
        (None, "TX"),
        ("Austin", ""),
    ]
    names = [loc["name"] for loc in rank_locations(rows, "spring")]
    assert names == ["Springdale, AR", "Springfield, IL", "Springfield, MO", "West Springfield, MA"]


def test_rank_locations_respects_limit():
    rows = [(f"Town {i:02d}", "TX") for i in range(30)]
    result = rank_locations(rows, "town")
    assert len(result) == LOCATION_LIMIT
    assert result[0] == {"type": "location", "name": "Town 00, TX", "city": "Town 00", "state": "TX"}


@pytest.mark.parametrize("q", [None, "", "a", " b "])
async def test_short_queries_skip_storage(q):
    service = SuggestionService(None)
    assert await service.suggest(q) == []
    assert await service.suggest_locations(q) == []


async def test_categories_come_before_businesses(session, category):
    cafe_cat = await make_category(session, name="Cafes", icon="coffee")
    await make_business(session, category, name="Cafe Luna", city="Springfield", state="IL")
    await make_business(session, category, name="Cafe Hidden", is_active=False)

    results = await SuggestionService(session).suggest("caf")

    assert [r["type"] for r in results] == ["category", "business"]
    assert results[0] == {"type": "category", "id": cafe_cat.id, "name": "Cafes", "slug": "cafes", "icon": "coffee"}
    assert results[1]["name"] == "Cafe Luna"
    assert results[1]["icon"] == "building"
    assert (results[1]["city"], results[1]["state"]) == ("Springfield", "IL")


async def test_suggestion_limits(session, category):
    for i in range(CATEGORY_LIMIT + 2):
        await make_category(session, name=f"Shop Type {i}")
    for i in range(BUSINESS_LIMIT + 3):
        await make_business(session, category, name=f"Shop {i:02d}")

    results = await SuggestionService(session).suggest("shop")
    kinds = [r["type"] for r in results]
    assert kinds.count("category") == CATEGORY_LIMIT
    assert kinds.count("business") == BUSINESS_LIMIT


async def test_location_suggestions_only_from_active_listings(session, category):
    await make_business(session, category, name="A", city="Springfield", state="IL")
    await make_business(session, category, name="B", city="Springfield", state="IL")
    await make_business(session, category, name="C", city="West Springfield", state="MA")
    await make_business(session, category, name="D", city="Springvale", state="ME", is_active=False)

    results = await SuggestionService(session).suggest_locations("Spring")
    assert [r["name"] for r in results] == ["Springfield, IL", "West Springfield, MA"]
