import pytest

from citylocal.errors import ValidationError
from citylocal.models import ROLE_ADMIN, ROLE_BUSINESS_OWNER, ROLE_USER
from citylocal.security import Identity
from citylocal.services.filters import (
    Facets,
    build_listing_query,
    build_ordering,
    facet_clauses,
    parse_category_ids,
    parse_min_rating,
    parse_rating_buckets,
    visibility_clause,
)


def _sql(clauses) -> list[str]:
    return [str(c) for c in clauses]


def test_empty_strings_contribute_nothing():
    facets = Facets(search="  ", category=["", " "], city="", state="", ratings=[""], min_rating="")
    assert facet_clauses(facets) == []


def test_each_facet_adds_one_clause():
    facets = Facets(search="pizza", category=["1", "2"], city=["spring", "shelby"], state="IL",
                    ratings=["4"], featured=True)
    assert len(facet_clauses(facets)) == 6


def test_buckets_take_precedence_over_min_rating():
    with_both = facet_clauses(Facets(ratings=["4"], min_rating="2"))
    buckets_only = facet_clauses(Facets(ratings=["4"]))
    assert _sql(with_both) == _sql(buckets_only)


def test_min_rating_used_without_buckets():
    clauses = facet_clauses(Facets(min_rating="3.5"))
    assert len(clauses) == 1
    assert "rating_average >=" in str(clauses[0])


@pytest.mark.parametrize("value", ["abc", ["1", "x"], "1.5"])
def test_invalid_category_ids_rejected(value):
    with pytest.raises(ValidationError):
        parse_category_ids(value)


def test_category_ids_accept_single_and_multiple_values():
    assert parse_category_ids("3") == [3]
    assert parse_category_ids(["3", 4, " 5 "]) == [3, 4, 5]
    assert parse_category_ids(None) == []


@pytest.mark.parametrize("value", ["four", "0", "6", "4.5", "inf", "nan"])
def test_invalid_rating_buckets_rejected(value):
    with pytest.raises(ValidationError):
        parse_rating_buckets([value])


def test_rating_buckets_are_deduplicated_and_sorted():
    assert parse_rating_buckets(["5", "3", "3", "4.0"]) == [3, 4, 5]


@pytest.mark.parametrize("value", ["high", "-1", "5.5"])
def test_invalid_min_rating_rejected(value):
    with pytest.raises(ValidationError):
        parse_min_rating(value)


def test_unknown_sort_falls_back_to_relevance():
    assert _sql(build_ordering("bogus")) == _sql(build_ordering(None))
    assert _sql(build_ordering("rating")) == _sql(build_ordering("relevance"))


@pytest.mark.parametrize("sort", [None, "name", "views", "newest", "oldest", "bogus"])
def test_every_ordering_ends_with_id(sort):
    assert str(build_ordering(sort)[-1]) == "businesses.id ASC"


def test_relevance_ordering_columns():
    assert _sql(build_ordering(None))[:4] == [
        "businesses.is_featured DESC",
        "businesses.rating_average DESC",
        "businesses.rating_count DESC",
        "businesses.created_at DESC",
    ]


def test_visibility_public_for_anonymous_and_plain_users():
    public = str(visibility_clause(None))
    assert "owner_id" not in public
    assert str(visibility_clause(Identity(1, ROLE_USER))) == public


def test_visibility_owner_aware_for_owners_and_admins():
    for role in (ROLE_BUSINESS_OWNER, ROLE_ADMIN):
        assert "owner_id" in str(visibility_clause(Identity(7, role)))
        assert "owner_id" not in str(visibility_clause(Identity(7, role), public_only=True))


def test_builder_is_pure_and_repeatable():
    facets = Facets(search="cafe", ratings=["4"], sort="name")
    first = build_listing_query(facets)
    second = build_listing_query(facets)
    assert str(first.predicate) == str(second.predicate)
    assert _sql(first.ordering) == _sql(second.ordering)
