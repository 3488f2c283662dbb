"""Search endpoints -- public business search plus search-box and location-box autocomplete."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from citylocal import config
from citylocal.dependencies import get_listing_service, get_suggestion_service
from citylocal.schemas import BusinessPage, SuggestionList, business_out
from citylocal.services.filters import SORT_KEYS, Facets
from citylocal.services.listings import ListingService
from citylocal.services.suggestions import SuggestionService

router = APIRouter(prefix="/search", tags=["search"])


@router.get("", response_model=BusinessPage)
async def search_businesses(
    q: Optional[str] = None,
    category: Optional[list[str]] = Query(None),
    city: Optional[list[str]] = Query(None),
    state: Optional[str] = None,
    min_rating: Optional[str] = Query(None, alias="minRating"),
    sort: Optional[str] = Query(None, description=f"One of: {', '.join(SORT_KEYS)}"),
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    service: ListingService = Depends(get_listing_service),
):
    """Active listings only, whoever is asking."""
    facets = Facets(
        search=q,
        category=category,
        city=city,
        state=state,
        min_rating=min_rating,
        sort=sort,
        public_only=True,
    )
    result = await service.list_businesses(facets, None, page=page, page_size=limit)
    return BusinessPage(
        count=len(result.items),
        total=result.total,
        page=result.page,
        pages=result.pages,
        businesses=[business_out(b) for b in result.items],
    )


@router.get("/suggestions", response_model=SuggestionList)
async def suggestions(
    q: Optional[str] = None,
    service: SuggestionService = Depends(get_suggestion_service),
):
    return SuggestionList(suggestions=await service.suggest(q))


@router.get("/location-suggestions", response_model=SuggestionList)
async def location_suggestions(
    q: Optional[str] = None,
    service: SuggestionService = Depends(get_suggestion_service),
):
    return SuggestionList(suggestions=await service.suggest_locations(q))
