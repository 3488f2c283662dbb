"""Business endpoints -- directory listing, detail, create / edit / delete, claim, resubmit."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from citylocal import config
from citylocal.dependencies import get_listing_service, get_optional_identity, require_identity
from citylocal.schemas import (
    BusinessInput,
    BusinessList,
    BusinessPage,
    BusinessResponse,
    CategoryBrief,
    ContactRequest,
    FilterOptions,
    MessageResponse,
    business_out,
)
from citylocal.security import Identity
from citylocal.services.filters import SORT_KEYS, Facets
from citylocal.services.listings import ListingService

router = APIRouter(prefix="/businesses", tags=["businesses"])


@router.get("", response_model=BusinessPage)
async def list_businesses(
    search: Optional[str] = None,
    category: Optional[list[str]] = Query(None),
    city: Optional[list[str]] = Query(None),
    state: Optional[str] = None,
    ratings: Optional[list[str]] = Query(None),
    min_rating: Optional[str] = Query(None, alias="minRating"),
    featured: Optional[bool] = None,
    sort: Optional[str] = Query(None, description=f"One of: {', '.join(SORT_KEYS)}"),
    public_only: bool = Query(False, alias="publicOnly"),
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    identity: Optional[Identity] = Depends(get_optional_identity),
    service: ListingService = Depends(get_listing_service),
):
    facets = Facets(
        search=search,
        category=category,
        city=city,
        state=state,
        ratings=ratings,
        min_rating=min_rating,
        featured=featured,
        sort=sort,
        public_only=public_only,
    )
    result = await service.list_businesses(facets, identity, page=page, page_size=limit)
    return BusinessPage(
        count=len(result.items),
        total=result.total,
        page=result.page,
        pages=result.pages,
        businesses=[business_out(b) for b in result.items],
    )


@router.get("/filter-options", response_model=FilterOptions)
async def filter_options(service: ListingService = Depends(get_listing_service)):
    options = await service.get_filter_options()
    return FilterOptions(
        cities=options["cities"],
        categories=[CategoryBrief.model_validate(c) for c in options["categories"]],
    )


@router.get("/my-businesses", response_model=BusinessList)
async def my_businesses(
    identity: Identity = Depends(require_identity),
    service: ListingService = Depends(get_listing_service),
):
    businesses = await service.list_owned_businesses(identity)
    return BusinessList(businesses=[business_out(b) for b in businesses])


@router.get("/{business_id}", response_model=BusinessResponse)
async def get_business(business_id: int, service: ListingService = Depends(get_listing_service)):
    business = await service.get_business(business_id)
    return BusinessResponse(business=business_out(business))


@router.post("", response_model=BusinessResponse, status_code=status.HTTP_201_CREATED)
async def create_business(
    payload: BusinessInput,
    identity: Identity = Depends(require_identity),
    service: ListingService = Depends(get_listing_service),
):
    business = await service.create_business(payload.model_dump(exclude_unset=True), identity)
    return BusinessResponse(
        message="Business created successfully. It will be reviewed and approved soon.",
        business=business_out(business),
    )


@router.put("/{business_id}", response_model=BusinessResponse)
async def update_business(
    business_id: int,
    payload: BusinessInput,
    identity: Identity = Depends(require_identity),
    service: ListingService = Depends(get_listing_service),
):
    business, resubmitted = await service.update_business(
        business_id, payload.model_dump(exclude_unset=True), identity
    )
    message = (
        "Business updated and resubmitted for review" if resubmitted else "Business updated successfully"
    )
    return BusinessResponse(message=message, business=business_out(business))


@router.delete("/{business_id}", response_model=MessageResponse)
async def delete_business(
    business_id: int,
    identity: Identity = Depends(require_identity),
    service: ListingService = Depends(get_listing_service),
):
    await service.delete_business(business_id, identity)
    return MessageResponse(message="Business deleted successfully")


@router.post("/{business_id}/contact", response_model=MessageResponse)
async def contact_business(
    business_id: int,
    payload: ContactRequest,
    service: ListingService = Depends(get_listing_service),
):
    await service.contact_business(
        business_id, payload.name, payload.email, payload.message, phone=payload.phone
    )
    return MessageResponse(message="Your message has been sent to the business")


@router.post("/{business_id}/claim", response_model=BusinessResponse)
async def claim_business(
    business_id: int,
    identity: Identity = Depends(require_identity),
    service: ListingService = Depends(get_listing_service),
):
    business = await service.claim_business(business_id, identity)
    return BusinessResponse(
        message="Claim request submitted successfully. An admin will review it shortly.",
        business=business_out(business),
    )


@router.post("/{business_id}/resubmit", response_model=BusinessResponse)
async def resubmit_business(
    business_id: int,
    identity: Identity = Depends(require_identity),
    service: ListingService = Depends(get_listing_service),
):
    business = await service.resubmit_business(business_id, identity)
    return BusinessResponse(
        message="Business resubmitted successfully. Awaiting admin approval.",
        business=business_out(business),
    )
