"""Review endpoints -- list and submit reviews for a business, delete your own."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from citylocal.dependencies import get_review_service, require_identity
from citylocal.schemas import (
    MessageResponse,
    ReviewCreate,
    ReviewList,
    ReviewOut,
    ReviewResponse,
    ReviewWithAuthor,
)
from citylocal.security import Identity
from citylocal.services.reviews import ReviewService

router = APIRouter(tags=["reviews"])


@router.get("/businesses/{business_id}/reviews", response_model=ReviewList)
async def list_reviews(business_id: int, service: ReviewService = Depends(get_review_service)):
    reviews = await service.list_business_reviews(business_id)
    return ReviewList(
        count=len(reviews),
        reviews=[ReviewWithAuthor.model_validate(r) for r in reviews],
    )


@router.post(
    "/businesses/{business_id}/reviews",
    response_model=ReviewResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_review(
    business_id: int,
    payload: ReviewCreate,
    identity: Identity = Depends(require_identity),
    service: ReviewService = Depends(get_review_service),
):
    review = await service.create_review(
        business_id, identity, payload.rating, payload.comment, title=payload.title
    )
    return ReviewResponse(
        message="Review submitted. It will appear once approved.",
        review=ReviewOut.model_validate(review),
    )


@router.delete("/reviews/{review_id}", response_model=MessageResponse)
async def delete_review(
    review_id: int,
    identity: Identity = Depends(require_identity),
    service: ReviewService = Depends(get_review_service),
):
    await service.delete_review(review_id, identity)
    return MessageResponse(message="Review deleted successfully")
