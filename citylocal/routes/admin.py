"""Admin endpoint -- dashboard statistics, moderation, category management."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from citylocal.database import get_session
from citylocal.dependencies import (
    get_category_service,
    get_lifecycle_manager,
    get_listing_service,
    get_review_service,
    require_admin_identity,
)
from citylocal.models import Business, Category, Review, User
from citylocal.schemas import (
    BusinessPage,
    BusinessResponse,
    CategoryCreate,
    CategoryList,
    CategoryOut,
    MessageResponse,
    RejectRequest,
    ReviewOut,
    ReviewResponse,
    StatsResponse,
    SuspendRequest,
    SystemStats,
    business_out,
)
from citylocal.security import Identity
from citylocal.services.categories import CategoryService
from citylocal.services.lifecycle import LifecycleManager
from citylocal.services.listings import ListingService
from citylocal.services.reviews import ReviewService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin_identity)])


async def _count(session: AsyncSession, column, *where) -> int:
    return (await session.execute(select(func.count(column)).where(*where))).scalar() or 0


@router.get("/stats", response_model=StatsResponse)
async def system_stats(session: AsyncSession = Depends(get_session)):
    recent = (
        await session.execute(
            select(Business)
            .options(selectinload(Business.category), selectinload(Business.owner))
            .order_by(Business.created_at.desc(), Business.id.desc())
            .limit(5)
        )
    ).scalars().all()

    stats = SystemStats(
        users=await _count(session, User.id),
        businesses=await _count(session, Business.id),
        active_businesses=await _count(
            session, Business.id, Business.is_active.is_(True), Business.rejected_at.is_(None)
        ),
        pending_businesses=await _count(
            session, Business.id, Business.is_active.is_(False), Business.rejected_at.is_(None)
        ),
        rejected_businesses=await _count(session, Business.id, Business.rejected_at.isnot(None)),
        reviews=await _count(session, Review.id),
        pending_reviews=await _count(session, Review.id, Review.is_approved.is_(False)),
        categories=await _count(session, Category.id),
        recent_businesses=[business_out(b) for b in recent],
    )
    return StatsResponse(stats=stats)


# ---------------------------------------------------------------------------
# Business moderation
# ---------------------------------------------------------------------------

@router.get("/businesses", response_model=BusinessPage)
async def all_businesses(
    page: int = 1,
    limit: int = 20,
    identity: Identity = Depends(require_admin_identity),
    service: ListingService = Depends(get_listing_service),
):
    result = await service.list_all_businesses(identity, page=page, page_size=limit)
    return BusinessPage(
        count=len(result.items),
        total=result.total,
        page=result.page,
        pages=result.pages,
        businesses=[business_out(b) for b in result.items],
    )


@router.put("/businesses/{business_id}/approve", response_model=BusinessResponse)
async def approve_business(
    business_id: int,
    identity: Identity = Depends(require_admin_identity),
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    business = await lifecycle.approve(business_id, identity)
    return BusinessResponse(message="Business approved successfully", business=business_out(business))


@router.put("/businesses/{business_id}/reject", response_model=BusinessResponse)
async def reject_business(
    business_id: int,
    payload: RejectRequest,
    identity: Identity = Depends(require_admin_identity),
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    business = await lifecycle.reject(business_id, identity, payload.reason)
    return BusinessResponse(message="Business rejected", business=business_out(business))


@router.put("/businesses/{business_id}/suspend", response_model=BusinessResponse)
async def suspend_business(
    business_id: int,
    payload: SuspendRequest,
    identity: Identity = Depends(require_admin_identity),
    lifecycle: LifecycleManager = Depends(get_lifecycle_manager),
):
    business = await lifecycle.suspend(business_id, identity, payload.reason)
    return BusinessResponse(message="Business suspended", business=business_out(business))


# ---------------------------------------------------------------------------
# Review moderation
# ---------------------------------------------------------------------------

@router.put("/reviews/{review_id}/approve", response_model=ReviewResponse)
async def approve_review(
    review_id: int,
    identity: Identity = Depends(require_admin_identity),
    service: ReviewService = Depends(get_review_service),
):
    review = await service.approve_review(review_id, identity)
    return ReviewResponse(message="Review approved successfully", review=ReviewOut.model_validate(review))


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

@router.get("/categories", response_model=CategoryList)
async def all_categories(service: CategoryService = Depends(get_category_service)):
    categories = await service.list_categories(include_inactive=True)
    return CategoryList(
        count=len(categories),
        categories=[CategoryOut.model_validate(c) for c in categories],
    )


@router.post("/categories", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    identity: Identity = Depends(require_admin_identity),
    service: CategoryService = Depends(get_category_service),
):
    category = await service.create_category(identity, **payload.model_dump())
    return CategoryOut.model_validate(category)


@router.delete("/categories/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: int,
    identity: Identity = Depends(require_admin_identity),
    service: CategoryService = Depends(get_category_service),
):
    await service.delete_category(category_id, identity)
    return MessageResponse(message="Category deleted successfully")
