"""
Reviews and the rating aggregates they feed.

Only approved reviews count. Aggregates are recomputed by a single UPDATE with
correlated subqueries, never read-modify-written in Python.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from citylocal.errors import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    storage_errors,
)
from citylocal.models import Business, Review
from citylocal.security import Identity
from citylocal.services.activity import ActivityLog
from citylocal.services.lifecycle import load_business, require_admin

logger = logging.getLogger(__name__)


async def recompute_rating(session: AsyncSession, business_id: int) -> None:
    approved = (Review.business_id == business_id, Review.is_approved.is_(True))
    average = select(func.coalesce(func.round(func.avg(Review.rating), 1), 0)).where(*approved)
    count = select(func.count(Review.id)).where(*approved)
    await session.execute(
        update(Business)
        .where(Business.id == business_id)
        .values(rating_average=average.scalar_subquery(), rating_count=count.scalar_subquery())
        .execution_options(synchronize_session=False)
    )


def _rating(value) -> int:
    try:
        rating = int(str(value).strip())
    except ValueError:
        raise ValidationError("Rating must be a whole number from 1 to 5")
    if not 1 <= rating <= 5:
        raise ValidationError("Rating must be a whole number from 1 to 5")
    return rating


class ReviewService:
    def __init__(self, session: AsyncSession, activity: ActivityLog):
        self.session = session
        self.activity = activity

    async def _load(self, review_id: int) -> Review:
        review = await self.session.get(Review, review_id)
        if review is None:
            raise NotFoundError("Review not found")
        return review

    @storage_errors
    async def list_business_reviews(self, business_id: int) -> list[Review]:
        await load_business(self.session, business_id, with_relations=False)
        stmt = (
            select(Review)
            .options(selectinload(Review.user))
            .where(Review.business_id == business_id, Review.is_approved.is_(True))
            .order_by(Review.created_at.desc(), Review.id.desc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    @storage_errors
    async def create_review(
        self,
        business_id: int,
        actor: Identity,
        rating,
        comment: str,
        title: Optional[str] = None,
    ) -> Review:
        rating = _rating(rating)
        comment = (comment or "").strip()
        if not comment:
            raise ValidationError("Review comment is required")

        business = await load_business(self.session, business_id, with_relations=False)
        if not business.is_active:
            raise InvalidStateError("Reviews are only accepted for active businesses")
        if business.owner_id == actor.id:
            raise ForbiddenError("You cannot review your own business")

        existing = (
            await self.session.execute(
                select(Review.id).where(Review.business_id == business_id, Review.user_id == actor.id)
            )
        ).scalar()
        if existing is not None:
            raise ConflictError("You have already reviewed this business")

        review = Review(
            business_id=business_id,
            user_id=actor.id,
            rating=rating,
            title=(title or "").strip() or None,
            comment=comment,
            is_approved=False,
        )
        self.session.add(review)
        await self.session.commit()

        await self.activity.record(
            "review_submitted",
            f'New review submitted for "{business.name}"',
            actor.id,
            {"businessId": business_id, "reviewId": review.id, "rating": rating},
        )
        return review

    @storage_errors
    async def approve_review(self, review_id: int, actor: Identity) -> Review:
        require_admin(actor)
        review = await self._load(review_id)
        review.is_approved = True
        await self.session.flush()
        await recompute_rating(self.session, review.business_id)
        await self.session.commit()
        logger.info("Review %s approved by admin %s", review.id, actor.id)
        return review

    @storage_errors
    async def delete_review(self, review_id: int, actor: Identity) -> None:
        review = await self._load(review_id)
        if review.user_id != actor.id and not actor.is_admin:
            raise ForbiddenError("Not authorized to delete this review")
        business_id = review.business_id

        await self.session.delete(review)
        await self.session.flush()
        await recompute_rating(self.session, business_id)
        await self.session.commit()
        logger.info("Review %s deleted by user %s", review_id, actor.id)
