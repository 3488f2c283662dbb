"""
Business lifecycle -- pending / active / rejected.

Status is never stored. ``derive_status`` computes it from ``rejected_at`` and
``is_active``; every transition below writes those columns plus the audit
timestamps, records an activity event and, for approve / reject, emails the
owner. Activity and email are best effort and happen after the commit.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from citylocal.errors import (
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    storage_errors,
)
from citylocal.models import Business
from citylocal.security import Identity
from citylocal.services.activity import ActivityLog
from citylocal.services.notifications import Notifier, approval_email, rejection_email
from citylocal.utils import utcnow

logger = logging.getLogger(__name__)


class BusinessStatus(str, enum.Enum):
    PENDING = "pending"
    ACTIVE = "active"
    REJECTED = "rejected"


def derive_status(business) -> BusinessStatus:
    if business.rejected_at is not None:
        return BusinessStatus.REJECTED
    if business.is_active:
        return BusinessStatus.ACTIVE
    return BusinessStatus.PENDING


# ---------------------------------------------------------------------------
# Shared lookups and permission checks
# ---------------------------------------------------------------------------

async def load_business(session: AsyncSession, business_id: int, with_relations: bool = True) -> Business:
    stmt = select(Business).where(Business.id == business_id).execution_options(populate_existing=True)
    if with_relations:
        stmt = stmt.options(selectinload(Business.category), selectinload(Business.owner))
    business = (await session.execute(stmt)).scalar_one_or_none()
    if business is None:
        raise NotFoundError("Business not found")
    return business


def require_admin(actor: Optional[Identity]) -> None:
    if actor is None or not actor.is_admin:
        raise ForbiddenError("Admin access required")


def require_owner_or_admin(business: Business, actor: Optional[Identity], action: str) -> None:
    if actor is None:
        raise ForbiddenError(f"Not authorized to {action} this business")
    if business.owner_id != actor.id and not actor.is_admin:
        raise ForbiddenError(f"Not authorized to {action} this business")


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------

class LifecycleManager:
    def __init__(self, session: AsyncSession, activity: ActivityLog, notifier: Notifier):
        self.session = session
        self.activity = activity
        self.notifier = notifier

    @storage_errors
    async def approve(self, business_id: int, actor: Identity) -> Business:
        """pending / rejected -> active. Approval also marks the listing verified.

        Approving an active listing returns it unchanged.
        """
        require_admin(actor)
        business = await load_business(self.session, business_id)
        if derive_status(business) is BusinessStatus.ACTIVE:
            return business

        business.is_active = True
        business.is_verified = True
        business.approved_at = utcnow()
        business.rejected_at = None
        business.rejection_reason = None
        await self.session.commit()
        logger.info("Business %s approved by admin %s", business.id, actor.id)

        await self.activity.record(
            "business_approved",
            f'Business "{business.name}" was approved by admin',
            actor.id,
            {"businessName": business.name, "businessId": business.id},
        )
        if business.owner is not None:
            await self.notifier.send(
                business.owner.email,
                f"Your business listing is approved: {business.name}",
                approval_email(business),
            )
        return business

    @storage_errors
    async def reject(self, business_id: int, actor: Identity, reason: str) -> Business:
        """pending / active -> rejected, with a mandatory reason.

        Rejecting a rejected listing only replaces the stored reason.
        """
        require_admin(actor)
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        business = await load_business(self.session, business_id)
        if derive_status(business) is BusinessStatus.REJECTED:
            if business.rejection_reason != reason:
                business.rejection_reason = reason
                await self.session.commit()
            return business

        business.is_active = False
        business.rejected_at = utcnow()
        business.rejection_reason = reason
        await self.session.commit()
        logger.info("Business %s rejected by admin %s", business.id, actor.id)

        await self.activity.record(
            "business_rejected",
            f'Business "{business.name}" was rejected by admin',
            actor.id,
            {"businessName": business.name, "businessId": business.id, "reason": reason},
        )
        if business.owner is not None:
            await self.notifier.send(
                business.owner.email,
                f"Your business listing was not approved: {business.name}",
                rejection_email(business, reason),
            )
        return business

    @storage_errors
    async def resubmit(self, business_id: int, actor: Identity) -> Business:
        """rejected -> pending. Owner (or admin) asks for another review."""
        business = await load_business(self.session, business_id)
        require_owner_or_admin(business, actor, "resubmit")
        if derive_status(business) is not BusinessStatus.REJECTED:
            raise InvalidStateError("Business is not rejected")

        # Conditional update: a concurrent resubmit finds nothing left to clear
        result = await self.session.execute(
            update(Business)
            .where(Business.id == business.id, Business.rejected_at.isnot(None))
            .values(
                is_active=False,
                approved_at=None,
                rejected_at=None,
                rejection_reason=None,
                resubmitted_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise InvalidStateError("Business is not rejected")
        await self.session.commit()
        business = await load_business(self.session, business.id)
        logger.info("Business %s resubmitted by user %s", business.id, actor.id)

        await self.activity.record(
            "business_resubmitted",
            f'Business "{business.name}" was resubmitted for review',
            actor.id,
            {"businessName": business.name, "businessId": business.id},
        )
        return business

    @storage_errors
    async def suspend(self, business_id: int, actor: Identity, reason: Optional[str] = None) -> Business:
        """active -> pending. Takes a live listing down without rejecting it.

        Suspending a pending listing returns it unchanged.
        """
        require_admin(actor)
        business = await load_business(self.session, business_id)
        status = derive_status(business)
        if status is BusinessStatus.PENDING:
            return business
        if status is BusinessStatus.REJECTED:
            raise InvalidStateError("Rejected businesses cannot be suspended")

        business.is_active = False
        await self.session.commit()
        logger.info("Business %s suspended by admin %s", business.id, actor.id)

        await self.activity.record(
            "business_suspended",
            f'Business "{business.name}" was suspended by admin',
            actor.id,
            {"businessName": business.name, "businessId": business.id, "reason": (reason or "").strip()},
        )
        return business
