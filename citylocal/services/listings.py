"""
Listing service -- paginated directory queries plus business create / edit /
delete / claim.

Visibility and facet predicates come from ``services.filters``; status
transitions that are not part of an edit or claim live in
``services.lifecycle``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from citylocal import config
from citylocal.errors import ConflictError, NotFoundError, ValidationError, storage_errors
from citylocal.models import ROLE_BUSINESS_OWNER, Business, Category, User
from citylocal.security import Identity
from citylocal.services.activity import ActivityLog
from citylocal.services.filters import Facets, build_listing_query
from citylocal.services.lifecycle import (
    BusinessStatus,
    LifecycleManager,
    derive_status,
    load_business,
    require_admin,
    require_owner_or_admin,
)
from citylocal.services.notifications import Notifier, claim_email, contact_email, submission_email
from citylocal.utils import unique_slug, utcnow

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "description", "address", "city", "state", "phone")
NAME_MAX_LENGTH = 255

# Columns an owner may edit. Slug, ownership, ranking and lifecycle columns are
# written only by this service, the lifecycle manager and review aggregation.
EDITABLE_FIELDS = (
    "name",
    "description",
    "category_id",
    "address",
    "city",
    "state",
    "zip_code",
    "country",
    "phone",
    "email",
    "website",
    "hours",
    "social_links",
    "tags",
)
ADMIN_EDITABLE_FIELDS = EDITABLE_FIELDS + ("is_featured",)


@dataclass
class Page:
    items: list
    total: int
    pages: int
    page: int
    page_size: int


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def _normalise_page(page, page_size, default_size: int) -> tuple[int, int]:
    try:
        page = int(page) if page is not None else 1
        page_size = int(page_size) if page_size is not None else default_size
    except (TypeError, ValueError):
        raise ValidationError("Page and page size must be integers")
    if page < 1:
        raise ValidationError("Page must be 1 or greater")
    page_size = max(1, min(page_size, config.MAX_PAGE_SIZE))
    return page, page_size


def _category_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Please select a valid category")


class ListingService:
    def __init__(self, session: AsyncSession, activity: ActivityLog, notifier: Notifier):
        self.session = session
        self.activity = activity
        self.notifier = notifier
        self.lifecycle = LifecycleManager(session, activity, notifier)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def _paginate(self, predicate, ordering, page: int, page_size: int) -> Page:
        total = (
            await self.session.execute(select(func.count(Business.id)).where(predicate))
        ).scalar() or 0

        stmt = (
            select(Business)
            .options(selectinload(Business.category), selectinload(Business.owner))
            .where(predicate)
            .order_by(*ordering)
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        items = list((await self.session.execute(stmt)).scalars().all())
        return Page(
            items=items,
            total=total,
            pages=math.ceil(total / page_size),
            page=page,
            page_size=page_size,
        )

    @storage_errors
    async def list_businesses(
        self,
        facets: Facets,
        identity: Optional[Identity] = None,
        page: int = 1,
        page_size: int = config.DEFAULT_PAGE_SIZE,
    ) -> Page:
        page, page_size = _normalise_page(page, page_size, config.DEFAULT_PAGE_SIZE)
        query = build_listing_query(facets, identity)
        return await self._paginate(query.predicate, query.ordering, page, page_size)

    @storage_errors
    async def list_all_businesses(self, actor: Identity, page: int = 1, page_size: int = 20) -> Page:
        """Admin view: every business in any state, newest first."""
        require_admin(actor)
        page, page_size = _normalise_page(page, page_size, 20)
        return await self._paginate(
            Business.id.isnot(None), [Business.created_at.desc(), Business.id.desc()], page, page_size
        )

    @storage_errors
    async def list_owned_businesses(self, actor: Identity) -> list[Business]:
        stmt = (
            select(Business)
            .options(selectinload(Business.category), selectinload(Business.owner))
            .where(Business.owner_id == actor.id)
            .order_by(Business.created_at.desc(), Business.id.desc())
        )
        return list((await self.session.execute(stmt)).scalars().all())

    @storage_errors
    async def get_business(self, business_id: int) -> Business:
        await self._increment_views(business_id)
        return await load_business(self.session, business_id)

    async def _increment_views(self, business_id: int) -> None:
        # Best effort: the read succeeds even when the counter cannot be bumped
        try:
            await self.session.execute(
                update(Business)
                .where(Business.id == business_id)
                .values(views=Business.views + 1)
                .execution_options(synchronize_session=False)
            )
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.warning("Failed to increment views for business %s: %s", business_id, e)

    @storage_errors
    async def get_filter_options(self) -> dict:
        city_rows = await self.session.execute(
            select(Business.city)
            .where(Business.is_active.is_(True), Business.city.isnot(None))
            .distinct()
        )
        cities = sorted({c for c in city_rows.scalars().all() if c and c.strip()})

        categories = (
            await self.session.execute(
                select(Category).where(Category.is_active.is_(True)).order_by(Category.name.asc())
            )
        ).scalars().all()
        return {"cities": cities, "categories": list(categories)}

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def _get_category(self, category_id: int) -> Category:
        category = await self.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Selected category does not exist")
        return category

    async def _promote(self, user_id: int, business_id: int) -> User:
        """Link the business to its owner; plain users become business owners."""
        user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        if not user.is_admin:
            user.role = ROLE_BUSINESS_OWNER
        user.business_id = business_id
        return user

    @storage_errors
    async def create_business(self, data: Mapping[str, Any], creator: Identity) -> Business:
        data = {k: _clean(v) for k, v in data.items()}

        if data.get("category_id") is None:
            raise ValidationError("Please select a valid category")
        category_id = _category_id(data["category_id"])
        if not data.get("name") or not data.get("description"):
            raise ValidationError("Business name and description are required")
        if len(data["name"]) > NAME_MAX_LENGTH:
            raise ValidationError(f"Business name must be at most {NAME_MAX_LENGTH} characters")
        if not data.get("address") or not data.get("city") or not data.get("state"):
            raise ValidationError("Address, city, and state are required")
        if not data.get("phone"):
            raise ValidationError("Phone number is required")
        category = await self._get_category(category_id)

        business = Business(
            name=data["name"],
            slug=unique_slug(data["name"]),
            description=data["description"],
            category_id=category.id,
            owner_id=creator.id,
            address=data["address"],
            city=data["city"],
            state=data["state"],
            zip_code=data.get("zip_code"),
            country=data.get("country") or "USA",
            phone=data["phone"],
            email=data.get("email"),
            website=data.get("website"),
            hours=data.get("hours"),
            social_links=data.get("social_links"),
            tags=data.get("tags"),
            # New listings always start pending
            is_active=False,
            is_verified=False,
        )
        self.session.add(business)
        await self.session.flush()
        owner = await self._promote(creator.id, business.id)
        await self.session.commit()
        business = await load_business(self.session, business.id)
        logger.info("Business %s created by user %s", business.id, creator.id)

        await self.activity.record(
            "business_submitted",
            f'New business "{business.name}" was submitted for approval',
            creator.id,
            {"businessName": business.name, "ownerName": owner.name, "businessId": business.id},
        )
        await self.notifier.notify_admin(
            f"New Business Listing Submission: {business.name}",
            submission_email(
                business, category.name, owner.name, owner.email,
                f"{self.notifier.frontend_url}/admin/businesses",
            ),
        )
        return business

    @storage_errors
    async def update_business(
        self, business_id: int, data: Mapping[str, Any], actor: Identity
    ) -> tuple[Business, bool]:
        """Apply an edit. Returns the business and whether it was resubmitted."""
        business = await load_business(self.session, business_id)
        require_owner_or_admin(business, actor, "update")

        allowed = ADMIN_EDITABLE_FIELDS if actor.is_admin else EDITABLE_FIELDS
        changes = {k: _clean(v) for k, v in data.items() if k in allowed}
        for key in REQUIRED_FIELDS:
            if key in changes and not changes[key]:
                raise ValidationError(f"{key.replace('_', ' ').capitalize()} cannot be empty")
        if len(changes.get("name") or "") > NAME_MAX_LENGTH:
            raise ValidationError(f"Business name must be at most {NAME_MAX_LENGTH} characters")
        if "category_id" in changes:
            if changes["category_id"] is None:
                raise ValidationError("Please select a valid category")
            changes["category_id"] = (await self._get_category(_category_id(changes["category_id"]))).id
        if "is_featured" in changes:
            changes["is_featured"] = bool(changes["is_featured"])

        # Editing a rejected listing sends it back for review
        resubmitted = (
            derive_status(business) is BusinessStatus.REJECTED
            and business.owner_id == actor.id
            and not actor.is_admin
        )
        if resubmitted:
            changes.update(
                is_active=False,
                rejected_at=None,
                rejection_reason=None,
                resubmitted_at=utcnow(),
            )

        for key, value in changes.items():
            setattr(business, key, value)
        await self.session.commit()
        business = await load_business(self.session, business.id)

        if resubmitted:
            await self.activity.record(
                "business_resubmitted",
                f'Business "{business.name}" was resubmitted for review after rejection',
                actor.id,
                {"businessName": business.name, "businessId": business.id},
            )
        return business, resubmitted

    @storage_errors
    async def delete_business(self, business_id: int, actor: Identity) -> None:
        business = await load_business(self.session, business_id, with_relations=False)
        require_owner_or_admin(business, actor, "delete")
        name = business.name

        await self.session.execute(
            update(User)
            .where(User.business_id == business.id)
            .values(business_id=None)
            .execution_options(synchronize_session=False)
        )
        await self.session.delete(business)
        await self.session.commit()
        logger.info("Business %s deleted by user %s", business_id, actor.id)

        await self.activity.record(
            "business_deleted",
            f'Business "{name}" was deleted',
            actor.id,
            {"businessName": name, "businessId": business_id},
        )

    @storage_errors
    async def claim_business(self, business_id: int, actor: Identity) -> Business:
        business = await load_business(self.session, business_id)
        if business.owner_id is not None:
            raise ConflictError("This business has already been claimed")

        # Conditional update: only one concurrent claim can match owner_id IS NULL
        result = await self.session.execute(
            update(Business)
            .where(Business.id == business.id, Business.owner_id.is_(None))
            .values(
                owner_id=actor.id,
                claimed_at=utcnow(),
                is_active=False,
                rejected_at=None,
                rejection_reason=None,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.session.rollback()
            raise ConflictError("This business has already been claimed")
        claimer = await self._promote(actor.id, business.id)
        await self.session.commit()
        business = await load_business(self.session, business.id)
        logger.info("Business %s claimed by user %s", business.id, actor.id)

        await self.activity.record(
            "business_claimed",
            f'Business "{business.name}" was claimed by {claimer.name}',
            actor.id,
            {"businessName": business.name, "businessId": business.id, "claimerName": claimer.name},
        )
        await self.notifier.notify_admin(
            f"Business Claim Request: {business.name}",
            claim_email(business, claimer.name, claimer.email),
        )
        return business

    @storage_errors
    async def contact_business(
        self,
        business_id: int,
        name: Optional[str],
        email: Optional[str],
        message: Optional[str],
        phone: Optional[str] = None,
    ) -> bool:
        """Forward a visitor inquiry to the business. Returns whether the mail went out."""
        name, email, message, phone = (_clean(v) for v in (name, email, message, phone))
        if not name or not email or not message:
            raise ValidationError("Name, email, and message are required")
        business = await load_business(self.session, business_id)

        owner_email = business.owner.email if business.owner is not None else None
        recipient = business.email or owner_email or self.notifier.admin_email
        delivered = await self.notifier.send(
            recipient,
            f"New inquiry for {business.name}",
            contact_email(business, name, email, phone, message),
        )
        logger.info("Contact inquiry for business %s from %s", business.id, email)

        await self.activity.record(
            "business_contact",
            f"Contact inquiry sent to {business.name}",
            None,
            {"businessId": business.id, "businessName": business.name, "senderEmail": email},
        )
        return delivered

    async def resubmit_business(self, business_id: int, actor: Identity) -> Business:
        return await self.lifecycle.resubmit(business_id, actor)
