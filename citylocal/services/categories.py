"""Category management. Deleting a category that still has businesses is blocked."""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from citylocal.errors import ConflictError, NotFoundError, ValidationError, storage_errors
from citylocal.models import Business, Category
from citylocal.security import Identity
from citylocal.services.activity import ActivityLog
from citylocal.services.lifecycle import require_admin
from citylocal.utils import slugify

logger = logging.getLogger(__name__)

CATEGORY_NAME_MAX_LENGTH = 100


class CategoryService:
    def __init__(self, session: AsyncSession, activity: ActivityLog):
        self.session = session
        self.activity = activity

    @storage_errors
    async def list_categories(self, include_inactive: bool = False) -> list[Category]:
        stmt = select(Category).order_by(Category.display_order.asc(), Category.name.asc())
        if not include_inactive:
            stmt = stmt.where(Category.is_active.is_(True))
        return list((await self.session.execute(stmt)).scalars().all())

    @storage_errors
    async def create_category(
        self,
        actor: Identity,
        name: str,
        icon: str = "",
        description: str = "",
        display_order: int = 0,
        is_active: bool = True,
    ) -> Category:
        require_admin(actor)
        name = (name or "").strip()
        slug = slugify(name)
        if not slug:
            raise ValidationError("Category name is required")
        if len(name) > CATEGORY_NAME_MAX_LENGTH:
            raise ValidationError(f"Category name must be at most {CATEGORY_NAME_MAX_LENGTH} characters")

        clash = (
            await self.session.execute(
                select(Category.id).where(
                    or_(func.lower(Category.name) == name.lower(), Category.slug == slug)
                )
            )
        ).scalar()
        if clash is not None:
            raise ConflictError("A category with this name already exists")

        category = Category(
            name=name,
            slug=slug,
            icon=icon or "",
            description=description or "",
            display_order=display_order,
            is_active=is_active,
        )
        self.session.add(category)
        await self.session.commit()

        await self.activity.record(
            "category_created",
            f'Category "{name}" was created',
            actor.id,
            {"categoryId": category.id, "categoryName": name},
        )
        return category

    @storage_errors
    async def delete_category(self, category_id: int, actor: Identity) -> None:
        require_admin(actor)
        category = await self.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category not found")

        in_use = (
            await self.session.execute(
                select(func.count(Business.id)).where(Business.category_id == category_id)
            )
        ).scalar() or 0
        if in_use:
            raise ConflictError(f"Category is used by {in_use} business(es) and cannot be deleted")

        name = category.name
        await self.session.delete(category)
        await self.session.commit()
        logger.info("Category %s deleted by admin %s", category_id, actor.id)

        await self.activity.record(
            "category_deleted",
            f'Category "{name}" was deleted',
            actor.id,
            {"categoryId": category_id, "categoryName": name},
        )
