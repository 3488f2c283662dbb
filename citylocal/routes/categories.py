"""Public category listing."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from citylocal.dependencies import get_category_service
from citylocal.schemas import CategoryList, CategoryOut
from citylocal.services.categories import CategoryService

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=CategoryList)
async def list_categories(service: CategoryService = Depends(get_category_service)):
    categories = await service.list_categories()
    return CategoryList(
        count=len(categories),
        categories=[CategoryOut.model_validate(c) for c in categories],
    )
