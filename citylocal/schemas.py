"""Pydantic schemas for FastAPI request / response models."""

from __future__ import annotations

import datetime as dt
from typing import Any, Optional, Union

from pydantic import BaseModel, EmailStr, Field

from citylocal.services.lifecycle import derive_status


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserBrief(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class OwnerBrief(UserBrief):
    email: str


class UserOut(OwnerBrief):
    role: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    business_id: Optional[int] = None
    last_login: Optional[dt.datetime] = None


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class TokenResponse(BaseModel):
    success: bool = True
    message: str = ""
    token: str
    user: UserOut


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None


class PasswordChange(BaseModel):
    current_password: str = ""
    new_password: str = ""


class UserResponse(BaseModel):
    success: bool = True
    message: str = ""
    user: UserOut


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class CategoryBrief(BaseModel):
    id: int
    name: str
    slug: str
    icon: Optional[str] = ""

    class Config:
        from_attributes = True


class CategoryOut(CategoryBrief):
    description: Optional[str] = ""
    display_order: int = 0
    is_active: bool = True


class CategoryCreate(BaseModel):
    name: str
    icon: str = ""
    description: str = ""
    display_order: int = 0
    is_active: bool = True


class CategoryList(BaseModel):
    success: bool = True
    count: int
    categories: list[CategoryOut]


# ---------------------------------------------------------------------------
# Businesses
# ---------------------------------------------------------------------------

class BusinessOut(BaseModel):
    id: int
    slug: str
    name: str
    description: str
    category_id: int
    category: Optional[CategoryBrief] = None
    address: str
    city: str
    state: str
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: str
    email: Optional[str] = None
    website: Optional[str] = None
    hours: Optional[Any] = None
    social_links: Optional[Any] = None
    tags: Optional[Any] = None
    rating_average: float = 0
    rating_count: int = 0
    views: int = 0
    is_featured: bool = False
    owner_id: Optional[int] = None
    owner: Optional[OwnerBrief] = None
    status: str = "pending"
    is_active: bool = False
    is_verified: bool = False
    claimed_at: Optional[dt.datetime] = None
    approved_at: Optional[dt.datetime] = None
    rejected_at: Optional[dt.datetime] = None
    rejection_reason: Optional[str] = None
    resubmitted_at: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


def business_out(business) -> BusinessOut:
    out = BusinessOut.model_validate(business, from_attributes=True)
    out.status = derive_status(business).value
    return out


class BusinessInput(BaseModel):
    """Create / update payload. Required fields are checked by the service."""

    name: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[Union[int, str]] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    hours: Optional[dict] = None
    social_links: Optional[dict] = None
    tags: Optional[list[str]] = None
    is_featured: Optional[bool] = None


class BusinessResponse(BaseModel):
    success: bool = True
    message: str = ""
    business: BusinessOut


class BusinessPage(BaseModel):
    success: bool = True
    count: int
    total: int
    page: int
    pages: int
    businesses: list[BusinessOut]


class BusinessList(BaseModel):
    success: bool = True
    businesses: list[BusinessOut]


class FilterOptions(BaseModel):
    success: bool = True
    cities: list[str]
    categories: list[CategoryBrief]


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    message: Optional[str] = None


class RejectRequest(BaseModel):
    reason: str = ""


class SuspendRequest(BaseModel):
    reason: Optional[str] = None


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

class ReviewCreate(BaseModel):
    rating: Union[int, str]
    title: Optional[str] = None
    comment: str = ""


class ReviewOut(BaseModel):
    id: int
    business_id: int
    user_id: int
    rating: int
    title: Optional[str] = None
    comment: str
    is_approved: bool = False
    created_at: Optional[dt.datetime] = None

    class Config:
        from_attributes = True


class ReviewWithAuthor(ReviewOut):
    user: Optional[UserBrief] = None


class ReviewResponse(BaseModel):
    success: bool = True
    message: str = ""
    review: ReviewOut


class ReviewList(BaseModel):
    success: bool = True
    count: int
    reviews: list[ReviewWithAuthor]


# ---------------------------------------------------------------------------
# Search suggestions
# ---------------------------------------------------------------------------

class SuggestionList(BaseModel):
    success: bool = True
    suggestions: list[dict]


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------

class SystemStats(BaseModel):
    users: int = 0
    businesses: int = 0
    active_businesses: int = 0
    pending_businesses: int = 0
    rejected_businesses: int = 0
    reviews: int = 0
    pending_reviews: int = 0
    categories: int = 0
    recent_businesses: list[BusinessOut] = []


class StatsResponse(BaseModel):
    success: bool = True
    stats: SystemStats


class MessageResponse(BaseModel):
    success: bool = True
    message: str
