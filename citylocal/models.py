"""
SQLAlchemy ORM models -- relational schema for the CityLocal directory.

Tables
------
categories   -- admin-managed business categories
users        -- accounts (user / business_owner / admin)
businesses   -- listings; lifecycle status derived from timestamp columns
reviews      -- user reviews, aggregated into businesses.rating_* once approved
activities   -- activity log (moderation and account events)
"""

from __future__ import annotations

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base
from .utils import utcnow

ROLE_USER = "user"
ROLE_BUSINESS_OWNER = "business_owner"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_BUSINESS_OWNER, ROLE_ADMIN)

# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(120), unique=True, nullable=False)
    icon = Column(String(64), default="")
    description = Column(Text, default="")
    display_order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    businesses = relationship("Business", back_populates="category")


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    role = Column(String(20), default=ROLE_USER, nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    avatar = Column(Text, nullable=True)
    business_id = Column(
        Integer, ForeignKey("businesses.id", ondelete="SET NULL", use_alter=True), nullable=True
    )
    is_active = Column(Boolean, default=True, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    reviews = relationship("Review", back_populates="user", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


# ---------------------------------------------------------------------------
# Businesses
# ---------------------------------------------------------------------------

class Business(Base):
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(255), unique=True, nullable=False)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category_id = Column(
        Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )

    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(50), nullable=False)
    zip_code = Column(String(20), nullable=True)
    country = Column(String(64), default="USA")
    phone = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)
    website = Column(String(512), nullable=True)
    hours = Column(JSON, nullable=True)
    social_links = Column(JSON, nullable=True)
    tags = Column(JSON, nullable=True)

    # Ranking
    rating_average = Column(Float, default=0.0, nullable=False)
    rating_count = Column(Integer, default=0, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)

    # Ownership
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # Lifecycle (status is derived, see services.lifecycle.derive_status)
    is_active = Column(Boolean, default=False, nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    claimed_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    resubmitted_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="businesses")
    owner = relationship("User", foreign_keys=[owner_id])
    reviews = relationship(
        "Review", back_populates="business", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("ix_businesses_city_active", "city", "is_active"),
        Index("ix_businesses_active_featured", "is_active", "is_featured"),
        CheckConstraint("rating_average >= 0 AND rating_average <= 5", name="ck_businesses_rating_range"),
        CheckConstraint("rating_count >= 0", name="ck_businesses_rating_count"),
        CheckConstraint("views >= 0", name="ck_businesses_views"),
    )


# ---------------------------------------------------------------------------
# Reviews
# ---------------------------------------------------------------------------

class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    business_id = Column(
        Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    rating = Column(Integer, nullable=False)
    title = Column(String(255), nullable=True)
    comment = Column(Text, nullable=False)
    is_approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    business = relationship("Business", back_populates="reviews")
    user = relationship("User", back_populates="reviews")

    __table_args__ = (
        UniqueConstraint("business_id", "user_id", name="uq_reviews_business_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating_range"),
    )


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------

class Activity(Base):
    __tablename__ = "activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String(64), nullable=False, index=True)
    description = Column(Text, nullable=False)
    user_id = Column(Integer, nullable=True)
    details = Column("metadata", JSON, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow)
