"""
Seed script: admin account, default categories and sample listings.

Usage:
    python -m citylocal.seed                                  # default admin credentials
    python -m citylocal.seed --admin-email a@b.c --admin-password secret

Safe to run repeatedly: rows are looked up by their unique keys first.
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from sqlalchemy import select

from citylocal import config
from citylocal.database import async_session, init_db
from citylocal.models import ROLE_ADMIN, Business, Category, User
from citylocal.security import hash_password
from citylocal.utils import slugify, unique_slug

logger = logging.getLogger(__name__)

CATEGORIES = [
    ("Restaurants & Dining", "utensils", "Food and dining establishments"),
    ("Professional Services", "briefcase", "Professional and business services"),
    ("Retail & Shopping", "shopping-bag", "Retail stores and shopping"),
    ("Health & Wellness", "heart", "Health and wellness services"),
    ("Home Services", "home", "Home improvement and services"),
    ("Auto Services", "car", "Automotive services"),
    ("Beauty & Spa", "spa", "Beauty and spa services"),
    ("Education", "graduation-cap", "Educational services"),
]

# (category index, fields)
BUSINESSES = [
    (0, {
        "name": "Downtown Pizza Co.",
        "description": "Authentic Italian pizza with fresh ingredients and traditional recipes.",
        "address": "123 Main Street", "city": "New York", "state": "NY", "zip_code": "10001",
        "phone": "(555) 123-4567", "email": "info@downtownpizza.com",
        "website": "https://downtownpizza.com",
        "is_featured": True, "rating_average": 4.5, "rating_count": 25,
    }),
    (1, {
        "name": "Tech Solutions Inc.",
        "description": "Professional IT services and consulting for businesses of all sizes.",
        "address": "456 Tech Avenue", "city": "San Francisco", "state": "CA", "zip_code": "94102",
        "phone": "(555) 234-5678", "email": "contact@techsolutions.com",
        "website": "https://techsolutions.com",
        "is_featured": True, "rating_average": 4.8, "rating_count": 42,
    }),
    (4, {
        "name": "Green Thumb Landscaping",
        "description": "Expert landscaping and garden design services for residential and commercial properties.",
        "address": "789 Garden Lane", "city": "Los Angeles", "state": "CA", "zip_code": "90001",
        "phone": "(555) 345-6789", "email": "info@greenthumb.com",
        "rating_average": 4.3, "rating_count": 18,
    }),
]


async def seed(admin_email: str, admin_password: str):
    logger.info("Initialising database schema ...")
    await init_db()

    async with async_session() as session:
        admin = (await session.execute(select(User).where(User.email == admin_email))).scalar_one_or_none()
        if admin is None:
            session.add(User(
                name="Admin User",
                email=admin_email,
                password_hash=hash_password(admin_password),
                role=ROLE_ADMIN,
                is_active=True,
            ))
            logger.info("Admin user created: %s", admin_email)

        categories = []
        for order, (name, icon, description) in enumerate(CATEGORIES):
            category = (await session.execute(select(Category).where(Category.name == name))).scalar_one_or_none()
            if category is None:
                category = Category(
                    name=name, slug=slugify(name), icon=icon, description=description, display_order=order
                )
                session.add(category)
            categories.append(category)
        await session.flush()
        logger.info("%d categories ready", len(categories))

        created = 0
        for idx, fields in BUSINESSES:
            exists = (
                await session.execute(select(Business.id).where(Business.name == fields["name"]))
            ).scalar()
            if exists is not None:
                continue
            session.add(Business(
                slug=unique_slug(fields["name"]),
                category_id=categories[idx].id,
                is_active=True,
                is_verified=True,
                **fields,
            ))
            created += 1

        await session.commit()

    logger.info("Seed complete: %d sample businesses added", created)


def main():
    parser = argparse.ArgumentParser(description="Seed the CityLocal database")
    parser.add_argument("--admin-email", default=config.ADMIN_EMAIL)
    parser.add_argument("--admin-password", default="admin123")
    args = parser.parse_args()
    config.configure_logging()
    asyncio.run(seed(args.admin_email, args.admin_password))


if __name__ == "__main__":
    main()
