"""FastAPI dependencies: caller identity and per-request services."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from citylocal.database import get_session
from citylocal.errors import AuthenticationError, ForbiddenError
from citylocal.models import User
from citylocal.security import Identity, decode_access_token
from citylocal.services.activity import ActivityLog, get_activity_log
from citylocal.services.categories import CategoryService
from citylocal.services.lifecycle import LifecycleManager
from citylocal.services.listings import ListingService
from citylocal.services.notifications import Notifier, get_notifier
from citylocal.services.reviews import ReviewService
from citylocal.services.suggestions import SuggestionService

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session),
) -> Optional[User]:
    """The active user behind the bearer token, or None for anonymous callers."""
    if credentials is None:
        return None
    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        return None
    user = await session.get(User, user_id)
    if user is None or not user.is_active:
        return None
    return user


async def get_optional_identity(user: Optional[User] = Depends(get_current_user)) -> Optional[Identity]:
    return Identity.of(user) if user is not None else None


async def require_user(user: Optional[User] = Depends(get_current_user)) -> User:
    if user is None:
        raise AuthenticationError()
    return user


async def require_identity(user: User = Depends(require_user)) -> Identity:
    return Identity.of(user)


async def require_admin_identity(identity: Identity = Depends(require_identity)) -> Identity:
    if not identity.is_admin:
        raise ForbiddenError("User role is not authorized to access this route")
    return identity


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------

def get_listing_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityLog = Depends(get_activity_log),
    notifier: Notifier = Depends(get_notifier),
) -> ListingService:
    return ListingService(session, activity, notifier)


def get_lifecycle_manager(
    session: AsyncSession = Depends(get_session),
    activity: ActivityLog = Depends(get_activity_log),
    notifier: Notifier = Depends(get_notifier),
) -> LifecycleManager:
    return LifecycleManager(session, activity, notifier)


def get_review_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityLog = Depends(get_activity_log),
) -> ReviewService:
    return ReviewService(session, activity)


def get_category_service(
    session: AsyncSession = Depends(get_session),
    activity: ActivityLog = Depends(get_activity_log),
) -> CategoryService:
    return CategoryService(session, activity)


def get_suggestion_service(session: AsyncSession = Depends(get_session)) -> SuggestionService:
    return SuggestionService(session)
