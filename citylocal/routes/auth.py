"""Auth endpoint -- register, login (site and admin), current user, profile, password, logout."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from citylocal.database import get_session
from citylocal.dependencies import require_user
from citylocal.errors import AuthenticationError, ConflictError, ValidationError
from citylocal.models import ROLE_USER, User
from citylocal.schemas import (
    LoginRequest,
    MessageResponse,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
    TokenResponse,
    UserOut,
    UserResponse,
)
from citylocal.security import create_access_token, hash_password, verify_password
from citylocal.services.activity import ActivityLog, get_activity_log
from citylocal.utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

MIN_PASSWORD_LENGTH = 6
MAX_AVATAR_LENGTH = 500_000


async def _find_user(session: AsyncSession, email: str) -> User | None:
    return (
        await session.execute(select(User).where(func.lower(User.email) == email.lower()))
    ).scalar_one_or_none()


async def _login(session: AsyncSession, req: LoginRequest, admin: bool) -> TokenResponse:
    user = await _find_user(session, req.email)
    # Admins sign in through /auth/admin/login only; both paths answer generically
    if user is None or user.is_admin != admin:
        raise AuthenticationError("Invalid credentials")
    if not user.is_active:
        raise AuthenticationError("Account is deactivated")
    if not verify_password(req.password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    user.last_login = utcnow()
    await session.commit()
    return TokenResponse(
        message="Login successful",
        token=create_access_token(user.id),
        user=UserOut.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    req: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    activity: ActivityLog = Depends(get_activity_log),
):
    if await _find_user(session, req.email) is not None:
        raise ConflictError("User already exists with this email")

    user = User(
        name=req.name.strip(),
        email=req.email.lower(),
        password_hash=hash_password(req.password),
        role=ROLE_USER,
    )
    session.add(user)
    await session.commit()
    logger.info("User %s registered", user.id)

    await activity.record(
        "user_registered",
        f'New user "{user.name}" registered',
        user.id,
        {"userName": user.name, "userEmail": user.email},
    )
    return TokenResponse(
        message="Registration successful",
        token=create_access_token(user.id),
        user=UserOut.model_validate(user),
    )


@router.post("/login", response_model=TokenResponse)
async def login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    return await _login(session, req, admin=False)


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    return await _login(session, req, admin=True)


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(require_user)):
    return UserOut.model_validate(user)


@router.put("/updateprofile", response_model=UserResponse)
async def update_profile(
    req: ProfileUpdate,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    activity: ActivityLog = Depends(get_activity_log),
):
    changes = req.model_dump(exclude_unset=True)

    if "avatar" in changes:
        avatar = changes.pop("avatar") or None
        if avatar is not None:
            if not avatar.startswith("data:image"):
                raise ValidationError("Avatar must be an image data URL")
            if len(avatar) > MAX_AVATAR_LENGTH:
                raise ValidationError("Image is too large. Please use a smaller image (max 500KB).")
        user.avatar = avatar

    for field, value in changes.items():
        if value is None:
            continue
        value = value.strip()
        if field == "name" and not value:
            raise ValidationError("Name cannot be empty")
        setattr(user, field, value or None)

    await session.commit()
    await activity.record(
        "profile_updated",
        f'User "{user.name}" updated their profile',
        user.id,
        {"userName": user.name},
    )
    return UserResponse(message="Profile updated successfully", user=UserOut.model_validate(user))


@router.put("/changepassword", response_model=TokenResponse)
async def change_password(
    req: PasswordChange,
    user: User = Depends(require_user),
    session: AsyncSession = Depends(get_session),
):
    if not verify_password(req.current_password, user.password_hash):
        raise AuthenticationError("Current password is incorrect")
    if len(req.new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"New password must be at least {MIN_PASSWORD_LENGTH} characters")

    user.password_hash = hash_password(req.new_password)
    await session.commit()
    logger.info("User %s changed password", user.id)
    return TokenResponse(
        message="Password changed successfully",
        token=create_access_token(user.id),
        user=UserOut.model_validate(user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(user: User = Depends(require_user)):
    # Tokens are stateless; the client drops its copy
    return MessageResponse(message="Logged out successfully")
