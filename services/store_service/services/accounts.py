"""Account registration, login, profile and password reset."""

import hashlib
import uuid
from datetime import timedelta
from typing import Optional

from libs.auth.security import (
    create_access_token,
    generate_reset_token,
    hash_password,
    verify_password,
)
from libs.common.config import get_settings
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.email import password_reset_email, send_email
from libs.common.logging import get_logger
from services.store_service.errors import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    UserNotFoundError,
)
from services.store_service.models import User
from services.store_service.schemas import ProfileUpdate
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, we have sent you a password reset link."
)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _digest(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def issue_token(user: User) -> str:
    return create_access_token(user.id, email=user.email, is_admin=user.is_admin)


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(
        select(User).where(func.lower(User.email) == _normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise UserNotFoundError()
    return user


async def register(
    db: AsyncSession, *, email: str, password: str, name: str = ""
) -> User:
    if await get_user_by_email(db, email):
        raise EmailAlreadyRegisteredError()

    user = User(
        email=_normalize_email(email),
        password_hash=hash_password(password),
        name=name.strip(),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same address
        await db.rollback()
        raise EmailAlreadyRegisteredError()

    logger.info("Registered user %s", user.id)
    return user


async def authenticate(db: AsyncSession, *, email: str, password: str) -> User:
    user = await get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError()
    return user


async def update_profile(
    db: AsyncSession, user_id: uuid.UUID, update: ProfileUpdate
) -> User:
    user = await get_user(db, user_id)

    if update.name is not None:
        user.name = update.name.strip()
    if update.contact is not None:
        user.contact = update.contact.strip()
    if update.default_address is not None:
        user.default_address = update.default_address.model_dump()

    await db.commit()
    return user


async def forgot_password(db: AsyncSession, email: str) -> str:
    """Email a one-time reset link if the account exists.

    The caller gets the same message either way.
    """
    user = await get_user_by_email(db, email)
    if not user:
        logger.info("Password reset requested for unknown email")
        return FORGOT_PASSWORD_MESSAGE

    settings = get_settings()
    token = generate_reset_token()
    user.reset_password_token = _digest(token)
    user.reset_password_expires = utc_now() + timedelta(
        minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    await db.commit()

    reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
    subject, body, html_body = password_reset_email(
        reset_url, settings.PASSWORD_RESET_EXPIRE_MINUTES
    )
    await send_email(user.email, subject, body, html_body)
    return FORGOT_PASSWORD_MESSAGE


async def reset_password(db: AsyncSession, *, token: str, password: str) -> None:
    result = await db.execute(
        select(User).where(User.reset_password_token == _digest(token))
    )
    user = result.scalar_one_or_none()
    if (
        not user
        or not user.reset_password_expires
        or ensure_utc(user.reset_password_expires) <= utc_now()
    ):
        raise InvalidResetTokenError()

    user.password_hash = hash_password(password)
    user.reset_password_token = None
    user.reset_password_expires = None
    await db.commit()
    logger.info("Password reset for user %s", user.id)
