"""Password hashing and access-token issuing."""

import secrets
import uuid
from datetime import timedelta
from typing import Optional

from jose import jwt
from passlib.context import CryptContext

from libs.auth.models import ADMIN_ROLE, CUSTOMER_ROLE
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def create_access_token(
    user_id: uuid.UUID,
    *,
    email: Optional[str] = None,
    is_admin: bool = False,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """Sign a JWT for ``user_id`` with the configured secret."""
    settings = get_settings()
    expire = utc_now() + (
        expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)
    )
    claims = {
        "sub": str(user_id),
        "email": email,
        "role": ADMIN_ROLE if is_admin else CUSTOMER_ROLE,
        "exp": expire,
    }
    return jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def generate_reset_token() -> str:
    return secrets.token_hex(32)
