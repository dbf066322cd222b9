"""Account router: registration, login, profile and password reset."""

from fastapi import APIRouter, Depends, Request
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.rate_limit import auth_limit
from libs.db.session import get_async_db
from services.store_service.schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ProfileUpdate,
    RegisterRequest,
    ResetPasswordRequest,
    TokenResponse,
    UserResponse,
)
from services.store_service.services import accounts
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=TokenResponse)
@auth_limit
async def register(
    request: Request,
    register_in: RegisterRequest,
    db: AsyncSession = Depends(get_async_db),
):
    user = await accounts.register(
        db,
        email=register_in.email,
        password=register_in.password,
        name=register_in.name,
    )
    return TokenResponse(
        token=accounts.issue_token(user), user=UserResponse.model_validate(user)
    )


@router.post("/login", response_model=TokenResponse)
@auth_limit
async def login(
    request: Request,
    login_in: LoginRequest,
    db: AsyncSession = Depends(get_async_db),
):
    user = await accounts.authenticate(
        db, email=login_in.email, password=login_in.password
    )
    return TokenResponse(
        token=accounts.issue_token(user), user=UserResponse.model_validate(user)
    )


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await accounts.get_user(db, current_user.user_id)


@router.put("/me", response_model=UserResponse)
async def update_me(
    profile_in: ProfileUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update name, contact number and default shipping address."""
    return await accounts.update_profile(db, current_user.user_id, profile_in)


@router.post("/forgot-password", response_model=MessageResponse)
@auth_limit
async def forgot_password(
    request: Request,
    forgot_in: ForgotPasswordRequest,
    db: AsyncSession = Depends(get_async_db),
):
    """Send a reset link; the response never reveals whether the email exists."""
    message = await accounts.forgot_password(db, forgot_in.email)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    reset_in: ResetPasswordRequest,
    db: AsyncSession = Depends(get_async_db),
):
    await accounts.reset_password(
        db, token=reset_in.token, password=reset_in.password
    )
    return MessageResponse(message="Password reset successfully")
