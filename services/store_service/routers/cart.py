"""Store cart router: the signed-in shopper's cart."""

import uuid

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CartItemCreate,
    CartItemUpdate,
    CartMergeRequest,
    CartResponse,
)
from services.store_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/cart", tags=["store"])


@router.get("", response_model=CartResponse)
async def get_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await cart_ops.get_cart(db, current_user.user_id)


@router.post("", response_model=CartResponse)
async def add_to_cart(
    item_in: CartItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product, incrementing the quantity if it is already in the cart."""
    return await cart_ops.add_to_cart(
        db, current_user.user_id, item_in.product_id, item_in.quantity
    )


@router.post("/merge", response_model=CartResponse)
async def merge_guest_cart(
    merge_in: CartMergeRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Fold the guest cart kept by the client into this account's cart."""
    return await cart_ops.merge_guest_cart(db, current_user.user_id, merge_in.items)


@router.put("/{product_id}", response_model=CartResponse)
async def update_cart_item(
    product_id: uuid.UUID,
    update_in: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await cart_ops.set_quantity(
        db, current_user.user_id, product_id, update_in.quantity
    )


@router.delete("/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await cart_ops.remove_item(db, current_user.user_id, product_id)
