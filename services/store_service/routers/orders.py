"""Store orders router: checkout, order history and cancellation."""

import uuid

from fastapi import APIRouter, Depends, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.schemas import (
    CancelOrderRequest,
    OrderResponse,
    PlaceOrderRequest,
)
from services.store_service.services import order_engine
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["store"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def place_order(
    order_in: PlaceOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Place an order from the current cart (Cash on Delivery)."""
    return await order_engine.place_order(
        db,
        user_id=current_user.user_id,
        shipping_address=order_in.shipping_address.model_dump(),
    )


@router.get("", response_model=list[OrderResponse])
async def list_my_orders(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List the caller's orders, newest first."""
    return await order_engine.list_user_orders(db, current_user.user_id)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_engine.get_order_for_actor(db, order_id, current_user)


@router.put("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    cancel_in: CancelOrderRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Cancel an order. Owners must give a reason; staff may omit it."""
    return await order_engine.cancel_order(
        db,
        order_id=order_id,
        actor=current_user,
        reason=cancel_in.resolved_reason,
    )
