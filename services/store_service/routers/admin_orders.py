"""Admin order management router."""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from pydantic import ValidationError
from services.store_service.errors import InvalidSearchError
from services.store_service.models import OrderStatus
from services.store_service.schemas import (
    AdminOrderQuery,
    AdminOrderResponse,
    AdminOrderStatusUpdate,
    classify_search,
)
from services.store_service.services import order_engine
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/orders", tags=["admin-store"])


def order_filters(
    status: Optional[OrderStatus] = None,
    date_from: Optional[datetime] = Query(None, alias="from"),
    date_to: Optional[datetime] = Query(None, alias="to"),
    q: Optional[str] = Query(None, max_length=200),
) -> AdminOrderQuery:
    """Validate query-string filters into a typed ``AdminOrderQuery``."""
    try:
        return AdminOrderQuery(
            status=status,
            date_from=date_from,
            date_to=date_to,
            search=classify_search(q),
        )
    except ValidationError as e:
        raise InvalidSearchError(e.errors()[0]["msg"])


@router.get("", response_model=list[AdminOrderResponse])
async def list_orders(
    filters: AdminOrderQuery = Depends(order_filters),
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """List all orders (admin only), newest first."""
    orders = await order_engine.search_orders(db, filters)
    return [AdminOrderResponse.from_order(order) for order in orders]


@router.get("/{order_id}", response_model=AdminOrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_engine.get_order_for_actor(db, order_id, current_user)
    return AdminOrderResponse.from_order(order)


@router.put("/{order_id}", response_model=AdminOrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    status_in: AdminOrderStatusUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Move an order through its lifecycle (admin only)."""
    order = await order_engine.update_order_status(
        db,
        order_id=order_id,
        actor=current_user,
        new_status=status_in.status,
        admin_reason=status_in.admin_reason,
    )
    return AdminOrderResponse.from_order(order)
