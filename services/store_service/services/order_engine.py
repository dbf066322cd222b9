"""Order transaction engine: atomic checkout and cancellation with stock moves.

Placement converts a user's cart into an order in one transaction. Each cart
line's stock check and decrement is a single conditional UPDATE, so
concurrent placements for the same product serialize on the product row and
the loser sees the post-decrement stock. Cancellation is the inverse and
restores stock line by line, skipping products that have since been deleted.
Both directions touch product rows in ascending id order.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.errors import ServiceError
from libs.common.logging import get_logger
from services.store_service.errors import (
    CancellationReasonRequiredError,
    EmptyCartError,
    InsufficientStockError,
    InvalidTransitionError,
    OrderAccessDeniedError,
    OrderNotFoundError,
    TransactionFailure,
    UserNotFoundError,
)
from services.store_service.models import (
    AuditEntityType,
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    User,
)
from services.store_service.schemas import (
    AdminOrderQuery,
    EmailSearch,
    OrderIdSearch,
    TextSearch,
)
from services.store_service.services.audit import log_audit
from services.store_service.services.status_machine import (
    check_transition,
    record_transition,
)
from sqlalchemy import String, cast, delete, func, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

PLACED_REASON = "Order placed"
STAFF_CANCEL_REASON = "Cancelled by staff"

_HEX_CHARS = frozenset("0123456789abcdefABCDEF-")


def _order_query():
    return select(Order).options(
        selectinload(Order.items),
        selectinload(Order.status_history),
        selectinload(Order.user),
    )


async def _load_order(
    db: AsyncSession, order_id: uuid.UUID, *, for_update: bool = False
) -> Order:
    query = _order_query().where(Order.id == order_id)
    if for_update:
        query = query.with_for_update(of=Order)
    result = await db.execute(query.execution_options(populate_existing=True))
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFoundError()
    return order


# ---------------------------------------------------------------------------
# Placement
# ---------------------------------------------------------------------------


def _lock_order(product_id: Optional[uuid.UUID]) -> int:
    return product_id.int if product_id is not None else -1


async def _take_stock(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> tuple[str, Decimal]:
    """Decrement stock if at least ``quantity`` is left; return name and price."""
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id, Product.stock >= quantity)
        .values(stock=Product.stock - quantity, updated_at=utc_now())
        .returning(Product.name, Product.price)
        .execution_options(synchronize_session=False)
    )
    row = result.one_or_none()
    if row is None:
        name = await db.scalar(select(Product.name).where(Product.id == product_id))
        raise InsufficientStockError(name or "an unavailable product")
    return row.name, row.price


async def _clear_cart(db: AsyncSession, user_id: uuid.UUID) -> None:
    await db.execute(delete(CartItem).where(CartItem.user_id == user_id))


async def place_order(
    db: AsyncSession,
    *,
    user_id: uuid.UUID,
    shipping_address: dict,
) -> Order:
    """Turn the user's cart into a ``Placed`` order.

    Everything happens in one transaction: stock decrements, the order and
    its snapshot items, the initial history entry and the cart wipe either
    all commit or none do.

    Raises:
        UserNotFoundError, EmptyCartError, InsufficientStockError,
        TransactionFailure.
    """
    try:
        user = await db.get(User, user_id)
        if user is None:
            raise UserNotFoundError()

        # Cart lines are read inside the transaction and locked where the
        # backend supports it, so a double submit finds the cart already empty.
        result = await db.execute(
            select(CartItem.product_id, CartItem.quantity)
            .where(CartItem.user_id == user_id)
            .order_by(CartItem.created_at, CartItem.id)
            .with_for_update()
        )
        lines = result.all()
        if not lines:
            raise EmptyCartError()

        # Product rows are always locked in ascending id order
        taken: dict[uuid.UUID, tuple[str, Decimal]] = {}
        for line in sorted(lines, key=lambda line: _lock_order(line.product_id)):
            taken[line.product_id] = await _take_stock(
                db, line.product_id, line.quantity
            )

        items: list[OrderItem] = []
        total = Decimal("0")
        for line_number, line in enumerate(lines, start=1):
            name, price = taken[line.product_id]
            line_total = price * line.quantity
            total += line_total
            items.append(
                OrderItem(
                    line_number=line_number,
                    product_id=line.product_id,
                    product_name=name,
                    unit_price=price,
                    quantity=line.quantity,
                    line_total=line_total,
                )
            )

        order = Order(
            user_id=user_id,
            total_amount=total,
            shipping_address=dict(shipping_address),
            items=items,
            status_history=[],
        )
        record_transition(
            order, OrderStatus.PLACED, reason=PLACED_REASON, actor_id=user_id
        )
        db.add(order)

        await _clear_cart(db, user_id)
        await db.commit()
    except ServiceError as exc:
        await db.rollback()
        logger.info("Order placement rejected for user %s: %s", user_id, exc)
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Order placement failed for user %s", user_id)
        raise TransactionFailure()

    logger.info(
        "Placed order %s for user %s (%d lines, total=%s)",
        order.id,
        user_id,
        len(items),
        total,
    )
    return await _load_order(db, order.id)


# ---------------------------------------------------------------------------
# Status changes
# ---------------------------------------------------------------------------


async def _return_stock(
    db: AsyncSession, product_id: uuid.UUID, quantity: int
) -> bool:
    result = await db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + quantity, updated_at=utc_now())
        .returning(Product.id)
        .execution_options(synchronize_session=False)
    )
    return result.one_or_none() is not None


async def _restore_stock(db: AsyncSession, order: Order) -> None:
    """Put every line's quantity back; lines whose product is gone are skipped.

    Rows are updated in product id order, the same order placement locks them.
    """
    for item in sorted(order.items, key=lambda item: _lock_order(item.product_id)):
        if item.product_id is None:
            logger.warning(
                "Order %s line %d has no product; stock not restored",
                order.id,
                item.line_number,
            )
            continue
        if not await _return_stock(db, item.product_id, item.quantity):
            logger.warning(
                "Product %s for order %s no longer exists; stock not restored",
                item.product_id,
                order.id,
            )


async def _claim_status(
    db: AsyncSession, order: Order, target: OrderStatus
) -> None:
    """Compare-and-set the status so a concurrent change loses cleanly."""
    result = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.status == order.status)
        .values(status=target, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        current = await db.scalar(select(Order.status).where(Order.id == order.id))
        raise InvalidTransitionError(current, target)


async def _apply_transition(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    *,
    actor: AuthUser,
    reason: str,
) -> None:
    previous = order.status
    await _claim_status(db, order, target)
    if target == OrderStatus.CANCELLED:
        await _restore_stock(db, order)
    record_transition(order, target, reason=reason, actor_id=actor.user_id)
    if actor.is_admin:
        log_audit(
            db,
            AuditEntityType.ORDER,
            order.id,
            "status_changed",
            performed_by=str(actor.user_id),
            old_value={"status": previous.value},
            new_value={"status": target.value},
            notes=reason or None,
        )


async def cancel_order(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    actor: AuthUser,
    reason: Optional[str] = None,
) -> Order:
    """Cancel an order and restore its stock.

    Owners must give a reason; it is stored as ``user_reason``. Staff may
    cancel any order, with the optional note stored as ``admin_reason``.
    """
    try:
        order = await _load_order(db, order_id, for_update=True)
        is_owner = order.user_id == actor.user_id
        check_transition(
            order.status,
            OrderStatus.CANCELLED,
            is_staff=actor.is_admin,
            is_owner=is_owner,
        )

        reason = (reason or "").strip()
        if not reason:
            if not actor.is_admin:
                raise CancellationReasonRequiredError()
            reason = STAFF_CANCEL_REASON

        await _apply_transition(
            db, order, OrderStatus.CANCELLED, actor=actor, reason=reason
        )
        if is_owner:
            order.user_reason = reason
        else:
            order.admin_reason = reason

        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Cancelling order %s failed", order_id)
        raise TransactionFailure()

    logger.info("Order %s cancelled by %s", order_id, actor.user_id)
    return await _load_order(db, order_id)


async def update_order_status(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    actor: AuthUser,
    new_status: OrderStatus,
    admin_reason: Optional[str] = None,
) -> Order:
    """Staff status transition; a move to ``Cancelled`` also restores stock."""
    try:
        order = await _load_order(db, order_id, for_update=True)
        check_transition(
            order.status,
            new_status,
            is_staff=actor.is_admin,
            is_owner=order.user_id == actor.user_id,
        )

        note = (admin_reason or "").strip()
        await _apply_transition(db, order, new_status, actor=actor, reason=note)
        if note:
            order.admin_reason = note

        await db.commit()
    except ServiceError:
        await db.rollback()
        raise
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Updating status of order %s failed", order_id)
        raise TransactionFailure()

    logger.info(
        "Order %s moved to %s by %s", order_id, new_status.value, actor.user_id
    )
    return await _load_order(db, order_id)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def list_user_orders(db: AsyncSession, user_id: uuid.UUID) -> list[Order]:
    result = await db.execute(
        _order_query()
        .where(Order.user_id == user_id)
        .order_by(Order.created_at.desc())
    )
    return list(result.scalars().all())


async def get_order_for_actor(
    db: AsyncSession, order_id: uuid.UUID, actor: AuthUser
) -> Order:
    order = await _load_order(db, order_id)
    if not actor.is_admin and order.user_id != actor.user_id:
        raise OrderAccessDeniedError()
    return order


def _text_search_clause(term: str):
    clauses = [
        User.name.icontains(term, autoescape=True),
        Order.shipping_address["name"].as_string().icontains(term, autoescape=True),
        Order.id.in_(
            select(OrderItem.order_id).where(
                OrderItem.product_name.icontains(term, autoescape=True)
            )
        ),
    ]
    if set(term) <= _HEX_CHARS:
        # Stored ids differ in dash formatting across backends
        hex_prefix = term.replace("-", "").lower()
        clauses.append(
            func.replace(func.lower(cast(Order.id, String)), "-", "").startswith(
                hex_prefix, autoescape=True
            )
        )
    return or_(*clauses)


async def search_orders(db: AsyncSession, query: AdminOrderQuery) -> list[Order]:
    """All orders matching the admin filters, newest first."""
    stmt = _order_query().join(User, Order.user_id == User.id)

    if query.status:
        stmt = stmt.where(Order.status == query.status)
    if query.date_from:
        stmt = stmt.where(Order.created_at >= ensure_utc(query.date_from))
    if query.date_to:
        stmt = stmt.where(Order.created_at <= ensure_utc(query.date_to))

    search = query.search
    if isinstance(search, EmailSearch):
        stmt = stmt.where(func.lower(User.email) == search.email.lower())
    elif isinstance(search, OrderIdSearch):
        stmt = stmt.where(or_(Order.id == search.id, Order.user_id == search.id))
    elif isinstance(search, TextSearch):
        stmt = stmt.where(_text_search_clause(search.text))

    result = await db.execute(stmt.order_by(Order.created_at.desc()))
    return list(result.scalars().all())
