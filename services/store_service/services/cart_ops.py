"""Cart operations for signed-in shoppers.

Stock is only soft-checked here; placement re-checks it atomically.
"""

import uuid
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from libs.common.logging import get_logger
from services.store_service.errors import (
    CartItemNotFoundError,
    InsufficientStockError,
    ProductNotFoundError,
)
from services.store_service.models import CartItem, Product
from services.store_service.schemas import (
    CartItemCreate,
    CartLineResponse,
    CartResponse,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)


async def _get_line(
    db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID
) -> Optional[CartItem]:
    result = await db.execute(
        select(CartItem).where(
            CartItem.user_id == user_id, CartItem.product_id == product_id
        )
    )
    return result.scalar_one_or_none()


async def get_cart(db: AsyncSession, user_id: uuid.UUID) -> CartResponse:
    """Cart lines enriched with current catalog data and the running total."""
    result = await db.execute(
        select(CartItem)
        .where(CartItem.user_id == user_id)
        .options(selectinload(CartItem.product))
        .order_by(CartItem.created_at, CartItem.id)
        .execution_options(populate_existing=True)
    )

    lines = []
    total = Decimal("0")
    for item in result.scalars().all():
        product = item.product
        line_total = product.price * item.quantity
        total += line_total
        lines.append(
            CartLineResponse(
                product_id=product.id,
                quantity=item.quantity,
                name=product.name,
                price=product.price,
                unit=product.unit,
                quantity_value=product.quantity_value,
                image_url=product.image_url,
                stock=product.stock,
                line_total=line_total,
            )
        )
    return CartResponse(items=lines, total=total)


async def add_to_cart(
    db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int
) -> CartResponse:
    """Add ``quantity`` of a product, incrementing an existing line.

    If a concurrent request creates the line first, the insert hits the
    unique (user, product) constraint and is retried once as an increment.
    """
    for attempt in range(2):
        product = await db.get(Product, product_id)
        if not product:
            raise ProductNotFoundError()

        line = await _get_line(db, user_id, product_id)
        wanted = quantity + (line.quantity if line else 0)
        if wanted > product.stock:
            raise InsufficientStockError(product.name)

        if line:
            line.quantity = wanted
        else:
            db.add(
                CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
            )
        try:
            await db.commit()
            break
        except IntegrityError:
            await db.rollback()
            if attempt:
                raise
            logger.info(
                "Cart line for product %s was created concurrently for %s; retrying",
                product_id,
                user_id,
            )

    return await get_cart(db, user_id)


async def set_quantity(
    db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID, quantity: int
) -> CartResponse:
    """Set a line's quantity; zero or less removes the line."""
    line = await _get_line(db, user_id, product_id)
    if not line:
        raise CartItemNotFoundError()

    if quantity <= 0:
        await db.delete(line)
    else:
        product = await db.get(Product, product_id)
        if quantity > product.stock:
            raise InsufficientStockError(product.name)
        line.quantity = quantity
    await db.commit()

    return await get_cart(db, user_id)


async def remove_item(
    db: AsyncSession, user_id: uuid.UUID, product_id: uuid.UUID
) -> CartResponse:
    line = await _get_line(db, user_id, product_id)
    if line:
        await db.delete(line)
        await db.commit()
    return await get_cart(db, user_id)


async def merge_guest_cart(
    db: AsyncSession, user_id: uuid.UUID, guest_items: list[CartItemCreate]
) -> CartResponse:
    """Fold a guest cart into the member cart after login.

    Quantities are summed with lines already in the cart; products that no
    longer exist are dropped.
    """
    wanted: dict[uuid.UUID, int] = defaultdict(int)
    for guest_item in guest_items:
        wanted[guest_item.product_id] += guest_item.quantity
    if not wanted:
        return await get_cart(db, user_id)

    result = await db.execute(select(Product.id).where(Product.id.in_(list(wanted))))
    existing_products = set(result.scalars().all())

    result = await db.execute(select(CartItem).where(CartItem.user_id == user_id))
    member_lines = {line.product_id: line for line in result.scalars().all()}

    skipped = 0
    for product_id, quantity in wanted.items():
        if product_id not in existing_products:
            skipped += 1
            continue
        if product_id in member_lines:
            member_lines[product_id].quantity += quantity
        else:
            db.add(
                CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
            )
    await db.commit()

    if skipped:
        logger.info(
            "Dropped %d unknown products while merging guest cart for %s",
            skipped,
            user_id,
        )
    return await get_cart(db, user_id)
