"""Store catalog router: public product reads and staff product management."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.store_service.errors import ProductNotFoundError
from services.store_service.models import AuditEntityType, Product
from services.store_service.schemas import (
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from services.store_service.services.audit import log_audit
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["store"])
logger = get_logger(__name__)

# Edits to these fields are written to the audit log
AUDITED_FIELDS = ("price", "stock")


async def _get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    product = await db.get(Product, product_id)
    if not product:
        raise ProductNotFoundError()
    return product


# ============================================================================
# PUBLIC READS
# ============================================================================


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    category: Optional[str] = None,
    search: Optional[str] = Query(None, max_length=100),
    db: AsyncSession = Depends(get_async_db),
):
    """List products, newest first."""
    query = select(Product)

    if category:
        query = query.where(Product.category == category)
    if search:
        query = query.where(
            or_(
                Product.name.icontains(search, autoescape=True),
                Product.description.icontains(search, autoescape=True),
            )
        )

    result = await db.execute(query.order_by(Product.created_at.desc()))
    return result.scalars().all()


@router.get("/products/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: uuid.UUID,
    db: AsyncSession = Depends(get_async_db),
):
    return await _get_product(db, product_id)


# ============================================================================
# STAFF WRITES
# ============================================================================


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a product (admin only)."""
    product = Product(**product_in.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)

    logger.info("Product %s created by %s", product.id, current_user.user_id)
    return product


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Partially update a product (admin only)."""
    product = await _get_product(db, product_id)
    changes = product_in.model_dump(exclude_unset=True)

    for field in AUDITED_FIELDS:
        if field in changes and changes[field] != getattr(product, field):
            log_audit(
                db,
                AuditEntityType.PRODUCT,
                product.id,
                f"{field}_changed",
                performed_by=str(current_user.user_id),
                old_value={field: str(getattr(product, field))},
                new_value={field: str(changes[field])},
            )

    for field, value in changes.items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)
    return product


@router.delete("/products/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: uuid.UUID,
    current_user: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    """Hard delete; past orders keep their item snapshots."""
    product = await _get_product(db, product_id)
    log_audit(
        db,
        AuditEntityType.PRODUCT,
        product.id,
        "deleted",
        performed_by=str(current_user.user_id),
        old_value={"name": product.name, "stock": product.stock},
    )
    await db.delete(product)
    await db.commit()
    logger.info("Product %s deleted by %s", product_id, current_user.user_id)
