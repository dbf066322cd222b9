"""Store Service models package."""

from services.store_service.models.catalog import Product
from services.store_service.models.commerce import (
    CartItem,
    Order,
    OrderItem,
    OrderStatusHistory,
    StoreAuditLog,
)
from services.store_service.models.enums import (
    AuditEntityType,
    CancellationReason,
    OrderStatus,
    ProductUnit,
)
from services.store_service.models.users import User

__all__ = [
    "AuditEntityType",
    "CancellationReason",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "OrderStatusHistory",
    "Product",
    "ProductUnit",
    "StoreAuditLog",
    "User",
]
