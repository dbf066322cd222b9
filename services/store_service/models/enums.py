"""Enum definitions for store service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderStatus(str, enum.Enum):
    PLACED = "Placed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class ProductUnit(str, enum.Enum):
    GRAM = "gm"
    KILOGRAM = "kg"
    MILLILITRE = "ml"
    LITRE = "l"
    PACK = "pack"
    PIECE = "pc"


class CancellationReason(str, enum.Enum):
    """Reasons a shopper may pick when cancelling their own order."""

    CHANGED_MIND = "Changed my mind"
    BETTER_PRICE = "Found better price elsewhere"
    DELIVERY_DELAY = "Delivery delay"
    WRONG_ITEMS = "Wrong items ordered"
    PAYMENT_ISSUES = "Payment issues"
    OTHER = "Other"


class AuditEntityType(str, enum.Enum):
    PRODUCT = "product"
    ORDER = "order"
