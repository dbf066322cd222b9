"""Store catalog models."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.store_service.models.enums import ProductUnit, enum_values
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Product(Base):
    """Snack products (e.g., 'Bhujia Sev 400gm')."""

    __tablename__ = "store_products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", server_default="")

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    # Decremented by order placement, restored by cancellation
    stock: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )

    # Pack size, e.g. 250 gm
    unit: Mapped[ProductUnit] = mapped_column(
        SAEnum(
            ProductUnit,
            values_callable=enum_values,
            name="store_product_unit_enum",
        ),
        default=ProductUnit.GRAM,
        server_default="gm",
    )
    quantity_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=0, server_default="0"
    )

    category: Mapped[str] = mapped_column(
        String(100), default="General", server_default="General", index=True
    )
    keywords: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    # URL or base64 data URI
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="product_stock_non_negative"),
        CheckConstraint("price >= 0", name="product_price_non_negative"),
    )

    def __repr__(self):
        return f"<Product {self.name} stock={self.stock}>"
