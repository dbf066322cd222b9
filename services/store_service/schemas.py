"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from services.store_service.models import (
    CancellationReason,
    Order,
    OrderStatus,
    ProductUnit,
)

# ============================================================================
# ADDRESS SCHEMAS
# ============================================================================


class Address(BaseModel):
    house: str = Field("", max_length=255)
    landmark: str = Field("", max_length=255)
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    postal_code: str = Field("", max_length=20)


class ShippingAddress(Address):
    name: str = Field(..., min_length=1, max_length=255)


# ============================================================================
# PRODUCT SCHEMAS
# ============================================================================


class ProductBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    stock: int = Field(0, ge=0)
    unit: ProductUnit = ProductUnit.GRAM
    quantity_value: Decimal = Field(Decimal("0"), ge=0)
    category: str = Field("General", max_length=100)
    keywords: list[str] = []
    image_url: Optional[str] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    stock: Optional[int] = Field(None, ge=0)
    unit: Optional[ProductUnit] = None
    quantity_value: Optional[Decimal] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=100)
    keywords: Optional[list[str]] = None
    image_url: Optional[str] = None


class ProductResponse(ProductBase):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime


# ============================================================================
# CART SCHEMAS
# ============================================================================


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class CartItemUpdate(BaseModel):
    # Zero or below removes the line
    quantity: int


class CartMergeRequest(BaseModel):
    """Guest cart held by the client, folded in after login."""

    items: list[CartItemCreate] = Field(default_factory=list, max_length=100)


class CartLineResponse(BaseModel):
    product_id: uuid.UUID
    quantity: int

    # Enriched from the current catalog
    name: str
    price: Decimal
    unit: ProductUnit
    quantity_value: Decimal
    image_url: Optional[str] = None
    stock: int
    line_total: Decimal


class CartResponse(BaseModel):
    items: list[CartLineResponse] = []
    total: Decimal = Decimal("0")


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class PlaceOrderRequest(BaseModel):
    shipping_address: ShippingAddress


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: Optional[uuid.UUID]
    product_name: str
    unit_price: Decimal
    quantity: int
    line_total: Decimal


class StatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    status: OrderStatus
    reason: str
    updated_by: Optional[uuid.UUID]
    updated_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    user_id: uuid.UUID
    status: OrderStatus
    items: list[OrderItemResponse]
    total_amount: Decimal
    shipping_address: dict
    user_reason: str
    admin_reason: str
    status_history: list[StatusHistoryResponse]
    created_at: datetime
    updated_at: datetime


class AdminOrderResponse(OrderResponse):
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None

    @classmethod
    def from_order(cls, order: Order) -> "AdminOrderResponse":
        response = cls.model_validate(order)
        if order.user is not None:
            response.customer_name = order.user.name
            response.customer_email = order.user.email
        return response


class CancelOrderRequest(BaseModel):
    """Cancellation body.

    Owners pick one of ``CancellationReason``; ``Other`` needs free text in
    ``other_reason``. Staff may omit the reason.
    """

    reason: Optional[CancellationReason] = None
    other_reason: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _require_text_for_other(self):
        if self.reason == CancellationReason.OTHER and not (
            self.other_reason and self.other_reason.strip()
        ):
            raise ValueError("Please provide a custom reason")
        return self

    @property
    def resolved_reason(self) -> Optional[str]:
        if self.reason is None:
            return None
        if self.reason == CancellationReason.OTHER:
            return self.other_reason.strip()
        return self.reason.value


class AdminOrderStatusUpdate(BaseModel):
    """Update order status (admin)."""

    status: OrderStatus
    admin_reason: Optional[str] = Field(None, max_length=1000)


# ============================================================================
# ADMIN ORDER SEARCH
# ============================================================================


class EmailSearch(BaseModel):
    kind: Literal["email"] = "email"
    email: str


class OrderIdSearch(BaseModel):
    """A full UUID: matches the order id or the customer id."""

    kind: Literal["id"] = "id"
    id: uuid.UUID


class TextSearch(BaseModel):
    """Order-id prefix, customer name or item name."""

    kind: Literal["text"] = "text"
    text: str = Field(..., min_length=1)


OrderSearch = Annotated[
    Union[EmailSearch, OrderIdSearch, TextSearch], Field(discriminator="kind")
]

_uuid_adapter = TypeAdapter(uuid.UUID)


def classify_search(
    q: Optional[str],
) -> Optional[Union[EmailSearch, OrderIdSearch, TextSearch]]:
    """Turn the free-text admin search box into a typed search."""
    if q is None or not q.strip():
        return None
    term = q.strip()
    if "@" in term:
        return EmailSearch(email=term)
    try:
        return OrderIdSearch(id=_uuid_adapter.validate_python(term))
    except ValidationError:
        return TextSearch(text=term)


class AdminOrderQuery(BaseModel):
    status: Optional[OrderStatus] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[OrderSearch] = None

    @model_validator(mode="after")
    def _check_range(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("'from' must not be after 'to'")
        return self


# ============================================================================
# ANALYTICS SCHEMAS
# ============================================================================


class RepeatCustomer(BaseModel):
    name: str
    email: str
    order_count: int
    total_spent: Decimal
    last_order: datetime


class CategoryStat(BaseModel):
    category: str
    revenue: Decimal
    order_count: int
    items_sold: int


class TopProduct(BaseModel):
    id: uuid.UUID
    name: str
    category: str
    image_url: Optional[str] = None
    units_sold: int
    revenue: Decimal


class StatusCount(BaseModel):
    status: OrderStatus
    count: int


class MonthlyRevenue(BaseModel):
    month: str
    revenue: Decimal


class MonthlyOrders(BaseModel):
    month: str
    count: int


class SalesReport(BaseModel):
    total_revenue: Decimal
    total_orders: int
    unique_customers: int
    average_order_value: Decimal
    repeat_customers: list[RepeatCustomer]
    category_analytics: list[CategoryStat]
    top_products: list[TopProduct]
    status_distribution: list[StatusCount]
    monthly_revenue: list[MonthlyRevenue]
    monthly_orders: list[MonthlyOrders]


class AnalyticsQuestion(BaseModel):
    question: str = Field(..., min_length=1, max_length=1000)


class AnalyticsAnswer(BaseModel):
    question: str
    answer: str
    generated: bool


# ============================================================================
# AI SCHEMAS
# ============================================================================


class GenerateRequest(BaseModel):
    # Blank prompts are rejected by the route with a 400
    prompt: str = Field("", max_length=8000)
    type: Optional[str] = Field(None, max_length=50)


class GenerateResponse(BaseModel):
    text: str
    generated: bool


# ============================================================================
# ACCOUNT SCHEMAS
# ============================================================================


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=72)
    name: str = Field("", max_length=255)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    name: str
    contact: str
    is_admin: bool
    default_address: Optional[dict] = None


class TokenResponse(BaseModel):
    token: str
    user: UserResponse


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    contact: Optional[str] = Field(None, max_length=50)
    default_address: Optional[Address] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=72)


class MessageResponse(BaseModel):
    message: str
