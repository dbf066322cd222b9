"""Store error taxonomy.

Validation and business-rule errors are raised where they are detected and
rendered by the global exception handler; none of them leave partial writes
behind because the raising code rolls back first.
"""

from libs.common.errors import ServiceError
from services.store_service.models import OrderStatus

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class CancellationReasonRequiredError(ServiceError):
    status_code = 400
    code = "CANCELLATION_REASON_REQUIRED"
    default_message = "Please select a cancellation reason"


class InvalidSearchError(ServiceError):
    status_code = 400
    code = "INVALID_SEARCH"
    default_message = "Invalid order filters"


class MissingPromptError(ServiceError):
    status_code = 400
    code = "MISSING_PROMPT"
    default_message = "Missing prompt"


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


class UserNotFoundError(ServiceError):
    status_code = 401
    code = "USER_NOT_FOUND"
    default_message = "User account not found"


class OrderAccessDeniedError(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


# ---------------------------------------------------------------------------
# Not found
# ---------------------------------------------------------------------------


class ProductNotFoundError(ServiceError):
    status_code = 404
    code = "PRODUCT_NOT_FOUND"
    default_message = "Product not found"


class OrderNotFoundError(ServiceError):
    status_code = 404
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class CartItemNotFoundError(ServiceError):
    status_code = 404
    code = "CART_ITEM_NOT_FOUND"
    default_message = "Item not found"


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------


class EmptyCartError(ServiceError):
    status_code = 400
    code = "EMPTY_CART"
    default_message = "Cart is empty"


class InsufficientStockError(ServiceError):
    status_code = 400
    code = "INSUFFICIENT_STOCK"

    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"Not enough stock for {product_name}")


class InvalidTransitionError(ServiceError):
    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, current: OrderStatus, target: OrderStatus):
        self.current = current
        self.target = target
        if current in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
            message = f"Cannot update a {current.value.lower()} order"
        elif target == OrderStatus.CANCELLED:
            message = f"Cannot cancel order with status {current.value}"
        else:
            message = f"Cannot move order from {current.value} to {target.value}"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class EmailAlreadyRegisteredError(ServiceError):
    status_code = 400
    code = "EMAIL_IN_USE"
    default_message = "Email already in use"


class InvalidCredentialsError(ServiceError):
    status_code = 400
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class InvalidResetTokenError(ServiceError):
    status_code = 400
    code = "INVALID_RESET_TOKEN"
    default_message = "Invalid or expired reset token"


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------


class TransactionFailure(ServiceError):
    """Storage failure; the transaction was rolled back as a whole."""

    status_code = 500
    code = "TRANSACTION_FAILED"
    default_message = "Server error"
