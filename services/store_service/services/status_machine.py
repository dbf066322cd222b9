"""Order status state machine.

    Placed -> Processing -> Shipped -> Delivered   (terminal)
    Placed | Processing -> Cancelled              (terminal, restores stock)

Staff may take any edge in ``ALLOWED_TRANSITIONS``, skipping forward if
they like. Owners may only cancel, and only from ``CANCELLABLE_STATUSES``.
Every accepted transition appends exactly one history entry.
"""

import uuid
from typing import Optional

from libs.common.datetime_utils import utc_now
from services.store_service.errors import (
    InvalidTransitionError,
    OrderAccessDeniedError,
)
from services.store_service.models import Order, OrderStatus, OrderStatusHistory

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset(
        {
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.PROCESSING: frozenset(
        {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
    ),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CANCELLABLE_STATUSES = frozenset({OrderStatus.PLACED, OrderStatus.PROCESSING})
TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)

# Edges an order's owner may take without staff capability
OWNER_TARGETS = frozenset({OrderStatus.CANCELLED})


def check_transition(
    current: OrderStatus,
    target: OrderStatus,
    *,
    is_staff: bool,
    is_owner: bool,
) -> None:
    """Validate ``current -> target`` for the given actor.

    Raises:
        OrderAccessDeniedError: the actor may not take this edge at all.
        InvalidTransitionError: the edge is not in the transition table.
    """
    if not is_staff:
        if not is_owner or target not in OWNER_TARGETS:
            raise OrderAccessDeniedError()

    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransitionError(current, target)


def record_transition(
    order: Order,
    status: OrderStatus,
    *,
    reason: str,
    actor_id: Optional[uuid.UUID],
) -> OrderStatusHistory:
    """Append a history entry and move ``order`` to ``status``.

    Callers validate the edge first with ``check_transition``; the initial
    ``Placed`` entry is recorded through here as well.
    """
    entry = OrderStatusHistory(
        status=status,
        reason=reason or "",
        updated_by=actor_id,
        updated_at=utc_now(),
    )
    order.status_history.append(entry)
    order.status = status
    return entry
