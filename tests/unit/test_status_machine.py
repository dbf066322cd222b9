"""Unit tests for the order status transition table."""

import uuid

import pytest
from services.store_service.errors import (
    InvalidTransitionError,
    OrderAccessDeniedError,
)
from services.store_service.models import Order, OrderStatus
from services.store_service.services.status_machine import (
    ALLOWED_TRANSITIONS,
    CANCELLABLE_STATUSES,
    TERMINAL_STATUSES,
    check_transition,
    record_transition,
)

S = OrderStatus


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,target",
    [
        (S.PLACED, S.PROCESSING),
        (S.PLACED, S.SHIPPED),
        (S.PLACED, S.DELIVERED),
        (S.PLACED, S.CANCELLED),
        (S.PROCESSING, S.SHIPPED),
        (S.PROCESSING, S.DELIVERED),
        (S.PROCESSING, S.CANCELLED),
        (S.SHIPPED, S.DELIVERED),
    ],
)
def test_staff_edges(current, target):
    check_transition(current, target, is_staff=True, is_owner=False)


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,target",
    [
        (S.PROCESSING, S.PLACED),
        (S.SHIPPED, S.PROCESSING),
        (S.SHIPPED, S.CANCELLED),
        (S.PLACED, S.PLACED),
        (S.SHIPPED, S.SHIPPED),
    ],
)
def test_illegal_edges_rejected_for_staff(current, target):
    with pytest.raises(InvalidTransitionError):
        check_transition(current, target, is_staff=True, is_owner=False)


@pytest.mark.unit
@pytest.mark.parametrize("terminal", [S.DELIVERED, S.CANCELLED])
@pytest.mark.parametrize("target", list(S))
def test_terminal_states_have_no_exits(terminal, target):
    assert terminal in TERMINAL_STATUSES
    with pytest.raises(InvalidTransitionError) as exc_info:
        check_transition(terminal, target, is_staff=True, is_owner=True)
    assert exc_info.value.message == f"Cannot update a {terminal.value.lower()} order"


@pytest.mark.unit
def test_cancellable_set():
    assert CANCELLABLE_STATUSES == {S.PLACED, S.PROCESSING}
    for status, targets in ALLOWED_TRANSITIONS.items():
        assert (S.CANCELLED in targets) == (status in CANCELLABLE_STATUSES)


# ---------------------------------------------------------------------------
# Who may move an order
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize("current", [S.PLACED, S.PROCESSING])
def test_owner_may_cancel(current):
    check_transition(current, S.CANCELLED, is_staff=False, is_owner=True)


@pytest.mark.unit
def test_owner_cancelling_shipped_order_gets_transition_error():
    with pytest.raises(InvalidTransitionError) as exc_info:
        check_transition(S.SHIPPED, S.CANCELLED, is_staff=False, is_owner=True)
    assert exc_info.value.message == "Cannot cancel order with status Shipped"


@pytest.mark.unit
@pytest.mark.parametrize("target", [S.PROCESSING, S.SHIPPED, S.DELIVERED])
def test_owner_cannot_advance(target):
    with pytest.raises(OrderAccessDeniedError):
        check_transition(S.PLACED, target, is_staff=False, is_owner=True)


@pytest.mark.unit
def test_stranger_cannot_cancel():
    with pytest.raises(OrderAccessDeniedError):
        check_transition(S.PLACED, S.CANCELLED, is_staff=False, is_owner=False)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_record_transition_appends_one_entry():
    actor = uuid.uuid4()
    order = Order(status=S.PLACED, status_history=[])

    first = record_transition(order, S.PLACED, reason="Order placed", actor_id=actor)
    second = record_transition(order, S.PROCESSING, reason="", actor_id=actor)

    assert order.status == S.PROCESSING
    assert order.status_history == [first, second]
    assert first.status == S.PLACED
    assert first.reason == "Order placed"
    assert second.updated_by == actor
    assert second.updated_at is not None
