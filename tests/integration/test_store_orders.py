"""Integration tests for checkout, order history and cancellation endpoints."""

import uuid
from decimal import Decimal

import pytest
from services.store_service.models import Product
from tests.conftest import auth_headers, seed
from tests.factories import (
    CartItemFactory,
    ProductFactory,
    UserFactory,
    shipping_address,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _shopper_with_cart(session_factory, *lines):
    """Seed a shopper whose cart holds [(product, qty), ...]."""
    user = UserFactory.create()
    await seed(session_factory, user, *[product for product, _ in lines])
    await seed(
        session_factory,
        *[
            CartItemFactory.create(
                user_id=user.id, product_id=product.id, quantity=qty
            )
            for product, qty in lines
        ],
    )
    return user


async def _stock(session_factory, product_id):
    async with session_factory() as session:
        return (await session.get(Product, product_id)).stock


async def _place(client, user):
    return await client.post(
        "/orders",
        json={"shipping_address": shipping_address()},
        headers=auth_headers(user),
    )


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order(client, session_factory):
    """POST /orders: snapshots the cart, takes stock and clears the cart."""
    sev = ProductFactory.create(name="Ratlami Sev", price=Decimal("15.00"), stock=5)
    barfi = ProductFactory.create(name="Kaju Barfi", price=Decimal("30.00"), stock=2)
    user = await _shopper_with_cart(session_factory, (sev, 2), (barfi, 1))

    response = await _place(client, user)

    assert response.status_code == 201, response.text
    data = response.json()
    assert data["status"] == "Placed"
    assert Decimal(data["total_amount"]) == Decimal("60.00")
    assert {i["product_name"]: i["quantity"] for i in data["items"]} == {
        "Ratlami Sev": 2,
        "Kaju Barfi": 1,
    }
    assert data["shipping_address"]["city"] == "Indore"
    assert [h["status"] for h in data["status_history"]] == ["Placed"]

    assert await _stock(session_factory, sev.id) == 3
    assert await _stock(session_factory, barfi.id) == 1

    cart = await client.get("/cart", headers=auth_headers(user))
    assert cart.json()["items"] == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_insufficient_stock(client, session_factory):
    """POST /orders: 400 naming the product; nothing is written."""
    plenty = ProductFactory.create(stock=10)
    scarce = ProductFactory.create(name="Soan Papdi", stock=1)
    user = await _shopper_with_cart(session_factory, (plenty, 2), (scarce, 3))

    response = await _place(client, user)

    assert response.status_code == 400
    assert response.json() == {
        "detail": "Not enough stock for Soan Papdi",
        "code": "INSUFFICIENT_STOCK",
    }
    assert await _stock(session_factory, plenty.id) == 10
    assert await _stock(session_factory, scarce.id) == 1

    orders = await client.get("/orders", headers=auth_headers(user))
    assert orders.json() == []
    cart = await client.get("/cart", headers=auth_headers(user))
    assert len(cart.json()["items"]) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_empty_cart(client, session_factory):
    user = UserFactory.create()
    await seed(session_factory, user)

    response = await _place(client, user)

    assert response.status_code == 400
    assert response.json()["detail"] == "Cart is empty"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_requires_address_fields(client, session_factory):
    user = UserFactory.create()
    await seed(session_factory, user)

    response = await client.post(
        "/orders",
        json={"shipping_address": {"name": "Asha", "address": "MG Road"}},
        headers=auth_headers(user),
    )

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_requires_auth(client):
    response = await client.post(
        "/orders", json={"shipping_address": shipping_address()}
    )
    assert response.status_code in (401, 403)


@pytest.mark.asyncio
@pytest.mark.integration
async def test_place_order_unknown_account(client):
    """A valid token for a user that no longer exists is rejected."""
    ghost = UserFactory.create()

    response = await _place(client, ghost)

    assert response.status_code == 401
    assert response.json()["code"] == "USER_NOT_FOUND"


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_and_get_orders(client, session_factory):
    product = ProductFactory.create(stock=10)
    user = await _shopper_with_cart(session_factory, (product, 1))
    first = (await _place(client, user)).json()
    await seed(
        session_factory,
        CartItemFactory.create(user_id=user.id, product_id=product.id, quantity=2),
    )
    second = (await _place(client, user)).json()

    response = await client.get("/orders", headers=auth_headers(user))

    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [second["id"], first["id"]]

    detail = await client.get(f"/orders/{first['id']}", headers=auth_headers(user))
    assert detail.status_code == 200
    assert detail.json()["items"][0]["quantity"] == 1


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_order_of_another_user(client, session_factory):
    product = ProductFactory.create()
    owner = await _shopper_with_cart(session_factory, (product, 1))
    stranger = UserFactory.create()
    await seed(session_factory, stranger)
    order = (await _place(client, owner)).json()

    response = await client.get(f"/orders/{order['id']}", headers=auth_headers(stranger))

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_get_unknown_order(client, session_factory):
    user = UserFactory.create()
    await seed(session_factory, user)

    response = await client.get(f"/orders/{uuid.uuid4()}", headers=auth_headers(user))

    assert response.status_code == 404
    assert response.json()["detail"] == "Order not found"


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_order_restores_stock(client, session_factory):
    """PUT /orders/{id}/cancel: owner cancels with a reason."""
    product = ProductFactory.create(stock=4)
    user = await _shopper_with_cart(session_factory, (product, 3))
    order = (await _place(client, user)).json()
    assert await _stock(session_factory, product.id) == 1

    response = await client.put(
        f"/orders/{order['id']}/cancel",
        json={"reason": "Changed my mind"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["status"] == "Cancelled"
    assert data["user_reason"] == "Changed my mind"
    assert [h["status"] for h in data["status_history"]] == ["Placed", "Cancelled"]
    assert data["status_history"][-1]["reason"] == "Changed my mind"
    assert await _stock(session_factory, product.id) == 4


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_with_other_reason(client, session_factory):
    product = ProductFactory.create()
    user = await _shopper_with_cart(session_factory, (product, 1))
    order = (await _place(client, user)).json()

    response = await client.put(
        f"/orders/{order['id']}/cancel",
        json={"reason": "Other", "other_reason": "Ordered the wrong size"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    assert response.json()["user_reason"] == "Ordered the wrong size"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_owner_cancel_requires_reason(client, session_factory):
    product = ProductFactory.create(stock=5)
    user = await _shopper_with_cart(session_factory, (product, 1))
    order = (await _place(client, user)).json()

    response = await client.put(
        f"/orders/{order['id']}/cancel", json={}, headers=auth_headers(user)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Please select a cancellation reason"
    assert await _stock(session_factory, product.id) == 4


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cancel_twice_rejected(client, session_factory):
    product = ProductFactory.create(stock=5)
    user = await _shopper_with_cart(session_factory, (product, 2))
    order = (await _place(client, user)).json()
    url = f"/orders/{order['id']}/cancel"
    body = {"reason": "Delivery delay"}

    assert (await client.put(url, json=body, headers=auth_headers(user))).status_code == 200
    response = await client.put(url, json=body, headers=auth_headers(user))

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot update a cancelled order"
    assert await _stock(session_factory, product.id) == 5


@pytest.mark.asyncio
@pytest.mark.integration
async def test_stranger_cannot_cancel(client, session_factory):
    product = ProductFactory.create()
    owner = await _shopper_with_cart(session_factory, (product, 1))
    stranger = UserFactory.create()
    await seed(session_factory, stranger)
    order = (await _place(client, owner)).json()

    response = await client.put(
        f"/orders/{order['id']}/cancel",
        json={"reason": "Changed my mind"},
        headers=auth_headers(stranger),
    )

    assert response.status_code == 403
