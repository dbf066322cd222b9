"""Integration tests for admin order management, analytics and text generation."""

from datetime import timedelta
from decimal import Decimal

import pytest
from libs.common.datetime_utils import utc_now
from services.store_service.models import Product, StoreAuditLog
from services.store_service.services.text_generation import GeneratedText
from sqlalchemy import select
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


async def _admin(session_factory):
    admin = UserFactory.create(name="Store Staff", is_admin=True)
    await seed(session_factory, admin)
    return admin


async def _order_for(
    client, session_factory, user=None, product=None, quantity=1, address=None
):
    """Seed a shopper (unless given) and place one order through the API."""
    if user is None:
        user = UserFactory.create()
        await seed(session_factory, user)
    if product is None:
        product = ProductFactory.create(stock=10)
        await seed(session_factory, product)
    await seed(
        session_factory,
        CartItemFactory.create(user_id=user.id, product_id=product.id, quantity=quantity),
    )
    response = await client.post(
        "/orders",
        json={"shipping_address": address or shipping_address()},
        headers=auth_headers(user),
    )
    assert response.status_code == 201, response.text
    return response.json()


class _StubGenerator:
    def __init__(self, text="Crunchy, spicy and fresh."):
        self.text = text
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        return GeneratedText(self.text, generated=True)


# ---------------------------------------------------------------------------
# Listing and search
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_all_orders(client, session_factory):
    admin = await _admin(session_factory)
    buyer = UserFactory.create(name="Meera Joshi", email="meera@example.com")
    await seed(session_factory, buyer)
    first = await _order_for(client, session_factory, user=buyer)
    second = await _order_for(client, session_factory)

    response = await client.get("/admin/orders", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()
    assert [o["id"] for o in data] == [second["id"], first["id"]]
    assert data[1]["customer_name"] == "Meera Joshi"
    assert data[1]["customer_email"] == "meera@example.com"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_by_email(client, session_factory):
    admin = await _admin(session_factory)
    buyer = UserFactory.create(email="kiran@example.com")
    await seed(session_factory, buyer)
    mine = await _order_for(client, session_factory, user=buyer)
    await _order_for(client, session_factory)

    response = await client.get(
        "/admin/orders", params={"q": "KIRAN@example.com"}, headers=auth_headers(admin)
    )

    assert [o["id"] for o in response.json()] == [mine["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_by_order_or_customer_id(client, session_factory):
    admin = await _admin(session_factory)
    buyer = UserFactory.create()
    await seed(session_factory, buyer)
    mine = await _order_for(client, session_factory, user=buyer)
    await _order_for(client, session_factory)

    by_order = await client.get(
        "/admin/orders", params={"q": mine["id"]}, headers=auth_headers(admin)
    )
    by_customer = await client.get(
        "/admin/orders", params={"q": str(buyer.id)}, headers=auth_headers(admin)
    )

    assert [o["id"] for o in by_order.json()] == [mine["id"]]
    assert [o["id"] for o in by_customer.json()] == [mine["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_by_text(client, session_factory):
    admin = await _admin(session_factory)
    buyer = UserFactory.create(name="Farhan Qureshi")
    await seed(session_factory, buyer)
    by_name = await _order_for(client, session_factory, user=buyer)
    chakli = ProductFactory.create(name="Butter Chakli")
    await seed(session_factory, chakli)
    by_item = await _order_for(client, session_factory, product=chakli)

    name_hits = await client.get(
        "/admin/orders", params={"q": "qureshi"}, headers=auth_headers(admin)
    )
    item_hits = await client.get(
        "/admin/orders", params={"q": "chakli"}, headers=auth_headers(admin)
    )
    prefix_hits = await client.get(
        "/admin/orders",
        params={"q": by_item["id"].replace("-", "")[:12]},
        headers=auth_headers(admin),
    )

    assert [o["id"] for o in name_hits.json()] == [by_name["id"]]
    assert [o["id"] for o in item_hits.json()] == [by_item["id"]]
    assert [o["id"] for o in prefix_hits.json()] == [by_item["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_search_by_shipping_name(client, session_factory):
    """The name typed at checkout is searchable even when the account has none."""
    admin = await _admin(session_factory)
    buyer = UserFactory.create(name="")
    await seed(session_factory, buyer)
    mine = await _order_for(
        client, session_factory, user=buyer, address=shipping_address(name="Ravi Sharma")
    )
    await _order_for(client, session_factory)

    response = await client.get(
        "/admin/orders", params={"q": "ravi"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert [o["id"] for o in response.json()] == [mine["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_filter_by_status_and_date(client, session_factory):
    admin = await _admin(session_factory)
    shipped = await _order_for(client, session_factory)
    placed = await _order_for(client, session_factory)
    await client.put(
        f"/admin/orders/{shipped['id']}",
        json={"status": "Shipped"},
        headers=auth_headers(admin),
    )

    by_status = await client.get(
        "/admin/orders", params={"status": "Placed"}, headers=auth_headers(admin)
    )
    assert [o["id"] for o in by_status.json()] == [placed["id"]]

    now = utc_now()
    window = await client.get(
        "/admin/orders",
        params={
            "from": (now - timedelta(days=1)).isoformat(),
            "to": (now + timedelta(days=1)).isoformat(),
        },
        headers=auth_headers(admin),
    )
    assert len(window.json()) == 2

    future = await client.get(
        "/admin/orders",
        params={"from": (now + timedelta(days=1)).isoformat()},
        headers=auth_headers(admin),
    )
    assert future.json() == []


@pytest.mark.asyncio
@pytest.mark.integration
async def test_inverted_date_range_rejected(client, session_factory):
    admin = await _admin(session_factory)
    now = utc_now()

    response = await client.get(
        "/admin/orders",
        params={
            "from": now.isoformat(),
            "to": (now - timedelta(days=2)).isoformat(),
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_SEARCH"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_routes_forbidden_for_customers(client, session_factory):
    shopper = UserFactory.create()
    await seed(session_factory, shopper)
    order = await _order_for(client, session_factory, user=shopper)
    headers = auth_headers(shopper)

    assert (await client.get("/admin/orders", headers=headers)).status_code == 403
    put = await client.put(
        f"/admin/orders/{order['id']}", json={"status": "Shipped"}, headers=headers
    )
    assert put.status_code == 403
    assert (await client.get("/admin/analytics", headers=headers)).status_code == 403
    ai = await client.post("/ai/generate", json={"prompt": "hi"}, headers=headers)
    assert ai.status_code == 403


# ---------------------------------------------------------------------------
# Status updates
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_status_with_note(client, session_factory):
    """PUT /admin/orders/{id}: history grows by one entry per change."""
    admin = await _admin(session_factory)
    order = await _order_for(client, session_factory)

    processing = await client.put(
        f"/admin/orders/{order['id']}",
        json={"status": "Processing", "admin_reason": "Packed at warehouse"},
        headers=auth_headers(admin),
    )
    assert processing.status_code == 200, processing.text
    data = processing.json()
    assert data["status"] == "Processing"
    assert data["admin_reason"] == "Packed at warehouse"
    assert data["status_history"][-1]["reason"] == "Packed at warehouse"
    assert data["status_history"][-1]["updated_by"] == str(admin.id)

    delivered = await client.put(
        f"/admin/orders/{order['id']}",
        json={"status": "Delivered"},
        headers=auth_headers(admin),
    )
    assert [h["status"] for h in delivered.json()["status_history"]] == [
        "Placed",
        "Processing",
        "Delivered",
    ]

    reopened = await client.put(
        f"/admin/orders/{order['id']}",
        json={"status": "Processing"},
        headers=auth_headers(admin),
    )
    assert reopened.status_code == 400
    assert reopened.json()["detail"] == "Cannot update a delivered order"

    async with session_factory() as session:
        result = await session.execute(
            select(StoreAuditLog).where(StoreAuditLog.action == "status_changed")
        )
        assert len(result.scalars().all()) == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_cancel_restores_stock(client, session_factory):
    admin = await _admin(session_factory)
    product = ProductFactory.create(stock=6)
    await seed(session_factory, product)
    order = await _order_for(client, session_factory, product=product, quantity=4)

    response = await client.put(
        f"/admin/orders/{order['id']}",
        json={"status": "Cancelled", "admin_reason": "Out of delivery area"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["admin_reason"] == "Out of delivery area"
    async with session_factory() as session:
        assert (await session.get(Product, product.id)).stock == 6


@pytest.mark.asyncio
@pytest.mark.integration
async def test_shipped_order_cannot_be_cancelled(client, session_factory):
    admin = await _admin(session_factory)
    order = await _order_for(client, session_factory)
    url = f"/admin/orders/{order['id']}"
    await client.put(url, json={"status": "Shipped"}, headers=auth_headers(admin))

    response = await client.put(
        url, json={"status": "Cancelled"}, headers=auth_headers(admin)
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot cancel order with status Shipped"


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_sales_report(client, session_factory):
    admin = await _admin(session_factory)
    buyer = UserFactory.create(email="repeat@example.com")
    product = ProductFactory.create(price=Decimal("40.00"), category="Sweets", stock=10)
    await seed(session_factory, buyer, product)
    await _order_for(client, session_factory, user=buyer, product=product, quantity=1)
    await _order_for(client, session_factory, user=buyer, product=product, quantity=2)

    response = await client.get("/admin/analytics", headers=auth_headers(admin))

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["total_orders"] == 2
    assert Decimal(data["total_revenue"]) == Decimal("120.00")
    assert Decimal(data["average_order_value"]) == Decimal("60.00")
    assert data["repeat_customers"][0]["email"] == "repeat@example.com"
    assert data["category_analytics"][0]["category"] == "Sweets"
    assert data["top_products"][0]["units_sold"] == 3
    assert len(data["monthly_revenue"]) == 12
    assert data["monthly_orders"][-1]["count"] == 2


@pytest.mark.asyncio
@pytest.mark.integration
async def test_ask_about_sales(client, session_factory, store_app):
    admin = await _admin(session_factory)
    await _order_for(client, session_factory)
    stub = _StubGenerator("Revenue is steady.")
    store_app.state.text_generator = stub

    response = await client.post(
        "/admin/analytics/ask",
        json={"question": "How are sales?"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json() == {
        "question": "How are sales?",
        "answer": "Revenue is steady.",
        "generated": True,
    }
    assert "Total orders: 1" in stub.prompts[0]
    assert stub.prompts[0].endswith("Question: How are sales?")


# ---------------------------------------------------------------------------
# Text generation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_generate_without_api_key(client, session_factory):
    """POST /ai/generate: falls back to a mock when no key is configured."""
    admin = await _admin(session_factory)

    response = await client.post(
        "/ai/generate",
        json={"prompt": "Describe chakli", "type": "description"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json() == {
        "text": "Mock response for prompt: Describe chakli...",
        "generated": False,
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_generate_with_model(client, session_factory, store_app):
    admin = await _admin(session_factory)
    store_app.state.text_generator = _StubGenerator()

    response = await client.post(
        "/ai/generate", json={"prompt": "Describe sev"}, headers=auth_headers(admin)
    )

    assert response.json() == {"text": "Crunchy, spicy and fresh.", "generated": True}


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}])
async def test_generate_requires_prompt(client, session_factory, body):
    admin = await _admin(session_factory)

    response = await client.post("/ai/generate", json=body, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"detail": "Missing prompt", "code": "MISSING_PROMPT"}
