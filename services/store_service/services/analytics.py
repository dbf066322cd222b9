"""Read-only sales rollups for the admin dashboard."""

import uuid
from collections import Counter, defaultdict
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from libs.common.datetime_utils import ensure_utc, utc_now
from libs.common.logging import get_logger
from services.store_service.models import Order, Product
from services.store_service.schemas import (
    AnalyticsAnswer,
    CategoryStat,
    MonthlyOrders,
    MonthlyRevenue,
    RepeatCustomer,
    SalesReport,
    StatusCount,
    TopProduct,
)
from services.store_service.services.text_generation import TextGenerator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

TOP_N = 10
TREND_MONTHS = 12
UNCATEGORIZED = "Uncategorized"
_MONTH_NAMES = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)  # fmt: skip

CENT = Decimal("0.01")


def month_key(value: datetime) -> str:
    return f"{_MONTH_NAMES[value.month - 1]} {value.year}"


def trailing_months(now: datetime, count: int = TREND_MONTHS) -> list[str]:
    """Month keys for the last ``count`` calendar months, oldest first."""
    keys = []
    year, month = now.year, now.month
    for _ in range(count):
        keys.append(f"{_MONTH_NAMES[month - 1]} {year}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


def summarize_orders(
    orders: Iterable[Order],
    products: dict[uuid.UUID, Product],
    now: Optional[datetime] = None,
) -> SalesReport:
    """Aggregate orders into the dashboard report.

    ``products`` maps ids to current catalog rows; categories come from the
    live catalog, so lines whose product is gone count as ``Uncategorized``.
    """
    orders = list(orders)
    now = ensure_utc(now or utc_now())

    total_revenue = sum((o.total_amount for o in orders), Decimal("0"))
    total_orders = len(orders)
    unique_customers = len({o.user_id for o in orders})
    average = (
        (total_revenue / total_orders).quantize(CENT, rounding=ROUND_HALF_UP)
        if total_orders
        else Decimal("0")
    )

    # Repeat customers
    by_customer: dict[uuid.UUID, list[Order]] = defaultdict(list)
    for order in orders:
        by_customer[order.user_id].append(order)
    repeat_customers = []
    for customer_orders in by_customer.values():
        if len(customer_orders) < 2:
            continue
        user = customer_orders[0].user
        repeat_customers.append(
            RepeatCustomer(
                name=(user.name if user else "") or "",
                email=user.email if user else "",
                order_count=len(customer_orders),
                total_spent=sum(
                    (o.total_amount for o in customer_orders), Decimal("0")
                ),
                last_order=max(ensure_utc(o.created_at) for o in customer_orders),
            )
        )
    repeat_customers.sort(key=lambda c: c.total_spent, reverse=True)

    # Categories and products
    categories: dict[str, dict] = {}
    product_stats: dict[uuid.UUID, dict] = {}
    for order in orders:
        seen_categories = set()
        for item in order.items:
            product = products.get(item.product_id) if item.product_id else None
            category = product.category if product else UNCATEGORIZED
            stat = categories.setdefault(
                category,
                {"revenue": Decimal("0"), "order_count": 0, "items_sold": 0},
            )
            stat["revenue"] += item.line_total
            stat["items_sold"] += item.quantity
            seen_categories.add(category)

            if item.product_id is None:
                continue
            pstat = product_stats.setdefault(
                item.product_id,
                {
                    "name": product.name if product else item.product_name,
                    "category": category,
                    "image_url": product.image_url if product else None,
                    "units_sold": 0,
                    "revenue": Decimal("0"),
                },
            )
            pstat["units_sold"] += item.quantity
            pstat["revenue"] += item.line_total
        for category in seen_categories:
            categories[category]["order_count"] += 1

    category_analytics = sorted(
        (CategoryStat(category=name, **stat) for name, stat in categories.items()),
        key=lambda c: c.revenue,
        reverse=True,
    )
    top_products = sorted(
        (TopProduct(id=pid, **stat) for pid, stat in product_stats.items()),
        key=lambda p: p.revenue,
        reverse=True,
    )[:TOP_N]

    status_counts = Counter(o.status for o in orders)
    status_distribution = [
        StatusCount(status=status, count=count)
        for status, count in status_counts.items()
    ]

    # Monthly trends, zero-filled
    months = trailing_months(now)
    revenue_by_month = dict.fromkeys(months, Decimal("0"))
    orders_by_month = dict.fromkeys(months, 0)
    for order in orders:
        key = month_key(ensure_utc(order.created_at))
        if key in revenue_by_month:
            revenue_by_month[key] += order.total_amount
            orders_by_month[key] += 1

    return SalesReport(
        total_revenue=total_revenue,
        total_orders=total_orders,
        unique_customers=unique_customers,
        average_order_value=average,
        repeat_customers=repeat_customers[:TOP_N],
        category_analytics=category_analytics,
        top_products=top_products,
        status_distribution=status_distribution,
        monthly_revenue=[
            MonthlyRevenue(month=m, revenue=revenue_by_month[m]) for m in months
        ],
        monthly_orders=[
            MonthlyOrders(month=m, count=orders_by_month[m]) for m in months
        ],
    )


async def build_sales_report(
    db: AsyncSession, now: Optional[datetime] = None
) -> SalesReport:
    result = await db.execute(
        select(Order).options(selectinload(Order.items), selectinload(Order.user))
    )
    orders = result.scalars().all()

    product_ids = {
        item.product_id for order in orders for item in order.items if item.product_id
    }
    products = {}
    if product_ids:
        result = await db.execute(
            select(Product).where(Product.id.in_(list(product_ids)))
        )
        products = {product.id: product for product in result.scalars().all()}

    return summarize_orders(orders, products, now)


def _report_prompt(report: SalesReport, question: str) -> str:
    categories = ", ".join(
        f"{c.category} (revenue {c.revenue}, {c.items_sold} items)"
        for c in report.category_analytics
    )
    products = ", ".join(
        f"{p.name} ({p.units_sold} units, revenue {p.revenue})"
        for p in report.top_products
    )
    months = ", ".join(f"{m.month}: {m.revenue}" for m in report.monthly_revenue)
    statuses = ", ".join(f"{s.status.value}: {s.count}" for s in report.status_distribution)
    return (
        "You are a sales analyst for an Indian snack store. Answer the question "
        "using only the figures below. Amounts are in INR.\n\n"
        f"Total revenue: {report.total_revenue}\n"
        f"Total orders: {report.total_orders}\n"
        f"Unique customers: {report.unique_customers}\n"
        f"Average order value: {report.average_order_value}\n"
        f"Repeat customers: {len(report.repeat_customers)}\n"
        f"Categories: {categories or 'none'}\n"
        f"Top products: {products or 'none'}\n"
        f"Order statuses: {statuses or 'none'}\n"
        f"Monthly revenue: {months}\n\n"
        f"Question: {question}"
    )


async def answer_question(
    db: AsyncSession, generator: TextGenerator, question: str
) -> AnalyticsAnswer:
    report = await build_sales_report(db)
    result = await generator.generate(_report_prompt(report, question))
    return AnalyticsAnswer(
        question=question, answer=result.text, generated=result.generated
    )
