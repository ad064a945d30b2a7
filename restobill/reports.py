"""Daily sales figures over completed orders."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from decimal import Decimal
from typing import Iterable

from restobill.billing import ZERO
from restobill.models import Order, OrderStatus


@dataclass(frozen=True)
class ItemPopularity:
    name: str
    count: int
    revenue: Decimal


@dataclass(frozen=True)
class DailyReport:
    day: date
    total_sales: Decimal
    order_count: int
    average_order_value: Decimal
    items: list[ItemPopularity] = field(default_factory=list)
    sales_by_hour: dict[int, Decimal] = field(default_factory=dict)


def _local(moment: datetime, tz: tzinfo | None) -> datetime:
    return moment.astimezone(tz) if tz is not None else moment.astimezone()


def completed_on(orders: Iterable[Order], day: date, tz: tzinfo | None = None) -> list[Order]:
    return [
        order
        for order in orders
        if order.status is OrderStatus.COMPLETED
        and order.completed_at is not None
        and _local(order.completed_at, tz).date() == day
    ]


def item_popularity(orders: Iterable[Order]) -> list[ItemPopularity]:
    """Quantity and revenue per item name, most ordered first."""
    counts: dict[str, int] = {}
    revenue: dict[str, Decimal] = {}
    for order in orders:
        for item in order.items:
            counts[item.name] = counts.get(item.name, 0) + item.quantity
            revenue[item.name] = revenue.get(item.name, ZERO) + item.line_total
    ranked = sorted(counts, key=lambda name: -counts[name])
    return [ItemPopularity(name=name, count=counts[name], revenue=revenue[name]) for name in ranked]


def daily_report(orders: Iterable[Order], day: date, tz: tzinfo | None = None) -> DailyReport:
    """Summarize the orders completed on `day` (in `tz`, local time by default)."""
    todays = completed_on(orders, day, tz)
    total_sales = sum((order.total for order in todays), ZERO)
    sales_by_hour: dict[int, Decimal] = {}
    closed = [(order, _local(order.completed_at, tz)) for order in todays if order.completed_at is not None]
    for order, moment in closed:
        sales_by_hour[moment.hour] = sales_by_hour.get(moment.hour, ZERO) + order.total
    return DailyReport(
        day=day,
        total_sales=total_sales,
        order_count=len(todays),
        average_order_value=total_sales / len(todays) if todays else ZERO,
        items=item_popularity(todays),
        sales_by_hour=dict(sorted(sales_by_hour.items())),
    )
