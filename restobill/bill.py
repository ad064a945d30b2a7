"""Plain-text bill layout shared by the screen preview and the thermal printer."""

from __future__ import annotations

from datetime import datetime

from restobill.billing import format_money, format_rate
from restobill.config import PRINTER_BILL_WIDTH_CHARS
from restobill.models import Order, OrderStatus, StoreSettings


def _center(text: str, width: int) -> str:
    return text[:width].center(width).rstrip()


def _columns(left: str, right: str, width: int) -> str:
    room = max(1, width - len(right) - 1)
    return f"{left[:room]:<{room}} {right}"


def bill_number(order: Order) -> str:
    return order.order_id[:8].upper()


def bill_lines(
    order: Order,
    settings: StoreSettings,
    table_name: str,
    width: int = PRINTER_BILL_WIDTH_CHARS,
    printed_at: datetime | None = None,
) -> list[str]:
    """Lay out a receipt for an active or completed order. Never mutates anything."""
    moment = (printed_at or order.completed_at or datetime.now()).astimezone()
    rule = "-" * width
    currency = settings.currency
    lines = [
        _center(settings.name.upper(), width),
        _center(settings.address, width),
        _center(f"Tel: {settings.phone}", width),
        rule,
        _columns(f"Date: {moment:%Y-%m-%d}", f"Time: {moment:%H:%M}", width),
        _columns(f"Bill #: {bill_number(order)}", table_name, width),
    ]
    if order.customer_name:
        lines.append(f"Customer: {order.customer_name}")
    if order.status is not OrderStatus.COMPLETED:
        lines.append("** PROVISIONAL **" if order.status is OrderStatus.ACTIVE else "** CANCELLED **")
    lines.append(rule)

    for item in order.items:
        lines.append(_columns(f"{item.quantity} x {item.name}", format_money(item.line_total, currency), width))
        if item.quantity > 1:
            lines.append(f"    @ {format_money(item.unit_price, currency)}")
        if item.note:
            lines.append(f"    Note: {item.note}")

    lines.append(rule)
    lines.append(_columns("Subtotal:", format_money(order.subtotal, currency), width))
    lines.append(_columns(f"GST ({format_rate(settings.tax_rate)}%):", format_money(order.tax_amount, currency), width))
    lines.append(
        _columns(
            f"Service ({format_rate(settings.service_charge_rate)}%):",
            format_money(order.service_charge_amount, currency),
            width,
        )
    )
    if order.discount_amount > 0:
        lines.append(_columns("Discount:", f"-{format_money(order.discount_amount, currency)}", width))
    lines.append(rule)
    lines.append(_columns("TOTAL:", format_money(order.total, currency), width))
    if order.note:
        lines.append(f"Note: {order.note}")
    lines.append("")
    lines.append(_center("Thank you for dining with us!", width))
    lines.append(_center("Please visit again.", width))
    return lines
