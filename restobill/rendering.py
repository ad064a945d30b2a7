"""Rich rendering helpers for the terminal register."""

from __future__ import annotations

from rich.text import Text

from restobill.billing import format_money, format_rate
from restobill.models import MenuItem, Order, OrderLineItem, StoreSettings, Table
from restobill.reports import DailyReport


def status_badge_style(table: Table) -> str:
    """Return a consistent badge style for table occupancy."""
    if table.is_occupied:
        return "bold #ffffff on #b23a48"
    return "bold #0b1f0f on #5fbf72"


def format_table_row(table: Table, order: Order | None, currency: str) -> Text:
    text = Text()
    badge = " BUSY " if table.is_occupied else " FREE "
    text.append(badge, style=status_badge_style(table))
    text.append(f" {table.name}")
    if order is not None:
        text.append(f"  {format_money(order.total, currency)}", style="bold")
        text.append(f"  {order.item_count} items  since {order.created_at.astimezone():%H:%M}", style="dim")
    else:
        text.append(f"  seats {table.capacity}", style="dim")
    return text


def format_line_item(item: OrderLineItem, currency: str) -> Text:
    text = Text()
    text.append(f"{item.quantity} x ", style="bold")
    text.append(item.name)
    text.append(f"  {format_money(item.line_total, currency)}", style="dim")
    if item.note:
        text.append(f"\n      [{item.note}]", style="italic #9ecbff")
    return text


def format_menu_item(item: MenuItem, currency: str) -> Text:
    text = Text()
    text.append(item.name)
    text.append(f"  {format_money(item.price, currency)}", style="dim")
    text.append(f"  {item.category}", style="#7f8c8d")
    return text


def format_totals(order: Order, settings: StoreSettings) -> Text:
    currency = settings.currency
    text = Text()
    text.append(f"Subtotal  {format_money(order.subtotal, currency)}\n")
    text.append(f"GST ({format_rate(settings.tax_rate)}%)  {format_money(order.tax_amount, currency)}\n")
    text.append(
        f"Service ({format_rate(settings.service_charge_rate)}%)  "
        f"{format_money(order.service_charge_amount, currency)}\n"
    )
    if order.discount_amount > 0:
        text.append(f"Discount  -{format_money(order.discount_amount, currency)}\n", style="#ffb3b3")
    text.append(f"Total  {format_money(order.total, currency)}", style="bold")
    return text


def format_bill(lines: list[str]) -> Text:
    return Text("\n".join(lines), style="white")


def format_report(report: DailyReport, currency: str) -> Text:
    text = Text(style="white")
    text.append(f"{report.day:%A %d %B %Y}\n\n", style="bold")
    text.append(f"Total sales      {format_money(report.total_sales, currency)}\n")
    text.append(f"Orders           {report.order_count}\n")
    text.append(f"Avg order value  {format_money(report.average_order_value, currency)}\n")
    if report.items:
        text.append("\nMost ordered\n", style="bold")
        for row in report.items[:5]:
            text.append(f"  {row.count:>3}  {row.name}  {format_money(row.revenue, currency)}\n")
    if report.sales_by_hour:
        text.append("\nSales by hour\n", style="bold")
        for hour, amount in report.sales_by_hour.items():
            text.append(f"  {hour:02d}:00  {format_money(amount, currency)}\n")
    return text
