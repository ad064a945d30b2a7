"""Money helpers and the bill totals calculator."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from restobill.models import OrderLineItem

ZERO = Decimal("0")
_HUNDRED = Decimal("100")
_CENT = Decimal("0.01")


@dataclass(frozen=True)
class Totals:
    """Derived money fields of an order."""

    subtotal: Decimal
    tax_amount: Decimal
    service_charge_amount: Decimal
    discount_amount: Decimal
    total: Decimal


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Coerce a number or numeric string to Decimal without binary float artifacts."""
    if isinstance(value, bool):
        raise ValueError(f"Not a money amount: {value!r}")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a money amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Not a money amount: {value!r}")
    return amount


def compute_totals(
    items: Iterable[OrderLineItem],
    tax_rate_pct: Decimal | int | str,
    service_rate_pct: Decimal | int | str,
    discount_amount: Decimal | int | str = ZERO,
) -> Totals:
    """
    Compute subtotal, tax, service charge and total for a list of line items.

    Amounts are exact decimals; nothing is rounded here, so recomputing the
    same order never drifts. The total is floored at zero, so an oversized
    discount is clamped rather than producing a negative bill.
    """
    tax_rate = to_money(tax_rate_pct)
    service_rate = to_money(service_rate_pct)
    discount = to_money(discount_amount)
    if tax_rate < 0 or service_rate < 0:
        raise ValueError("Rates must not be negative")
    if discount < 0:
        raise ValueError("Discount must not be negative")

    subtotal = sum((item.unit_price * item.quantity for item in items if item.quantity > 0), ZERO)
    tax_amount = subtotal * tax_rate / _HUNDRED
    service_charge_amount = subtotal * service_rate / _HUNDRED
    total = max(ZERO, subtotal + tax_amount + service_charge_amount - discount)
    return Totals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        service_charge_amount=service_charge_amount,
        discount_amount=discount,
        total=total,
    )


def round_money(amount: Decimal) -> Decimal:
    """Round to two decimals for presentation."""
    return amount.quantize(_CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency: str = "") -> str:
    return f"{currency}{round_money(amount)}"


def format_rate(rate: Decimal) -> str:
    """Render a percentage without trailing zeros (5, 12.5)."""
    return format(rate.normalize(), "f")
