"""Domain models for restobill."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from restobill.billing import ZERO


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TableStatus(str, Enum):
    AVAILABLE = "available"
    OCCUPIED = "occupied"


class StaffRole(str, Enum):
    MANAGER = "Manager"
    WAITER = "Waiter"
    CHEF = "Chef"
    CASHIER = "Cashier"


@dataclass(frozen=True)
class MenuItem:
    """A priced dish on the menu."""

    item_id: str
    name: str
    price: Decimal
    category: str
    description: str | None = None


@dataclass(frozen=True)
class OrderLineItem:
    """One row of an order with name and price frozen at add-time."""

    line_id: str
    menu_item_id: str
    name: str
    unit_price: Decimal
    quantity: int
    note: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    """
    An order placed against a table.

    Orders are values: every mutation produces a new Order. The money fields
    are derived from the items and are only ever written by the calculator.
    """

    order_id: str
    table_id: str
    items: tuple[OrderLineItem, ...] = ()
    status: OrderStatus = OrderStatus.ACTIVE
    created_at: datetime = field(default_factory=utc_now)
    completed_at: datetime | None = None
    subtotal: Decimal = ZERO
    tax_amount: Decimal = ZERO
    service_charge_amount: Decimal = ZERO
    discount_amount: Decimal = ZERO
    total: Decimal = ZERO
    customer_name: str | None = None
    note: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status is OrderStatus.ACTIVE

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find_line(self, line_id: str) -> OrderLineItem | None:
        for item in self.items:
            if item.line_id == line_id:
                return item
        return None


@dataclass(frozen=True)
class Table:
    """A physical table and its occupancy."""

    table_id: str
    name: str
    capacity: int
    status: TableStatus = TableStatus.AVAILABLE
    current_order_id: str | None = None

    @property
    def is_occupied(self) -> bool:
        return self.status is TableStatus.OCCUPIED


@dataclass(frozen=True)
class StoreSettings:
    """Store identity plus the rates read by the calculator."""

    name: str
    address: str
    phone: str
    tax_rate: Decimal
    service_charge_rate: Decimal
    currency: str


@dataclass(frozen=True)
class Staff:
    staff_id: str
    name: str
    role: StaffRole
    phone: str
    email: str | None = None
    joined_at: datetime = field(default_factory=utc_now)
