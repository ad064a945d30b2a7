"""Order lifecycle: line-item mutations, derived totals and terminal transitions."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable
from uuid import uuid4

from restobill.billing import compute_totals, to_money
from restobill.errors import AlreadyOccupied, InvalidTransition
from restobill.models import MenuItem, Order, OrderLineItem, OrderStatus, StoreSettings, utc_now

logger = logging.getLogger(__name__)


def new_order(table_id: str, now: datetime | None = None) -> Order:
    """Build an empty active order with zeroed totals."""
    return Order(order_id=uuid4().hex, table_id=table_id, created_at=now or utc_now())


def _require_active(order: Order, action: str) -> None:
    if order.status is not OrderStatus.ACTIVE:
        raise InvalidTransition(f"Cannot {action}: order {order.order_id[:8]} is {order.status.value}")


def _with_items(
    order: Order,
    items: Iterable[OrderLineItem],
    settings: StoreSettings,
    discount_amount=None,
) -> Order:
    kept = tuple(item for item in items if item.quantity > 0)
    discount = order.discount_amount if discount_amount is None else discount_amount
    totals = compute_totals(kept, settings.tax_rate, settings.service_charge_rate, discount)
    return replace(
        order,
        items=kept,
        subtotal=totals.subtotal,
        tax_amount=totals.tax_amount,
        service_charge_amount=totals.service_charge_amount,
        discount_amount=totals.discount_amount,
        total=totals.total,
    )


def add_line_item(order: Order, menu_item: MenuItem, settings: StoreSettings) -> Order:
    """
    Add one unit of a menu item.

    A line that already references the menu item is bumped by one and keeps
    its note; otherwise a new line snapshots the item's current name and price.
    """
    _require_active(order, "add item")
    items = list(order.items)
    for idx, item in enumerate(items):
        if item.menu_item_id == menu_item.item_id:
            items[idx] = replace(item, quantity=item.quantity + 1)
            break
    else:
        items.append(
            OrderLineItem(
                line_id=uuid4().hex,
                menu_item_id=menu_item.item_id,
                name=menu_item.name,
                unit_price=menu_item.price,
                quantity=1,
            )
        )
    return _with_items(order, items, settings)


def adjust_quantity(order: Order, line_id: str, delta: int, settings: StoreSettings) -> Order:
    """Change a line's quantity by delta; a line reaching zero is removed."""
    _require_active(order, "change quantity")
    line = order.find_line(line_id)
    if line is None:
        return order
    quantity = max(0, line.quantity + int(delta))
    items = [replace(item, quantity=quantity) if item.line_id == line_id else item for item in order.items]
    return _with_items(order, items, settings)


def set_line_note(order: Order, line_id: str, note: str | None) -> Order:
    _require_active(order, "edit note")
    if order.find_line(line_id) is None:
        return order
    items = tuple(replace(item, note=note or "") if item.line_id == line_id else item for item in order.items)
    return replace(order, items=items)


def apply_discount(order: Order, amount, settings: StoreSettings) -> Order:
    """Set the order's flat discount and recompute its totals."""
    _require_active(order, "apply discount")
    discount = to_money(amount)
    if discount < 0:
        raise ValueError("Discount must not be negative")
    return _with_items(order, order.items, settings, discount_amount=discount)


def reprice(order: Order, settings: StoreSettings) -> Order:
    """Recompute an active order's totals at the given rates."""
    _require_active(order, "reprice order")
    return _with_items(order, order.items, settings)


def set_order_details(order: Order, customer_name: str | None = None, note: str | None = None) -> Order:
    _require_active(order, "edit order details")
    return replace(order, customer_name=customer_name or None, note=note or None)


def complete_order(order: Order, now: datetime | None = None) -> Order:
    """Close an active, non-empty order. Its totals are frozen from here on."""
    _require_active(order, "complete order")
    if not order.items:
        raise InvalidTransition(f"Cannot complete order {order.order_id[:8]}: it has no items")
    return replace(order, status=OrderStatus.COMPLETED, completed_at=now or utc_now())


def cancel_order(order: Order) -> Order:
    _require_active(order, "cancel order")
    return replace(order, status=OrderStatus.CANCELLED)


class OrderStore:
    """
    Owns every stored Order keyed by id.

    Mutation methods read the committed version of the order they are given,
    compute the next value and return it without storing it; `commit` writes
    a value. A table with no active order gets a draft: an unstored active
    order that is returned by repeated `start_or_create_order` calls until its
    first line item gets it committed.
    """

    def __init__(self, settings: StoreSettings, orders: Iterable[Order] = ()) -> None:
        self.settings = settings
        self._orders: dict[str, Order] = {order.order_id: order for order in orders}
        self._drafts: dict[str, Order] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def get(self, order_id: str) -> Order | None:
        return self._orders.get(order_id)

    def all_orders(self) -> list[Order]:
        return list(self._orders.values())

    def completed_orders(self) -> list[Order]:
        return [order for order in self._orders.values() if order.status is OrderStatus.COMPLETED]

    def active_order_for_table(self, table_id: str) -> Order | None:
        for order in self._orders.values():
            if order.table_id == table_id and order.is_active:
                return order
        return None

    def is_committed(self, order_id: str) -> bool:
        return order_id in self._orders

    def start_or_create_order(self, table_id: str) -> Order:
        """Return the table's active order, or its (single) draft."""
        active = self.active_order_for_table(table_id)
        if active is not None:
            return active
        draft = self._drafts.get(table_id)
        if draft is None:
            draft = new_order(table_id)
            self._drafts[table_id] = draft
            logger.debug("draft order %s created for table %s", draft.order_id[:8], table_id)
        return draft

    def keep_draft(self, order: Order) -> None:
        """Replace the draft of an unstored order (details edited before any item)."""
        if order.order_id in self._orders:
            raise InvalidTransition(f"Order {order.order_id[:8]} is already stored")
        self._drafts[order.table_id] = order

    def discard_draft(self, table_id: str) -> None:
        self._drafts.pop(table_id, None)

    def current(self, order: Order) -> Order:
        """Resolve the authoritative version of an order value."""
        stored = self._orders.get(order.order_id)
        if stored is not None:
            return stored
        draft = self._drafts.get(order.table_id)
        if draft is not None and draft.order_id == order.order_id:
            return draft
        return order

    def check_commit(self, order: Order) -> None:
        """Raise AlreadyOccupied if storing a new order would give its table two live orders."""
        if order.order_id in self._orders or not order.is_active:
            return
        other = self.active_order_for_table(order.table_id)
        if other is not None and other.order_id != order.order_id:
            raise AlreadyOccupied(order.table_id, other.order_id)

    def commit(self, order: Order) -> Order:
        self.check_commit(order)
        stored = self._orders.get(order.order_id)
        if stored is not None and not stored.is_active:
            raise InvalidTransition(f"Order {order.order_id[:8]} is {stored.status.value} and cannot change")
        self._orders[order.order_id] = order
        draft = self._drafts.get(order.table_id)
        if draft is not None and draft.order_id == order.order_id:
            del self._drafts[order.table_id]
        return order

    def add_line_item(self, order: Order, menu_item: MenuItem) -> Order:
        return add_line_item(self.current(order), menu_item, self.settings)

    def adjust_quantity(self, order: Order, line_id: str, delta: int) -> Order:
        return adjust_quantity(self.current(order), line_id, delta, self.settings)

    def set_line_note(self, order: Order, line_id: str, note: str | None) -> Order:
        return set_line_note(self.current(order), line_id, note)

    def apply_discount(self, order: Order, amount) -> Order:
        return apply_discount(self.current(order), amount, self.settings)

    def reprice_active_orders(self) -> list[Order]:
        """Recompute and store every active order at the current rates."""
        return [self.commit(reprice(order, self.settings)) for order in self.all_orders() if order.is_active]

    def set_order_details(self, order: Order, customer_name: str | None = None, note: str | None = None) -> Order:
        return set_order_details(self.current(order), customer_name, note)

    def complete_order(self, order: Order) -> Order:
        return complete_order(self.current(order))

    def cancel_order(self, order: Order) -> Order:
        return cancel_order(self.current(order))
