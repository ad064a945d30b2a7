"""Session orchestrator: the single owner of the register's state."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import replace
from decimal import Decimal
from typing import Iterator
from uuid import uuid4

from restobill.billing import to_money
from restobill.errors import PersistenceFailure, ReentrantMutation, UnknownMenuItem
from restobill.models import MenuItem, Order, Staff, StaffRole, StoreSettings, Table
from restobill.orders import OrderStore
from restobill.persistence import Snapshot, SnapshotStore
from restobill.tables import TableRegistry

logger = logging.getLogger(__name__)


class Session:
    """
    Owns the tables, orders, catalogs and settings of one register.

    Every mutating method reads current state, computes the next values,
    writes them together and then persists the whole snapshot. A mutation
    started while another one is being applied raises ReentrantMutation.
    """

    def __init__(self, snapshot: Snapshot | None = None, store: SnapshotStore | None = None) -> None:
        snapshot = snapshot if snapshot is not None else Snapshot()
        self.settings: StoreSettings = snapshot.settings
        self.menu: list[MenuItem] = list(snapshot.menu)
        self.staff: list[Staff] = list(snapshot.staff)
        self.orders = OrderStore(snapshot.settings, snapshot.orders)
        self.tables = TableRegistry(snapshot.tables)
        self._store = store
        self._mutating = False
        self.persist_pending = False
        self.last_persist_error: str | None = None
        healed = self.tables.heal_stale_references(self.orders.get)
        rebound = self.tables.rebind_orphaned_orders(self.orders.all_orders(), self.orders.get)
        if healed or rebound:
            self._persist()

    @classmethod
    def load(cls, store: SnapshotStore) -> Session:
        return cls(store.load(), store)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            tables=self.tables.all_tables(),
            orders=self.orders.all_orders(),
            settings=self.settings,
            menu=list(self.menu),
            staff=list(self.staff),
        )

    # -- reads ---------------------------------------------------------------

    def table(self, table_id: str) -> Table:
        return self.tables.get(table_id)

    def active_order(self, table_id: str) -> Order | None:
        return self.tables.resolve_active_order(table_id, self.orders.get)

    def order_for_table(self, table_id: str) -> Order:
        """The table's live order, or the draft shown for an empty table."""
        self.tables.get(table_id)
        active = self.active_order(table_id)
        if active is not None:
            return active
        return self.orders.start_or_create_order(table_id)

    def menu_item(self, item_id: str) -> MenuItem:
        for item in self.menu:
            if item.item_id == item_id:
                return item
        raise UnknownMenuItem(f"No menu item with id {item_id!r}")

    def completed_orders(self) -> list[Order]:
        return self.orders.completed_orders()

    # -- order mutations -----------------------------------------------------

    def add_item(self, table_id: str, menu_item_id: str) -> Order:
        with self._mutation("add_item"):
            menu_item = self.menu_item(menu_item_id)
            order = self.orders.add_line_item(self.order_for_table(table_id), menu_item)
            self._write(order)
        logger.info("table %s: added %s (order %s)", table_id, menu_item.name, order.order_id[:8])
        return order

    def adjust_quantity(self, table_id: str, line_id: str, delta: int) -> Order:
        with self._mutation("adjust_quantity"):
            order = self.orders.adjust_quantity(self.order_for_table(table_id), line_id, delta)
            self._write(order)
        return order

    def set_line_note(self, table_id: str, line_id: str, note: str | None) -> Order:
        with self._mutation("set_line_note"):
            order = self.orders.set_line_note(self.order_for_table(table_id), line_id, note)
            self._write(order)
        return order

    def apply_discount(self, table_id: str, amount: Decimal | int | str) -> Order:
        with self._mutation("apply_discount"):
            order = self.orders.apply_discount(self.order_for_table(table_id), amount)
            self._write(order)
        return order

    def set_order_details(self, table_id: str, customer_name: str | None = None, note: str | None = None) -> Order:
        with self._mutation("set_order_details"):
            order = self.orders.set_order_details(self.order_for_table(table_id), customer_name, note)
            self._write(order)
        return order

    def complete_order(self, table_id: str) -> tuple[Order, Table]:
        """Complete the table's order and free the table in one step."""
        with self._mutation("complete_order"):
            order = self.orders.complete_order(self.order_for_table(table_id))
            table = self._close(order)
        logger.info("table %s: order %s completed, total %s", table_id, order.order_id[:8], order.total)
        return order, table

    def cancel_order(self, table_id: str) -> tuple[Order, Table]:
        """Discard the table's order. A draft is dropped without being stored."""
        with self._mutation("cancel_order"):
            current = self.order_for_table(table_id)
            order = self.orders.cancel_order(current)
            if not self.orders.is_committed(order.order_id):
                self.orders.discard_draft(table_id)
                return order, self.tables.get(table_id)
            table = self._close(order)
        logger.info("table %s: order %s cancelled", table_id, order.order_id[:8])
        return order, table

    # -- catalogs and settings -----------------------------------------------

    def update_settings(self, **changes: object) -> StoreSettings:
        for rate_field in ("tax_rate", "service_charge_rate"):
            if rate_field in changes:
                rate = to_money(changes[rate_field])  # type: ignore[arg-type]
                if rate < 0:
                    raise ValueError(f"{rate_field} must not be negative")
                changes[rate_field] = rate
        with self._mutation("update_settings"):
            self.settings = replace(self.settings, **changes)
            self.orders.settings = self.settings
            repriced = self.orders.reprice_active_orders()
        if repriced:
            logger.info("settings changed; repriced %d active orders", len(repriced))
        return self.settings

    def save_menu_item(
        self,
        name: str,
        price: Decimal | int | str,
        category: str,
        description: str | None = None,
        item_id: str | None = None,
    ) -> MenuItem:
        """Add a menu item, or replace the one with item_id. Existing orders keep their prices."""
        amount = to_money(price)
        if not name.strip() or not category.strip() or amount <= 0:
            raise ValueError("Please fill in name, price and category")
        item = MenuItem(
            item_id=item_id or uuid4().hex,
            name=name.strip(),
            price=amount,
            category=category.strip(),
            description=(description or "").strip() or None,
        )
        with self._mutation("save_menu_item"):
            self.menu = [item if existing.item_id == item.item_id else existing for existing in self.menu]
            if all(existing.item_id != item.item_id for existing in self.menu):
                self.menu.append(item)
        return item

    def remove_menu_item(self, item_id: str) -> None:
        self.menu_item(item_id)
        with self._mutation("remove_menu_item"):
            self.menu = [item for item in self.menu if item.item_id != item_id]

    def save_staff(
        self,
        name: str,
        role: StaffRole | str,
        phone: str = "",
        email: str | None = None,
        staff_id: str | None = None,
    ) -> Staff:
        if not name.strip() or not role:
            raise ValueError("Name and Role are required")
        existing = next((member for member in self.staff if member.staff_id == staff_id), None)
        member = Staff(
            staff_id=staff_id or uuid4().hex,
            name=name.strip(),
            role=StaffRole(role),
            phone=phone.strip(),
            email=(email or "").strip() or None,
        )
        if existing is not None:
            member = replace(member, joined_at=existing.joined_at)
        with self._mutation("save_staff"):
            if existing is None:
                self.staff.append(member)
            else:
                self.staff = [member if m.staff_id == member.staff_id else m for m in self.staff]
        return member

    def remove_staff(self, staff_id: str) -> None:
        with self._mutation("remove_staff"):
            self.staff = [member for member in self.staff if member.staff_id != staff_id]

    # -- internals -----------------------------------------------------------

    @contextmanager
    def _mutation(self, action: str) -> Iterator[None]:
        if self._mutating:
            raise ReentrantMutation(f"{action} started while another change was being applied")
        self._mutating = True
        try:
            yield
        finally:
            self._mutating = False
        self._persist()

    def _write(self, order: Order) -> None:
        if self.orders.is_committed(order.order_id):
            table = self.tables.get(order.table_id)
            if order.is_active and table.current_order_id != order.order_id:
                table = self.tables.prepare_bind(order.table_id, order.order_id, self.orders.get)
            self.orders.commit(order)
            self.tables.put(table)
            return
        if not order.items:
            self.orders.keep_draft(order)
            return
        # First line item: the order and its table are stored together.
        table = self.tables.prepare_bind(order.table_id, order.order_id, self.orders.get)
        self.orders.check_commit(order)
        self.orders.commit(order)
        self.tables.put(table)

    def _close(self, order: Order) -> Table:
        table = self.tables.get(order.table_id)
        if table.current_order_id == order.order_id:
            table = self.tables.prepare_release(order.table_id)
        else:
            logger.warning(
                "table %s does not reference order %s; leaving its occupancy as is",
                order.table_id,
                order.order_id[:8],
            )
        self.orders.commit(order)
        self.tables.put(table)
        return table

    def _persist(self) -> None:
        if self._store is None:
            return
        try:
            self._store.save(self.snapshot())
        except PersistenceFailure as exc:
            self.persist_pending = True
            self.last_persist_error = str(exc)
            logger.error("snapshot write failed; next change will retry: %s", exc)
            return
        if self.persist_pending:
            logger.info("snapshot write recovered")
        self.persist_pending = False
        self.last_persist_error = None
