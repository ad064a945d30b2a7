"""Table roster and occupancy."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterable

from restobill.errors import AlreadyOccupied, InvalidTransition, StaleReference, UnknownTable
from restobill.models import Order, Table, TableStatus

logger = logging.getLogger(__name__)

OrderLookup = Callable[[str], Order | None]


def bound(table: Table, order_id: str) -> Table:
    return replace(table, status=TableStatus.OCCUPIED, current_order_id=order_id)


def released(table: Table) -> Table:
    return replace(table, status=TableStatus.AVAILABLE, current_order_id=None)


class TableRegistry:
    """
    Owns Table entities. Tables reference orders by id only.

    `prepare_*` methods validate a transition and return the next Table value
    without storing it, so a caller can validate a whole transaction before
    writing any part of it with `put`.
    """

    def __init__(self, tables: Iterable[Table]) -> None:
        self._tables: dict[str, Table] = {table.table_id: table for table in tables}

    def __len__(self) -> int:
        return len(self._tables)

    def get(self, table_id: str) -> Table:
        table = self._tables.get(table_id)
        if table is None:
            raise UnknownTable(f"No table with id {table_id!r}")
        return table

    def all_tables(self) -> list[Table]:
        return list(self._tables.values())

    def put(self, table: Table) -> None:
        self.get(table.table_id)
        self._tables[table.table_id] = table

    def current_order(self, table_id: str, order_lookup: OrderLookup) -> Order | None:
        """Return the table's live order; raise StaleReference for a dangling one."""
        table = self.get(table_id)
        if table.current_order_id is None:
            return None
        order = order_lookup(table.current_order_id)
        if order is None or not order.is_active or order.table_id != table_id:
            raise StaleReference(table_id, table.current_order_id)
        return order

    def resolve_active_order(self, table_id: str, order_lookup: OrderLookup) -> Order | None:
        try:
            return self.current_order(table_id, order_lookup)
        except StaleReference as exc:
            logger.warning("%s; treating table as available", exc)
            return None

    def prepare_bind(self, table_id: str, order_id: str, order_lookup: OrderLookup) -> Table:
        table = self.get(table_id)
        if table.current_order_id == order_id:
            return bound(table, order_id)
        live = self.resolve_active_order(table_id, order_lookup)
        if live is not None:
            raise AlreadyOccupied(table_id, live.order_id)
        return bound(table, order_id)

    def bind_order(self, table_id: str, order_id: str, order_lookup: OrderLookup) -> Table:
        table = self.prepare_bind(table_id, order_id, order_lookup)
        self._tables[table_id] = table
        logger.info("table %s bound to order %s", table_id, order_id[:8])
        return table

    def prepare_release(self, table_id: str) -> Table:
        table = self.get(table_id)
        if not table.is_occupied:
            raise InvalidTransition(f"Table {table_id} is not occupied")
        return released(table)

    def release(self, table_id: str) -> Table:
        table = self.prepare_release(table_id)
        self._tables[table_id] = table
        logger.info("table %s released", table_id)
        return table

    def heal_stale_references(self, order_lookup: OrderLookup) -> list[str]:
        """Free every table whose occupancy does not match a live order; return their ids."""
        healed: list[str] = []
        for table_id, table in list(self._tables.items()):
            if table.is_occupied and self.resolve_active_order(table_id, order_lookup) is not None:
                continue
            if table.status is TableStatus.AVAILABLE and table.current_order_id is None:
                continue
            self._tables[table_id] = released(table)
            healed.append(table_id)
        if healed:
            logger.warning("released tables with stale occupancy: %s", ", ".join(healed))
        return healed

    def rebind_orphaned_orders(self, orders: Iterable[Order], order_lookup: OrderLookup) -> list[str]:
        """Occupy the table of every active order its table does not reference; return their ids."""
        rebound: list[str] = []
        for order in orders:
            if not order.is_active:
                continue
            table = self._tables.get(order.table_id)
            if table is None:
                logger.warning("active order %s is for unknown table %s", order.order_id[:8], order.table_id)
                continue
            if table.current_order_id == order.order_id:
                continue
            try:
                self.bind_order(order.table_id, order.order_id, order_lookup)
            except AlreadyOccupied as exc:
                logger.warning("%s; order %s left unbound", exc, order.order_id[:8])
                continue
            rebound.append(order.table_id)
        if rebound:
            logger.warning("re-occupied tables for orphaned active orders: %s", ", ".join(rebound))
        return rebound
