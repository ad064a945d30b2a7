"""Domain errors for the order and table lifecycle."""

from __future__ import annotations


class PosError(Exception):
    """Base class for point-of-sale domain errors."""


class InvalidTransition(PosError):
    """A mutation was attempted on a non-active order, or an illegal state change."""


class AlreadyOccupied(PosError):
    """A table already holds a different live order."""

    def __init__(self, table_id: str, current_order_id: str) -> None:
        super().__init__(f"Table {table_id} is already occupied by order {current_order_id[:8]}")
        self.table_id = table_id
        self.current_order_id = current_order_id


class StaleReference(PosError):
    """A table points at an order that does not resolve to an active order."""

    def __init__(self, table_id: str, order_id: str) -> None:
        super().__init__(f"Table {table_id} references stale order {order_id[:8]}")
        self.table_id = table_id
        self.order_id = order_id


class UnknownTable(PosError):
    """No table with the given id exists."""


class UnknownMenuItem(PosError):
    """No menu item with the given id exists."""


class ReentrantMutation(PosError):
    """A mutation was dispatched while another mutation was still being applied."""


class PersistenceFailure(PosError):
    """Reading or writing the snapshot store failed."""


class InsightGenerationFailure(PosError):
    """The sales insight service returned no usable result."""
