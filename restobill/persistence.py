"""SQLite key-value persistence for the restaurant snapshot."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

from restobill.billing import to_money
from restobill.config import DB_PATH, DB_PATH_ENV, SNAPSHOT_VERSION
from restobill.data import default_menu, default_settings, default_staff, default_tables
from restobill.errors import PersistenceFailure
from restobill.models import (
    MenuItem,
    Order,
    OrderLineItem,
    OrderStatus,
    Staff,
    StaffRole,
    StoreSettings,
    Table,
    TableStatus,
)

logger = logging.getLogger(__name__)

KEY_TABLES = "rb_tables"
KEY_ORDERS = "rb_orders"
KEY_SETTINGS = "rb_settings"
KEY_MENU = "rb_menu"
KEY_STAFF = "rb_staff"
SNAPSHOT_KEYS = (KEY_TABLES, KEY_ORDERS, KEY_SETTINGS, KEY_MENU, KEY_STAFF)


@dataclass
class Snapshot:
    """Everything the register persists, as one unit."""

    tables: list[Table] = field(default_factory=default_tables)
    orders: list[Order] = field(default_factory=list)
    settings: StoreSettings = field(default_factory=default_settings)
    menu: list[MenuItem] = field(default_factory=default_menu)
    staff: list[Staff] = field(default_factory=default_staff)


def resolve_db_path() -> Path:
    override = os.environ.get(DB_PATH_ENV, "").strip()
    return Path(override or DB_PATH)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require_dt(value: str) -> datetime:
    parsed = _parse_dt(value)
    if parsed is None:
        raise ValueError("timestamp is required")
    return parsed


# ---------------------------------------------------------------------------
# Encoding


def _encode_table(table: Table) -> dict[str, Any]:
    return {
        "id": table.table_id,
        "name": table.name,
        "capacity": table.capacity,
        "status": table.status.value,
        "current_order_id": table.current_order_id,
    }


def _encode_line(item: OrderLineItem) -> dict[str, Any]:
    return {
        "id": item.line_id,
        "menu_item_id": item.menu_item_id,
        "name": item.name,
        "unit_price": str(item.unit_price),
        "quantity": item.quantity,
        "note": item.note,
    }


def _encode_order(order: Order) -> dict[str, Any]:
    return {
        "id": order.order_id,
        "table_id": order.table_id,
        "items": [_encode_line(item) for item in order.items if item.quantity > 0],
        "status": order.status.value,
        "created_at": _iso(order.created_at),
        "completed_at": _iso(order.completed_at),
        "subtotal": str(order.subtotal),
        "tax_amount": str(order.tax_amount),
        "service_charge_amount": str(order.service_charge_amount),
        "discount_amount": str(order.discount_amount),
        "total": str(order.total),
        "customer_name": order.customer_name,
        "note": order.note,
    }


def _encode_settings(settings: StoreSettings) -> dict[str, Any]:
    return {
        "name": settings.name,
        "address": settings.address,
        "phone": settings.phone,
        "tax_rate": str(settings.tax_rate),
        "service_charge_rate": str(settings.service_charge_rate),
        "currency": settings.currency,
    }


def _encode_menu_item(item: MenuItem) -> dict[str, Any]:
    return {
        "id": item.item_id,
        "name": item.name,
        "price": str(item.price),
        "category": item.category,
        "description": item.description,
    }


def _encode_staff(member: Staff) -> dict[str, Any]:
    return {
        "id": member.staff_id,
        "name": member.name,
        "role": member.role.value,
        "phone": member.phone,
        "email": member.email,
        "joined_at": _iso(member.joined_at),
    }


def encode_snapshot(snapshot: Snapshot) -> dict[str, Any]:
    """Map each snapshot key to its JSON-ready payload."""
    return {
        KEY_TABLES: [_encode_table(table) for table in snapshot.tables],
        KEY_ORDERS: {order.order_id: _encode_order(order) for order in snapshot.orders},
        KEY_SETTINGS: _encode_settings(snapshot.settings),
        KEY_MENU: [_encode_menu_item(item) for item in snapshot.menu],
        KEY_STAFF: [_encode_staff(member) for member in snapshot.staff],
    }


# ---------------------------------------------------------------------------
# Decoding


def _decode_table(raw: dict[str, Any]) -> Table:
    status = TableStatus(raw["status"])
    current_order_id = raw.get("current_order_id") or None
    return Table(
        table_id=str(raw["id"]),
        name=str(raw["name"]),
        capacity=int(raw["capacity"]),
        status=status,
        current_order_id=current_order_id if status is TableStatus.OCCUPIED else None,
    )


def _decode_line(raw: dict[str, Any]) -> OrderLineItem:
    quantity = int(raw["quantity"])
    if quantity < 1:
        raise ValueError(f"line {raw.get('id')!r} has quantity {quantity}")
    return OrderLineItem(
        line_id=str(raw["id"]),
        menu_item_id=str(raw["menu_item_id"]),
        name=str(raw["name"]),
        unit_price=to_money(raw["unit_price"]),
        quantity=quantity,
        note=raw.get("note") or "",
    )


def _decode_order(raw: dict[str, Any]) -> Order:
    status = OrderStatus(raw["status"])
    completed_at = _parse_dt(raw.get("completed_at"))
    if status is OrderStatus.COMPLETED and completed_at is None:
        raise ValueError(f"completed order {raw.get('id')!r} has no completed_at")
    return Order(
        order_id=str(raw["id"]),
        table_id=str(raw["table_id"]),
        items=tuple(_decode_line(item) for item in raw["items"]),
        status=status,
        created_at=_require_dt(raw["created_at"]),
        completed_at=completed_at if status is OrderStatus.COMPLETED else None,
        subtotal=to_money(raw["subtotal"]),
        tax_amount=to_money(raw["tax_amount"]),
        service_charge_amount=to_money(raw["service_charge_amount"]),
        discount_amount=to_money(raw.get("discount_amount", "0")),
        total=to_money(raw["total"]),
        customer_name=raw.get("customer_name") or None,
        note=raw.get("note") or None,
    )


def _decode_settings(raw: dict[str, Any]) -> StoreSettings:
    return StoreSettings(
        name=str(raw["name"]),
        address=str(raw.get("address", "")),
        phone=str(raw.get("phone", "")),
        tax_rate=to_money(raw["tax_rate"]),
        service_charge_rate=to_money(raw["service_charge_rate"]),
        currency=str(raw.get("currency", "")),
    )


def _decode_menu_item(raw: dict[str, Any]) -> MenuItem:
    return MenuItem(
        item_id=str(raw["id"]),
        name=str(raw["name"]),
        price=to_money(raw["price"]),
        category=str(raw["category"]),
        description=raw.get("description") or None,
    )


def _decode_staff(raw: dict[str, Any]) -> Staff:
    return Staff(
        staff_id=str(raw["id"]),
        name=str(raw["name"]),
        role=StaffRole(raw["role"]),
        phone=str(raw.get("phone", "")),
        email=raw.get("email") or None,
        joined_at=_parse_dt(raw.get("joined_at")) or datetime.now(timezone.utc),
    )


_DECODERS: dict[str, Callable[[Any], Any]] = {
    KEY_TABLES: lambda data: [_decode_table(row) for row in data],
    KEY_ORDERS: lambda data: [_decode_order(row) for row in data.values()],
    KEY_SETTINGS: _decode_settings,
    KEY_MENU: lambda data: [_decode_menu_item(row) for row in data],
    KEY_STAFF: lambda data: [_decode_staff(row) for row in data],
}


# ---------------------------------------------------------------------------
# Schema evolution
#
# Version 0 is the bare camelCase layout of the browser register (no envelope,
# epoch-millisecond timestamps, "gstRate"). Each migration takes a key's
# payload from version N to N + 1.


def _ms_to_iso(value: Any) -> str | None:
    if value is None:
        return None
    return datetime.fromtimestamp(float(value) / 1000, tz=timezone.utc).isoformat()


def _migrate_v0_to_v1(key: str, data: Any) -> Any:
    if key == KEY_TABLES:
        return [
            {
                "id": row["id"],
                "name": row["name"],
                "capacity": row["capacity"],
                "status": row["status"],
                "current_order_id": row.get("currentOrderId"),
            }
            for row in data
        ]
    if key == KEY_ORDERS:
        return {
            order_id: {
                "id": row["id"],
                "table_id": row["tableId"],
                "items": [
                    {
                        "id": item["id"],
                        "menu_item_id": item["menuItemId"],
                        "name": item["name"],
                        "unit_price": str(item["price"]),
                        "quantity": item["quantity"],
                        "note": item.get("note") or "",
                    }
                    for item in row["items"]
                    if item["quantity"] > 0
                ],
                "status": row["status"],
                "created_at": _ms_to_iso(row["createdAt"]),
                "completed_at": _ms_to_iso(row.get("completedAt")),
                "subtotal": str(row["subtotal"]),
                "tax_amount": str(row["taxAmount"]),
                "service_charge_amount": str(row["serviceChargeAmount"]),
                "discount_amount": str(row.get("discountAmount", 0)),
                "total": str(row["total"]),
                "customer_name": row.get("customerName"),
                "note": row.get("note"),
            }
            for order_id, row in data.items()
        }
    if key == KEY_SETTINGS:
        return {
            "name": data["name"],
            "address": data.get("address", ""),
            "phone": data.get("phone", ""),
            "tax_rate": str(data["gstRate"]),
            "service_charge_rate": str(data["serviceChargeRate"]),
            "currency": data.get("currency", ""),
        }
    if key == KEY_MENU:
        return [{**row, "price": str(row["price"])} for row in data]
    if key == KEY_STAFF:
        return [
            {
                "id": row["id"],
                "name": row["name"],
                "role": row["role"],
                "phone": row.get("phone", ""),
                "email": row.get("email"),
                "joined_at": _ms_to_iso(row.get("joinedAt")),
            }
            for row in data
        ]
    return data


_MIGRATIONS: dict[int, Callable[[str, Any], Any]] = {
    0: _migrate_v0_to_v1,
}


def _unwrap(key: str, payload: Any) -> Any | None:
    """Return the current-version data of a stored blob, or None if it cannot be used."""
    if isinstance(payload, dict) and set(payload) == {"version", "data"}:
        version = payload["version"]
        data = payload["data"]
    else:
        version = 0
        data = payload
    if not isinstance(version, int) or version > SNAPSHOT_VERSION:
        logger.warning("snapshot key %s has unsupported version %r; using defaults", key, version)
        return None
    while version < SNAPSHOT_VERSION:
        data = _MIGRATIONS[version](key, data)
        version += 1
        logger.info("migrated snapshot key %s to version %d", key, version)
    return data


# ---------------------------------------------------------------------------
# Storage medium


class SqliteKeyValueStore:
    """A string key to JSON text table in a single SQLite file."""

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = Path(db_path) if db_path is not None else resolve_db_path()

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        return sqlite3.connect(self.db_path)

    def bootstrap_schema(self) -> None:
        """Create persistence schema if it does not already exist."""
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.execute(
                        """
                        CREATE TABLE IF NOT EXISTS snapshot_blobs (
                            key TEXT PRIMARY KEY,
                            value TEXT NOT NULL,
                            updated_at TEXT NOT NULL
                        )
                        """
                    )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceFailure(f"Cannot prepare {self.db_path}: {exc}") from exc

    def read_many(self, keys: tuple[str, ...]) -> dict[str, str]:
        self.bootstrap_schema()
        placeholders = ", ".join("?" for _ in keys)
        try:
            conn = self._connect()
            try:
                rows = conn.execute(
                    f"SELECT key, value FROM snapshot_blobs WHERE key IN ({placeholders})",
                    keys,
                ).fetchall()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceFailure(f"Cannot read {self.db_path}: {exc}") from exc
        return {str(key): str(value) for key, value in rows}

    def write_many(self, values: dict[str, str]) -> None:
        """Write all values in one transaction."""
        self.bootstrap_schema()
        updated_at = _utc_now_iso()
        try:
            conn = self._connect()
            try:
                with conn:
                    conn.executemany(
                        """
                        INSERT INTO snapshot_blobs (key, value, updated_at) VALUES (?, ?, ?)
                        ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                        """,
                        [(key, value, updated_at) for key, value in values.items()],
                    )
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as exc:
            raise PersistenceFailure(f"Cannot write {self.db_path}: {exc}") from exc


class SnapshotStore:
    """Saves and loads the full Snapshot as independently keyed JSON blobs."""

    def __init__(self, medium: SqliteKeyValueStore) -> None:
        self.medium = medium

    def save(self, snapshot: Snapshot) -> None:
        """Persist every key at once. Raises PersistenceFailure."""
        encoded = encode_snapshot(snapshot)
        blobs = {
            key: json.dumps({"version": SNAPSHOT_VERSION, "data": payload}, ensure_ascii=False)
            for key, payload in encoded.items()
        }
        self.medium.write_many(blobs)

    def load(self) -> Snapshot:
        """
        Load the snapshot, falling back to seed data key by key.

        A missing, corrupt or unsupported blob only resets its own key; a
        failing medium yields a fully default snapshot.
        """
        snapshot = Snapshot()
        try:
            blobs = self.medium.read_many(SNAPSHOT_KEYS)
        except PersistenceFailure as exc:
            logger.error("snapshot read failed, using defaults: %s", exc)
            return snapshot

        for key in SNAPSHOT_KEYS:
            raw = blobs.get(key)
            if raw is None:
                continue
            try:
                data = _unwrap(key, json.loads(raw))
                if data is None:
                    continue
                value = _DECODERS[key](data)
            except (ValueError, KeyError, TypeError, AttributeError, ArithmeticError, OSError) as exc:
                logger.warning("snapshot key %s is unreadable, using defaults: %s", key, exc)
                continue
            setattr(snapshot, key.removeprefix("rb_"), value)
        return snapshot
