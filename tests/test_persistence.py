from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from restobill.config import SNAPSHOT_VERSION
from restobill.errors import PersistenceFailure
from restobill.models import OrderStatus, TableStatus
from restobill.persistence import (
    KEY_MENU,
    KEY_ORDERS,
    KEY_SETTINGS,
    KEY_STAFF,
    KEY_TABLES,
    Snapshot,
    SnapshotStore,
    SqliteKeyValueStore,
)
from restobill.session import Session

from tests.conftest import BUTTER_CHICKEN


def test_empty_database_loads_defaults(store):
    snapshot = store.load()

    assert snapshot.orders == []
    assert len(snapshot.tables) == 12
    assert snapshot.settings.tax_rate == Decimal("5")
    assert len(snapshot.menu) == 17


def test_round_trip(store):
    session = Session.load(store)
    session.add_item("t1", BUTTER_CHICKEN)
    session.set_line_note("t1", session.active_order("t1").items[0].line_id, "mild")
    session.add_item("t2", BUTTER_CHICKEN)
    session.complete_order("t2")

    assert store.load() == session.snapshot()


def test_blobs_carry_version_envelope(store):
    store.save(Snapshot())

    blobs = store.medium.read_many((KEY_SETTINGS, KEY_ORDERS))
    settings = json.loads(blobs[KEY_SETTINGS])
    assert settings["version"] == SNAPSHOT_VERSION
    assert settings["data"]["tax_rate"] == "5"
    assert json.loads(blobs[KEY_ORDERS]) == {"version": SNAPSHOT_VERSION, "data": {}}


def test_corrupt_key_only_resets_itself(store):
    session = Session.load(store)
    session.add_item("t1", BUTTER_CHICKEN)
    session.update_settings(name="Renamed")
    store.medium.write_many({KEY_MENU: "{not json", KEY_TABLES: json.dumps({"version": 1, "data": [{}]})})

    snapshot = store.load()

    assert snapshot.settings.name == "Renamed"
    assert len(snapshot.orders) == 1
    assert len(snapshot.menu) == 17
    assert all(table.status is TableStatus.AVAILABLE for table in snapshot.tables)


def test_invalid_quantity_rejects_orders_key(store):
    session = Session.load(store)
    order = session.add_item("t1", BUTTER_CHICKEN)
    blob = json.loads(store.medium.read_many((KEY_ORDERS,))[KEY_ORDERS])
    blob["data"][order.order_id]["items"][0]["quantity"] = 0
    store.medium.write_many({KEY_ORDERS: json.dumps(blob)})

    assert store.load().orders == []


def test_future_version_falls_back(store):
    store.medium.write_many({KEY_SETTINGS: json.dumps({"version": SNAPSHOT_VERSION + 1, "data": {"name": "X"}})})

    assert store.load().settings.name == "Spice Garden"


def test_legacy_layout_is_migrated(store):
    created_ms = 1_700_000_000_000
    legacy = {
        KEY_SETTINGS: {
            "name": "Old Place",
            "address": "1 Road",
            "phone": "123",
            "gstRate": 18,
            "serviceChargeRate": 0,
            "currency": "$",
        },
        KEY_TABLES: [
            {"id": "t1", "name": "Table 1", "capacity": 4, "status": "occupied", "currentOrderId": "o1"},
            {"id": "t2", "name": "Table 2", "capacity": 2, "status": "available"},
        ],
        KEY_ORDERS: {
            "o1": {
                "id": "o1",
                "tableId": "t1",
                "items": [
                    {"id": "l1", "menuItemId": "5", "name": "Butter Chicken", "price": 350, "quantity": 2},
                    {"id": "l2", "menuItemId": "9", "name": "Garlic Naan", "price": 55, "quantity": 0},
                ],
                "status": "active",
                "createdAt": created_ms,
                "subtotal": 700,
                "taxAmount": 126,
                "serviceChargeAmount": 0,
                "total": 826,
            }
        },
        KEY_MENU: [{"id": "m1", "name": "Tea", "price": 20.5, "category": "Beverages"}],
        KEY_STAFF: [{"id": "s9", "name": "Lee", "role": "Chef", "phone": "9", "joinedAt": created_ms}],
    }
    store.medium.write_many({key: json.dumps(value) for key, value in legacy.items()})

    snapshot = store.load()

    assert snapshot.settings.tax_rate == Decimal("18")
    assert snapshot.settings.currency == "$"
    assert snapshot.tables[0].current_order_id == "o1"
    assert snapshot.tables[1].capacity == 2
    (order,) = snapshot.orders
    assert order.status is OrderStatus.ACTIVE
    assert [item.quantity for item in order.items] == [2]
    assert order.total == Decimal("826")
    assert order.created_at == datetime.fromtimestamp(created_ms / 1000, tz=timezone.utc)
    assert snapshot.menu[0].price == Decimal("20.5")
    assert snapshot.staff[0].name == "Lee"

    session = Session.load(store)
    assert session.active_order("t1").order_id == "o1"
    session.update_settings(phone="456")
    assert json.loads(store.medium.read_many((KEY_SETTINGS,))[KEY_SETTINGS])["version"] == SNAPSHOT_VERSION


def test_unusable_location(tmp_path):
    medium = SqliteKeyValueStore(tmp_path)
    store = SnapshotStore(medium)

    assert len(store.load().tables) == 12
    with pytest.raises(PersistenceFailure):
        store.save(Snapshot())


def test_db_path_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("RESTOBILL_DB_PATH", str(tmp_path / "other.db"))
    assert SqliteKeyValueStore().db_path == tmp_path / "other.db"


def test_legacy_timestamp_out_of_range_resets_key(store):
    staff = [{"id": "s9", "name": "Lee", "role": "Chef", "phone": "9", "joinedAt": 10**22}]
    store.medium.write_many({KEY_STAFF: json.dumps(staff)})

    assert [member.staff_id for member in store.load().staff] == ["s1", "s2", "s3"]
