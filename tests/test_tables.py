from __future__ import annotations

from dataclasses import replace

import pytest

from restobill.data import default_tables
from restobill.errors import AlreadyOccupied, InvalidTransition, StaleReference, UnknownTable
from restobill.models import OrderStatus, TableStatus
from restobill.orders import add_line_item, new_order
from restobill.tables import TableRegistry


@pytest.fixture
def registry():
    return TableRegistry(default_tables())


@pytest.fixture
def live_order(settings, butter_chicken):
    return add_line_item(new_order("t1"), butter_chicken, settings)


def lookup_for(*orders):
    by_id = {order.order_id: order for order in orders}
    return by_id.get


def test_default_roster(registry):
    tables = registry.all_tables()
    assert len(tables) == 12
    assert tables[0].name == "Table 1"
    assert all(table.status is TableStatus.AVAILABLE for table in tables)


def test_bind_then_release(registry, live_order):
    table = registry.bind_order("t1", live_order.order_id, lookup_for(live_order))
    assert table.status is TableStatus.OCCUPIED
    assert table.current_order_id == live_order.order_id
    assert registry.get("t1") == table

    released = registry.release("t1")
    assert released.status is TableStatus.AVAILABLE
    assert released.current_order_id is None


def test_bind_rejects_second_live_order(registry, live_order, settings):
    other = new_order("t1")
    lookup = lookup_for(live_order, other)
    registry.bind_order("t1", live_order.order_id, lookup)

    with pytest.raises(AlreadyOccupied) as excinfo:
        registry.bind_order("t1", other.order_id, lookup)
    assert excinfo.value.current_order_id == live_order.order_id
    assert registry.get("t1").current_order_id == live_order.order_id


def test_rebinding_same_order_is_allowed(registry, live_order):
    lookup = lookup_for(live_order)
    registry.bind_order("t1", live_order.order_id, lookup)
    assert registry.bind_order("t1", live_order.order_id, lookup).current_order_id == live_order.order_id


def test_bind_over_stale_reference(registry, live_order):
    finished = replace(live_order, status=OrderStatus.COMPLETED)
    registry.bind_order("t1", live_order.order_id, lookup_for(live_order))
    fresh = new_order("t1")

    table = registry.bind_order("t1", fresh.order_id, lookup_for(finished, fresh))
    assert table.current_order_id == fresh.order_id


def test_release_of_available_table_fails(registry):
    with pytest.raises(InvalidTransition):
        registry.release("t2")


def test_current_order_detects_stale_reference(registry, live_order):
    registry.bind_order("t1", live_order.order_id, lookup_for(live_order))

    with pytest.raises(StaleReference):
        registry.current_order("t1", lookup_for())
    assert registry.resolve_active_order("t1", lookup_for()) is None

    completed = replace(live_order, status=OrderStatus.COMPLETED)
    assert registry.resolve_active_order("t1", lookup_for(completed)) is None
    assert registry.resolve_active_order("t1", lookup_for(live_order)) == live_order


def test_reference_to_another_tables_order_is_stale(registry, live_order):
    registry.bind_order("t1", live_order.order_id, lookup_for(live_order))
    moved = replace(live_order, table_id="t2")
    assert registry.resolve_active_order("t1", lookup_for(moved)) is None


def test_heal_stale_references(registry, live_order):
    registry.bind_order("t1", live_order.order_id, lookup_for(live_order))
    registry.put(replace(registry.get("t3"), status=TableStatus.OCCUPIED, current_order_id="gone"))
    registry.put(replace(registry.get("t4"), current_order_id="half"))

    healed = registry.heal_stale_references(lookup_for(live_order))

    assert healed == ["t3", "t4"]
    assert registry.get("t1").current_order_id == live_order.order_id
    for table_id in healed:
        table = registry.get(table_id)
        assert table.status is TableStatus.AVAILABLE
        assert table.current_order_id is None


def test_unknown_table(registry):
    with pytest.raises(UnknownTable):
        registry.get("t99")
    with pytest.raises(UnknownTable):
        registry.bind_order("t99", "x", lookup_for())


def test_rebind_orphaned_orders(registry, live_order, settings, butter_chicken):
    elsewhere = add_line_item(new_order("t2"), butter_chicken, settings)
    registry.bind_order("t2", elsewhere.order_id, lookup_for(elsewhere))
    rival = add_line_item(new_order("t2"), butter_chicken, settings)
    lost = add_line_item(new_order("t99"), butter_chicken, settings)
    closed = replace(add_line_item(new_order("t3"), butter_chicken, settings), status=OrderStatus.COMPLETED)
    orders = [live_order, elsewhere, rival, lost, closed]

    rebound = registry.rebind_orphaned_orders(orders, lookup_for(*orders))

    assert rebound == ["t1"]
    assert registry.get("t1").current_order_id == live_order.order_id
    assert registry.get("t2").current_order_id == elsewhere.order_id
    assert registry.get("t3").status is TableStatus.AVAILABLE
