from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from restobill.bill import bill_lines
from restobill.errors import (
    InvalidTransition,
    PersistenceFailure,
    ReentrantMutation,
    UnknownMenuItem,
    UnknownTable,
)
from restobill.models import OrderStatus, StaffRole, TableStatus
from restobill.persistence import KEY_TABLES, Snapshot, SnapshotStore
from restobill.session import Session
from restobill.tables import released

from tests.conftest import BUTTER_CHICKEN, GARLIC_NAAN


class FlakyMedium:
    """In-memory medium whose writes fail until `healthy` is set."""

    def __init__(self) -> None:
        self.blobs: dict[str, str] = {}
        self.healthy = False
        self.writes = 0

    def read_many(self, keys):
        return {key: self.blobs[key] for key in keys if key in self.blobs}

    def write_many(self, values):
        self.writes += 1
        if not self.healthy:
            raise PersistenceFailure("disk full")
        self.blobs.update(values)


def test_dine_in_scenario(session):
    session.add_item("t1", BUTTER_CHICKEN)
    session.add_item("t1", BUTTER_CHICKEN)
    session.add_item("t1", GARLIC_NAAN)

    order = session.active_order("t1")
    assert order is not None
    assert order.subtotal == Decimal("755")
    assert order.tax_amount == Decimal("37.75")
    assert order.service_charge_amount == Decimal("37.75")
    assert order.total == Decimal("830.50")
    assert session.table("t1").status is TableStatus.OCCUPIED
    assert session.table("t1").current_order_id == order.order_id

    completed, table = session.complete_order("t1")

    assert completed.status is OrderStatus.COMPLETED
    assert completed.total == Decimal("830.50")
    assert table.status is TableStatus.AVAILABLE
    assert table.current_order_id is None
    assert session.active_order("t1") is None
    assert session.completed_orders() == [completed]


def test_opening_a_table_does_not_occupy_it(session):
    draft = session.order_for_table("t2")

    assert draft.items == ()
    assert session.order_for_table("t2").order_id == draft.order_id
    assert session.table("t2").status is TableStatus.AVAILABLE
    assert session.snapshot().orders == []


def test_completing_a_draft_fails_and_leaves_table_free(session):
    with pytest.raises(InvalidTransition):
        session.complete_order("t1")
    assert session.table("t1").status is TableStatus.AVAILABLE


def test_completing_an_emptied_order_fails_and_keeps_table(session):
    order = session.add_item("t1", GARLIC_NAAN)
    session.adjust_quantity("t1", order.items[0].line_id, -1)

    with pytest.raises(InvalidTransition):
        session.complete_order("t1")

    assert session.table("t1").status is TableStatus.OCCUPIED
    assert session.active_order("t1").items == ()


def test_second_completion_fails(session):
    session.add_item("t1", GARLIC_NAAN)
    session.complete_order("t1")

    with pytest.raises(InvalidTransition):
        session.complete_order("t1")
    assert len(session.completed_orders()) == 1


def test_line_edits_and_details(session):
    order = session.add_item("t3", BUTTER_CHICKEN)
    line_id = order.items[0].line_id

    session.set_line_note("t3", line_id, "less oil")
    session.apply_discount("t3", "20")
    order = session.set_order_details("t3", customer_name="Asha", note="window seat")

    assert order.items[0].note == "less oil"
    assert order.discount_amount == Decimal("20")
    assert order.total == Decimal("385") - Decimal("20")
    assert order.customer_name == "Asha"
    assert session.active_order("t3") == order


def test_details_on_empty_table_stay_in_draft(session):
    session.set_order_details("t4", customer_name="Ravi")

    assert session.table("t4").status is TableStatus.AVAILABLE
    assert session.snapshot().orders == []
    order = session.add_item("t4", GARLIC_NAAN)
    assert order.customer_name == "Ravi"


def test_cancel_frees_table(session):
    session.add_item("t5", BUTTER_CHICKEN)
    cancelled, table = session.cancel_order("t5")

    assert cancelled.status is OrderStatus.CANCELLED
    assert table.status is TableStatus.AVAILABLE
    assert session.completed_orders() == []
    assert session.order_for_table("t5").order_id != cancelled.order_id


def test_cancel_of_draft_is_not_stored(session):
    cancelled, table = session.cancel_order("t6")

    assert cancelled.status is OrderStatus.CANCELLED
    assert table.status is TableStatus.AVAILABLE
    assert session.snapshot().orders == []


def test_unknown_ids(session):
    with pytest.raises(UnknownMenuItem):
        session.add_item("t1", "nope")
    with pytest.raises(UnknownTable):
        session.add_item("t99", BUTTER_CHICKEN)
    assert session.table("t1").status is TableStatus.AVAILABLE


def test_mutation_during_mutation_is_rejected(session):
    with session._mutation("outer"):
        with pytest.raises(ReentrantMutation):
            session.add_item("t1", BUTTER_CHICKEN)

    assert session.add_item("t1", BUTTER_CHICKEN).item_count == 1


def test_state_survives_reload(session, store):
    session.add_item("t1", BUTTER_CHICKEN)
    session.add_item("t2", GARLIC_NAAN)
    session.complete_order("t2")

    reloaded = Session.load(store)

    assert reloaded.snapshot() == session.snapshot()
    assert reloaded.active_order("t1").item_count == 1
    assert reloaded.table("t2").status is TableStatus.AVAILABLE


def test_failed_write_keeps_state_and_retries(settings):
    medium = FlakyMedium()
    session = Session(Snapshot(), SnapshotStore(medium))

    order = session.add_item("t1", BUTTER_CHICKEN)

    assert session.persist_pending is True
    assert "disk full" in session.last_persist_error
    assert session.active_order("t1") == order

    medium.healthy = True
    session.add_item("t1", GARLIC_NAAN)

    assert session.persist_pending is False
    assert session.last_persist_error is None
    assert Session.load(SnapshotStore(medium)).active_order("t1").item_count == 2


def test_stale_table_is_healed_on_load(store):
    snapshot = Snapshot()
    snapshot.tables[0] = replace(snapshot.tables[0], status=TableStatus.OCCUPIED, current_order_id="gone")
    store.save(snapshot)

    session = Session.load(store)

    assert session.table("t1").status is TableStatus.AVAILABLE
    assert store.load().tables[0].current_order_id is None


def test_settings_change_reprices_active_orders_only(session, store):
    session.add_item("t1", BUTTER_CHICKEN)
    completed, _ = session.complete_order("t1")
    session.add_item("t2", BUTTER_CHICKEN)

    session.update_settings(tax_rate="12", name="Spice Garden Annex")

    assert session.completed_orders()[0] == completed
    active = session.active_order("t2")
    assert active.tax_amount == active.subtotal * Decimal("12") / 100
    assert active.tax_amount == Decimal("42")
    assert active.total == Decimal("350") + Decimal("42") + Decimal("17.5")
    assert Session.load(store).active_order("t2") == active


def test_provisional_bill_matches_new_rate(session):
    session.add_item("t1", BUTTER_CHICKEN)
    session.update_settings(tax_rate="10")

    lines = bill_lines(session.active_order("t1"), session.settings, "Table 1")

    assert next(line for line in lines if line.startswith("GST (10%):")).endswith("₹35.00")
    assert next(line for line in lines if line.startswith("TOTAL:")).endswith("₹402.50")


def test_lost_table_roster_is_rebuilt_from_active_orders(session, store):
    order = session.add_item("t1", BUTTER_CHICKEN)
    store.medium.write_many({KEY_TABLES: "{not json"})

    reloaded = Session.load(store)

    table = reloaded.table("t1")
    assert table.status is TableStatus.OCCUPIED
    assert table.current_order_id == order.order_id
    assert store.load().tables[0].current_order_id == order.order_id

    reloaded.add_item("t1", GARLIC_NAAN)
    completed, table = reloaded.complete_order("t1")
    assert completed.item_count == 2
    assert table.status is TableStatus.AVAILABLE


def test_mutating_an_unbound_active_order_occupies_its_table(session):
    order = session.add_item("t1", BUTTER_CHICKEN)
    session.tables.put(released(session.table("t1")))

    session.add_item("t1", GARLIC_NAAN)

    assert session.table("t1").current_order_id == order.order_id
    assert session.table("t1").status is TableStatus.OCCUPIED


def test_negative_rate_is_rejected(session):
    with pytest.raises(ValueError):
        session.update_settings(service_charge_rate="-1")
    assert session.settings.service_charge_rate == Decimal("5")


def test_menu_edits_do_not_reprice_orders(session):
    order = session.add_item("t1", BUTTER_CHICKEN)
    session.save_menu_item("Butter Chicken", "400", "Main Course", item_id=BUTTER_CHICKEN)

    assert session.menu_item(BUTTER_CHICKEN).price == Decimal("400")
    assert session.active_order("t1").items[0].unit_price == Decimal("350")
    assert session.add_item("t1", BUTTER_CHICKEN).total == order.total * 2


def test_save_and_remove_menu_item(session):
    item = session.save_menu_item("Masala Chai", "40", "Beverages", "Spiced tea")
    assert session.menu_item(item.item_id).description == "Spiced tea"

    session.remove_menu_item(item.item_id)
    with pytest.raises(UnknownMenuItem):
        session.menu_item(item.item_id)


@pytest.mark.parametrize(
    "name, price, category",
    [("", "40", "Beverages"), ("Chai", "0", "Beverages"), ("Chai", "40", " ")],
)
def test_incomplete_menu_item_is_rejected(session, name, price, category):
    with pytest.raises(ValueError, match="Please fill in"):
        session.save_menu_item(name, price, category)


def test_staff_roster(session):
    member = session.save_staff("Meera", "Waiter", "555-0101")
    assert member.role is StaffRole.WAITER

    updated = session.save_staff("Meera K", StaffRole.CASHIER, "555-0101", staff_id=member.staff_id)
    assert updated.joined_at == member.joined_at
    assert [m.name for m in session.staff if m.staff_id == member.staff_id] == ["Meera K"]

    session.remove_staff(member.staff_id)
    assert all(m.staff_id != member.staff_id for m in session.staff)
