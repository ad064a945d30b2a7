from __future__ import annotations

from datetime import datetime, timezone

from restobill.bill import bill_lines, bill_number
from restobill.orders import add_line_item, apply_discount, complete_order, new_order, set_line_note, set_order_details

PRINTED_AT = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def line_starting(lines, prefix):
    return next(line for line in lines if line.startswith(prefix))


def test_completed_bill(settings, butter_chicken, garlic_naan):
    order = add_line_item(new_order("t1"), butter_chicken, settings)
    order = add_line_item(order, butter_chicken, settings)
    order = add_line_item(order, garlic_naan, settings)
    order = complete_order(order, now=PRINTED_AT)

    lines = bill_lines(order, settings, "Table 1")

    assert lines[0] == "SPICE GARDEN".center(32).rstrip()
    assert f"Bill #: {bill_number(order)}" in lines[5]
    assert lines[5].endswith("Table 1")
    assert "2 x Butter Chicken" in line_starting(lines, "2 x")
    assert line_starting(lines, "2 x").endswith("₹700.00")
    assert "    @ ₹350.00" in lines
    assert line_starting(lines, "GST (5%):").endswith("₹37.75")
    assert line_starting(lines, "Service (5%):").endswith("₹37.75")
    assert line_starting(lines, "TOTAL:").endswith("₹830.50")
    assert not any(line.startswith("Discount:") for line in lines)
    assert not any("PROVISIONAL" in line for line in lines)
    assert all(len(line) <= 32 for line in lines if not line.startswith(("    ", "Customer")))


def test_provisional_bill_with_notes_and_discount(settings, garlic_naan):
    order = add_line_item(new_order("t2"), garlic_naan, settings)
    order = set_line_note(order, order.items[0].line_id, "extra butter")
    order = apply_discount(order, "5", settings)
    order = set_order_details(order, customer_name="Asha", note="birthday")

    lines = bill_lines(order, settings, "Table 2", printed_at=PRINTED_AT)

    assert "** PROVISIONAL **" in lines
    assert "Customer: Asha" in lines
    assert "    Note: extra butter" in lines
    assert "Note: birthday" in lines
    assert line_starting(lines, "Discount:").endswith("-₹5.00")
    assert line_starting(lines, "TOTAL:").endswith("₹55.50")


def test_bill_number_is_short_upper_id():
    order = new_order("t1")
    assert bill_number(order) == order.order_id[:8].upper()
