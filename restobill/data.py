"""Seed catalogs and menu lookup helpers."""

from __future__ import annotations

from restobill.billing import to_money
from restobill.constant import (
    INITIAL_SETTINGS,
    INITIAL_STAFF,
    MENU_ITEMS,
    TABLE_CAPACITY,
    TABLE_COUNT,
)
from restobill.models import MenuItem, Staff, StaffRole, StoreSettings, Table

ALL_CATEGORIES = "All"


def default_settings() -> StoreSettings:
    return StoreSettings(
        name=INITIAL_SETTINGS["name"],
        address=INITIAL_SETTINGS["address"],
        phone=INITIAL_SETTINGS["phone"],
        tax_rate=to_money(INITIAL_SETTINGS["tax_rate"]),
        service_charge_rate=to_money(INITIAL_SETTINGS["service_charge_rate"]),
        currency=INITIAL_SETTINGS["currency"],
    )


def default_menu() -> list[MenuItem]:
    return [
        MenuItem(
            item_id=row["id"],
            name=row["name"],
            price=to_money(row["price"]),
            category=row["category"],
            description=row.get("description"),
        )
        for row in MENU_ITEMS
    ]


def default_tables() -> list[Table]:
    """The fixed roster: t1..tN, all available."""
    return [Table(table_id=f"t{idx}", name=f"Table {idx}", capacity=TABLE_CAPACITY) for idx in range(1, TABLE_COUNT + 1)]


def default_staff() -> list[Staff]:
    return [
        Staff(staff_id=row["id"], name=row["name"], role=StaffRole(row["role"]), phone=row["phone"], email=row.get("email"))
        for row in INITIAL_STAFF
    ]


def menu_categories(menu: list[MenuItem]) -> list[str]:
    """Return "All" followed by each category in first-seen order."""
    seen: list[str] = []
    for item in menu:
        if item.category not in seen:
            seen.append(item.category)
    return [ALL_CATEGORIES, *seen]


def filter_menu(menu: list[MenuItem], query: str = "", category: str = ALL_CATEGORIES) -> list[MenuItem]:
    """Case-insensitive name search within an optional category."""
    q = query.strip().lower()
    return [
        item
        for item in menu
        if (category == ALL_CATEGORIES or item.category == category) and (not q or q in item.name.lower())
    ]
