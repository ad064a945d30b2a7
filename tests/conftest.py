from __future__ import annotations

from decimal import Decimal

import pytest

from restobill.data import default_menu, default_settings
from restobill.models import MenuItem, StoreSettings
from restobill.persistence import SnapshotStore, SqliteKeyValueStore
from restobill.session import Session

BUTTER_CHICKEN = "5"
GARLIC_NAAN = "9"


@pytest.fixture
def settings() -> StoreSettings:
    return default_settings()


@pytest.fixture
def menu() -> dict[str, MenuItem]:
    return {item.item_id: item for item in default_menu()}


@pytest.fixture
def butter_chicken(menu: dict[str, MenuItem]) -> MenuItem:
    item = menu[BUTTER_CHICKEN]
    assert item.price == Decimal("350")
    return item


@pytest.fixture
def garlic_naan(menu: dict[str, MenuItem]) -> MenuItem:
    item = menu[GARLIC_NAAN]
    assert item.price == Decimal("55")
    return item


@pytest.fixture
def store(tmp_path) -> SnapshotStore:
    return SnapshotStore(SqliteKeyValueStore(tmp_path / "restobill.db"))


@pytest.fixture
def session(store: SnapshotStore) -> Session:
    return Session.load(store)
