import random

import pytest

from catalog_hub.errors import ProductNotFound
from catalog_hub.services.catalog import CatalogService
from catalog_hub.services.inventory import InventoryLedger

from conftest import make_record


@pytest.fixture
def catalog():
    return CatalogService()


@pytest.fixture
def ledger(catalog):
    return InventoryLedger(catalog)


def test_first_sync_creates_record_from_all_variants(catalog, ledger):
    catalog.merge_record(make_record("SKU-1", "sup-a", stock=20))
    catalog.merge_record(make_record("SKU-1", "sup-b", stock=30))

    assert ledger.sync_from_catalog() == 1
    rec = ledger.get_record("SKU-1")
    assert (rec.stock_quantity, rec.allocated, rec.available) == (50, 0, 50)
    assert rec.reorder_level == 10
    assert rec.warehouse == "Main Warehouse"
    assert [s.supplier_id for s in rec.supplier_breakdown] == ["sup-a", "sup-b"]


@pytest.mark.parametrize("total,expected", [(0, 10), (49, 10), (60, 12), (200, 40), (1003, 200)])
def test_reorder_level_is_twenty_percent_with_floor(catalog, ledger, total, expected):
    catalog.merge_record(make_record("SKU-1", stock=total))
    ledger.sync_from_catalog()
    assert ledger.get_record("SKU-1").reorder_level == expected


def test_resync_recomputes_stock_and_preserves_allocation(catalog, ledger):
    catalog.merge_record(make_record("SKU-1", stock=20))
    ledger.sync_from_catalog()
    ledger.reserve("SKU-1", 5)

    catalog.merge_record(make_record("SKU-1", stock=12))
    ledger.sync_from_catalog()

    rec = ledger.get_record("SKU-1")
    assert (rec.stock_quantity, rec.allocated, rec.available) == (12, 5, 7)
    assert rec.reorder_level == 10


def test_adjust_stock_applies_signed_delta(catalog, ledger):
    catalog.merge_record(make_record("SKU-1", stock=20))
    ledger.sync_from_catalog()

    ledger.adjust_stock("SKU-1", 7, "recount")
    rec = ledger.adjust_stock("SKU-1", -4, "damaged")

    assert (rec.stock_quantity, rec.available) == (23, 23)
    history = ledger.adjustment_history("SKU-1")
    assert [(a.quantity, a.reason) for a in history] == [(7, "recount"), (-4, "damaged")]


def test_adjust_stock_can_go_negative(catalog, ledger):
    catalog.merge_record(make_record("SKU-1", stock=3))
    ledger.sync_from_catalog()

    rec = ledger.adjust_stock("SKU-1", -5, "write-off")

    assert rec.stock_quantity == -2
    assert rec.available == -2
    assert rec.is_consistent


def test_adjust_unknown_code_raises(ledger):
    with pytest.raises(ProductNotFound):
        ledger.adjust_stock("NOPE", 1, "x")
    assert ledger.adjustment_history() == []


def test_low_stock_uses_available_against_reorder_level(catalog, ledger):
    catalog.merge_record(make_record("LOW", stock=8))
    catalog.merge_record(make_record("EDGE", stock=10))
    catalog.merge_record(make_record("OK", stock=100))
    ledger.sync_from_catalog()

    assert sorted(r.product_code for r in ledger.low_stock_records()) == ["EDGE", "LOW"]

    ledger.reserve("OK", 85)
    assert "OK" in {r.product_code for r in ledger.low_stock_records()}


def test_records_by_warehouse(catalog):
    ledger = InventoryLedger(catalog, default_warehouse="North")
    catalog.merge_record(make_record("SKU-1"))
    ledger.sync_from_catalog()
    assert len(ledger.records_by_warehouse("North")) == 1
    assert ledger.records_by_warehouse("South") == []


def test_invariant_holds_after_mixed_operations(catalog, ledger):
    rng = random.Random(7)
    codes = ["A", "B", "C"]
    for code in codes:
        catalog.merge_record(make_record(code, stock=rng.randint(0, 40)))
    ledger.sync_from_catalog()

    for _ in range(300):
        code = rng.choice(codes)
        op = rng.choice(["sync", "adjust", "reserve", "release", "ship", "merge"])
        qty = rng.randint(1, 15)
        if op == "sync":
            ledger.sync_from_catalog()
        elif op == "adjust":
            ledger.adjust_stock(code, rng.choice([qty, -qty]), "random")
        elif op == "reserve":
            ledger.reserve(code, qty)
        elif op == "release":
            ledger.release(code, qty)
        elif op == "ship":
            ledger.ship(code, qty)
        else:
            catalog.merge_record(make_record(code, rng.choice(["s1", "s2"]), stock=rng.randint(0, 40)))

        for rec in ledger.all_records():
            assert rec.available == rec.stock_quantity - rec.allocated
