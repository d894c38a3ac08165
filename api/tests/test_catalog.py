import itertools

import pytest

from catalog_hub.errors import MalformedRecord
from catalog_hub.models import NormalizedRecord, ProductStatus
from catalog_hub.services.catalog import (
    CatalogService, highest_stock_preferred, lowest_price_preferred,
)

from conftest import make_record


def _state(entry):
    return entry.model_dump(exclude={"updated_at"})


def test_first_sighting_creates_entry_with_preferred_variant():
    catalog = CatalogService()
    entry = catalog.merge_record(make_record("SKU-1", "sup-a", price=12.5, stock=4))

    assert entry.product_code == "SKU-1"
    assert len(entry.suppliers) == 1
    assert entry.suppliers[0].is_preferred is True
    assert entry.primary_supplier == "sup-a"
    assert catalog.get_by_code("SKU-1").id == entry.id


def test_two_suppliers_same_code_first_stays_preferred():
    catalog = CatalogService()
    catalog.merge_record(make_record("SKU-1", "sup-a", "Alpha", price=100.0))
    entry = catalog.merge_record(make_record("SKU-1", "sup-b", "Beta", price=50.0, stock=500))

    assert len(catalog) == 1
    assert [v.supplier_id for v in entry.suppliers] == ["sup-a", "sup-b"]
    assert entry.variant_for("sup-a").is_preferred is True
    assert entry.variant_for("sup-b").is_preferred is False


def test_existing_variant_is_overwritten_in_place():
    catalog = CatalogService()
    catalog.merge_record(make_record("SKU-1", "sup-a", price=10.0, stock=1))
    catalog.merge_record(make_record("SKU-1", "sup-b", price=11.0, stock=2))
    entry = catalog.merge_record(make_record("SKU-1", "sup-b", price=9.0, stock=7))

    assert len(entry.suppliers) == 2
    b = entry.variant_for("sup-b")
    assert (b.price, b.stock, b.is_preferred) == (9.0, 7, False)
    assert entry.variant_for("sup-a").is_preferred is True


def test_merging_identical_record_twice_is_idempotent():
    catalog = CatalogService()
    rec = make_record("SKU-1", "sup-a")
    first = catalog.merge_record(rec)
    second = catalog.merge_record(rec)

    assert len(second.suppliers) == 1
    assert _state(first) == _state(second)
    assert second.updated_at >= first.updated_at


def test_entry_count_equals_distinct_codes_for_any_merge_order():
    records = [
        make_record("A", "s1"), make_record("B", "s1"), make_record("A", "s2"),
        make_record("C", "s2"), make_record("B", "s3"), make_record("A", "s1"),
    ]
    for perm in itertools.permutations(records):
        catalog = CatalogService()
        for rec in perm:
            catalog.merge_record(rec)
        assert len(catalog) == 3
        assert sorted(e.product_code for e in catalog.all_entries()) == ["A", "B", "C"]
        for entry in catalog.all_entries():
            assert sum(v.is_preferred for v in entry.suppliers) == 1
            ids = [v.supplier_id for v in entry.suppliers]
            assert len(ids) == len(set(ids))


@pytest.mark.parametrize("code", ["", "   ", None])
def test_record_without_code_is_rejected(code):
    catalog = CatalogService()
    catalog.merge_record(make_record("SKU-1"))
    before = catalog.all_entries()

    with pytest.raises(MalformedRecord):
        catalog.merge_record(make_record(code))

    assert catalog.all_entries() == before


def test_negative_price_is_rejected():
    with pytest.raises(MalformedRecord):
        CatalogService().merge_record(make_record("SKU-1", price=-1))


@pytest.mark.parametrize("price", [float("inf"), float("-inf"), float("nan")])
def test_non_finite_price_is_rejected(price):
    catalog = CatalogService()
    with pytest.raises(MalformedRecord):
        catalog.merge_record(make_record("SKU-1", price=price))
    assert len(catalog) == 0


def test_negative_stock_is_rejected():
    with pytest.raises(MalformedRecord):
        CatalogService().merge_record(make_record("SKU-1", stock=-5))


def test_batch_with_one_bad_record_merges_nothing():
    catalog = CatalogService()
    batch = [make_record("A"), make_record("B"), make_record(""), make_record("C")]

    with pytest.raises(MalformedRecord) as exc:
        catalog.merge_batch(batch)

    assert exc.value.context["index"] == 2
    assert len(catalog) == 0


def test_camel_case_ingestion_record_is_accepted():
    catalog = CatalogService()
    entry = catalog.merge_record({
        "productCode": " SKU-9 ",
        "name": "Widget",
        "category": "Tools",
        "price": 3.5,
        "stockQuantity": 8,
        "supplierId": "sup-z",
        "supplierName": "Zeta",
        "timestamp": "2024-05-01T10:00:00+00:00",
    })
    assert entry.product_code == "SKU-9"
    assert entry.suppliers[0].stock == 8
    assert catalog.get_by_code("SKU-9") is not None


def test_accessors_return_copies():
    catalog = CatalogService()
    catalog.merge_record(make_record("SKU-1"))
    copy = catalog.get_by_code("SKU-1")
    copy.suppliers.clear()
    assert len(catalog.get_by_code("SKU-1").suppliers) == 1


def test_stale_variant_is_kept():
    catalog = CatalogService()
    catalog.merge_record(make_record("SKU-1", "sup-a"))
    catalog.merge_record(make_record("SKU-1", "sup-b"))
    # sup-a stops reporting SKU-1, sup-b keeps reporting it
    catalog.merge_record(make_record("SKU-1", "sup-b", stock=3))
    assert {v.supplier_id for v in catalog.get_by_code("SKU-1").suppliers} == {"sup-a", "sup-b"}


def test_lowest_price_policy_can_be_injected():
    catalog = CatalogService(preferred_policy=lowest_price_preferred)
    catalog.merge_record(make_record("SKU-1", "sup-a", price=100.0))
    entry = catalog.merge_record(make_record("SKU-1", "sup-b", price=80.0))

    assert entry.preferred_variant().supplier_id == "sup-b"
    assert entry.variant_for("sup-a").is_preferred is False
    assert entry.primary_supplier == "sup-b"


def test_highest_stock_policy():
    catalog = CatalogService(preferred_policy=highest_stock_preferred)
    catalog.merge_record(make_record("SKU-1", "sup-a", stock=5))
    entry = catalog.merge_record(make_record("SKU-1", "sup-b", stock=50))
    assert entry.preferred_variant().supplier_id == "sup-b"


def test_products_for_pricing_skips_inactive():
    catalog = CatalogService()
    catalog.merge_record(make_record("A"))
    catalog.merge_record(NormalizedRecord(**make_record("B", status=ProductStatus.inactive)))
    assert [e.product_code for e in catalog.products_for_pricing()] == ["A"]
