import asyncio
from datetime import datetime, timezone

import pytest

from catalog_hub.services import build_hub
from catalog_hub.settings import Settings


def make_record(code="SKU-1", supplier_id="sup-a", supplier_name="Alpha Supply", *,
                price=100.0, stock=20, category="Electronics", name=None, **extra):
    rec = {
        "product_code": code,
        "name": name or f"Product {code}",
        "category": category,
        "price": price,
        "stock_quantity": stock,
        "supplier_id": supplier_id,
        "supplier_name": supplier_name,
        "timestamp": datetime(2024, 1, 1, tzinfo=timezone.utc),
    }
    rec.update(extra)
    return rec


class FakeFeedSource:
    """In-memory feed: returns ``rows``, raises ``error`` or sleeps ``delay`` first."""

    def __init__(self, supplier_id, supplier_name, rows=None, error=None, delay=0.0):
        self.supplier_id = supplier_id
        self.supplier_name = supplier_name
        self.rows = rows or []
        self.error = error
        self.delay = delay
        self.calls = 0

    async def fetch(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.rows)


@pytest.fixture
def test_settings(tmp_path):
    return Settings(CATALOG_DATA_ROOT=tmp_path, FEED_TIMEOUT=0.5, _env_file=None)


@pytest.fixture
def hub(test_settings):
    return build_hub(test_settings)


@pytest.fixture
def stocked_hub(hub):
    """One product SKU-1 with 20 units at Alpha Supply, inventory synced."""
    hub.catalog.merge_record(make_record("SKU-1", stock=20))
    hub.inventory.sync_from_catalog()
    return hub
