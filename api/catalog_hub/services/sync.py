# catalog_hub/services/sync.py
"""
Supplier sync.

Each supplier is fetched concurrently and bounded by a timeout. A supplier's
batch is fully materialised and validated before the catalog is touched, then
applied in one synchronous step, so a batch is either merged whole or not at
all. A failing supplier is logged and reported in its SupplierSyncStatus; the
other suppliers still sync.
"""
from __future__ import annotations
import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from catalog_hub.errors import CatalogError, SupplierNotFound
from catalog_hub.models import SupplierSyncStatus, SyncReport, utcnow
from catalog_hub.services.catalog import CatalogService
from catalog_hub.services.feeds import FeedSource
from catalog_hub.services.inventory import InventoryLedger
from catalog_hub.services.pricing import PricingEngine

logger = logging.getLogger(__name__)


class SupplierSyncService:
    def __init__(
        self,
        catalog: CatalogService,
        inventory: InventoryLedger,
        pricing: PricingEngine,
        sources: Optional[Iterable[FeedSource]] = None,
        *,
        timeout: float = 30.0,
    ):
        self.catalog = catalog
        self.inventory = inventory
        self.pricing = pricing
        self.timeout = timeout
        self._sources: Dict[str, FeedSource] = {}
        self.last_status: Dict[str, SupplierSyncStatus] = {}
        for source in sources or []:
            self.add_source(source)

    # =========================================================================
    # Sources
    # =========================================================================

    def add_source(self, source: FeedSource) -> None:
        self._sources[source.supplier_id] = source

    def remove_source(self, supplier_id: str) -> None:
        if self._sources.pop(supplier_id, None) is None:
            raise SupplierNotFound(f"Supplier not found: {supplier_id}")

    def sources(self) -> List[FeedSource]:
        return list(self._sources.values())

    # =========================================================================
    # Sync
    # =========================================================================

    async def _fetch(self, source: FeedSource) -> List[dict]:
        return await asyncio.wait_for(source.fetch(), timeout=self.timeout)

    def _status(self, source: FeedSource, *, records: int = 0,
                error: Optional[str] = None) -> SupplierSyncStatus:
        status = SupplierSyncStatus(
            supplier_id=source.supplier_id,
            supplier_name=source.supplier_name,
            status="error" if error else "ok",
            records=records,
            error=error,
        )
        self.last_status[source.supplier_id] = status
        return status

    async def sync_supplier(self, supplier_id: str) -> SupplierSyncStatus:
        source = self._sources.get(supplier_id)
        if source is None:
            raise SupplierNotFound(f"Supplier not found: {supplier_id}")
        results = await self._sync_sources([source])
        return results[0]

    async def sync_all(self) -> List[SupplierSyncStatus]:
        return await self._sync_sources(self.sources())

    async def _sync_sources(self, sources: List[FeedSource]) -> List[SupplierSyncStatus]:
        if not sources:
            return []
        logger.info(f"Supplier sync started: {len(sources)} suppliers")
        fetched = await asyncio.gather(
            *(self._fetch(s) for s in sources),
            return_exceptions=True,
        )

        statuses = []
        for source, result in zip(sources, fetched):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                error = "timeout" if isinstance(result, asyncio.TimeoutError) else f"{type(result).__name__}: {result}"
                logger.error(f"Failed to sync supplier {source.supplier_name} ({source.supplier_id}): {error}",
                             exc_info=result)
                statuses.append(self._status(source, error=error))
                continue
            try:
                count = self.catalog.update_supplier_products(source.supplier_id, result)
            except CatalogError as e:
                logger.warning(f"Discarded batch from supplier {source.supplier_id}: {e.message}")
                statuses.append(self._status(source, error=e.message))
                continue
            statuses.append(self._status(source, records=count))

        ok = sum(1 for s in statuses if s.status == "ok")
        logger.info(f"Supplier sync finished: {ok}/{len(statuses)} suppliers ok")
        return statuses

    async def perform_full_sync(self) -> SyncReport:
        """Suppliers -> catalog -> inventory -> prices."""
        report = SyncReport()
        report.suppliers = await self.sync_all()
        report.catalog_entries = len(self.catalog)
        report.inventory_records = self.inventory.sync_from_catalog()

        priced = 0
        for entry in self.catalog.products_for_pricing():
            try:
                self.pricing.price_for(entry)
                priced += 1
            except CatalogError as e:
                report.pricing_errors[entry.product_code] = e.message
        report.priced_products = priced
        report.finished_at = utcnow()
        return report
