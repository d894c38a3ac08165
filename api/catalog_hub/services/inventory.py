# catalog_hub/services/inventory.py
"""
Inventory Ledger - per product code stock bookkeeping.

Invariant after every mutation:
    available == stock_quantity - allocated

Two update paths touch a record: catalog sync (stock recomputed from the
supplier variants, allocation preserved) and order-driven changes
(adjust_stock / reserve / release / ship). Both run under the per-code lock
shared with the catalog, so a sync never interleaves with a reservation.

Nothing here clamps to zero: a negative delta or an over-reservation can
drive stock or available below zero, which is reported, not corrected.
"""
from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Optional

from catalog_hub.errors import ProductNotFound
from catalog_hub.locks import KeyedLocks
from catalog_hub.models import (
    InventoryRecord, MasterCatalogEntry, StockAdjustment, SupplierStock, utcnow,
)
from catalog_hub.services.catalog import CatalogService

logger = logging.getLogger(__name__)


class InventoryLedger:
    def __init__(
        self,
        catalog: CatalogService,
        *,
        default_warehouse: str = "Main Warehouse",
        reorder_floor: int = 10,
        reorder_ratio: float = 0.2,
        locks: Optional[KeyedLocks] = None,
    ):
        self.catalog = catalog
        self.default_warehouse = default_warehouse
        self.reorder_floor = reorder_floor
        self.reorder_ratio = reorder_ratio
        self.locks = locks or catalog.locks
        self._records: Dict[str, InventoryRecord] = {}  # product code -> record
        self._history: List[StockAdjustment] = []

    def reorder_level_for(self, total_stock: int) -> int:
        return max(self.reorder_floor, int(total_stock * self.reorder_ratio))

    # =========================================================================
    # Catalog sync
    # =========================================================================

    def sync_from_catalog(self) -> int:
        count = 0
        for snapshot in self.catalog.all_entries():
            with self.locks.hold(snapshot.product_code):
                # re-read under the lock so a concurrent merge is not lost
                entry = self.catalog.get_by_code(snapshot.product_code) or snapshot
                self._sync_entry(entry)
                count += 1
        logger.info(f"Inventory synced from catalog: {count} records")
        return count

    def _sync_entry(self, entry: MasterCatalogEntry) -> InventoryRecord:
        total = sum(v.stock for v in entry.suppliers)
        breakdown = [
            SupplierStock(
                supplier_id=v.supplier_id,
                supplier_name=v.supplier_name,
                stock=v.stock,
                price=v.price,
                last_sync=v.last_updated,
            )
            for v in entry.suppliers
        ]

        record = self._records.get(entry.product_code)
        if record is not None:
            record.stock_quantity = total
            record.available = total - record.allocated
            record.supplier_breakdown = breakdown
            record.last_updated = utcnow()
            return record

        record = InventoryRecord(
            id=f"inv-{entry.id}",
            product_code=entry.product_code,
            product_name=entry.name,
            master_product_id=entry.id,
            stock_quantity=total,
            allocated=0,
            available=total,
            reorder_level=self.reorder_level_for(total),
            warehouse=self.default_warehouse,
            category=entry.category,
            supplier_breakdown=breakdown,
        )
        self._records[entry.product_code] = record
        return record

    # =========================================================================
    # Mutations
    # =========================================================================

    def _require(self, product_code: str) -> InventoryRecord:
        record = self._records.get(product_code)
        if record is None:
            raise ProductNotFound(f"Inventory record not found: {product_code}")
        return record

    def require_all(self, product_codes: Iterable[str]) -> None:
        missing = sorted({c for c in product_codes if c not in self._records})
        if missing:
            raise ProductNotFound(f"Inventory records not found: {', '.join(missing)}", codes=missing)

    def adjust_stock(self, product_code: str, delta: int, reason: str, user_id: str = "system") -> InventoryRecord:
        """Apply a signed stock delta (positive = increase, negative = decrease)."""
        with self.locks.hold(product_code):
            record = self._require(product_code)
            record.stock_quantity += delta
            record.available += delta
            record.last_updated = utcnow()
            self._history.append(StockAdjustment(
                product_code=product_code,
                quantity=delta,
                reason=reason,
                user_id=user_id,
            ))
            logger.info(f"Stock adjusted {product_code}: {delta:+d} ({reason}) -> stock={record.stock_quantity}")
            if record.stock_quantity < 0:
                logger.warning(f"Stock for {product_code} is negative: {record.stock_quantity}")
            return record.model_copy(deep=True)

    def reserve(self, product_code: str, quantity: int) -> InventoryRecord:
        with self.locks.hold(product_code):
            record = self._require(product_code)
            record.allocated += quantity
            record.available -= quantity
            record.last_updated = utcnow()
            if record.available < 0:
                logger.warning(f"Over-allocation on {product_code}: available={record.available}")
            return record.model_copy(deep=True)

    def release(self, product_code: str, quantity: int) -> InventoryRecord:
        with self.locks.hold(product_code):
            record = self._require(product_code)
            record.allocated -= quantity
            record.available += quantity
            record.last_updated = utcnow()
            return record.model_copy(deep=True)

    def ship(self, product_code: str, quantity: int) -> InventoryRecord:
        """Reserved units leave the warehouse: stock and allocation drop together."""
        with self.locks.hold(product_code):
            record = self._require(product_code)
            record.stock_quantity -= quantity
            record.allocated -= quantity
            record.last_updated = utcnow()
            return record.model_copy(deep=True)

    # =========================================================================
    # Read accessors
    # =========================================================================

    def all_records(self) -> List[InventoryRecord]:
        return [r.model_copy(deep=True) for r in self._records.values()]

    def get_record(self, product_code: str) -> Optional[InventoryRecord]:
        record = self._records.get(product_code)
        return record.model_copy(deep=True) if record else None

    def low_stock_records(self) -> List[InventoryRecord]:
        return [r for r in self.all_records() if r.available <= r.reorder_level]

    def records_by_warehouse(self, warehouse: str) -> List[InventoryRecord]:
        return [r for r in self.all_records() if r.warehouse == warehouse]

    def adjustment_history(self, product_code: Optional[str] = None) -> List[StockAdjustment]:
        return [
            a.model_copy() for a in self._history
            if product_code is None or a.product_code == product_code
        ]
