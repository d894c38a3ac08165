# catalog_hub/services/catalog.py
"""
Catalog Merge Engine.

Merges normalized supplier records into master catalog entries keyed by
product code. One entry per code, at most one variant per supplier per entry,
exactly one preferred variant per entry.

The preferred variant is chosen by a policy function ``policy(entry) -> supplier_id``.
The default (``first_seen_preferred``) keeps whichever supplier was merged first
for a code, even when a later supplier is cheaper or holds more stock.
"""
from __future__ import annotations
import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError

from catalog_hub.errors import MalformedRecord
from catalog_hub.locks import KeyedLocks
from catalog_hub.models import (
    MasterCatalogEntry, NormalizedRecord, ProductStatus, SupplierVariant, utcnow,
)

logger = logging.getLogger(__name__)

RecordLike = Union[NormalizedRecord, Mapping[str, Any]]
PreferredPolicy = Callable[[MasterCatalogEntry], Optional[str]]


# ============================================================================
# Preferred-supplier policies
# ============================================================================

def first_seen_preferred(entry: MasterCatalogEntry) -> Optional[str]:
    """Keep the current preferred supplier; the first merged one wins."""
    current = entry.preferred_variant()
    return current.supplier_id if current else None


def lowest_price_preferred(entry: MasterCatalogEntry) -> Optional[str]:
    if not entry.suppliers:
        return None
    return min(entry.suppliers, key=lambda v: v.price).supplier_id


def highest_stock_preferred(entry: MasterCatalogEntry) -> Optional[str]:
    if not entry.suppliers:
        return None
    return max(entry.suppliers, key=lambda v: v.stock).supplier_id


PREFERRED_POLICIES: Dict[str, PreferredPolicy] = {
    "first_seen": first_seen_preferred,
    "lowest_price": lowest_price_preferred,
    "highest_stock": highest_stock_preferred,
}


def validate_record(record: RecordLike) -> NormalizedRecord:
    """Coerce and check one ingestion record; raises MalformedRecord."""
    if isinstance(record, NormalizedRecord):
        rec = record
    else:
        try:
            rec = NormalizedRecord.model_validate(dict(record))
        except (ValidationError, TypeError, ValueError) as e:
            raise MalformedRecord(f"Invalid record: {e}") from e

    code = (rec.product_code or "").strip()
    if not code:
        raise MalformedRecord("Record has no product code", supplier_id=rec.supplier_id)
    if not (rec.supplier_id or "").strip():
        raise MalformedRecord(f"Record {code} has no supplier id")
    if not math.isfinite(rec.price):
        raise MalformedRecord(f"Record {code} has non-finite price {rec.price}")
    if rec.price < 0:
        raise MalformedRecord(f"Record {code} has negative price {rec.price}")
    if rec.stock_quantity < 0:
        raise MalformedRecord(f"Record {code} has negative stock {rec.stock_quantity}")
    if code != rec.product_code:
        rec = rec.model_copy(update={"product_code": code})
    return rec


class CatalogService:
    """Single source of truth: product code -> merged multi-supplier entry."""

    def __init__(
        self,
        preferred_policy: PreferredPolicy = first_seen_preferred,
        locks: Optional[KeyedLocks] = None,
    ):
        self.preferred_policy = preferred_policy
        self.locks = locks or KeyedLocks()
        self._entries: Dict[str, MasterCatalogEntry] = {}
        self._code_index: Dict[str, str] = {}  # product code -> entry id

    # =========================================================================
    # Merge
    # =========================================================================

    def merge_record(self, record: RecordLike) -> MasterCatalogEntry:
        rec = validate_record(record)
        with self.locks.hold(rec.product_code):
            entry = self._merge(rec)
            return entry.model_copy(deep=True)

    def merge_batch(self, records: Iterable[RecordLike]) -> List[MasterCatalogEntry]:
        """
        Validate every record first, then merge them all.

        A single malformed record rejects the whole batch and nothing is merged.
        """
        validated: List[NormalizedRecord] = []
        for i, record in enumerate(records):
            try:
                validated.append(validate_record(record))
            except MalformedRecord as e:
                raise MalformedRecord(f"Record #{i}: {e.message}", index=i) from e

        with self.locks.hold_many(r.product_code for r in validated):
            merged = [self._merge(r) for r in validated]
            return [e.model_copy(deep=True) for e in merged]

    def update_supplier_products(self, supplier_id: str, records: Iterable[RecordLike]) -> int:
        merged = self.merge_batch(records)
        logger.info(f"Merged {len(merged)} records from supplier {supplier_id}")
        return len(merged)

    def _merge(self, rec: NormalizedRecord) -> MasterCatalogEntry:
        entry_id = self._code_index.get(rec.product_code)
        entry = self._entries.get(entry_id) if entry_id else None
        if entry is None:
            return self._create_entry(rec)

        variant = entry.variant_for(rec.supplier_id)
        if variant is not None:
            variant.supplier_name = rec.supplier_name or variant.supplier_name
            variant.price = rec.price
            variant.stock = rec.stock_quantity
            variant.last_updated = rec.timestamp
        else:
            entry.suppliers.append(SupplierVariant(
                supplier_id=rec.supplier_id,
                supplier_name=rec.supplier_name,
                price=rec.price,
                stock=rec.stock_quantity,
                last_updated=rec.timestamp,
                is_preferred=False,
            ))
        self._apply_preferred(entry)
        entry.updated_at = utcnow()
        return entry

    def _create_entry(self, rec: NormalizedRecord) -> MasterCatalogEntry:
        now = utcnow()
        entry = MasterCatalogEntry(
            product_code=rec.product_code,
            name=rec.name,
            category=rec.category,
            description=rec.description,
            images=list(rec.images),
            suppliers=[SupplierVariant(
                supplier_id=rec.supplier_id,
                supplier_name=rec.supplier_name,
                price=rec.price,
                stock=rec.stock_quantity,
                last_updated=rec.timestamp,
                is_preferred=True,
            )],
            primary_supplier=rec.supplier_id,
            status=rec.status,
            created_at=now,
            updated_at=now,
        )
        self._entries[entry.id] = entry
        self._code_index[rec.product_code] = entry.id
        logger.debug(f"New catalog entry {rec.product_code} from supplier {rec.supplier_id}")
        return entry

    def _apply_preferred(self, entry: MasterCatalogEntry) -> None:
        chosen = self.preferred_policy(entry)
        if entry.variant_for(chosen or "") is None:
            chosen = entry.suppliers[0].supplier_id
        for v in entry.suppliers:
            v.is_preferred = v.supplier_id == chosen
        entry.primary_supplier = chosen

    # =========================================================================
    # Read accessors (return copies)
    # =========================================================================

    def all_entries(self) -> List[MasterCatalogEntry]:
        return [e.model_copy(deep=True) for e in self._entries.values()]

    def get_by_code(self, product_code: str) -> Optional[MasterCatalogEntry]:
        entry_id = self._code_index.get((product_code or "").strip())
        entry = self._entries.get(entry_id) if entry_id else None
        return entry.model_copy(deep=True) if entry else None

    def get_by_id(self, entry_id: str) -> Optional[MasterCatalogEntry]:
        entry = self._entries.get(entry_id)
        return entry.model_copy(deep=True) if entry else None

    def lookup(self, key: str) -> Optional[MasterCatalogEntry]:
        """Entry by internal id, falling back to product code."""
        return self.get_by_id(key) or self.get_by_code(key)

    def products_for_pricing(self) -> List[MasterCatalogEntry]:
        return [e for e in self.all_entries() if e.status == ProductStatus.active]

    def __len__(self) -> int:
        return len(self._entries)
