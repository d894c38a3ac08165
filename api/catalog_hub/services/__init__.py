# catalog_hub/services/__init__.py
"""
Business logic services for Catalog Hub.

``build_hub`` wires one instance of each service around a shared per-code
lock registry. Tests and the API build their own hub; there are no module
level service singletons.
"""
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from catalog_hub.locks import KeyedLocks
from catalog_hub.services.catalog import (
    CatalogService, PREFERRED_POLICIES, first_seen_preferred,
    highest_stock_preferred, lowest_price_preferred,
)
from catalog_hub.services.feeds import FeedSource, build_source
from catalog_hub.services.inventory import InventoryLedger
from catalog_hub.services.orders import OrderManager
from catalog_hub.services.pricing import PricingEngine
from catalog_hub.services.sync import SupplierSyncService


@dataclass
class CatalogHub:
    catalog: CatalogService
    pricing: PricingEngine
    inventory: InventoryLedger
    orders: OrderManager
    sync: SupplierSyncService


def build_hub(settings, sources: Optional[Iterable[FeedSource]] = None) -> CatalogHub:
    locks = KeyedLocks()
    catalog = CatalogService(
        preferred_policy=PREFERRED_POLICIES[settings.PREFERRED_SUPPLIER_POLICY],
        locks=locks,
    )
    pricing = PricingEngine(catalog)
    inventory = InventoryLedger(
        catalog,
        default_warehouse=settings.DEFAULT_WAREHOUSE,
        reorder_floor=settings.REORDER_LEVEL_FLOOR,
        reorder_ratio=settings.REORDER_LEVEL_RATIO,
        locks=locks,
    )
    orders = OrderManager(catalog, inventory, strict_transitions=settings.STRICT_ORDER_TRANSITIONS)
    sync = SupplierSyncService(catalog, inventory, pricing, sources, timeout=settings.FEED_TIMEOUT)
    return CatalogHub(catalog=catalog, pricing=pricing, inventory=inventory, orders=orders, sync=sync)


def sources_from_configs(configs, base_dir: Optional[Path] = None, timeout: float = 30.0):
    return [build_source(cfg, base_dir=base_dir, timeout=timeout) for cfg in configs]


__all__ = [
    "CatalogHub",
    "CatalogService",
    "InventoryLedger",
    "OrderManager",
    "PricingEngine",
    "SupplierSyncService",
    "build_hub",
    "sources_from_configs",
    "first_seen_preferred",
    "lowest_price_preferred",
    "highest_stock_preferred",
]
