# catalog_hub/routers/inventory.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends

from catalog_hub.errors import ProductNotFound
from catalog_hub.models import InventoryRecord, StockAdjustment, StockAdjustmentIn
from catalog_hub.routers.deps import get_hub
from catalog_hub.services import CatalogHub

router = APIRouter(prefix="/inventory", tags=["inventory"])


@router.get("", response_model=List[InventoryRecord])
def list_inventory(warehouse: Optional[str] = None, hub: CatalogHub = Depends(get_hub)):
    if warehouse:
        return hub.inventory.records_by_warehouse(warehouse)
    return hub.inventory.all_records()


@router.get("/low-stock", response_model=List[InventoryRecord])
def low_stock(hub: CatalogHub = Depends(get_hub)):
    return hub.inventory.low_stock_records()


@router.get("/adjustments", response_model=List[StockAdjustment])
def adjustments(product_code: Optional[str] = None, hub: CatalogHub = Depends(get_hub)):
    return hub.inventory.adjustment_history(product_code)


@router.get("/{product_code}", response_model=InventoryRecord)
def get_record(product_code: str, hub: CatalogHub = Depends(get_hub)):
    record = hub.inventory.get_record(product_code)
    if record is None:
        raise ProductNotFound(f"Inventory record not found: {product_code}")
    return record


@router.post("/{product_code}/adjust", response_model=InventoryRecord)
def adjust(product_code: str, body: StockAdjustmentIn, hub: CatalogHub = Depends(get_hub)):
    return hub.inventory.adjust_stock(product_code, body.signed_delta(), body.reason)
