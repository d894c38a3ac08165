# catalog_hub/routers/catalog.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from catalog_hub.errors import ProductNotFound
from catalog_hub.models import MasterCatalogEntry, PricedProduct
from catalog_hub.routers.deps import get_hub
from catalog_hub.services import CatalogHub

router = APIRouter(prefix="/catalog", tags=["catalog"])


@router.get("", response_model=List[MasterCatalogEntry])
def list_catalog(
    supplier: Optional[str] = Query(None, description="Substring of a supplier name"),
    category: Optional[str] = None,
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    hub: CatalogHub = Depends(get_hub),
):
    entries = hub.catalog.all_entries()
    if supplier:
        needle = supplier.lower()
        entries = [e for e in entries if any(needle in v.supplier_name.lower() for v in e.suppliers)]
    if category:
        entries = [e for e in entries if e.category == category]
    return entries[offset:offset + limit]


@router.get("/prices", response_model=List[PricedProduct])
def list_prices(hub: CatalogHub = Depends(get_hub)):
    return hub.pricing.calculate_prices()


@router.get("/{key}", response_model=MasterCatalogEntry)
def get_entry(key: str, hub: CatalogHub = Depends(get_hub)):
    """Entry by internal id or product code."""
    entry = hub.catalog.lookup(key)
    if entry is None:
        raise ProductNotFound(f"Product not found: {key}")
    return entry


@router.get("/{product_code}/price", response_model=PricedProduct)
def get_price(product_code: str, hub: CatalogHub = Depends(get_hub)):
    priced = hub.pricing.price_for_code(product_code)
    if priced is None:
        raise ProductNotFound(f"Product not found: {product_code}")
    return priced
