# catalog_hub/routers/sync.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends

from catalog_hub.models import SupplierSyncStatus, SyncReport
from catalog_hub.routers.deps import get_hub
from catalog_hub.services import CatalogHub

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("", response_model=SyncReport)
async def run_full_sync(hub: CatalogHub = Depends(get_hub)):
    return await hub.sync.perform_full_sync()


@router.post("/{supplier_id}", response_model=SupplierSyncStatus)
async def run_supplier_sync(supplier_id: str, hub: CatalogHub = Depends(get_hub)):
    return await hub.sync.sync_supplier(supplier_id)


@router.get("/status", response_model=List[SupplierSyncStatus])
def sync_status(hub: CatalogHub = Depends(get_hub)):
    return list(hub.sync.last_status.values())
