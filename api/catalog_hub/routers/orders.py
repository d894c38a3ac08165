# catalog_hub/routers/orders.py
from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends

from catalog_hub.errors import OrderNotFound
from catalog_hub.models import Order, OrderStatus, OrderStatusIn, PurchaseOrderIn, SalesOrderIn
from catalog_hub.routers.deps import get_hub
from catalog_hub.services import CatalogHub

router = APIRouter(prefix="/orders", tags=["orders"])


@router.get("", response_model=List[Order])
def list_orders(
    kind: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    hub: CatalogHub = Depends(get_hub),
):
    orders = hub.orders.orders_by_kind(kind) if kind else hub.orders.all_orders()
    if status:
        orders = [o for o in orders if o.status == status]
    return orders


@router.get("/{order_id}", response_model=Order)
def get_order(order_id: str, hub: CatalogHub = Depends(get_hub)):
    order = hub.orders.get_order(order_id)
    if order is None:
        raise OrderNotFound(f"Order not found: {order_id}")
    return order


@router.post("/purchase", response_model=Order, status_code=201)
def create_purchase_order(body: PurchaseOrderIn, hub: CatalogHub = Depends(get_hub)):
    return hub.orders.create_purchase_order(body.supplier_id, body.supplier_name, body.items, body.notes)


@router.post("/sales", response_model=Order, status_code=201)
def create_sales_order(body: SalesOrderIn, hub: CatalogHub = Depends(get_hub)):
    return hub.orders.create_sales_order(body.customer_id, body.customer_name, body.items, body.notes)


@router.patch("/{order_id}/status", response_model=Order)
def update_status(order_id: str, body: OrderStatusIn, hub: CatalogHub = Depends(get_hub)):
    return hub.orders.update_order_status(order_id, body.status)
