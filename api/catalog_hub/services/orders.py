# catalog_hub/services/orders.py
"""
Order Lifecycle Manager.

Purchase orders (to suppliers) and sales orders (from customers), and the
inventory side effect of each status change:

    kind      new status   precondition            effect (per item)
    purchase  completed    -                       adjust_stock(+qty, "received")
    sales     completed    -                       stock -= qty; allocated -= qty
    sales     cancelled    previous != cancelled   allocated -= qty; available += qty

Sales orders reserve stock at creation (allocated += qty, available -= qty)
without checking that available stays non-negative. Purchase orders have no
effect until completed.

Status changes follow ALLOWED_TRANSITIONS unless the manager is built with
strict_transitions=False, which accepts any jump.
"""
from __future__ import annotations
import logging
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Union

from catalog_hub.errors import InvalidOrderKind, InvalidStatusTransition, OrderNotFound
from catalog_hub.models import (
    Order, OrderItem, OrderItemIn, OrderKind, OrderStatus, utcnow,
)
from catalog_hub.services.catalog import CatalogService
from catalog_hub.services.inventory import InventoryLedger

logger = logging.getLogger(__name__)

ItemLike = Union[OrderItemIn, dict]

ORDER_PREFIX = {
    OrderKind.purchase: "PO",
    OrderKind.sales: "SO",
}

ALLOWED_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.pending: frozenset({OrderStatus.in_progress, OrderStatus.completed, OrderStatus.cancelled}),
    OrderStatus.in_progress: frozenset({OrderStatus.completed, OrderStatus.cancelled}),
    OrderStatus.completed: frozenset(),
    OrderStatus.cancelled: frozenset(),
}


def parse_kind(kind: Union[str, OrderKind]) -> OrderKind:
    try:
        return OrderKind(kind)
    except ValueError:
        raise InvalidOrderKind(f"Unknown order kind: {kind!r}") from None


def parse_status(status: Union[str, OrderStatus]) -> OrderStatus:
    try:
        return OrderStatus(status)
    except ValueError:
        raise InvalidStatusTransition(f"Unknown order status: {status!r}") from None


class OrderManager:
    def __init__(
        self,
        catalog: CatalogService,
        inventory: InventoryLedger,
        *,
        strict_transitions: bool = True,
        created_by: str = "system",
    ):
        self.catalog = catalog
        self.inventory = inventory
        self.strict_transitions = strict_transitions
        self.created_by = created_by
        self._orders: Dict[str, Order] = {}

    def _next_order_id(self, kind: OrderKind) -> str:
        return f"{ORDER_PREFIX[kind]}-{len(self._orders) + 1:03d}"

    @staticmethod
    def _build_items(items: Iterable[ItemLike], supplier_for: Callable[[str], Optional[str]]) -> List[OrderItem]:
        built = []
        for raw in items:
            item = raw if isinstance(raw, OrderItemIn) else OrderItemIn.model_validate(raw)
            built.append(OrderItem(
                **item.model_dump(),
                total_price=item.quantity * item.unit_price,
                supplier_id=supplier_for(item.product_code),
            ))
        return built

    def _store(self, kind: OrderKind, counterparty_id: str, counterparty_name: str,
               items: List[OrderItem], notes: Optional[str]) -> Order:
        now = utcnow()
        order = Order(
            id=self._next_order_id(kind),
            kind=kind,
            counterparty_id=counterparty_id,
            counterparty_name=counterparty_name,
            status=OrderStatus.pending,
            date=now,
            total_value=sum(i.total_price for i in items),
            items=items,
            notes=notes,
            created_by=self.created_by,
            updated_at=now,
        )
        self._orders[order.id] = order
        return order

    # =========================================================================
    # Creation
    # =========================================================================

    def create_purchase_order(self, supplier_id: str, supplier_name: str,
                              items: Iterable[ItemLike], notes: Optional[str] = None) -> Order:
        built = self._build_items(items, lambda _code: supplier_id)
        order = self._store(OrderKind.purchase, supplier_id, supplier_name, built, notes)
        logger.info(f"Purchase order {order.id} created for {supplier_id}: {len(built)} items, total={order.total_value:.2f}")
        return order.model_copy(deep=True)

    def create_sales_order(self, customer_id: str, customer_name: str,
                           items: Iterable[ItemLike], notes: Optional[str] = None) -> Order:
        built = self._build_items(items, self._sourcing_supplier)
        codes = [i.product_code for i in built]
        with self.inventory.locks.hold_many(codes):
            self.inventory.require_all(codes)
            order = self._store(OrderKind.sales, customer_id, customer_name, built, notes)
            for item in order.items:
                self.inventory.reserve(item.product_code, item.quantity)
        logger.info(f"Sales order {order.id} created for {customer_id}: {len(built)} items reserved")
        return order.model_copy(deep=True)

    def create_order(self, kind: Union[str, OrderKind], counterparty_id: str, counterparty_name: str,
                     items: Iterable[ItemLike], notes: Optional[str] = None) -> Order:
        kind = parse_kind(kind)
        if kind == OrderKind.purchase:
            return self.create_purchase_order(counterparty_id, counterparty_name, items, notes)
        return self.create_sales_order(counterparty_id, counterparty_name, items, notes)

    def _sourcing_supplier(self, product_code: str) -> Optional[str]:
        entry = self.catalog.get_by_code(product_code)
        variant = entry.preferred_variant() if entry else None
        return variant.supplier_id if variant else None

    # =========================================================================
    # Status transitions
    # =========================================================================

    def update_order_status(self, order_id: str, status: Union[str, OrderStatus]) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFound(f"Order not found: {order_id}")
        new_status = parse_status(status)
        previous = order.status

        if self.strict_transitions and new_status not in ALLOWED_TRANSITIONS[previous]:
            raise InvalidStatusTransition(
                f"Order {order_id}: {previous.value} -> {new_status.value} is not allowed",
                order_id=order_id,
            )

        effect = self._inventory_effect(order, new_status, previous)
        codes = [i.product_code for i in order.items]
        with self.inventory.locks.hold_many(codes):
            if effect is not None:
                self.inventory.require_all(codes)
            order.previous_status = previous
            order.status = new_status
            order.updated_at = utcnow()
            if effect is not None:
                effect(order)

        logger.info(f"Order {order_id} status {previous.value} -> {new_status.value}")
        return order.model_copy(deep=True)

    def _inventory_effect(self, order: Order, new_status: OrderStatus,
                          previous: OrderStatus) -> Optional[Callable[[Order], None]]:
        if order.kind == OrderKind.purchase:
            if new_status == OrderStatus.completed:
                return self._receive
            return None
        if order.kind == OrderKind.sales:
            if new_status == OrderStatus.completed:
                return self._ship
            if new_status == OrderStatus.cancelled and previous != OrderStatus.cancelled:
                return self._release
            return None
        raise InvalidOrderKind(f"Unknown order kind: {order.kind!r}")

    def _receive(self, order: Order) -> None:
        for item in order.items:
            self.inventory.adjust_stock(item.product_code, item.quantity, f"Purchase order {order.id} received")

    def _ship(self, order: Order) -> None:
        for item in order.items:
            self.inventory.ship(item.product_code, item.quantity)

    def _release(self, order: Order) -> None:
        for item in order.items:
            self.inventory.release(item.product_code, item.quantity)

    # =========================================================================
    # Read accessors
    # =========================================================================

    def all_orders(self) -> List[Order]:
        return [o.model_copy(deep=True) for o in self._orders.values()]

    def get_order(self, order_id: str) -> Optional[Order]:
        order = self._orders.get(order_id)
        return order.model_copy(deep=True) if order else None

    def orders_by_kind(self, kind: Union[str, OrderKind]) -> List[Order]:
        kind = parse_kind(kind)
        return [o for o in self.all_orders() if o.kind == kind]
