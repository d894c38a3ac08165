from __future__ import annotations
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List, Literal
import enum
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


# ============================================================================
# ENUMS
# ============================================================================

class ProductStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class OrderKind(str, enum.Enum):
    purchase = "purchase"
    sales = "sales"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


# ============================================================================
# Ingestion
# ============================================================================

class NormalizedRecord(BaseModel):
    """One supplier's view of one product, as produced by the feed normalizer."""
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    product_code: str
    name: str = ""
    category: str = ""
    price: float = 0.0
    stock_quantity: int = 0
    supplier_id: str
    supplier_name: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    status: ProductStatus = ProductStatus.active
    description: Optional[str] = None
    images: List[str] = Field(default_factory=list)


# ============================================================================
# Catalog
# ============================================================================

class SupplierVariant(BaseModel):
    supplier_id: str
    supplier_name: str
    price: float
    stock: int
    last_updated: datetime
    is_preferred: bool = False


class MasterCatalogEntry(BaseModel):
    id: str = Field(default_factory=lambda: new_id("master"))
    product_code: str
    name: str
    category: str
    description: Optional[str] = None
    images: List[str] = Field(default_factory=list)
    suppliers: List[SupplierVariant] = Field(default_factory=list)
    primary_supplier: Optional[str] = None
    status: ProductStatus = ProductStatus.active
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def variant_for(self, supplier_id: str) -> Optional[SupplierVariant]:
        for v in self.suppliers:
            if v.supplier_id == supplier_id:
                return v
        return None

    def preferred_variant(self) -> Optional[SupplierVariant]:
        """Preferred variant, else the first one, else None."""
        for v in self.suppliers:
            if v.is_preferred:
                return v
        return self.suppliers[0] if self.suppliers else None


# ============================================================================
# Pricing
# ============================================================================

class PricingRuleIn(BaseModel):
    name: str
    supplier: str
    category: str
    product_code: Optional[str] = None
    markup_percentage: float = Field(allow_inf_nan=False)
    priority: int = 1
    is_active: bool = True


class PricingRuleUpdate(BaseModel):
    name: Optional[str] = None
    supplier: Optional[str] = None
    category: Optional[str] = None
    product_code: Optional[str] = None
    markup_percentage: Optional[float] = Field(None, allow_inf_nan=False)
    priority: Optional[int] = None
    is_active: Optional[bool] = None


class PricingRule(PricingRuleIn):
    id: str = Field(default_factory=lambda: new_id("rule"))
    created_date: datetime = Field(default_factory=utcnow)
    last_modified: datetime = Field(default_factory=utcnow)

    def matches(self, entry: MasterCatalogEntry, supplier_name: str) -> bool:
        if not self.is_active:
            return False
        if self.supplier != supplier_name:
            return False
        if self.category != entry.category:
            return False
        if self.product_code and self.product_code != entry.product_code:
            return False
        return True


class AppliedRule(BaseModel):
    rule_id: str
    rule_name: str
    markup_percentage: float
    priority: int


class PricedProduct(BaseModel):
    master_product_id: str
    product_code: str
    name: str
    base_price: float
    final_price: float
    applied_rules: List[AppliedRule] = Field(default_factory=list)
    preferred_supplier: str
    margin: float
    margin_percentage: float


# ============================================================================
# Inventory
# ============================================================================

class SupplierStock(BaseModel):
    supplier_id: str
    supplier_name: str
    stock: int
    price: float
    last_sync: datetime


class InventoryRecord(BaseModel):
    id: str
    product_code: str
    product_name: str
    master_product_id: str
    stock_quantity: int
    allocated: int = 0
    available: int
    reorder_level: int
    warehouse: str
    category: str = ""
    last_updated: datetime = Field(default_factory=utcnow)
    supplier_breakdown: List[SupplierStock] = Field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return self.available == self.stock_quantity - self.allocated


class StockAdjustment(BaseModel):
    product_code: str
    quantity: int
    reason: str
    timestamp: datetime = Field(default_factory=utcnow)
    user_id: str = "system"


class StockAdjustmentIn(BaseModel):
    quantity: int
    reason: str = "manual correction"
    type: Literal["increase", "decrease"] = "increase"

    def signed_delta(self) -> int:
        q = abs(self.quantity)
        return q if self.type == "increase" else -q


# ============================================================================
# Orders
# ============================================================================

class OrderItemIn(BaseModel):
    product_code: str
    product_name: str = ""
    quantity: int = Field(gt=0)
    unit_price: float = Field(ge=0)


class OrderItem(OrderItemIn):
    id: str = Field(default_factory=lambda: new_id("item"))
    total_price: float
    supplier_id: Optional[str] = None


class Order(BaseModel):
    id: str
    kind: OrderKind
    counterparty_id: str
    counterparty_name: str = ""
    status: OrderStatus = OrderStatus.pending
    previous_status: Optional[OrderStatus] = None
    date: datetime = Field(default_factory=utcnow)
    total_value: float = 0.0
    items: List[OrderItem] = Field(default_factory=list)
    notes: Optional[str] = None
    created_by: str = "system"
    updated_at: datetime = Field(default_factory=utcnow)


class PurchaseOrderIn(BaseModel):
    supplier_id: str
    supplier_name: str = ""
    items: List[OrderItemIn]
    notes: Optional[str] = None


class SalesOrderIn(BaseModel):
    customer_id: str
    customer_name: str = ""
    items: List[OrderItemIn]
    notes: Optional[str] = None


class OrderStatusIn(BaseModel):
    status: OrderStatus


# ============================================================================
# Supplier feeds / sync
# ============================================================================

class SupplierFeedAuth(BaseModel):
    type: Literal["none", "basic", "bearer", "header", "query"] = "none"
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None
    header_name: Optional[str] = None
    query_param: Optional[str] = None


class SupplierFeedConfig(BaseModel):
    supplier_id: str
    name: str
    category: str = ""
    kind: Literal["http", "csv"] = "http"
    url: Optional[str] = None
    path: Optional[str] = None
    method: Literal["GET", "POST"] = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    params: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    auth: SupplierFeedAuth = Field(default_factory=SupplierFeedAuth)
    timeout: Optional[float] = None
    verify_ssl: bool = True


class SupplierSyncStatus(BaseModel):
    supplier_id: str
    supplier_name: str
    status: Literal["ok", "error"]
    records: int = 0
    error: Optional[str] = None
    synced_at: datetime = Field(default_factory=utcnow)


class SyncReport(BaseModel):
    suppliers: List[SupplierSyncStatus] = Field(default_factory=list)
    catalog_entries: int = 0
    inventory_records: int = 0
    priced_products: int = 0
    pricing_errors: Dict[str, str] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=utcnow)
    finished_at: Optional[datetime] = None
