# catalog_hub/services/feeds.py
"""
Supplier feed sources.

A feed source knows its supplier and returns the supplier's product rows
fully materialised (``await source.fetch()``). ``normalize_products`` maps
those raw rows onto the ingestion record shape consumed by the catalog.
"""
from __future__ import annotations
import asyncio
import logging
import re
import unicodedata
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

import httpx
import pandas as pd

from catalog_hub.models import ProductStatus, SupplierFeedConfig

logger = logging.getLogger(__name__)

CODE_KEYS = ["productCode", "product_code", "sku", "code", "PRODUCT_CODE"]
NAME_KEYS = ["name", "title", "productName"]
CATEGORY_KEYS = ["category", "categoryName"]
PRICE_KEYS = ["price", "unitPrice", "PRICE"]
STOCK_KEYS = ["stockQuantity", "stock_quantity", "stock", "qty", "STOCK"]


# ========================
# Helpers (generic)
# ========================

def _norm(s: str) -> str:
    s = str(s).replace("\u00A0", " ").strip()
    if s.startswith("[") and s.endswith("]"):
        s = s[1:-1]
    s = s.lower()
    s = unicodedata.normalize("NFKD", s).encode("ascii", "ignore").decode("ascii")
    s = s.replace(" ", "").replace("_", "")
    return s

def _pick(row: Dict[str, Any], candidates: List[str]) -> Any:
    norm_map = {_norm(k): k for k in row.keys()}
    for cand in candidates:
        key = norm_map.get(_norm(cand))
        if key is not None:
            val = row[key]
            if val is not None and not (isinstance(val, float) and pd.isna(val)):
                return val
    return None

def _to_float(val: Any) -> float:
    if val is None:
        return 0.0
    s = str(val).replace("\u00A0", "").strip()
    s = s.replace(" ", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return 0.0

def _to_int(val: Any) -> int:
    return int(_to_float(val))

def read_csv_smart(path: Path, max_rows: int | None = None) -> pd.DataFrame:
    encodings = ["utf-8-sig", "cp1250", "latin-1"]
    seps = [",", ";", "\t", "|"]
    last_err = None
    for enc in encodings:
        for sep in seps:
            try:
                df = pd.read_csv(
                    path,
                    encoding=enc,
                    sep=sep,
                    dtype=str,
                    nrows=max_rows,
                    on_bad_lines="skip",
                )
                if df.shape[1] > 1:
                    return df
            except (UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                last_err = e
                continue
    if last_err:
        raise last_err
    raise ValueError(f"Cannot parse CSV: {path}")


# ========================
# Normalisation
# ========================

def normalize_products(
    rows: List[Dict[str, Any]],
    supplier_id: str,
    supplier_name: str,
    default_category: str = "",
    as_of: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """Raw supplier rows -> ingestion records (camelCase keys)."""
    ts = as_of or datetime.now(timezone.utc)
    out = []
    for row in rows:
        code = _pick(row, CODE_KEYS)
        stock = _to_int(_pick(row, STOCK_KEYS))
        out.append({
            "productCode": str(code).strip() if code is not None else "",
            "name": str(_pick(row, NAME_KEYS) or ""),
            "category": str(_pick(row, CATEGORY_KEYS) or default_category),
            "price": _to_float(_pick(row, PRICE_KEYS)),
            "stockQuantity": stock,
            "supplierId": supplier_id,
            "supplierName": supplier_name,
            "timestamp": ts,
            "status": ProductStatus.active if stock > 0 else ProductStatus.inactive,
            "description": _opt_str(_pick(row, ["description"])),
            "images": _images(_pick(row, ["images", "image", "imgurl"])),
        })
    return out

def _opt_str(val: Any) -> Optional[str]:
    return str(val) if val is not None else None

def _images(val: Any) -> List[str]:
    if val is None:
        return []
    if isinstance(val, (list, tuple)):
        return [str(v).strip() for v in val if v]
    return [p.strip() for p in re.split(r"[,;|\s]+", str(val)) if p.strip()]


# ========================
# Sources
# ========================

class FeedSource(Protocol):
    supplier_id: str
    supplier_name: str

    async def fetch(self) -> List[Dict[str, Any]]:
        ...


class HttpFeedSource:
    """JSON product feed over HTTP (``{"products": [...]}`` or a bare list)."""

    def __init__(self, config: SupplierFeedConfig, client: Optional[httpx.AsyncClient] = None,
                 timeout: float = 30.0):
        if not config.url:
            raise ValueError(f"Supplier {config.supplier_id} has no feed url")
        self.config = config
        self.supplier_id = config.supplier_id
        self.supplier_name = config.name
        self.timeout = config.timeout or timeout
        self._client = client

    def _request_kwargs(self) -> Dict[str, Any]:
        cfg = self.config
        headers = {"Accept": "application/json", **cfg.headers}
        params = dict(cfg.params)
        auth = None
        t = (cfg.auth.type or "none").lower()
        if t == "basic":
            auth = (cfg.auth.username or "", cfg.auth.password or "")
        elif t == "bearer":
            headers["Authorization"] = f"Bearer {cfg.auth.token or ''}"
        elif t == "header":
            headers[cfg.auth.header_name or "Authorization"] = cfg.auth.token or ""
        elif t == "query":
            params[cfg.auth.query_param or "token"] = cfg.auth.token or ""
        return {
            "headers": headers,
            "params": params,
            "auth": auth,
            "json": cfg.body if cfg.method == "POST" else None,
        }

    async def fetch(self) -> List[Dict[str, Any]]:
        kwargs = self._request_kwargs()
        if self._client is not None:
            resp = await self._client.request(self.config.method, self.config.url, **kwargs)
        else:
            async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout,
                                         verify=self.config.verify_ssl) as client:
                resp = await client.request(self.config.method, self.config.url, **kwargs)
        resp.raise_for_status()
        data = resp.json()
        raw = data.get("products", data) if isinstance(data, dict) else data
        if not isinstance(raw, list):
            raise ValueError(f"Unexpected feed payload from {self.supplier_id}: {type(raw).__name__}")
        rows = normalize_products(raw, self.supplier_id, self.supplier_name, self.config.category)
        logger.info(f"Fetched {len(rows)} products from {self.config.url}")
        return rows


class CsvFeedSource:
    """Supplier export dropped as a CSV file."""

    def __init__(self, config: SupplierFeedConfig, base_dir: Optional[Path] = None):
        if not config.path:
            raise ValueError(f"Supplier {config.supplier_id} has no feed path")
        p = Path(config.path).expanduser()
        self.path = p if p.is_absolute() or base_dir is None else Path(base_dir) / p
        self.config = config
        self.supplier_id = config.supplier_id
        self.supplier_name = config.name

    def _read(self) -> List[Dict[str, Any]]:
        df = read_csv_smart(self.path)
        df.columns = [str(c).replace("\u00A0", " ").strip() for c in df.columns]
        return df.to_dict(orient="records")

    async def fetch(self) -> List[Dict[str, Any]]:
        raw = await asyncio.to_thread(self._read)
        return normalize_products(raw, self.supplier_id, self.supplier_name, self.config.category)


def build_source(config: SupplierFeedConfig, base_dir: Optional[Path] = None,
                 timeout: float = 30.0) -> FeedSource:
    if config.kind == "csv":
        return CsvFeedSource(config, base_dir=base_dir)
    return HttpFeedSource(config, timeout=timeout)
