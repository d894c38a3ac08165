from __future__ import annotations
from pathlib import Path
from typing import Any, Dict, List
import json, logging

from pydantic import ValidationError

from catalog_hub.models import SupplierFeedConfig

logger = logging.getLogger(__name__)

def _read_json(p: Path) -> Any:
    if not p.exists():
        return {}
    try:
        return json.loads(p.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Cannot read {p}: {e}")
        return {}

def load_suppliers(path: Path) -> List[SupplierFeedConfig]:
    """
    Supplier feed definitions, either ``{"suppliers": [...]}`` or a bare list.
    Invalid entries are logged and skipped.
    """
    data = _read_json(Path(path))
    raw: List[Dict[str, Any]] = data.get("suppliers", []) if isinstance(data, dict) else list(data)
    out: List[SupplierFeedConfig] = []
    for i, item in enumerate(raw):
        try:
            out.append(SupplierFeedConfig.model_validate(item))
        except ValidationError as e:
            logger.warning(f"Skipping supplier #{i} in {path}: {e.error_count()} validation errors")
    return out
