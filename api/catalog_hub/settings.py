# catalog_hub/settings.py
"""
Catalog Hub Settings.
"""
from __future__ import annotations
from pathlib import Path
from typing import Literal, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    # =========================================================================
    # File Storage (logs, supplier definitions)
    # =========================================================================
    CATALOG_DATA_ROOT: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "catalog-data"),
        validation_alias=AliasChoices("CATALOG_DATA_ROOT", "ch_data_root"),
    )
    SUPPLIERS_FILE: Optional[Path] = Field(default=None, validation_alias="SUPPLIERS_FILE")
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_CONSOLE_LEVEL: str = Field(default="WARNING", validation_alias="LOG_CONSOLE_LEVEL")

    # =========================================================================
    # Inventory
    # =========================================================================
    DEFAULT_WAREHOUSE: str = Field(default="Main Warehouse", validation_alias="DEFAULT_WAREHOUSE")
    REORDER_LEVEL_FLOOR: int = Field(default=10, validation_alias="REORDER_LEVEL_FLOOR")
    REORDER_LEVEL_RATIO: float = Field(default=0.2, validation_alias="REORDER_LEVEL_RATIO")

    # =========================================================================
    # Supplier sync
    # =========================================================================
    FEED_TIMEOUT: float = Field(default=30.0, validation_alias="FEED_TIMEOUT")
    PREFERRED_SUPPLIER_POLICY: Literal["first_seen", "lowest_price", "highest_stock"] = Field(
        default="first_seen",
        validation_alias="PREFERRED_SUPPLIER_POLICY",
    )

    # =========================================================================
    # Feature Flags
    # =========================================================================
    STRICT_ORDER_TRANSITIONS: bool = Field(
        default=True,
        description="Reject order status jumps outside the allowed transition table",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def suppliers_path(self) -> Path:
        return self.SUPPLIERS_FILE or (self.CATALOG_DATA_ROOT / "suppliers.json")

settings = Settings()
