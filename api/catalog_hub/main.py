# catalog_hub/main.py
# Catalog Hub - merged supplier catalog, pricing, inventory and orders API
from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from catalog_hub import __version__
from catalog_hub.config_io import load_suppliers
from catalog_hub.errors import CatalogError
from catalog_hub.logging_setup import setup_logging
from catalog_hub.services import CatalogHub, build_hub, sources_from_configs
from catalog_hub.settings import Settings, settings as default_settings

from catalog_hub.routers.catalog import router as catalog_router
from catalog_hub.routers.inventory import router as inventory_router
from catalog_hub.routers.orders import router as orders_router
from catalog_hub.routers.pricing import router as pricing_router
from catalog_hub.routers.sync import router as sync_router

logger = logging.getLogger(__name__)


def hub_from_settings(cfg: Settings) -> CatalogHub:
    configs = load_suppliers(cfg.suppliers_path)
    sources = []
    for c in configs:
        try:
            sources.extend(sources_from_configs([c], base_dir=cfg.CATALOG_DATA_ROOT, timeout=cfg.FEED_TIMEOUT))
        except ValueError as e:
            logger.warning(f"Supplier {c.supplier_id} not registered: {e}")
    logger.info(f"Registered {len(sources)} supplier feeds from {cfg.suppliers_path}")
    return build_hub(cfg, sources)


def create_app(cfg: Optional[Settings] = None, hub: Optional[CatalogHub] = None) -> FastAPI:
    cfg = cfg or default_settings

    # ---------------------------------------------------------
    # Lifespan: logging + service wiring
    # ---------------------------------------------------------
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_path = setup_logging(cfg)
        logger.info(f"Catalog Hub {__version__} starting, logging to {log_path}")
        if getattr(app.state, "hub", None) is None:
            app.state.hub = hub_from_settings(cfg)
        yield
        logger.info("Catalog Hub stopped")

    app = FastAPI(
        title="Catalog Hub API",
        version=__version__,
        description="Multi-supplier catalog merge, pricing rules, inventory and order lifecycle",
        lifespan=lifespan,
    )
    app.state.hub = hub
    app.state.settings = cfg
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    @app.get("/health")
    def health():
        current: Optional[CatalogHub] = app.state.hub
        result = {"status": "ok", "version": __version__}
        if current is not None:
            result.update({
                "catalog_entries": len(current.catalog),
                "suppliers": len(current.sync.sources()),
                "failing_suppliers": [s.supplier_id for s in current.sync.last_status.values() if s.status == "error"],
            })
            if result["failing_suppliers"]:
                result["status"] = "degraded"
        return result

    app.include_router(catalog_router)
    app.include_router(inventory_router)
    app.include_router(pricing_router)
    app.include_router(orders_router)
    app.include_router(sync_router)
    return app


app = create_app()
