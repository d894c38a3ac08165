from __future__ import annotations
from fastapi import Request

from catalog_hub.services import CatalogHub


def get_hub(request: Request) -> CatalogHub:
    return request.app.state.hub
