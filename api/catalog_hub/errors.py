# catalog_hub/errors.py
"""
Error taxonomy for the catalog / pricing / inventory / order core.

Services raise these; the API layer translates them into HTTP responses
(see ``catalog_hub.main``).
"""
from __future__ import annotations


class CatalogError(Exception):
    """Base class for all catalog hub errors."""

    status_code = 400

    def __init__(self, message: str = "", **context):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.context = context


class MalformedRecord(CatalogError):
    """Ingestion record rejected (missing product code, bad price, ...)."""
    status_code = 422


class ProductNotFound(CatalogError):
    status_code = 404


class OrderNotFound(CatalogError):
    status_code = 404


class RuleNotFound(CatalogError):
    status_code = 404


class SupplierNotFound(CatalogError):
    status_code = 404


class NoSupplierAvailable(CatalogError):
    """Pricing requested for an entry without any supplier variant."""
    status_code = 409


class InvalidOrderKind(CatalogError):
    status_code = 422


class InvalidStatusTransition(CatalogError):
    """Order status change not allowed by the transition table."""
    status_code = 409


class InvalidRule(CatalogError):
    """Pricing rule create/update with an unusable field value."""
    status_code = 422
