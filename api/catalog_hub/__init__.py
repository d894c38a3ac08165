"""Catalog Hub - multi-supplier catalog merge, pricing, inventory and orders."""

__version__ = "1.0.0"
