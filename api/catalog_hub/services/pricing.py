# catalog_hub/services/pricing.py
"""
Pricing Rule Engine.

Sell price = preferred variant price with every matching active rule applied
in ascending priority order. Markups compound:

    price = base
    for rule in sorted(rules, key=priority):
        price += price * rule.markup_percentage / 100

so rules [10%, 5%] on 100 give 115.50, not 115.00.
"""
from __future__ import annotations
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Union

from pydantic import ValidationError

from catalog_hub.errors import InvalidRule, NoSupplierAvailable, RuleNotFound
from catalog_hub.models import (
    AppliedRule, MasterCatalogEntry, PricedProduct, PricingRule,
    PricingRuleIn, PricingRuleUpdate, utcnow,
)
from catalog_hub.services.catalog import CatalogService

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
NULLABLE_RULE_FIELDS = frozenset({"product_code"})


def round_price(value: float) -> float:
    return float(Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP))


class PricingEngine:
    def __init__(self, catalog: CatalogService):
        self.catalog = catalog
        self._rules: Dict[str, PricingRule] = {}

    # =========================================================================
    # Rule CRUD
    # =========================================================================

    def add_rule(self, rule: Union[PricingRuleIn, dict]) -> PricingRule:
        data = rule.model_dump() if isinstance(rule, PricingRuleIn) else dict(rule)
        try:
            new_rule = PricingRule(**data)
        except ValidationError as e:
            raise InvalidRule(f"Invalid pricing rule: {e}") from e
        self._rules[new_rule.id] = new_rule
        logger.info(f"Pricing rule added: {new_rule.id} ({new_rule.name}, {new_rule.markup_percentage}%)")
        return new_rule.model_copy()

    def update_rule(self, rule_id: str, updates: Union[PricingRuleUpdate, dict]) -> PricingRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFound(f"Pricing rule not found: {rule_id}")

        if isinstance(updates, PricingRuleUpdate):
            changes = updates.model_dump(exclude_unset=True)
        else:
            changes = dict(updates)
        for protected in ("id", "created_date", "last_modified"):
            changes.pop(protected, None)
        # null clears the product filter; for any other field it means "unchanged"
        changes = {k: v for k, v in changes.items() if v is not None or k in NULLABLE_RULE_FIELDS}

        merged = rule.model_dump()
        merged.update(changes)
        merged["last_modified"] = utcnow()
        try:
            updated = PricingRule(**merged)
        except ValidationError as e:
            raise InvalidRule(f"Invalid update for pricing rule {rule_id}: {e}", rule_id=rule_id) from e
        self._rules[rule_id] = updated
        return updated.model_copy()

    def delete_rule(self, rule_id: str) -> None:
        if self._rules.pop(rule_id, None) is None:
            raise RuleNotFound(f"Pricing rule not found: {rule_id}")
        logger.info(f"Pricing rule deleted: {rule_id}")

    def get_rule(self, rule_id: str) -> Optional[PricingRule]:
        rule = self._rules.get(rule_id)
        return rule.model_copy() if rule else None

    def all_rules(self) -> List[PricingRule]:
        return [r.model_copy() for r in self._rules.values()]

    # =========================================================================
    # Pricing
    # =========================================================================

    def applicable_rules(self, entry: MasterCatalogEntry, supplier_name: str) -> List[PricingRule]:
        rules = [r for r in self._rules.values() if r.matches(entry, supplier_name)]
        # sorted() is stable: equal priorities keep insertion order
        return sorted(rules, key=lambda r: r.priority)

    def price_for(self, entry: MasterCatalogEntry) -> PricedProduct:
        preferred = entry.preferred_variant()
        if preferred is None:
            raise NoSupplierAvailable(f"No suppliers available for product {entry.product_code}")

        base_price = preferred.price
        price = base_price
        applied: List[AppliedRule] = []
        for rule in self.applicable_rules(entry, preferred.supplier_name):
            price = price + price * rule.markup_percentage / 100
            applied.append(AppliedRule(
                rule_id=rule.id,
                rule_name=rule.name,
                markup_percentage=rule.markup_percentage,
                priority=rule.priority,
            ))

        final_price = round_price(price)
        margin = round_price(final_price - base_price)
        margin_pct = (margin / base_price * 100) if base_price > 0 else 0.0

        return PricedProduct(
            master_product_id=entry.id,
            product_code=entry.product_code,
            name=entry.name,
            base_price=base_price,
            final_price=final_price,
            applied_rules=applied,
            preferred_supplier=preferred.supplier_name,
            margin=margin,
            margin_percentage=margin_pct,
        )

    def price_for_code(self, product_code: str) -> Optional[PricedProduct]:
        entry = self.catalog.get_by_code(product_code)
        return self.price_for(entry) if entry else None

    def calculate_prices(self) -> List[PricedProduct]:
        return [self.price_for(entry) for entry in self.catalog.products_for_pricing()]
