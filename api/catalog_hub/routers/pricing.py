# catalog_hub/routers/pricing.py
from __future__ import annotations
from typing import List

from fastapi import APIRouter, Depends, Response

from catalog_hub.errors import RuleNotFound
from catalog_hub.models import PricingRule, PricingRuleIn, PricingRuleUpdate
from catalog_hub.routers.deps import get_hub
from catalog_hub.services import CatalogHub

router = APIRouter(prefix="/pricing/rules", tags=["pricing"])


@router.get("", response_model=List[PricingRule])
def list_rules(hub: CatalogHub = Depends(get_hub)):
    return sorted(hub.pricing.all_rules(), key=lambda r: r.priority)


@router.post("", response_model=PricingRule, status_code=201)
def create_rule(body: PricingRuleIn, hub: CatalogHub = Depends(get_hub)):
    return hub.pricing.add_rule(body)


@router.get("/{rule_id}", response_model=PricingRule)
def get_rule(rule_id: str, hub: CatalogHub = Depends(get_hub)):
    rule = hub.pricing.get_rule(rule_id)
    if rule is None:
        raise RuleNotFound(f"Pricing rule not found: {rule_id}")
    return rule


@router.patch("/{rule_id}", response_model=PricingRule)
def update_rule(rule_id: str, body: PricingRuleUpdate, hub: CatalogHub = Depends(get_hub)):
    return hub.pricing.update_rule(rule_id, body)


@router.delete("/{rule_id}", status_code=204)
def delete_rule(rule_id: str, hub: CatalogHub = Depends(get_hub)):
    hub.pricing.delete_rule(rule_id)
    return Response(status_code=204)
