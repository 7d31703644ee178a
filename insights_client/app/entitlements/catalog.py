"""Static catalog of purchasable insight tiers."""
from __future__ import annotations

from typing import Dict, Mapping, Optional

from .models import Tier

BASIC_TIER = Tier(
    key="basic",
    fxct_cost=10,
    name="Basic Insights",
    description="Core valuation and property facts",
    benefits=(
        "Estimated market value",
        "Property characteristics",
        "Last sale summary",
    ),
)

STANDARD_TIER = Tier(
    key="standard",
    fxct_cost=25,
    name="Standard Insights",
    description="Market context and comparable sales",
    benefits=(
        "Everything in Basic",
        "Comparable sales",
        "Market trend analysis",
        "Tax history",
    ),
)

COMPREHENSIVE_TIER = Tier(
    key="comprehensive",
    fxct_cost=50,
    name="Comprehensive Report",
    description="Full due-diligence package for investment decisions",
    benefits=(
        "Everything in Standard",
        "Ownership history",
        "Neighborhood insights",
        "Investment analysis",
        "Environmental risk factors",
    ),
)

# Insertion order is display order.
TIER_CATALOG: Dict[str, Tier] = {
    BASIC_TIER.key: BASIC_TIER,
    STANDARD_TIER.key: STANDARD_TIER,
    COMPREHENSIVE_TIER.key: COMPREHENSIVE_TIER,
}


def get_tier_definition(tier_key: str, catalog: Optional[Mapping[str, Tier]] = None) -> Tier:
    """Return a tier definition, raising if unsupported."""

    source = TIER_CATALOG if catalog is None else catalog
    try:
        return source[tier_key]
    except KeyError as exc:
        raise KeyError(f"Unknown tier key: {tier_key}") from exc
