# aidevelo/pricing/calc.py
"""
Bundle pricing: selected module ids -> quote.

Pure functions, no I/O. Amounts are never rounded here; round only when
formatting for display.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from aidevelo.pricing.catalog import DISCOUNT_TIERS, MODULES, DiscountTier, Module


@dataclass(frozen=True)
class PricingQuote:
    subtotal: float = 0
    discount_percent: float = 0
    discount_amount: float = 0
    total: float = 0
    selected_modules: Tuple[Module, ...] = field(default_factory=tuple)


def resolve_modules(selected_ids: Iterable[str], modules: Sequence[Module] = MODULES) -> List[Module]:
    """Unknown ids dropped, duplicates collapsed, first-occurrence order kept."""
    by_id = {m.id: m for m in modules}
    seen = set()
    resolved: List[Module] = []
    for module_id in selected_ids:
        module = by_id.get(module_id)
        if module is None or module.id in seen:
            continue
        seen.add(module.id)
        resolved.append(module)
    return resolved


def resolve_discount_percent(module_count: int, tiers: Sequence[DiscountTier] = DISCOUNT_TIERS) -> float:
    """Richest tier the count qualifies for; tiers never stack."""
    for tier in sorted(tiers, key=lambda t: t.module_count, reverse=True):
        if module_count >= tier.module_count:
            return tier.discount_percent
    return 0


def calculate_pricing(
    selected_ids: Iterable[str],
    modules: Sequence[Module] = MODULES,
    tiers: Sequence[DiscountTier] = DISCOUNT_TIERS,
) -> PricingQuote:
    selected = resolve_modules(selected_ids or (), modules)
    subtotal = sum((m.price for m in selected), 0)
    discount_percent = resolve_discount_percent(len(selected), tiers)
    discount_amount = (subtotal * discount_percent) / 100
    total = subtotal - discount_amount
    return PricingQuote(
        subtotal=subtotal,
        discount_percent=discount_percent,
        discount_amount=discount_amount,
        total=total,
        selected_modules=tuple(selected),
    )


def format_price(amount: float) -> str:
    """EUR with exactly two decimals: 115.2 -> '€115.20'."""
    return f"€{amount:.2f}"


def format_discount_percent(percent: float) -> str:
    """10 -> '10%', 12.5 -> '12.5%'."""
    if float(percent).is_integer():
        percent = int(percent)
    return f"{percent}%"
