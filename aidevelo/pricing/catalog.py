# aidevelo/pricing/catalog.py
"""
Static module catalog and discount tiers.

Modules are immutable and never created at runtime. Tiers are kept sorted
ascending by module_count; calc.py scans them from the top.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Module:
    id: str
    name: str
    price: float
    highlights: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class DiscountTier:
    module_count: int
    discount_percent: float


MODULES: Tuple[Module, ...] = (
    Module(
        id="phone",
        name="AI Phone Agent",
        price=79,
        highlights=("Answers calls 24/7", "Books appointments", "Creates call notes"),
        description=(
            "Intelligent phone assistant that handles calls, understands customer intents, "
            "and automatically schedules appointments to your calendar."
        ),
    ),
    Module(
        id="chat",
        name="AI Website Chat Agent",
        price=49,
        highlights=("Answers FAQs instantly", "Captures leads", "Schedules appointments"),
        description=(
            "24/7 website assistant that answers customer questions, captures leads, "
            "and converts visitors into appointments."
        ),
    ),
    Module(
        id="social",
        name="AI Social Media Agent",
        price=59,
        highlights=("Plans & publishes content", "Replies to comments/messages", "Grows your reach"),
        description=(
            "Automated social media management that creates content, engages with your audience, "
            "and grows your online presence."
        ),
    ),
)

DISCOUNT_TIERS: Tuple[DiscountTier, ...] = (
    DiscountTier(module_count=2, discount_percent=10),
    DiscountTier(module_count=3, discount_percent=15),
)


def get_module_by_id(module_id: str, modules: Tuple[Module, ...] = MODULES) -> Optional[Module]:
    return next((m for m in modules if m.id == module_id), None)


def get_all_module_ids(modules: Tuple[Module, ...] = MODULES) -> List[str]:
    return [m.id for m in modules]
