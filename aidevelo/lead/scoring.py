# aidevelo/lead/scoring.py
"""
Coarse contact-form lead score for manual triage.

Purely additive point table, no normalization and no upper bound:
  budget 10-30, timeline 5-20, company size 5-20, interested modules 5-15.
"""

from __future__ import annotations

from typing import Sequence

BUDGET_POINTS = {"100k+": 30, "50k-100k": 25, "15k-50k": 20}
TIMELINE_POINTS = {"asap": 20, "1-3months": 15, "3-6months": 10}
EMPLOYEE_POINTS = {"1000+": 20, "201-999": 15, "51-200": 10}


def budget_points(budget: str) -> int:
    return BUDGET_POINTS.get((budget or "").strip(), 10)


def timeline_points(timeline: str) -> int:
    return TIMELINE_POINTS.get((timeline or "").strip(), 5)


def employee_points(employee_count: str) -> int:
    return EMPLOYEE_POINTS.get((employee_count or "").strip(), 5)


def module_points(interested_modules: Sequence[str]) -> int:
    n = len(interested_modules or ())
    if n >= 3:
        return 15
    if n >= 2:
        return 10
    return 5


def score_contact(
    budget: str,
    timeline: str,
    employee_count: str,
    interested_modules: Sequence[str],
) -> str:
    total = (
        budget_points(budget)
        + timeline_points(timeline)
        + employee_points(employee_count)
        + module_points(interested_modules)
    )
    return str(total)
