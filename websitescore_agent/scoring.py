"""Shared point arithmetic for the three analyzers."""
from __future__ import annotations

import math
from typing import Callable, Iterable, Sequence

from .models import AnalyzerReport, Category, Check, Status

# (key, rule) pairs; a rule reads analyzer input and returns one Check.
Rule = Callable[..., Check]

OVERALL_WEIGHTS = {"quality": 0.35, "security": 0.30, "pagespeed": 0.35}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def ratio(part: int, total: int) -> float:
    """``part / total`` with an empty population counting as fully passing."""
    if total <= 0:
        return 1.0
    return part / total


def ratio_points(part: int, total: int, max_score: int) -> int:
    return round_half_up(ratio(part, total) * max_score)


def check(
    name: str,
    value: str,
    score: int,
    max_score: int,
    status: Status,
    details: str | None = None,
) -> Check:
    return Check(name=name, value=value, details=details, score=score, max_score=max_score, status=status)


def presence_check(
    name: str,
    observed: str | None,
    max_score: int,
    missing_status: Status = "warning",
    *,
    value: str | None = None,
    details: str | None = None,
) -> Check:
    """Full points when ``observed`` is set, zero otherwise."""
    if observed:
        return check(name, value or observed, max_score, max_score, "good", details)
    return check(name, "Missing", 0, max_score, missing_status, details)


def build_category(name: str, rules: Sequence[tuple[str, Rule]], *args) -> Category:
    return Category(name=name, checks={key: rule(*args) for key, rule in rules})


def flat_score(categories: Iterable[Category]) -> int:
    """Points earned over points available across every check.

    Informational 0/0 checks add nothing to either side; a report made only
    of them scores 0.
    """
    earned = 0
    available = 0
    for category in categories:
        for c in category.checks.values():
            if c.max_score == 0:
                continue
            earned += c.score
            available += c.max_score
    if available == 0:
        return 0
    return round_half_up(earned / available * 100)


def category_fraction(category: Category) -> float:
    if category.max_score == 0:
        return 0.0
    return category.score / category.max_score


def category_percent(category: Category) -> int:
    return round_half_up(category_fraction(category) * 100)


def weighted_score(weighted: Sequence[tuple[Category, int]]) -> int:
    """Category fractions combined with integer weights summing to 100."""
    return round_half_up(sum(category_fraction(cat) * weight for cat, weight in weighted))


def overall_score(quality: AnalyzerReport, security: AnalyzerReport, pagespeed: AnalyzerReport) -> int:
    return round_half_up(
        quality.score * OVERALL_WEIGHTS["quality"]
        + security.score * OVERALL_WEIGHTS["security"]
        + pagespeed.score * OVERALL_WEIGHTS["pagespeed"]
    )
