"""Violation merge — cross-source and cross-page dedup with canonical severity order."""

from __future__ import annotations

from typing import Iterable

from a11ynav.schemas.violation import Impact, Violation

IMPACT_ORDER: dict[str, int] = {impact.value: rank for rank, impact in enumerate(Impact)}
_UNKNOWN_RANK = len(IMPACT_ORDER)


def impact_rank(impact: str) -> int:
    """Sort key: critical=0 ... minor=3, anything unrecognized last."""
    return IMPACT_ORDER.get(impact, _UNKNOWN_RANK)


def merge_violations(*sources: Iterable[Violation]) -> list[Violation]:
    """Concatenate sources, drop duplicates, sort by impact.

    Two violations are duplicates when ``description`` and
    ``wcag_reference`` match exactly; the earliest one wins. The sort is
    stable, so equal-impact items keep their input order.
    """
    seen: set[tuple[str, str]] = set()
    unique: list[Violation] = []
    for source in sources:
        for violation in source:
            key = (violation.description, violation.wcag_reference)
            if key in seen:
                continue
            seen.add(key)
            unique.append(violation)
    return sorted(unique, key=lambda v: impact_rank(v.impact))
