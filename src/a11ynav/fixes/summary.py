"""Fix validation, summary and display helpers."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from a11ynav.schemas.fixes import CodeFix, FixSummary, FixValidation
from a11ynav.schemas.violation import Impact, Violation

MINUTES_PER_FIX = 30
HIGH_IMPACT = {Impact.CRITICAL.value, Impact.SERIOUS.value}


def validate_code_fix(fix: CodeFix) -> FixValidation:
    issues = []
    suggestions = []
    if not fix.fixed_code.strip():
        issues.append("Fixed code is empty")
    if not fix.explanation.strip():
        issues.append("Explanation is missing")
    if not fix.steps:
        issues.append("No implementation steps provided")
    if fix.framework == "react" and "aria-" not in fix.fixed_code and "role" not in fix.fixed_code:
        suggestions.append("Consider adding ARIA attributes for better accessibility")
    return FixValidation(is_valid=not issues, issues=issues, suggestions=suggestions)


def estimate_time(fix_count: int) -> str:
    """30 minutes per fix, shown in minutes below an hour, rounded hours above."""
    minutes = fix_count * MINUTES_PER_FIX
    if minutes < 60:
        return f"{minutes} minutes"
    hours = (minutes + 30) // 60
    return f"{hours} hour" if hours == 1 else f"{hours} hours"


def summarize_fixes(fixes: list[CodeFix], violations: Iterable[Violation] = ()) -> FixSummary:
    """Totals per framework; fixes for critical/serious violations count as high impact."""
    impact_by_id = {v.id: v.impact for v in violations}
    by_framework = Counter(fix.framework for fix in fixes)
    high_impact = sum(1 for fix in fixes if impact_by_id.get(fix.violation_id) in HIGH_IMPACT)
    return FixSummary(
        total_fixes=len(fixes),
        fixes_by_framework=dict(by_framework),
        high_impact_fixes=high_impact,
        estimated_time_to_implement=estimate_time(len(fixes)),
    )


def format_code_for_display(code: str) -> str:
    """Put each tag on its own line and trim every line."""
    split = code.replace("><", ">\n<").strip()
    return "\n".join(line.strip() for line in split.split("\n"))
