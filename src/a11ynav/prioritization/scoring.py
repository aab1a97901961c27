"""Priority scoring engine — AI-assisted with a deterministic fallback.

``PriorityScorer.score`` is total: it returns exactly one ``AIAnalysis``
per input violation, in input order, whatever happens to the reasoning
service. A failed or unparsable AI answer falls back for the whole
request; there is never a mix of AI and fallback analyses in one call.
"""

from __future__ import annotations

import asyncio
import logging
import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable

from a11ynav.errors import ParseError, ReasoningServiceError
from a11ynav.prioritization.prompts import SYSTEM_PROMPT, build_user_message
from a11ynav.schemas.scoring import AIAnalysis, SiteContext
from a11ynav.schemas.violation import Priority, Violation
from a11ynav.shared.reasoning_client import (
    CompletionClient,
    TokensCallback,
    complete_json_list,
)

logger = logging.getLogger(__name__)

LEGAL_WEIGHT = 0.35
USER_WEIGHT = 0.35
BUSINESS_WEIGHT = 0.20
COMPLEXITY_WEIGHT = 0.10

MIN_SCORE, MAX_SCORE, MID_SCORE = 1, 10, 5

LEGAL_RISK_KEYWORDS = ("keyboard", "focus", "aria", "label", "title")
COMPLEXITY_KEYWORDS = ("dynamic", "javascript", "react", "framework", "custom")

COMPLIANCE_LEVELS = ("Critical", "High", "Medium", "Low")

# (with keyword, without keyword)
_LEGAL_BY_IMPACT = {"critical": (9, 8), "serious": (7, 6), "moderate": (4, 4), "minor": (2, 2)}
_USER_BY_IMPACT = {"critical": 9, "serious": 7, "moderate": 5, "minor": 3}
_BUSINESS_BY_IMPACT = {"critical": 8, "serious": 6, "moderate": 4, "minor": 2}


def calculate_priority_score(
    legal_risk: float,
    user_impact: float,
    business_risk: float,
    technical_complexity: float,
) -> float:
    """Weighted priority, rounded half-up to one decimal.

    Lower complexity raises the priority, so easy high-impact fixes
    surface first.
    """
    raw = (
        LEGAL_WEIGHT * legal_risk
        + USER_WEIGHT * user_impact
        + BUSINESS_WEIGHT * business_risk
        + COMPLEXITY_WEIGHT * (10 - technical_complexity)
    )
    # round(raw, 6) absorbs float noise such as 7.949999999 before half-up rounding
    return float(Decimal(str(round(raw, 6))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def priority_from_score(score: float) -> Priority:
    if score >= 8:
        return Priority.CRITICAL
    if score >= 6:
        return Priority.HIGH
    if score >= 4:
        return Priority.MEDIUM
    return Priority.LOW


def _mentions(violation: Violation, keywords: Iterable[str]) -> bool:
    text = violation.description.lower()
    return any(k in text for k in keywords)


# ----------------------------------------------------------------------
# Deterministic fallback
# ----------------------------------------------------------------------


def fallback_legal_risk(violation: Violation) -> int:
    scores = _LEGAL_BY_IMPACT.get(violation.impact)
    if scores is None:
        return MID_SCORE
    return scores[0] if _mentions(violation, LEGAL_RISK_KEYWORDS) else scores[1]


def fallback_user_impact(violation: Violation) -> int:
    return _USER_BY_IMPACT.get(violation.impact, MID_SCORE)


def fallback_business_risk(violation: Violation) -> int:
    return _BUSINESS_BY_IMPACT.get(violation.impact, MID_SCORE)


def fallback_technical_complexity(violation: Violation) -> int:
    return 7 if _mentions(violation, COMPLEXITY_KEYWORDS) else 4


def fallback_analysis(violation: Violation) -> AIAnalysis:
    """Score one violation from its impact and description keywords only."""
    legal = fallback_legal_risk(violation)
    user = fallback_user_impact(violation)
    business = fallback_business_risk(violation)
    complexity = fallback_technical_complexity(violation)
    score = calculate_priority_score(legal, user, business, complexity)
    return AIAnalysis(
        legal_risk_score=legal,
        user_impact_score=user,
        business_risk_score=business,
        technical_complexity=complexity,
        priority_score=score,
        priority=priority_from_score(score),
        compliance_level="Medium",
        deadline_recommendation="Review within 30 days",
        business_justification="Standard accessibility compliance required",
        fix_recommendations=["Implement standard accessibility fix"],
        estimated_effort="2-4 hours",
        business_value="Improved user experience",
        source="fallback",
    )


# ----------------------------------------------------------------------
# AI answer normalization
# ----------------------------------------------------------------------


def clamp_score(value: Any) -> int:
    """Clamp to [1, 10]; missing or non-numeric values become 5."""
    if value is None or isinstance(value, bool):
        return MID_SCORE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return MID_SCORE
    if not math.isfinite(number):
        return MID_SCORE
    return int(max(MIN_SCORE, min(MAX_SCORE, round(number))))


def _text(entry: dict[str, Any], key: str, default: str) -> str:
    value = entry.get(key)
    return str(value) if value else default


def analysis_from_ai(entry: Any) -> AIAnalysis:
    """Build an analysis from one AI entry. Raises ``ParseError`` if it isn't an object."""
    if not isinstance(entry, dict):
        raise ParseError(f"Analysis entry is not an object: {str(entry)[:100]!r}")

    legal = clamp_score(entry.get("legal_risk_score"))
    user = clamp_score(entry.get("user_impact_score"))
    business = clamp_score(entry.get("business_risk_score"))
    complexity = clamp_score(entry.get("technical_complexity"))
    score = calculate_priority_score(legal, user, business, complexity)

    level = str(entry.get("compliance_level") or "").capitalize()
    recommendations = entry.get("fix_recommendations")
    if isinstance(recommendations, list) and recommendations:
        recommendations = [str(r) for r in recommendations]
    else:
        recommendations = ["Implement fix"]

    return AIAnalysis(
        legal_risk_score=legal,
        user_impact_score=user,
        business_risk_score=business,
        technical_complexity=complexity,
        priority_score=score,
        priority=priority_from_score(score),
        compliance_level=level if level in COMPLIANCE_LEVELS else "Medium",
        deadline_recommendation=_text(entry, "deadline_recommendation", "Review within 30 days"),
        business_justification=_text(
            entry, "business_justification", "Standard accessibility compliance required",
        ),
        fix_recommendations=recommendations,
        estimated_effort=_text(entry, "estimated_effort", "2-4 hours"),
        business_value=_text(entry, "business_value", "Improved accessibility and user experience"),
        source="ai",
    )


def apply_analysis(violation: Violation, analysis: AIAnalysis) -> Violation:
    """Return a copy of the violation with its scoring fields filled in."""
    return violation.model_copy(update={
        "legal_risk_score": analysis.legal_risk_score,
        "user_impact_score": analysis.user_impact_score,
        "business_risk_score": analysis.business_risk_score,
        "technical_complexity": analysis.technical_complexity,
        "priority_score": analysis.priority_score,
        "priority": analysis.priority,
        "compliance_deadline": analysis.deadline_recommendation,
        "business_justification": analysis.business_justification,
        "fix_recommendations": list(analysis.fix_recommendations),
    })


class PriorityScorer:
    """Scores violations by legal, user, business risk and complexity.

    Pass ``client=None`` to score deterministically with no network
    access at all.
    """

    def __init__(self, client: CompletionClient | None = None, *, timeout_s: float = 60) -> None:
        self._client = client
        self._timeout_s = timeout_s

    @property
    def uses_reasoning(self) -> bool:
        return self._client is not None

    async def score(
        self,
        violations: list[Violation],
        site_context: SiteContext | None = None,
        *,
        on_tokens: TokensCallback | None = None,
    ) -> list[AIAnalysis]:
        violations = list(violations)
        if not violations:
            return []
        if self._client is None:
            logger.info("No reasoning client configured, scoring %d violation(s) deterministically",
                        len(violations))
            return [fallback_analysis(v) for v in violations]

        try:
            return await asyncio.wait_for(
                self._score_with_ai(violations, site_context or SiteContext(), on_tokens),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            logger.warning("Reasoning service timed out after %ss, using fallback scoring",
                           self._timeout_s)
        except (ReasoningServiceError, ParseError) as exc:
            logger.warning("AI scoring failed, using fallback scoring: %s", exc)
        except Exception:
            logger.exception("Unexpected error during AI scoring, using fallback scoring")
        return [fallback_analysis(v) for v in violations]

    async def _score_with_ai(
        self,
        violations: list[Violation],
        site_context: SiteContext,
        on_tokens: TokensCallback | None,
    ) -> list[AIAnalysis]:
        assert self._client is not None
        entries = await complete_json_list(
            self._client,
            system=SYSTEM_PROMPT,
            user_message=build_user_message(violations, site_context),
            key="analyses",
            expected=len(violations),
            on_tokens=on_tokens,
        )
        return [analysis_from_ai(entry) for entry in entries]
