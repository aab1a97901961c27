"""Prompts for the priority scoring engine."""

from __future__ import annotations

from a11ynav.schemas.scoring import SiteContext
from a11ynav.schemas.violation import Violation

SYSTEM_PROMPT = """\
You are an accessibility compliance analyst.

## Role
You rank WCAG violations found on a website by how urgently they should be \
fixed. You know recent accessibility lawsuits and enforcement trends, \
industry-specific requirements (ADA, Section 508, EN 301 549), WCAG 2.2 \
Level AA, and modern frontend frameworks.

## Scoring
Score each violation on four axes, each an integer from 1 to 10:
- **legal_risk_score**: lawsuit and enforcement likelihood for this industry \
and region, regulatory deadlines, historical settlement amounts.
- **user_impact_score**: severity for people with specific disabilities, \
number of users affected, whether critical functionality is blocked.
- **business_risk_score**: revenue and conversion impact, brand reputation, \
SEO implications, competitors' compliance.
- **technical_complexity**: implementation difficulty, framework-specific \
challenges, testing effort, risk of breaking changes.

The priority is computed from your scores as legal 35%, user impact 35%, \
business 20%, and inverted complexity 10%. You do not need to compute it.

## Compliance level
- Critical: immediate legal action likely
- High: significant legal or compliance risk
- Medium: standard compliance requirement
- Low: minor improvement opportunity

## Output Format
Respond with a single JSON object holding exactly one analysis per \
violation, in the order the violations were given:

{
  "analyses": [
    {
      "legal_risk_score": 8,
      "user_impact_score": 9,
      "business_risk_score": 7,
      "technical_complexity": 4,
      "compliance_level": "Critical",
      "deadline_recommendation": "Fix within 14 days, high lawsuit risk in finance",
      "business_justification": "Recent ADA cases in banking settled for six figures",
      "fix_recommendations": ["Add ARIA labels", "Support keyboard navigation"],
      "estimated_effort": "4-8 hours for a React implementation",
      "business_value": "Lower legal exposure, better conversion for screen reader users"
    }
  ]
}

Prioritize business impact and practical guidance for development teams.
"""


def _or(value: object, default: str) -> str:
    if isinstance(value, list):
        return ", ".join(str(v) for v in value) or default
    return str(value) if value else default


def build_user_message(violations: list[Violation], site_context: SiteContext) -> str:
    """Render the site context and one ``### Violation N`` block per violation."""
    lines = [
        "## Site Context",
        f"- Industry: {_or(site_context.industry, 'general')}",
        f"- Monthly visitors: {_or(site_context.monthly_visitors, 'unknown')}",
        f"- Target regions: {_or(site_context.regions, 'global')}",
        f"- Revenue model: {_or(site_context.revenue_model, 'unknown')}",
        f"- Target audience: {_or(site_context.target_audience, 'general')}",
        f"- Compliance history: {site_context.previous_violations} previous violations",
        "",
        f"## Violations ({len(violations)})",
    ]
    for i, v in enumerate(violations, start=1):
        category = next((t for t in v.tags if not t.startswith("source:")), "general")
        lines += [
            "",
            f"### Violation {i}: {v.description}",
            f"- WCAG reference: {v.wcag_reference or 'unknown'}",
            f"- Impact: {v.impact}",
            f"- Elements affected: {v.element_count}",
            f"- Category: {category}",
        ]
    return "\n".join(lines)
