"""Pydantic models for the priority scoring engine output."""

from __future__ import annotations

from pydantic import BaseModel, Field

from a11ynav.schemas.violation import Priority


class SiteContext(BaseModel):
    """Caller-supplied business context. Never mutated by the scorer."""

    industry: str = ""
    monthly_visitors: int | None = None
    regions: list[str] = []
    revenue_model: str = ""
    previous_violations: int = 0
    target_audience: list[str] = []


class AIAnalysis(BaseModel):
    """Scores and supporting text for one violation.

    ``source`` records whether the reasoning service or the deterministic
    fallback produced the analysis.
    """

    legal_risk_score: int = Field(ge=1, le=10)  # lawsuit likelihood
    user_impact_score: int = Field(ge=1, le=10)  # severity for disabled users
    business_risk_score: int = Field(ge=1, le=10)  # revenue/reputation impact
    technical_complexity: int = Field(ge=1, le=10)  # implementation difficulty
    priority_score: float
    priority: Priority
    compliance_level: str = "Medium"  # "Critical", "High", "Medium", "Low"
    deadline_recommendation: str = ""
    business_justification: str = ""
    fix_recommendations: list[str] = []
    estimated_effort: str = ""
    business_value: str = ""
    source: str = "fallback"  # "ai" or "fallback"
