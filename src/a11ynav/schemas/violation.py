"""Pydantic models for detected accessibility violations."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, computed_field


class Impact(str, Enum):
    """Severity classification, most severe first."""

    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"


class Priority(str, Enum):
    """Remediation priority derived from the weighted priority score."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ViolationNode(BaseModel):
    """One affected DOM occurrence."""

    html: str = ""
    target: str = ""  # CSS-selector-like path, e.g. "form > input#email"
    failure_summary: str = ""


class Violation(BaseModel):
    """A single detected non-conformance with a WCAG success criterion.

    Scoring fields stay ``None`` until the priority scorer has run.
    """

    id: str
    description: str
    help_text: str = ""
    help_url: str = ""
    impact: str = Impact.MODERATE.value  # unknown values are kept and sort last
    wcag_reference: str = ""  # e.g. "WCAG 1.4.3"
    tags: list[str] = []
    nodes: list[ViolationNode] = []

    # Scoring (1-10 each)
    legal_risk_score: int | None = None
    user_impact_score: int | None = None
    business_risk_score: int | None = None
    technical_complexity: int | None = None
    priority_score: float | None = None
    priority: Priority | None = None
    compliance_deadline: str | None = None
    business_justification: str | None = None
    fix_recommendations: list[str] | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def element_count(self) -> int:
        return len(self.nodes)

    @property
    def first_html(self) -> str:
        return self.nodes[0].html if self.nodes else ""

    @property
    def is_scored(self) -> bool:
        return self.priority_score is not None
