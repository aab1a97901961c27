"""Pydantic models for code fix suggestions."""

from __future__ import annotations

from pydantic import BaseModel


class ScanContext(BaseModel):
    """Context handed to the fix generator."""

    url: str = ""
    framework: str | None = None  # explicit override; None or "auto" means infer


class BeforeAfter(BaseModel):
    description: str = ""
    impact: str = ""


class CssClasses(BaseModel):
    original: str = ""
    fixed: str = ""


class CodeFix(BaseModel):
    """One remediation proposal for exactly one violation."""

    id: str
    violation_id: str
    framework: str  # "react", "vue", "angular", "svelte", "html"
    original_code: str = ""
    fixed_code: str
    explanation: str = ""
    steps: list[str] = []
    testing_recommendations: list[str] = []
    browser_compatibility: list[str] = []
    additional_improvements: list[str] = []
    before_after: BeforeAfter | None = None
    css_classes: CssClasses | None = None
    source: str = "template"  # "ai" or "template"


class FixValidation(BaseModel):
    is_valid: bool
    issues: list[str] = []
    suggestions: list[str] = []


class FixSummary(BaseModel):
    total_fixes: int = 0
    fixes_by_framework: dict[str, int] = {}
    high_impact_fixes: int = 0
    estimated_time_to_implement: str = "0 minutes"
