"""Final audit report — the aggregate scan plus prioritization and fixes."""

from __future__ import annotations

from pydantic import BaseModel

from a11ynav.schemas.fixes import CodeFix, FixSummary
from a11ynav.schemas.scan import AggregateScan
from a11ynav.schemas.scoring import AIAnalysis, SiteContext


class AuditReport(BaseModel):
    """Everything one audit run produces.

    ``analyses`` is aligned by index with ``scan.violations``.
    """

    scan: AggregateScan
    site_context: SiteContext = SiteContext()
    analyses: list[AIAnalysis] = []
    fixes: list[CodeFix] = []
    fix_summary: FixSummary = FixSummary()
    has_ai_prioritization: bool = False
    generated_at: str = ""
    scan_id: str | None = None  # set when a store persisted the report
