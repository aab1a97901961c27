"""Pydantic models for single-page and aggregated scan results."""

from __future__ import annotations

from pydantic import BaseModel

from a11ynav.schemas.violation import Violation


class Viewport(BaseModel):
    width: int = 1280
    height: int = 720


class PageMetadata(BaseModel):
    """Facts about the rendered page."""

    title: str = ""
    user_agent: str = ""
    viewport: Viewport = Viewport()
    framework: str = "vanilla"  # "react", "vue", "angular", "vanilla"


class PerformanceMetrics(BaseModel):
    """Sampled timing and coverage data. Every field is optional."""

    dom_content_loaded_ms: float | None = None
    load_complete_ms: float | None = None
    first_paint_ms: float | None = None
    first_contentful_paint_ms: float | None = None
    transfer_size_bytes: float | None = None
    css_coverage_pct: float | None = None  # share of CSS bytes actually used
    js_coverage_pct: float | None = None


class ScanResult(BaseModel):
    """Output of scanning one page. Treated as immutable once returned."""

    url: str
    timestamp: str
    scan_duration_ms: int = 0
    violations: list[Violation] = []
    passes: list[Violation] = []
    incomplete: list[Violation] = []
    metadata: PageMetadata = PageMetadata()
    performance_metrics: PerformanceMetrics | None = None


class AggregateMetadata(PageMetadata):
    pages_scanned: int = 1
    page_urls: list[str] = []


class AggregateScan(BaseModel):
    """Several page results merged into one site-level scan."""

    url: str
    timestamp: str
    scan_duration_ms: int = 0
    violations: list[Violation] = []
    passes: list[Violation] = []
    incomplete: list[Violation] = []
    metadata: AggregateMetadata = AggregateMetadata()
    performance_metrics: PerformanceMetrics | None = None
    accessibility_score: int = 100

    @property
    def pages_scanned(self) -> int:
        return self.metadata.pages_scanned
