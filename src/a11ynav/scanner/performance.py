"""Performance sampling — navigation timings plus CSS/JS coverage."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from a11ynav.schemas.scan import PerformanceMetrics

logger = logging.getLogger(__name__)

TIMINGS_SCRIPT = """() => {
    const nav = performance.getEntriesByType('navigation')[0];
    const paint = performance.getEntriesByType('paint');
    return {
        dom_content_loaded_ms: nav ? nav.domContentLoadedEventEnd - nav.startTime : null,
        load_complete_ms: nav ? nav.loadEventEnd - nav.startTime : null,
        first_paint_ms: paint.find(p => p.name === 'first-paint')?.startTime ?? null,
        first_contentful_paint_ms:
            paint.find(p => p.name === 'first-contentful-paint')?.startTime ?? null,
        transfer_size_bytes: nav ? nav.transferSize : null,
    };
}"""


def css_coverage_pct(entries: Iterable[dict[str, Any]]) -> float | None:
    """Share of stylesheet bytes that matched anything, as a percentage."""
    total = used = 0
    for entry in entries:
        total += len(entry.get("text") or "")
        used += sum(r["end"] - r["start"] for r in entry.get("ranges", []))
    if total == 0:
        return None
    return round(100 * used / total, 1)


def js_coverage_pct(entries: Iterable[dict[str, Any]]) -> float | None:
    """Share of script bytes executed, from raw V8 block coverage.

    Bytes inside ranges with ``count == 0`` are unused; everything else
    in the script source counts as used.
    """
    total = unused = 0
    for entry in entries:
        total += len(entry.get("source") or "")
        for fn in entry.get("functions", []):
            for r in fn.get("ranges", []):
                if r.get("count", 1) == 0:
                    unused += r["endOffset"] - r["startOffset"]
    if total == 0:
        return None
    return round(100 * max(total - unused, 0) / total, 1)


async def start_coverage(page: Any) -> bool:
    """Start CSS and JS coverage. Chromium only; returns False when unavailable."""
    try:
        await page.coverage.start_css_coverage()
        await page.coverage.start_js_coverage()
        return True
    except Exception as exc:
        logger.debug("Coverage unavailable: %s", exc)
        return False


async def sample_performance(page: Any, *, coverage_started: bool) -> PerformanceMetrics:
    """Read navigation/paint timings and stop coverage if it was started."""
    timings = await page.evaluate(TIMINGS_SCRIPT)
    metrics = PerformanceMetrics(**(timings or {}))
    if coverage_started:
        css_entries = await page.coverage.stop_css_coverage()
        js_entries = await page.coverage.stop_js_coverage()
        metrics.css_coverage_pct = css_coverage_pct(css_entries)
        metrics.js_coverage_pct = js_coverage_pct(js_entries)
    return metrics


def average_metrics(samples: Iterable[PerformanceMetrics | None]) -> PerformanceMetrics | None:
    """Average each field over the samples that report it."""
    present = [s for s in samples if s is not None]
    if not present:
        return None
    averaged: dict[str, float] = {}
    for name in PerformanceMetrics.model_fields:
        values = [getattr(s, name) for s in present if getattr(s, name) is not None]
        if values:
            averaged[name] = round(sum(values) / len(values), 1)
    return PerformanceMetrics(**averaged)
