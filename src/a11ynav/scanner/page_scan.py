"""Single-page scan — renderer, rule evaluator, heuristics and performance in one pass."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any

from a11ynav.scanner.framework import VANILLA, probe_page
from a11ynav.scanner.heuristics import HeuristicResults, run_heuristics
from a11ynav.scanner.merge import merge_violations
from a11ynav.scanner.performance import sample_performance, start_coverage
from a11ynav.scanner.rules import RuleEvaluator
from a11ynav.scanner.snapshot import collect_snapshot
from a11ynav.schemas.config import ScanOptions, ScanSettings
from a11ynav.schemas.scan import PageMetadata, PerformanceMetrics, ScanResult, Viewport
from a11ynav.shared.browser import BrowserManager

logger = logging.getLogger(__name__)

METADATA_SCRIPT = "() => ({title: document.title, user_agent: navigator.userAgent})"


class PageScanner:
    """Scans one URL into a ``ScanResult``.

    Navigation and rule-evaluation failures propagate as
    ``NavigationError`` / ``RuleEvaluationError``. Heuristics and
    performance sampling are best-effort. The page's browsing context is
    released on every exit path.
    """

    def __init__(
        self,
        browser: BrowserManager,
        evaluator: RuleEvaluator,
        *,
        settings: ScanSettings | None = None,
    ) -> None:
        self._browser = browser
        self._evaluator = evaluator
        self._settings = settings or ScanSettings()

    async def scan(self, url: str, options: ScanOptions | None = None) -> ScanResult:
        options = options or ScanOptions()
        started = time.monotonic()

        async with self._browser.page() as page:
            coverage_started = False
            if options.include_performance:
                coverage_started = await start_coverage(page)

            await self._browser.navigate(
                page,
                url,
                timeout_ms=self._settings.navigation_timeout_ms,
                settle_ms=self._settings.settle_delay_ms,
            )
            metadata = await self._collect_metadata(page, url)
            rules = await self._evaluator.evaluate(page, url)

            metadata.framework = await self._resolve_framework(page, url, options)
            heuristics = HeuristicResults()
            if options.custom_rules:
                heuristics = await self._run_heuristics(page, url, metadata.framework)

            performance: PerformanceMetrics | None = None
            if options.include_performance:
                performance = await self._sample_performance(page, url, coverage_started)

        return ScanResult(
            url=url,
            timestamp=datetime.now(timezone.utc).isoformat(),
            scan_duration_ms=int((time.monotonic() - started) * 1000),
            violations=merge_violations(rules.violations, heuristics.violations),
            passes=[*rules.passes, *heuristics.passes],
            incomplete=rules.incomplete,
            metadata=metadata,
            performance_metrics=performance,
        )

    async def _collect_metadata(self, page: Any, url: str) -> PageMetadata:
        viewport = Viewport(
            width=self._settings.viewport_width, height=self._settings.viewport_height,
        )
        try:
            raw = await page.evaluate(METADATA_SCRIPT)
        except Exception as exc:
            logger.warning("Could not read page metadata for %s: %s", url, exc)
            return PageMetadata(viewport=viewport)
        return PageMetadata(
            title=raw.get("title") or "",
            user_agent=raw.get("user_agent") or "",
            viewport=viewport,
        )

    async def _resolve_framework(self, page: Any, url: str, options: ScanOptions) -> str:
        if options.framework != "auto":
            return options.framework
        try:
            return await probe_page(page)
        except Exception as exc:
            logger.warning("Framework probe failed for %s, using vanilla: %s", url, exc)
            return VANILLA

    async def _run_heuristics(self, page: Any, url: str, framework: str) -> HeuristicResults:
        try:
            snapshot = await collect_snapshot(page)
        except Exception as exc:
            logger.warning("DOM snapshot failed for %s, skipping custom checks: %s", url, exc)
            return HeuristicResults()
        return run_heuristics(snapshot, framework)

    async def _sample_performance(
        self, page: Any, url: str, coverage_started: bool,
    ) -> PerformanceMetrics | None:
        try:
            return await sample_performance(page, coverage_started=coverage_started)
        except Exception as exc:
            logger.warning("Performance sampling failed for %s: %s", url, exc)
            return None
