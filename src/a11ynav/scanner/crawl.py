"""Crawl coordinator — seed page plus same-origin links, scanned by a bounded worker pool."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable
from urllib.parse import urlparse

from a11ynav.errors import A11yNavError, InvalidInputError, NavigationError, NavigationErrorKind
from a11ynav.scanner.merge import merge_violations
from a11ynav.scanner.page_scan import PageScanner
from a11ynav.scanner.performance import average_metrics
from a11ynav.schemas.config import ScanOptions, ScanSettings
from a11ynav.schemas.scan import AggregateMetadata, AggregateScan, ScanResult
from a11ynav.schemas.violation import Violation
from a11ynav.shared.browser import BrowserManager

logger = logging.getLogger(__name__)

RULE_PENALTY = 4
NODE_PENALTY = 1

_Outcome = tuple[int, str, ScanResult | Exception]


def normalize_url(url: str) -> str:
    """Prefix ``https://`` when the scheme is missing; reject anything else unusable."""
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidInputError("A URL is required")
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parsed = urlparse(candidate)
    try:
        parsed.port
    except ValueError as exc:
        raise InvalidInputError(f"Invalid URL: {url!r}") from exc
    if parsed.scheme not in ("http", "https") or not parsed.hostname or " " in parsed.netloc:
        raise InvalidInputError(f"Invalid URL: {url!r}")
    return candidate


class CrawlCoordinator:
    """Scans the seed page and up to ``max_pages - 1`` same-origin links.

    Pages are scanned by ``settings.concurrency`` workers pulling from a
    job queue and reporting on an outcome queue. Each page scan has its
    own overall time budget. A failed page is logged and left out; a
    failed seed page fails the crawl, since there is nothing to report.
    The seed result is always first.
    """

    def __init__(
        self,
        browser: BrowserManager,
        scanner: PageScanner,
        *,
        settings: ScanSettings | None = None,
    ) -> None:
        self._browser = browser
        self._scanner = scanner
        self._settings = settings or ScanSettings()

    async def crawl(
        self,
        seed_url: str,
        options: ScanOptions | None = None,
        *,
        on_event: Callable[[str], None] | None = None,
    ) -> list[ScanResult]:
        options = options or ScanOptions()
        if options.max_pages < 1:
            raise InvalidInputError("max_pages must be at least 1")
        seed = normalize_url(seed_url)

        urls = [seed, *await self._discover(seed, options.max_pages - 1)]
        logger.info("Crawling %d page(s) from %s", len(urls), seed)
        if on_event:
            on_event(f"{len(urls)} page(s) selected")

        jobs: asyncio.Queue[tuple[int, str]] = asyncio.Queue()
        for job in enumerate(urls):
            jobs.put_nowait(job)
        outcomes: asyncio.Queue[_Outcome] = asyncio.Queue()

        workers = [
            asyncio.create_task(self._worker(jobs, outcomes, options))
            for _ in range(min(self._settings.concurrency, len(urls)))
        ]
        results: dict[int, ScanResult] = {}
        try:
            for _ in urls:
                index, url, outcome = await outcomes.get()
                if isinstance(outcome, ScanResult):
                    results[index] = outcome
                    if on_event:
                        on_event(f"Scanned {url}: {len(outcome.violations)} violation(s)")
                    continue
                if index == 0:
                    raise outcome
                if isinstance(outcome, A11yNavError):
                    logger.warning("Skipping %s: %s", url, outcome)
                else:
                    logger.error("Unexpected failure scanning %s", url, exc_info=outcome)
                if on_event:
                    on_event(f"Skipped {url}")
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        logger.info("Crawl finished: %d of %d page(s) scanned", len(results), len(urls))
        return [results[i] for i in sorted(results)]

    async def _discover(self, seed: str, limit: int) -> list[str]:
        if limit <= 0:
            return []
        try:
            return await self._browser.discover_links(
                seed, limit=limit, timeout_ms=self._settings.navigation_timeout_ms,
            )
        except Exception as exc:
            logger.warning("Link discovery failed for %s, scanning seed only: %s", seed, exc)
            return []

    async def _worker(
        self,
        jobs: asyncio.Queue[tuple[int, str]],
        outcomes: asyncio.Queue[_Outcome],
        options: ScanOptions,
    ) -> None:
        while True:
            try:
                index, url = jobs.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcome: ScanResult | Exception
            try:
                outcome = await asyncio.wait_for(
                    self._scanner.scan(url, options), timeout=self._settings.page_timeout_s,
                )
            except asyncio.TimeoutError:
                outcome = NavigationError(
                    url,
                    NavigationErrorKind.TIMEOUT,
                    f"page scan exceeded {self._settings.page_timeout_s}s",
                )
            except Exception as exc:
                outcome = exc
            await outcomes.put((index, url, outcome))


def accessibility_score(violations: list[Violation]) -> int:
    """``100 - 4 per distinct violation - 1 per affected node``, floored at 0."""
    nodes = sum(v.element_count for v in violations)
    return max(0, 100 - RULE_PENALTY * len(violations) - NODE_PENALTY * nodes)


def aggregate_results(results: list[ScanResult], framework: str | None = None) -> AggregateScan:
    """Merge page results into one site-level scan.

    The first result is the seed page and provides url and metadata.
    Violations are merged again across pages so duplicates collapse.
    """
    if not results:
        raise InvalidInputError("Cannot aggregate an empty crawl")
    seed = results[0]
    violations = merge_violations(*(r.violations for r in results))
    metadata = AggregateMetadata(
        **seed.metadata.model_dump(),
        pages_scanned=len(results),
        page_urls=[r.url for r in results],
    )
    if framework and framework != "auto":
        metadata.framework = framework

    return AggregateScan(
        url=seed.url,
        timestamp=seed.timestamp,
        scan_duration_ms=sum(r.scan_duration_ms for r in results),
        violations=violations,
        passes=[p for r in results for p in r.passes],
        incomplete=[i for r in results for i in r.incomplete],
        metadata=metadata,
        performance_metrics=average_metrics(r.performance_metrics for r in results),
        accessibility_score=accessibility_score(violations),
    )
