"""Audit pipeline — crawl, aggregate, prioritize and suggest fixes for one site."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

from a11ynav.fixes.generator import FixGenerator
from a11ynav.fixes.summary import summarize_fixes
from a11ynav.prioritization.scoring import PriorityScorer, apply_analysis
from a11ynav.scanner.crawl import CrawlCoordinator, aggregate_results, normalize_url
from a11ynav.scanner.page_scan import PageScanner
from a11ynav.scanner.rules import AxeRuleEvaluator, RuleEvaluator
from a11ynav.schemas.config import ScanOptions, ScanSettings
from a11ynav.schemas.fixes import CodeFix, ScanContext
from a11ynav.schemas.report import AuditReport
from a11ynav.schemas.scan import AggregateScan
from a11ynav.schemas.scoring import SiteContext
from a11ynav.shared.browser import BrowserManager
from a11ynav.shared.progress import PipelineProgress
from a11ynav.shared.reasoning_client import CompletionClient

logger = logging.getLogger(__name__)


class ScanStore(Protocol):
    """Persists a finished report and returns its identifier."""

    async def save(self, report: AuditReport) -> str: ...


class UsageGate(Protocol):
    """Rejects a scan request by raising ``ScanRejectedError``."""

    async def check(self, url: str) -> None: ...


class AuditPipeline:
    """Runs one accessibility audit end to end.

    Every collaborator is injected: the browser, the rule evaluator, the
    optional reasoning client, store and usage gate. Only a failing seed
    page, invalid input or a gate rejection reach the caller; scoring and
    fix generation always degrade to their deterministic fallbacks.
    """

    def __init__(
        self,
        browser: BrowserManager,
        *,
        client: CompletionClient | None = None,
        evaluator: RuleEvaluator | None = None,
        settings: ScanSettings | None = None,
        store: ScanStore | None = None,
        gate: UsageGate | None = None,
        progress: PipelineProgress | None = None,
    ) -> None:
        self.settings = settings or ScanSettings()
        evaluator = evaluator or AxeRuleEvaluator(
            script_url=self.settings.axe_script_url, tags=self.settings.axe_tags,
        )
        scanner = PageScanner(browser, evaluator, settings=self.settings)
        self._crawler = CrawlCoordinator(browser, scanner, settings=self.settings)
        self._scorer = PriorityScorer(client, timeout_s=self.settings.reasoning_timeout_s)
        self._fixer = FixGenerator(
            client,
            batch_size=self.settings.fix_batch_size,
            timeout_s=self.settings.reasoning_timeout_s,
        )
        self._store = store
        self._gate = gate
        self._progress = progress

    async def run(
        self,
        url: str,
        options: ScanOptions | None = None,
        site_context: SiteContext | None = None,
        *,
        generate_fixes: bool = True,
    ) -> AuditReport:
        options = options or ScanOptions()
        site_context = site_context or SiteContext()
        target = normalize_url(url)
        if self._gate is not None:
            await self._gate.check(target)

        # ── Crawl ─────────────────────────────────────────────────
        self._start("Scanning")
        try:
            results = await self._crawler.crawl(
                target, options, on_event=lambda m: self._event("Scanning", m),
            )
        except Exception as exc:
            self._fail("Scanning", str(exc))
            raise
        scan = aggregate_results(results, options.framework)
        self._finish("Scanning", f"{scan.pages_scanned} page(s), {len(scan.violations)} violation(s)")

        # ── Prioritization ───────────────────────────────────────
        self._start("Prioritizing")
        analyses = await self._scorer.score(scan.violations, site_context)
        scan.violations = [apply_analysis(v, a) for v, a in zip(scan.violations, analyses)]
        has_ai = any(a.source == "ai" for a in analyses)
        self._finish("Prioritizing", "AI" if has_ai else "deterministic")

        # ── Fixes ────────────────────────────────────────────────
        fixes: list[CodeFix] = []
        if generate_fixes and scan.violations:
            self._start("Generating fixes")
            fixes = await self._fixer.generate(scan.violations, self._fix_context(scan, options))
            self._finish("Generating fixes", f"{len(fixes)} fix(es)")

        report = AuditReport(
            scan=scan,
            site_context=site_context,
            analyses=analyses,
            fixes=fixes,
            fix_summary=summarize_fixes(fixes, scan.violations),
            has_ai_prioritization=has_ai,
            generated_at=datetime.now(timezone.utc).isoformat(),
        )

        if self._store is not None:
            try:
                report.scan_id = await self._store.save(report)
            except Exception as exc:
                logger.warning("Could not persist scan for %s: %s", target, exc)
        return report

    @staticmethod
    def _fix_context(scan: AggregateScan, options: ScanOptions) -> ScanContext:
        if options.framework != "auto":
            framework: str | None = options.framework
        elif scan.metadata.framework != "vanilla":
            framework = scan.metadata.framework
        else:
            # let the generator look for framework markup in the violations
            framework = None
        return ScanContext(url=scan.url, framework=framework)

    # -- progress helpers ---------------------------------------------

    def _start(self, stage: str) -> None:
        if self._progress:
            self._progress.start_stage(stage)

    def _event(self, stage: str, message: str) -> None:
        if self._progress:
            self._progress.update_stage(stage, message)
            self._progress.log_event(stage, message)

    def _finish(self, stage: str, note: str = "") -> None:
        if self._progress:
            self._progress.finish_stage(stage, note)

    def _fail(self, stage: str, error: str) -> None:
        if self._progress:
            self._progress.fail_stage(stage, error)
