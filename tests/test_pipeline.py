"""End-to-end tests for the audit pipeline with a fake browser and evaluator."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FakeBrowser, FakePage, make_violation

from a11ynav.errors import NavigationError, NavigationErrorKind, ScanRejectedError
from a11ynav.pipeline import AuditPipeline
from a11ynav.scanner.rules import RuleResults
from a11ynav.schemas.config import ScanOptions
from a11ynav.schemas.scoring import SiteContext
from a11ynav.shared.reasoning_client import DryRunClient

NO_EXTRAS = ScanOptions(custom_rules=False, include_performance=False)


def _evaluator(*violations) -> AsyncMock:
    evaluator = AsyncMock()
    evaluator.evaluate = AsyncMock(return_value=RuleResults(violations=list(violations)))
    return evaluator


def _violations() -> list:
    return [
        make_violation(id="axe-image-alt", impact="critical"),
        make_violation(id="axe-label", description="Form elements must have labels",
                       impact="serious", wcag_reference="WCAG 3.3.2", html='<input type="text">'),
    ]


class TestAuditPipeline:
    @pytest.mark.asyncio
    async def test_deterministic_run(self) -> None:
        pipeline = AuditPipeline(FakeBrowser(), evaluator=_evaluator(*_violations()))

        report = await pipeline.run("example.com", NO_EXTRAS)

        assert report.scan.url == "https://example.com"
        assert [v.id for v in report.scan.violations] == ["axe-image-alt", "axe-label"]
        assert all(v.is_scored for v in report.scan.violations)
        assert len(report.analyses) == 2
        assert report.has_ai_prioritization is False
        assert [f.source for f in report.fixes] == ["template", "template"]
        assert report.fix_summary.total_fixes == 2
        assert report.fix_summary.high_impact_fixes == 2
        assert report.generated_at
        assert report.scan_id is None

    @pytest.mark.asyncio
    async def test_dry_run_client_marks_ai(self) -> None:
        pipeline = AuditPipeline(
            FakeBrowser(), client=DryRunClient(), evaluator=_evaluator(*_violations()),
        )
        report = await pipeline.run("https://example.com", NO_EXTRAS, SiteContext(industry="retail"))
        assert report.has_ai_prioritization is True
        assert report.site_context.industry == "retail"
        assert all(f.source == "ai" for f in report.fixes)

    @pytest.mark.asyncio
    async def test_fixes_disabled(self) -> None:
        pipeline = AuditPipeline(FakeBrowser(), evaluator=_evaluator(*_violations()))
        report = await pipeline.run("https://example.com", NO_EXTRAS, generate_fixes=False)
        assert report.fixes == []
        assert report.fix_summary.total_fixes == 0

    @pytest.mark.asyncio
    async def test_clean_site(self) -> None:
        pipeline = AuditPipeline(FakeBrowser(), evaluator=_evaluator())
        report = await pipeline.run("https://example.com", NO_EXTRAS)
        assert report.scan.violations == []
        assert report.scan.accessibility_score == 100
        assert report.fixes == []

    @pytest.mark.asyncio
    async def test_detected_framework_used_for_fixes(self) -> None:
        browser = FakeBrowser(FakePage(markers={"vue": True}))
        pipeline = AuditPipeline(browser, evaluator=_evaluator(*_violations()))
        report = await pipeline.run("https://example.com", NO_EXTRAS)
        assert report.scan.metadata.framework == "vue"
        assert {f.framework for f in report.fixes} == {"vue"}

    @pytest.mark.asyncio
    async def test_store_receives_report(self) -> None:
        store = MagicMock()
        store.save = AsyncMock(return_value="scan-42")
        pipeline = AuditPipeline(FakeBrowser(), evaluator=_evaluator(), store=store)
        report = await pipeline.run("https://example.com", NO_EXTRAS)
        assert report.scan_id == "scan-42"
        store.save.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_store_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        store = MagicMock()
        store.save = AsyncMock(side_effect=RuntimeError("database is locked"))
        pipeline = AuditPipeline(FakeBrowser(), evaluator=_evaluator(), store=store)
        with caplog.at_level(logging.WARNING, logger="a11ynav.pipeline"):
            report = await pipeline.run("https://example.com", NO_EXTRAS)
        assert report.scan_id is None
        assert "database is locked" in caplog.text

    @pytest.mark.asyncio
    async def test_gate_rejection(self) -> None:
        gate = MagicMock()
        gate.check = AsyncMock(side_effect=ScanRejectedError("monthly scan limit reached"))
        browser = FakeBrowser()
        pipeline = AuditPipeline(browser, evaluator=_evaluator(), gate=gate)
        with pytest.raises(ScanRejectedError):
            await pipeline.run("https://example.com", NO_EXTRAS)
        gate.check.assert_awaited_once_with("https://example.com")
        assert browser.pages_opened == 0

    @pytest.mark.asyncio
    async def test_seed_failure_reported_to_progress(self) -> None:
        browser = FakeBrowser()
        browser.navigate = AsyncMock(side_effect=NavigationError(
            "https://example.com", NavigationErrorKind.CERTIFICATE, "net::ERR_CERT_DATE_INVALID",
        ))
        progress = MagicMock()
        pipeline = AuditPipeline(browser, evaluator=_evaluator(), progress=progress)
        with pytest.raises(NavigationError):
            await pipeline.run("https://example.com", NO_EXTRAS)
        progress.start_stage.assert_called_once_with("Scanning")
        progress.fail_stage.assert_called_once()
