"""Tests for the axe-core rule evaluator adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from a11ynav.errors import RuleEvaluationError
from a11ynav.scanner.rules import AxeRuleEvaluator, convert_axe_item, wcag_reference_from_tags

AXE_ITEM = {
    "id": "color-contrast",
    "description": "Ensures the contrast between foreground and background colors meets WCAG 2 AA",
    "help": "Elements must have sufficient color contrast",
    "helpUrl": "https://dequeuniversity.com/rules/axe/4.10/color-contrast",
    "impact": "serious",
    "tags": ["cat.color", "wcag2aa", "wcag143"],
    "nodes": [
        {
            "html": '<p class="muted">Fine print</p>',
            "target": ["#footer", "p.muted"],
            "failureSummary": "Fix any of the following: insufficient contrast",
        }
    ],
}


def _page(result=None, *, error: Exception | None = None) -> MagicMock:
    page = MagicMock()
    page.add_script_tag = AsyncMock()
    page.evaluate = AsyncMock(side_effect=error, return_value=result)
    return page


class TestWcagReference:
    def test_criterion_tag(self) -> None:
        assert wcag_reference_from_tags(["wcag2aa", "wcag143"]) == "WCAG 1.4.3"

    def test_two_digit_criterion(self) -> None:
        assert wcag_reference_from_tags(["wcag2411"]) == "WCAG 2.4.11"

    def test_level_tags_only(self) -> None:
        assert wcag_reference_from_tags(["wcag2a", "best-practice"]) == "Best Practice"


class TestConvertAxeItem:
    def test_fields(self) -> None:
        v = convert_axe_item(AXE_ITEM)
        assert v.id == "axe-color-contrast"
        assert v.help_text == "Elements must have sufficient color contrast"
        assert v.help_url.startswith("https://dequeuniversity.com")
        assert v.impact == "serious"
        assert v.wcag_reference == "WCAG 1.4.3"
        assert v.tags[0] == "source:axe"
        assert "wcag143" in v.tags
        assert v.nodes[0].target == "#footer > p.muted"
        assert v.nodes[0].failure_summary.startswith("Fix any")
        assert v.element_count == 1

    def test_missing_impact_defaults_minor(self) -> None:
        v = convert_axe_item({"id": "region", "help": "Content in landmarks", "impact": None})
        assert v.impact == "minor"
        assert v.description == "Content in landmarks"


class TestAxeRuleEvaluator:
    @pytest.mark.asyncio
    async def test_evaluate(self) -> None:
        page = _page({"violations": [AXE_ITEM], "passes": [], "incomplete": []})
        evaluator = AxeRuleEvaluator(script_url="https://cdn.test/axe.js", tags=["wcag2aa"])

        results = await evaluator.evaluate(page, "https://example.com")

        page.add_script_tag.assert_awaited_once_with(url="https://cdn.test/axe.js")
        assert page.evaluate.await_args.args[1] == ["wcag2aa"]
        assert [v.id for v in results.violations] == ["axe-color-contrast"]

    @pytest.mark.asyncio
    async def test_injection_failure(self) -> None:
        page = _page()
        page.add_script_tag = AsyncMock(side_effect=RuntimeError("blocked by CSP"))
        with pytest.raises(RuleEvaluationError, match="blocked by CSP"):
            await AxeRuleEvaluator().evaluate(page, "https://example.com")

    @pytest.mark.asyncio
    async def test_run_failure(self) -> None:
        page = _page(error=RuntimeError("axe is not defined"))
        with pytest.raises(RuleEvaluationError):
            await AxeRuleEvaluator().evaluate(page, "https://example.com")

    @pytest.mark.asyncio
    async def test_unexpected_shape(self) -> None:
        page = _page("nonsense")
        with pytest.raises(RuleEvaluationError, match="unexpected axe result"):
            await AxeRuleEvaluator().evaluate(page, "https://example.com")

    @pytest.mark.asyncio
    async def test_malformed_item(self) -> None:
        page = _page({"violations": [{"description": "no id"}]})
        with pytest.raises(RuleEvaluationError, match="malformed"):
            await AxeRuleEvaluator().evaluate(page, "https://example.com")
