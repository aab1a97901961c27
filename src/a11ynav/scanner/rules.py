"""Rule evaluator adapter — runs axe-core inside a rendered page."""

from __future__ import annotations

import logging
import re
from typing import Any, Protocol

from pydantic import BaseModel

from a11ynav.errors import RuleEvaluationError
from a11ynav.schemas.config import DEFAULT_AXE_SCRIPT_URL, DEFAULT_AXE_TAGS
from a11ynav.schemas.violation import Violation, ViolationNode

logger = logging.getLogger(__name__)

SOURCE_TAG = "source:axe"
_WCAG_TAG = re.compile(r"^wcag(\d)(\d)(\d+)$")


class RuleResults(BaseModel):
    violations: list[Violation] = []
    passes: list[Violation] = []
    incomplete: list[Violation] = []


class RuleEvaluator(Protocol):
    async def evaluate(self, page: Any, url: str) -> RuleResults: ...


def wcag_reference_from_tags(tags: list[str]) -> str:
    """``["wcag2aa", "wcag143"]`` -> ``"WCAG 1.4.3"``; no criterion tag -> best practice."""
    for tag in tags:
        m = _WCAG_TAG.match(tag)
        if m:
            return f"WCAG {m.group(1)}.{m.group(2)}.{m.group(3)}"
    return "Best Practice"


def _node_target(raw: Any) -> str:
    if isinstance(raw, list):
        return " > ".join(_node_target(part) for part in raw)
    return str(raw)


def convert_axe_item(item: dict[str, Any]) -> Violation:
    """Convert one axe rule result (violation, pass or incomplete) to a Violation."""
    tags = [str(t) for t in item.get("tags", [])]
    return Violation(
        id=f"axe-{item['id']}",
        description=item.get("description", "") or item.get("help", ""),
        help_text=item.get("help", ""),
        help_url=item.get("helpUrl", ""),
        impact=item.get("impact") or "minor",
        wcag_reference=wcag_reference_from_tags(tags),
        tags=[SOURCE_TAG, *tags],
        nodes=[
            ViolationNode(
                html=node.get("html", ""),
                target=_node_target(node.get("target", [])),
                failure_summary=node.get("failureSummary") or "",
            )
            for node in item.get("nodes", [])
        ],
    )


class AxeRuleEvaluator:
    """Injects axe-core from a script URL and runs it against the tag filter."""

    def __init__(
        self,
        *,
        script_url: str = DEFAULT_AXE_SCRIPT_URL,
        tags: list[str] | None = None,
    ) -> None:
        self._script_url = script_url
        self._tags = list(DEFAULT_AXE_TAGS if tags is None else tags)

    async def evaluate(self, page: Any, url: str) -> RuleResults:
        """Raise ``RuleEvaluationError`` on any injection, run or conversion failure."""
        try:
            await page.add_script_tag(url=self._script_url)
            raw = await page.evaluate("""(tags) => axe.run(document, {
                runOnly: {type: 'tag', values: tags},
                resultTypes: ['violations', 'passes', 'incomplete'],
            })""", self._tags)
        except Exception as exc:
            raise RuleEvaluationError(url, str(exc)) from exc

        if not isinstance(raw, dict) or "violations" not in raw:
            raise RuleEvaluationError(url, f"unexpected axe result: {str(raw)[:200]!r}")

        try:
            results = RuleResults(
                violations=[convert_axe_item(v) for v in raw.get("violations", [])],
                passes=[convert_axe_item(v) for v in raw.get("passes", [])],
                incomplete=[convert_axe_item(v) for v in raw.get("incomplete", [])],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RuleEvaluationError(url, f"malformed axe result: {exc}") from exc

        logger.debug(
            "axe on %s: %d violations, %d passes, %d incomplete",
            url, len(results.violations), len(results.passes), len(results.incomplete),
        )
        return results
