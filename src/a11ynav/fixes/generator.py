"""Fix-suggestion generator — batched AI fixes with per-batch template fallback."""

from __future__ import annotations

import asyncio
import logging
import re
from collections import Counter
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from a11ynav.errors import ParseError, ReasoningServiceError
from a11ynav.fixes.prompts import build_user_message, system_prompt
from a11ynav.fixes.summary import validate_code_fix
from a11ynav.fixes.templates import template_fix
from a11ynav.schemas.fixes import BeforeAfter, CodeFix, CssClasses, ScanContext
from a11ynav.schemas.violation import Violation
from a11ynav.shared.reasoning_client import (
    CompletionClient,
    TokensCallback,
    complete_json_list,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_BATCH_SIZE = 3
FALLBACK_FRAMEWORK = "html"

# Precedence on ties follows dict order.
FRAMEWORK_MARKUP: dict[str, re.Pattern[str]] = {
    "react": re.compile(r"data-reactroot|data-reactid"),
    "vue": re.compile(r"\sdata-v-[\w-]*"),
    "angular": re.compile(r"\s(?:ng-[\w-]+|_ngcontent-[\w-]+|_nghost-[\w-]+)[\s=>]"),
    "svelte": re.compile(r"data-svelte-|\bsvelte-[a-z0-9]{5,}\b"),
}


def _signals(violation: Violation, framework: str) -> bool:
    if any(tag in (framework, f"framework:{framework}") for tag in violation.tags):
        return True
    pattern = FRAMEWORK_MARKUP[framework]
    return any(pattern.search(node.html) for node in violation.nodes)


def resolve_framework(violations: list[Violation], context: ScanContext) -> str:
    """Framework for the whole call.

    An explicit context framework wins ("vanilla" means plain HTML).
    Otherwise the framework signalled by the most violations, else html.
    """
    explicit = (context.framework or "").strip().lower()
    if explicit and explicit != "auto":
        return FALLBACK_FRAMEWORK if explicit == "vanilla" else explicit

    votes: Counter[str] = Counter()
    for violation in violations:
        for name in FRAMEWORK_MARKUP:
            if _signals(violation, name):
                votes[name] += 1
    if not votes:
        return FALLBACK_FRAMEWORK
    best = max(votes.values())
    return next(name for name in FRAMEWORK_MARKUP if votes[name] == best)


def _optional_model(model: type[ModelT], entry: dict, key: str, violation: Violation) -> ModelT | None:
    """Optional nested fields are dropped, not fatal, when malformed."""
    value = entry.get(key)
    if not value:
        return None
    try:
        return model.model_validate(value)
    except ValidationError:
        logger.debug("Dropping malformed %s on fix for %s: %r", key, violation.id, value)
        return None


def fix_from_ai(entry: Any, violation: Violation, framework: str) -> CodeFix:
    """Build a fix from one AI entry. An entry without fixed code is unusable."""
    if not isinstance(entry, dict):
        raise ParseError(f"Fix entry is not an object: {str(entry)[:100]!r}")
    fixed_code = str(entry.get("fixed_code") or "").strip()
    if not fixed_code:
        raise ParseError(f"Fix for {violation.id} has no fixed_code")

    def _list(key: str) -> list[str]:
        value = entry.get(key)
        return [str(v) for v in value] if isinstance(value, list) else []

    try:
        return CodeFix(
            id=f"fix-{violation.id}",
            violation_id=violation.id,
            framework=framework,
            original_code=violation.first_html,
            fixed_code=fixed_code,
            explanation=str(entry.get("explanation") or ""),
            steps=_list("steps"),
            testing_recommendations=_list("testing_recommendations"),
            browser_compatibility=_list("browser_compatibility"),
            additional_improvements=_list("additional_improvements"),
            before_after=_optional_model(BeforeAfter, entry, "before_after", violation),
            css_classes=_optional_model(CssClasses, entry, "css_classes", violation),
            source="ai",
        )
    except ValidationError as exc:
        raise ParseError(f"Invalid fix for {violation.id}: {exc}") from exc


class FixGenerator:
    """Generates one ``CodeFix`` per violation.

    Violations are sent to the reasoning service in fixed-size batches. A
    batch whose request fails or whose answer is unusable gets template
    fixes; other batches keep their AI fixes.
    """

    def __init__(
        self,
        client: CompletionClient | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        timeout_s: float = 60,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._client = client
        self._batch_size = batch_size
        self._timeout_s = timeout_s

    async def generate(
        self,
        violations: list[Violation],
        context: ScanContext | None = None,
        *,
        on_tokens: TokensCallback | None = None,
    ) -> list[CodeFix]:
        violations = list(violations)
        context = context or ScanContext()
        framework = resolve_framework(violations, context)
        if self._client is None and violations:
            logger.info("No reasoning client configured, using template fixes")

        fixes: list[CodeFix] = []
        for start in range(0, len(violations), self._batch_size):
            batch = violations[start:start + self._batch_size]
            fixes.extend(await self._generate_batch(batch, context, framework, on_tokens))
        return fixes

    async def _generate_batch(
        self,
        batch: list[Violation],
        context: ScanContext,
        framework: str,
        on_tokens: TokensCallback | None,
    ) -> list[CodeFix]:
        if self._client is not None:
            try:
                return await asyncio.wait_for(
                    self._ai_batch(batch, context, framework, on_tokens),
                    timeout=self._timeout_s,
                )
            except asyncio.TimeoutError:
                logger.warning("Fix batch timed out after %ss, using templates", self._timeout_s)
            except (ReasoningServiceError, ParseError) as exc:
                logger.warning("Fix batch failed, using templates: %s", exc)
            except Exception:
                logger.exception("Unexpected error generating fixes, using templates")
        return [template_fix(v, framework) for v in batch]

    async def _ai_batch(
        self,
        batch: list[Violation],
        context: ScanContext,
        framework: str,
        on_tokens: TokensCallback | None,
    ) -> list[CodeFix]:
        assert self._client is not None
        entries = await complete_json_list(
            self._client,
            system=system_prompt(framework),
            user_message=build_user_message(batch, context, framework),
            key="fixes",
            expected=len(batch),
            on_tokens=on_tokens,
        )
        fixes = [fix_from_ai(entry, v, framework) for entry, v in zip(entries, batch)]
        for fix in fixes:
            validation = validate_code_fix(fix)
            if not validation.is_valid:
                issues = "; ".join(validation.issues)
                raise ParseError(f"Unusable fix for {fix.violation_id}: {issues}")
        return fixes
