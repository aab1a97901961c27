"""Tests for fix generation: framework resolution, templates and batching."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from conftest import make_violation

from a11ynav.errors import ParseError
from a11ynav.fixes.generator import FixGenerator, fix_from_ai, resolve_framework
from a11ynav.fixes.prompts import build_user_message, system_prompt
from a11ynav.fixes.templates import (
    ARIA,
    CONTRAST,
    FOCUS,
    GENERIC,
    aria_code,
    contrast_code,
    focus_code,
    generic_code,
    select_template,
    template_fix,
)
from a11ynav.schemas.fixes import ScanContext


def _ai_fix(code: str = '<img src="logo.png" alt="Company logo">') -> dict:
    return {
        "fixed_code": code,
        "explanation": "Adds a text alternative",
        "steps": ["Add an alt attribute"],
        "testing_recommendations": ["Check with a screen reader"],
        "browser_compatibility": ["All browsers"],
        "additional_improvements": [],
        "before_after": {"description": "Image now announced", "impact": "Blind users"},
    }


def _violations(n: int) -> list:
    return [make_violation(id=f"v{i}", description=f"Problem {i}") for i in range(n)]


class TestResolveFramework:
    def test_explicit_wins(self) -> None:
        violations = [make_violation(tags=["framework:react"])]
        assert resolve_framework(violations, ScanContext(framework="Vue")) == "vue"

    def test_vanilla_means_html(self) -> None:
        assert resolve_framework([], ScanContext(framework="vanilla")) == "html"

    def test_majority_vote(self) -> None:
        violations = [
            make_violation(html='<div data-v-7ba5bd90 class="card">'),
            make_violation(html='<span data-v-7ba5bd90>'),
            make_violation(tags=["framework:react"]),
        ]
        assert resolve_framework(violations, ScanContext(framework="auto")) == "vue"

    def test_tie_uses_precedence(self) -> None:
        violations = [
            make_violation(html='<div data-v-1a2b3c>'),
            make_violation(tags=["source:custom", "framework:react"]),
        ]
        assert resolve_framework(violations, ScanContext()) == "react"

    def test_angular_markup(self) -> None:
        violations = [make_violation(html='<button _ngcontent-c12="" class="btn">')]
        assert resolve_framework(violations, ScanContext()) == "angular"

    def test_no_signals(self) -> None:
        assert resolve_framework([make_violation()], ScanContext()) == "html"


class TestSelectTemplate:
    @pytest.mark.parametrize("description,kind", [
        ("Elements must have sufficient color contrast", CONTRAST),
        ("Form elements must have labels", ARIA),
        ("Form control has no accessible name", ARIA),
        ("Interactive element has no visible focus indicator", FOCUS),
        ("Scrollable region must have keyboard access", FOCUS),
        ("Page should contain a level-one heading", GENERIC),
    ])
    def test_keywords(self, description: str, kind: str) -> None:
        assert select_template(make_violation(description=description)) == kind


class TestTemplateCode:
    def test_contrast_inline_color(self) -> None:
        v = make_violation(html='<p style="background-color: #fff; color: #aaa">Fine print</p>')
        assert contrast_code(v) == '<p style="background-color: #fff; color: #333333;">Fine print</p>'

    def test_contrast_css_rule(self) -> None:
        v = make_violation(html='<p class="muted">Fine print</p>', target="p.muted")
        code = contrast_code(v)
        assert code.startswith("/* Text contrast")
        assert "p.muted {" in code

    def test_aria_label_added(self) -> None:
        v = make_violation(html='<input type="email">')
        assert aria_code(v, "html") == '<input type="email" aria-label="Describe this element">'

    def test_aria_required(self) -> None:
        v = make_violation(html='<input type="text" required aria-label="Name">')
        assert 'aria-required="true"' in aria_code(v, "html")

    def test_aria_button(self) -> None:
        v = make_violation(html='<button class="icon"><svg></svg></button>')
        assert aria_code(v, "html").startswith('<button class="icon" aria-label="Action button">')

    def test_aria_snippet_for_react(self) -> None:
        v = make_violation(html="", target="")
        assert 'htmlFor="field-id"' in aria_code(v, "react")

    def test_focus_rule(self) -> None:
        v = make_violation(description="No visible focus", target="a.nav")
        assert focus_code(v).startswith("a.nav:focus-visible {")

    def test_focus_dialog(self) -> None:
        v = make_violation(description="Dialog does not trap focus")
        assert 'role="dialog"' in focus_code(v)

    def test_generic_page_level(self) -> None:
        v = make_violation(description="Page has no skip link", html="<body>", target="html")
        assert "skip-link" in generic_code(v)

    def test_generic_div_region(self) -> None:
        v = make_violation(html='<div class="content">')
        assert generic_code(v) == '<div class="content" role="region" aria-label="Content area">'

    def test_generic_comment(self) -> None:
        v = make_violation(html='<table><tr><td>x</td></tr></table>', wcag_reference="WCAG 1.3.1")
        assert generic_code(v).startswith("<!-- Review against WCAG 1.3.1 -->")

    def test_template_fix(self) -> None:
        v = make_violation(description="Form elements must have labels", html='<input type="text">')
        fix = template_fix(v, "html")
        assert fix.id == f"basic-fix-{v.id}"
        assert fix.violation_id == v.id
        assert fix.original_code == '<input type="text">'
        assert fix.fixed_code
        assert fix.steps
        assert fix.source == "template"


class TestFixFromAI:
    def test_valid(self) -> None:
        v = make_violation()
        fix = fix_from_ai(_ai_fix(), v, "react")
        assert fix.id == f"fix-{v.id}"
        assert fix.framework == "react"
        assert fix.before_after.description == "Image now announced"
        assert fix.source == "ai"

    def test_empty_code(self) -> None:
        with pytest.raises(ParseError):
            fix_from_ai(_ai_fix(code="   "), make_violation(), "html")

    def test_not_an_object(self) -> None:
        with pytest.raises(ParseError):
            fix_from_ai(["<img>"], make_violation(), "html")

    def test_malformed_before_after_is_dropped(self) -> None:
        entry = _ai_fix()
        entry["before_after"] = "better"
        fix = fix_from_ai(entry, make_violation(), "html")
        assert fix.before_after is None
        assert fix.fixed_code == '<img src="logo.png" alt="Company logo">'

    def test_malformed_css_classes_is_dropped(self) -> None:
        entry = _ai_fix()
        entry["css_classes"] = ["btn", "btn-primary"]
        fix = fix_from_ai(entry, make_violation(), "html")
        assert fix.css_classes is None
        assert fix.before_after.impact == "Blind users"

    def test_css_classes(self) -> None:
        entry = _ai_fix()
        entry["css_classes"] = {"original": ".btn", "fixed": ".btn:focus-visible { outline: 2px solid; }"}
        fix = fix_from_ai(entry, make_violation(), "html")
        assert fix.css_classes.original == ".btn"


class TestPrompts:
    def test_system_prompt_includes_guidance(self) -> None:
        prompt = system_prompt("react")
        assert "Code Fix" in prompt
        assert "React" in prompt

    def test_unknown_framework_uses_html_guidance(self) -> None:
        assert system_prompt("ember") == system_prompt("html")

    def test_user_message(self) -> None:
        message = build_user_message(_violations(2), ScanContext(url="https://example.com"), "vue")
        assert "- URL: https://example.com" in message
        assert "- Framework: vue" in message
        assert "Libraries" not in message
        assert "Page type" not in message
        assert message.count("### Violation ") == 2
        assert '<img src="logo.png">' in message


class TestFixGenerator:
    def test_invalid_batch_size(self) -> None:
        with pytest.raises(ValueError):
            FixGenerator(batch_size=0)

    @pytest.mark.asyncio
    async def test_no_client_uses_templates(self) -> None:
        fixes = await FixGenerator().generate(_violations(4))
        assert len(fixes) == 4
        assert all(f.source == "template" and f.fixed_code for f in fixes)

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        assert await FixGenerator().generate([]) == []

    @pytest.mark.asyncio
    async def test_failed_batch_gets_templates(self) -> None:
        client = AsyncMock()
        client.simple_completion = AsyncMock(side_effect=[
            json.dumps({"fixes": [_ai_fix()] * 3}),
            "not json at all",
            json.dumps({"fixes": [_ai_fix()]}),
        ])
        violations = _violations(7)

        fixes = await FixGenerator(client, batch_size=3).generate(violations)

        assert [f.violation_id for f in fixes] == [v.id for v in violations]
        assert [f.source for f in fixes] == ["ai"] * 3 + ["template"] * 3 + ["ai"]
        assert all(f.fixed_code for f in fixes)
        assert client.simple_completion.await_count == 3

    @pytest.mark.asyncio
    async def test_short_answer_falls_back_for_batch(self) -> None:
        client = AsyncMock()
        client.simple_completion = AsyncMock(return_value=json.dumps({"fixes": [_ai_fix()]}))
        fixes = await FixGenerator(client, batch_size=3).generate(_violations(2))
        assert [f.source for f in fixes] == ["template", "template"]

    @pytest.mark.asyncio
    async def test_malformed_optional_field_keeps_ai_batch(self) -> None:
        entries = [_ai_fix() for _ in range(3)]
        entries[0]["before_after"] = "Added alt text"
        client = AsyncMock()
        client.simple_completion = AsyncMock(return_value=json.dumps({"fixes": entries}))

        fixes = await FixGenerator(client, batch_size=3).generate(_violations(3))

        assert [f.source for f in fixes] == ["ai", "ai", "ai"]
        assert fixes[0].before_after is None
        assert fixes[1].before_after.description == "Image now announced"

    @pytest.mark.asyncio
    async def test_fix_without_steps_falls_back_for_batch(self) -> None:
        entries = [_ai_fix(), _ai_fix()]
        entries[1]["steps"] = []
        client = AsyncMock()
        client.simple_completion = AsyncMock(return_value=json.dumps({"fixes": entries}))

        fixes = await FixGenerator(client, batch_size=2).generate(_violations(2))

        assert [f.source for f in fixes] == ["template", "template"]
        assert all(f.steps for f in fixes)

    @pytest.mark.asyncio
    async def test_fix_without_explanation_falls_back_for_batch(self) -> None:
        entry = _ai_fix()
        entry["explanation"] = "  "
        client = AsyncMock()
        client.simple_completion = AsyncMock(return_value=json.dumps({"fixes": [entry]}))
        fixes = await FixGenerator(client).generate(_violations(1))
        assert fixes[0].source == "template"

    @pytest.mark.asyncio
    async def test_service_error_falls_back(self) -> None:
        client = AsyncMock()
        client.simple_completion = AsyncMock(side_effect=ConnectionError("refused"))
        fixes = await FixGenerator(client).generate(_violations(1))
        assert fixes[0].source == "template"

    @pytest.mark.asyncio
    async def test_framework_applied_to_every_fix(self) -> None:
        fixes = await FixGenerator().generate(_violations(2), ScanContext(framework="angular"))
        assert {f.framework for f in fixes} == {"angular"}
