"""Supplementary accessibility heuristics run alongside the rule evaluator.

Each check is a pure function ``(snapshot, framework) -> list[Violation]``
over a ``DomSnapshot``. The suite runs every check independently: a check
that raises is logged and skipped, it never aborts the page scan.

These are deliberately coarse. The contrast check in particular only
recognizes a small table of known low-contrast colour pairs; it is not a
contrast-ratio computation.
"""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Callable

from pydantic import BaseModel

from a11ynav.errors import HeuristicCheckError
from a11ynav.schemas.dom import DomSnapshot, ElementRef
from a11ynav.schemas.violation import Impact, Violation, ViolationNode

logger = logging.getLogger(__name__)

HeuristicCheck = Callable[[DomSnapshot, str], list[Violation]]
"""Signature: (snapshot, resolved framework) -> findings."""

SOURCE_TAG = "source:custom"
SMALL_TEXT_PX = 16.0

_WHITE = "rgb(255, 255, 255)"
LOW_CONTRAST_PAIRS: frozenset[tuple[str, str]] = frozenset({
    ("rgb(128, 128, 128)", _WHITE),
    ("rgb(153, 153, 153)", _WHITE),
    ("rgb(170, 170, 170)", _WHITE),
    ("rgb(192, 192, 192)", _WHITE),
    ("rgb(204, 204, 204)", _WHITE),
    ("rgb(255, 255, 0)", _WHITE),
    (_WHITE, "rgb(255, 255, 0)"),
    (_WHITE, "rgb(204, 204, 204)"),
    ("rgb(0, 0, 0)", "rgb(51, 51, 51)"),
})

_NAMELESS_ROLES = {"presentation", "none"}
_RGBA_OPAQUE = re.compile(r"^rgba\((\d+),\s*(\d+),\s*(\d+),\s*1(?:\.0+)?\)$")
_OUTLINE_DECL = re.compile(r"outline(?:-style|-width)?\s*:\s*([^;}]+)", re.IGNORECASE)
_ZERO_LENGTH = re.compile(r"^(?:0+(?:\.0*)?|\.0+)[a-z]*$")
_HIDDEN_STYLES = {"none", "hidden"}


class HeuristicResults(BaseModel):
    violations: list[Violation] = []
    passes: list[Violation] = []
    failed_checks: list[str] = []


def _finding(
    check: str,
    description: str,
    impact: Impact,
    wcag_reference: str,
    element: ElementRef | None = None,
    *,
    html: str = "",
    help_text: str = "",
    extra_tags: tuple[str, ...] = (),
) -> Violation:
    target = element.target if element else "html"
    snippet = element.html if element else html
    digest = hashlib.sha1(f"{description}|{target}".encode()).hexdigest()[:10]
    return Violation(
        id=f"custom-{check}-{digest}",
        description=description,
        help_text=help_text,
        impact=impact.value,
        wcag_reference=wcag_reference,
        tags=[SOURCE_TAG, check, *extra_tags],
        nodes=[ViolationNode(html=snippet, target=target)],
    )


def normalize_color(value: str) -> str:
    """Canonical ``rgb(r, g, b)`` form; fully opaque rgba collapses to rgb."""
    value = re.sub(r"\s+", " ", value.strip().lower())
    value = re.sub(r"\s*,\s*", ", ", value)
    m = _RGBA_OPAQUE.match(value)
    if m:
        return f"rgb({m.group(1)}, {m.group(2)}, {m.group(3)})"
    return value


def is_bold(font_weight: str) -> bool:
    weight = font_weight.strip().lower()
    if weight in ("bold", "bolder"):
        return True
    try:
        return float(weight) >= 700
    except ValueError:
        return False


# ----------------------------------------------------------------------
# Checks
# ----------------------------------------------------------------------


def check_framework_aria(snapshot: DomSnapshot, framework: str) -> list[Violation]:
    """React: elements with an explicit role but no accessible name."""
    if framework != "react":
        return []
    findings = []
    for el in snapshot.role_elements:
        if el.role.strip().lower() in _NAMELESS_ROLES:
            continue
        if el.aria_label.strip() or el.aria_labelledby.strip():
            continue
        findings.append(_finding(
            "react-aria-compliance",
            "React element with role missing aria-label or aria-labelledby",
            Impact.MODERATE,
            "WCAG 4.1.2",
            el,
            help_text="Give every element with an explicit role an accessible name.",
            extra_tags=("framework:react",),
        ))
    return findings


def check_color_contrast(snapshot: DomSnapshot, framework: str) -> list[Violation]:
    """Small, non-bold text whose colour pair is a known low-contrast combination."""
    findings = []
    for style in snapshot.text_styles:
        if style.font_size_px >= SMALL_TEXT_PX or is_bold(style.font_weight):
            continue
        pair = (normalize_color(style.color), normalize_color(style.background_color))
        if pair not in LOW_CONTRAST_PAIRS:
            continue
        findings.append(_finding(
            "enhanced-color-contrast",
            "Small text with a low-contrast color pair may not meet contrast requirements",
            Impact.MODERATE,
            "WCAG 1.4.3",
            style,
            help_text="Text below 16px needs a contrast ratio of at least 4.5:1.",
        ))
    return findings


def check_heading_structure(snapshot: DomSnapshot, framework: str) -> list[Violation]:
    """Heading levels must not jump by more than one; a skip link must exist."""
    findings = []
    previous = 0
    for heading in snapshot.headings:
        if heading.level > previous + 1:
            if previous == 0:
                description = f"Heading level skipped: page starts at H{heading.level}"
            else:
                description = f"Heading level skipped: H{previous} to H{heading.level}"
            findings.append(_finding(
                "screen-reader-navigation",
                description,
                Impact.MODERATE,
                "WCAG 1.3.1",
                heading,
                help_text="Nest headings one level at a time.",
            ))
        previous = heading.level

    if not snapshot.has_skip_link:
        findings.append(_finding(
            "screen-reader-navigation",
            "Missing skip navigation link for screen readers",
            Impact.MODERATE,
            "WCAG 2.4.1",
            html="<body>",
            help_text="Add a link at the top of the page that jumps to the main content.",
        ))
    return findings


def check_forms(snapshot: DomSnapshot, framework: str) -> list[Violation]:
    """Unnamed controls, required fields without aria-required, forms without error handling."""
    findings = []
    for control in snapshot.controls:
        if not control.has_label:
            findings.append(_finding(
                "form-accessibility",
                "Form control has no accessible name",
                Impact.SERIOUS,
                "WCAG 3.3.2",
                control,
                help_text="Associate a <label> element, or add aria-label or aria-labelledby.",
            ))
        if control.required and not control.aria_required:
            findings.append(_finding(
                "form-accessibility",
                "Required field missing aria-required attribute",
                Impact.MINOR,
                "WCAG 3.3.3",
                control,
            ))

    for form in snapshot.forms:
        if form.has_submit and not form.has_error_affordance:
            findings.append(_finding(
                "form-accessibility",
                "Form missing validation error handling",
                Impact.MODERATE,
                "WCAG 3.3.1",
                form,
                help_text="Expose validation errors with aria-invalid or a role=alert region.",
            ))
    return findings


def has_visible_outline(css_text: str) -> bool:
    """True when some outline declaration draws a line.

    A declaration with a ``none``/``hidden`` style or a zero width in any
    position draws nothing, e.g. ``0px none`` or ``medium none``.
    """
    for value in _OUTLINE_DECL.findall(css_text):
        tokens = value.lower().replace("!important", " ").split()
        if not tokens:
            continue
        if any(t in _HIDDEN_STYLES or _ZERO_LENGTH.match(t) for t in tokens):
            continue
        return True
    return False


def check_focus_management(snapshot: DomSnapshot, framework: str) -> list[Violation]:
    """A visible :focus outline must exist; dialogs must contain something focusable."""
    findings = []
    if not any(has_visible_outline(rule) for rule in snapshot.focus_rules):
        findings.append(_finding(
            "focus-management",
            "Missing visible focus indicators for keyboard navigation",
            Impact.SERIOUS,
            "WCAG 2.4.7",
            html="<style>",
            help_text="Style :focus (or :focus-visible) with a visible outline.",
        ))

    for dialog in snapshot.dialogs:
        if dialog.focusable_count == 0:
            findings.append(_finding(
                "focus-management",
                "Modal dialog lacks focusable elements or focus trapping",
                Impact.SERIOUS,
                "WCAG 2.1.1",
                dialog,
            ))
    return findings


CHECKS: dict[str, HeuristicCheck] = {
    "react-aria-compliance": check_framework_aria,
    "enhanced-color-contrast": check_color_contrast,
    "screen-reader-navigation": check_heading_structure,
    "form-accessibility": check_forms,
    "focus-management": check_focus_management,
}


def run_heuristics(
    snapshot: DomSnapshot,
    framework: str,
    checks: dict[str, HeuristicCheck] | None = None,
) -> HeuristicResults:
    """Run every check; a failing check is logged and skipped."""
    active = CHECKS if checks is None else checks
    results = HeuristicResults()
    for name, check in active.items():
        try:
            results.violations.extend(check(snapshot, framework))
        except Exception as exc:
            err = HeuristicCheckError(name, str(exc))
            logger.warning("%s", err)
            results.failed_checks.append(name)

    if len(results.failed_checks) < len(active):
        results.passes.append(Violation(
            id="custom-checks-completed",
            description="Custom accessibility checks completed successfully",
            impact=Impact.MINOR.value,
            wcag_reference="Custom",
            tags=[SOURCE_TAG],
        ))
    return results
