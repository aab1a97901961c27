"""Deterministic fix templates used when the reasoning service is unavailable.

A template is picked from keywords in the violation description:
contrast, then ARIA/labelling, then focus/keyboard, then a generic
role/landmark fix. Every template produces non-empty fixed code; when the
violation's markup can't be patched in place a standalone snippet is
returned instead.
"""

from __future__ import annotations

import re

from a11ynav.schemas.fixes import BeforeAfter, CodeFix
from a11ynav.schemas.violation import Violation

CONTRAST, ARIA, FOCUS, GENERIC = "contrast", "aria", "focus", "generic"

_ARIA_KEYWORDS = ("aria", "label", "accessible name")
_FOCUS_KEYWORDS = ("focus", "keyboard")

_INLINE_COLOR = re.compile(r"(?<![\w-])color\s*:\s*[^;\"']+;?")
_FIRST_TAG = re.compile(r"<([a-zA-Z][\w-]*)([^>]*?)(/?)>")
_PAGE_LEVEL_HTML = {"", "<body>", "<style>", "<html>"}


def select_template(violation: Violation) -> str:
    text = violation.description.lower()
    if "contrast" in text:
        return CONTRAST
    if any(k in text for k in _ARIA_KEYWORDS):
        return ARIA
    if any(k in text for k in _FOCUS_KEYWORDS):
        return FOCUS
    return GENERIC


def _target(violation: Violation) -> str:
    target = violation.nodes[0].target if violation.nodes else ""
    return "" if target in ("", "html") else target


def _add_attributes(html: str, attributes: str) -> str | None:
    """Insert attributes into the first opening tag, or None if there is none."""
    m = _FIRST_TAG.search(html)
    if not m or m.group(1).lower() in ("body", "style", "html"):
        return None
    tag, attrs, self_closing = m.groups()
    patched = f"<{tag}{attrs} {attributes}{self_closing}>"
    return html[: m.start()] + patched + html[m.end():]


# ----------------------------------------------------------------------
# Code generators
# ----------------------------------------------------------------------


def contrast_code(violation: Violation) -> str:
    html = violation.first_html
    if _INLINE_COLOR.search(html):
        return _INLINE_COLOR.sub("color: #333333;", html)
    selector = _target(violation) or ".low-contrast-text"
    return (
        "/* Text contrast of at least 4.5:1 (3:1 for large text) */\n"
        f"{selector} {{\n"
        "  color: #333333;\n"
        "  background-color: #ffffff;\n"
        "}"
    )


def aria_code(violation: Violation, framework: str) -> str:
    html = violation.first_html
    lowered = html.lower()

    if re.search(r"\srequired\b", lowered) and "aria-required" not in lowered:
        patched = _add_attributes(html, 'aria-required="true"')
        if patched:
            return patched
    if "aria-label" not in lowered:
        if "<button" in lowered:
            return re.sub(r"<button([^>]*)>", r'<button\1 aria-label="Action button">', html, count=1)
        patched = _add_attributes(html, 'aria-label="Describe this element"')
        if patched:
            return patched

    label_attr = "htmlFor" if framework == "react" else "for"
    return (
        f'<label {label_attr}="field-id">Field name</label>\n'
        '<input id="field-id" type="text" />'
    )


def focus_code(violation: Violation) -> str:
    if "dialog" in violation.description.lower():
        return (
            '<div role="dialog" aria-modal="true" aria-labelledby="dialog-title">\n'
            '  <h2 id="dialog-title">Dialog title</h2>\n'
            '  <button type="button">Close</button>\n'
            "</div>"
        )
    selector = _target(violation)
    rule = f"{selector}:focus-visible" if selector else ":focus-visible"
    return (
        f"{rule} {{\n"
        "  outline: 2px solid #0066cc;\n"
        "  outline-offset: 2px;\n"
        "}"
    )


def generic_code(violation: Violation) -> str:
    html = violation.first_html
    lowered = html.lower()
    if html.strip() in _PAGE_LEVEL_HTML:
        return (
            '<a class="skip-link" href="#main-content">Skip to main content</a>\n'
            '<main id="main-content">\n'
            "  <!-- page content -->\n"
            "</main>"
        )
    if "<div" in lowered and "role" not in lowered and "aria-" not in lowered:
        return re.sub(r"<div([^>]*)>", r'<div\1 role="region" aria-label="Content area">', html,
                      count=1)
    return f"<!-- Review against {violation.wcag_reference or 'WCAG'} -->\n{html}"


# ----------------------------------------------------------------------
# Template text
# ----------------------------------------------------------------------

_TEXT: dict[str, dict] = {
    CONTRAST: {
        "explanation": (
            "Color contrast raised to meet WCAG 2.2 AA (at least 4.5:1 for normal "
            "text, 3:1 for large text)."
        ),
        "steps": [
            "Identify the text and background colors",
            "Calculate the contrast ratio",
            "Adjust colors to meet the minimum ratio",
            "Check the result with a contrast checker",
        ],
        "testing_recommendations": [
            "Use the WebAIM Contrast Checker",
            "Test with Windows High Contrast mode",
            "Check with color blindness simulators",
        ],
        "browser_compatibility": ["Works in all modern browsers"],
        "additional_improvements": [
            "Use CSS custom properties for consistent theming",
            "Offer a high contrast mode",
        ],
        "before_after": BeforeAfter(
            description="Improved color contrast for better readability",
            impact="Content becomes readable for users with low vision and color blindness",
        ),
    },
    ARIA: {
        "explanation": "Added an accessible name so screen readers can announce the element.",
        "steps": [
            "Identify elements missing accessible names",
            "Add a visible <label> or a descriptive aria-label",
            "Use aria-labelledby for names taken from other elements",
            "Check role assignments",
        ],
        "testing_recommendations": [
            "Test with screen readers (NVDA, JAWS, VoiceOver)",
            "Verify keyboard navigation",
            "Inspect the accessibility tree in browser devtools",
        ],
        "browser_compatibility": ["ARIA attributes are supported in all modern browsers"],
        "additional_improvements": [
            "Add skip links for faster navigation",
            "Keep the heading hierarchy consistent",
        ],
        "before_after": BeforeAfter(
            description="Added accessible names for screen readers",
            impact="Assistive technology users can identify and operate the element",
        ),
    },
    FOCUS: {
        "explanation": "Improved keyboard access and made keyboard focus visible.",
        "steps": [
            "Make every interactive element reachable by keyboard",
            "Add a visible focus indicator",
            "Check the tab order",
            "Trap focus inside open modal dialogs",
        ],
        "testing_recommendations": [
            "Navigate the page with the Tab key only",
            "Verify focus indicators are clearly visible",
            "Test focus trapping in modal dialogs",
        ],
        "browser_compatibility": [":focus-visible is supported in all current browsers"],
        "additional_improvements": [
            "Manage focus on route changes in single-page applications",
            "Add skip navigation links",
        ],
        "before_after": BeforeAfter(
            description="Visible focus indicators and keyboard reachable controls",
            impact="Keyboard-only and screen reader users can follow where they are",
        ),
    },
    GENERIC: {
        "explanation": "Added landmark and role information so the structure is announced.",
        "steps": [
            "Identify the accessibility issue",
            "Apply the fix described by the WCAG success criterion",
            "Test with assistive technologies",
            "Validate with automated accessibility tools",
        ],
        "testing_recommendations": [
            "Test with screen readers",
            "Verify keyboard navigation",
            "Re-run an automated accessibility scan",
        ],
        "browser_compatibility": ["Works across all modern browsers"],
        "additional_improvements": [
            "Use progressive enhancement",
            "Test with several assistive technologies",
        ],
        "before_after": BeforeAfter(
            description="Applied an accessibility fix",
            impact="Improves the experience for users with disabilities",
        ),
    },
}


def template_fix(violation: Violation, framework: str) -> CodeFix:
    """Build a complete template fix for one violation."""
    kind = select_template(violation)
    if kind == CONTRAST:
        code = contrast_code(violation)
    elif kind == ARIA:
        code = aria_code(violation, framework)
    elif kind == FOCUS:
        code = focus_code(violation)
    else:
        code = generic_code(violation)

    text = _TEXT[kind]
    return CodeFix(
        id=f"basic-fix-{violation.id}",
        violation_id=violation.id,
        framework=framework,
        original_code=violation.first_html,
        fixed_code=code,
        explanation=text["explanation"],
        steps=list(text["steps"]),
        testing_recommendations=list(text["testing_recommendations"]),
        browser_compatibility=list(text["browser_compatibility"]),
        additional_improvements=list(text["additional_improvements"]),
        before_after=text["before_after"].model_copy(),
        source="template",
    )
