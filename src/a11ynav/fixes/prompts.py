"""Prompts for the code fix generator."""

from __future__ import annotations

from a11ynav.schemas.fixes import ScanContext
from a11ynav.schemas.violation import Violation

SYSTEM_PROMPT = """\
You are an accessibility engineer writing Code Fix proposals.

## Role
For each WCAG violation you receive, write a complete, production-ready fix \
for the site's framework. You know WCAG 2.2 Level AA, screen reader and \
assistive technology behaviour, and cross-browser accessibility quirks.

{framework_guidance}

## Output Format
Respond with a single JSON object holding exactly one fix per violation, in \
the order the violations were given:

{{
  "fixes": [
    {{
      "fixed_code": "complete corrected code",
      "explanation": "why this resolves the violation",
      "steps": ["step 1", "step 2"],
      "testing_recommendations": ["test 1", "test 2"],
      "browser_compatibility": ["note 1"],
      "additional_improvements": ["improvement 1"],
      "before_after": {{"description": "what changed", "impact": "why it matters"}},
      "css_classes": {{"original": "original classes", "fixed": "updated classes"}}
    }}
  ]
}}

`fixed_code` must never be empty. `before_after` and `css_classes` are optional.
"""

FRAMEWORK_GUIDANCE: dict[str, str] = {
    "react": """\
## React Requirements
- Functional components with hooks where appropriate
- ARIA props (aria-label, aria-labelledby, role) and semantic JSX elements
- Keyboard navigation that works with component state
- Refs for focus management
- React Testing Library patterns for accessibility tests""",
    "vue": """\
## Vue Requirements
- Vue 3 Composition API where appropriate
- ARIA attributes and semantic HTML in templates
- Refs and reactive state for accessibility state
- Proper event handling for keyboard navigation""",
    "angular": """\
## Angular Requirements
- Angular CDK a11y utilities where helpful
- ARIA attributes and semantic HTML in templates
- @ViewChild and ElementRef for focus management
- Accessible FormControl usage""",
    "svelte": """\
## Svelte Requirements
- ARIA attributes and semantic HTML in components
- bind:this for focus management
- Stores for accessibility state
- Proper event handling for keyboard navigation""",
    "html": """\
## HTML / Vanilla JS Requirements
- Semantic HTML5 elements and proper ARIA attributes
- Progressive enhancement
- Form labels and associations
- Focus management with plain JavaScript""",
}


def system_prompt(framework: str) -> str:
    guidance = FRAMEWORK_GUIDANCE.get(framework, FRAMEWORK_GUIDANCE["html"])
    return SYSTEM_PROMPT.format(framework_guidance=guidance)


def build_user_message(violations: list[Violation], context: ScanContext, framework: str) -> str:
    """Render the scan context and one ``### Violation N`` block per violation."""
    lines = [
        "## Scan Context",
        f"- URL: {context.url or 'unknown'}",
        f"- Framework: {framework}",
    ]
    for i, v in enumerate(violations, start=1):
        target = v.nodes[0].target if v.nodes else "unknown"
        lines += [
            "",
            f"### Violation {i}: {v.id}",
            f"- Description: {v.description}",
            f"- WCAG reference: {v.wcag_reference or 'unknown'}",
            f"- Impact: {v.impact}",
            f"- Help: {v.help_text or 'n/a'}",
            f"- Target element: {target}",
            "- Current HTML:",
            "```html",
            v.first_html or "<!-- no HTML available -->",
            "```",
        ]
    return "\n".join(lines)
