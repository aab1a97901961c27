"""Markdown report builder — renders an AuditReport as a prioritized remediation plan."""

from __future__ import annotations

from a11ynav.fixes.summary import format_code_for_display
from a11ynav.schemas.report import AuditReport
from a11ynav.schemas.violation import Violation

_PRIORITY_ICON = {"critical": "🔴", "high": "🟠", "medium": "🟡", "low": "🟢"}


def _ranked(violations: list[Violation]) -> list[Violation]:
    # unscored violations go last; ties keep severity order
    return sorted(violations, key=lambda v: -(v.priority_score or 0))


def render_markdown_report(report: AuditReport) -> str:
    """Render an AuditReport into a Markdown string."""
    scan = report.scan
    sections: list[str] = []

    sections.append(f"# Accessibility Report: {scan.metadata.title or scan.url}\n")
    sections.append(f"*Generated: {report.generated_at}*\n")

    # Summary
    sections.append("## Summary\n")
    sections.append(f"- **URL:** {scan.url}")
    sections.append(f"- **Accessibility score:** {scan.accessibility_score}/100")
    sections.append(f"- **Pages scanned:** {scan.pages_scanned}")
    for page_url in scan.metadata.page_urls:
        sections.append(f"  - {page_url}")
    sections.append(f"- **Framework:** {scan.metadata.framework}")
    sections.append(f"- **Violations:** {len(scan.violations)}")
    sections.append(f"- **Passed checks:** {len(scan.passes)}")
    sections.append(f"- **Needs review:** {len(scan.incomplete)}")
    prioritization = "AI-assisted" if report.has_ai_prioritization else "deterministic"
    sections.append(f"- **Prioritization:** {prioritization}")
    if report.scan_id:
        sections.append(f"- **Scan ID:** `{report.scan_id}`")
    sections.append("")

    if scan.violations:
        counts: dict[str, int] = {}
        for v in scan.violations:
            key = v.priority.value if v.priority else "unscored"
            counts[key] = counts.get(key, 0) + 1
        sections.append("| Priority | Count |")
        sections.append("|----------|-------|")
        for key, count in counts.items():
            sections.append(f"| {_PRIORITY_ICON.get(key, '⚪')} {key} | {count} |")
        sections.append("")

    # Violations
    ranked = _ranked(scan.violations)
    if ranked:
        sections.append("## Violations by Priority\n")
        for rank, v in enumerate(ranked, start=1):
            icon = _PRIORITY_ICON.get(v.priority.value if v.priority else "", "⚪")
            sections.append(f"### {rank}. {icon} {v.description} (`{v.id}`)\n")
            sections.append(
                f"**Impact:** {v.impact} | **WCAG:** {v.wcag_reference or 'n/a'} "
                f"| **Elements:** {v.element_count}\n"
            )
            if v.is_scored:
                sections.append(
                    f"**Priority score:** {v.priority_score} | Legal: {v.legal_risk_score}/10 "
                    f"| User: {v.user_impact_score}/10 | Business: {v.business_risk_score}/10 "
                    f"| Complexity: {v.technical_complexity}/10\n"
                )
            if v.compliance_deadline:
                sections.append(f"*Deadline: {v.compliance_deadline}*\n")
            if v.business_justification:
                sections.append(f"{v.business_justification}\n")
            if v.fix_recommendations:
                for rec in v.fix_recommendations:
                    sections.append(f"- {rec}")
                sections.append("")
            if v.help_url:
                sections.append(f"[Learn more]({v.help_url})\n")
    else:
        sections.append("## Violations\n")
        sections.append("No violations found.\n")

    # Fixes
    if report.fixes:
        summary = report.fix_summary
        sections.append("## Code Fixes\n")
        by_framework = ", ".join(f"{k}: {n}" for k, n in summary.fixes_by_framework.items())
        sections.append(
            f"{summary.total_fixes} fix(es) ({by_framework}), "
            f"{summary.high_impact_fixes} high impact, "
            f"estimated {summary.estimated_time_to_implement}.\n"
        )
        lang = "jsx" if summary.fixes_by_framework.get("react") else "html"
        for fix in report.fixes:
            sections.append(f"### `{fix.violation_id}`\n")
            if fix.explanation:
                sections.append(f"{fix.explanation}\n")
            if fix.original_code:
                sections.append("**Before:**\n")
                sections.append(f"```{lang}\n{format_code_for_display(fix.original_code)}\n```\n")
            sections.append("**After:**\n")
            sections.append(f"```{lang}\n{fix.fixed_code}\n```\n")
            if fix.steps:
                sections.append("**Steps:**")
                for i, step in enumerate(fix.steps, start=1):
                    sections.append(f"{i}. {step}")
                sections.append("")
            if fix.testing_recommendations:
                sections.append("**Testing:**")
                for t in fix.testing_recommendations:
                    sections.append(f"- {t}")
                sections.append("")

    # Performance
    perf = scan.performance_metrics
    if perf is not None:
        rows = [(name, value) for name, value in perf.model_dump().items() if value is not None]
        if rows:
            sections.append("## Performance\n")
            sections.append("| Metric | Value |")
            sections.append("|--------|-------|")
            for name, value in rows:
                sections.append(f"| {name.replace('_', ' ')} | {value} |")
            sections.append("")

    return "\n".join(sections)
