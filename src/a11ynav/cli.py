"""Typer CLI — ``a11ynav scan``, ``audit``, ``validate``, ``detect`` and ``render`` commands."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from a11ynav.config import load_config
from a11ynav.errors import InvalidInputError, NavigationError, RuleEvaluationError, ScanRejectedError
from a11ynav.schemas.config import ScanOptions, ScanSettings
from a11ynav.schemas.report import AuditReport
from a11ynav.schemas.scoring import SiteContext

# Load .env file from project root (if it exists)
load_dotenv()

app = typer.Typer(
    name="a11ynav",
    help="Accessibility Navigator — scan websites for WCAG violations and prioritize the fixes.",
    no_args_is_help=True,
)
console = Console()

REPORT_JSON = "report.json"
REPORT_MD = "accessibility-report.md"


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    # httpx logs every HTTP request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@app.command()
def scan(
    url: str = typer.Argument(..., help="Website to scan (https:// is added when missing)."),
    max_pages: int = typer.Option(1, "--max-pages", "-p", help="Seed page plus up to N-1 same-origin links."),
    framework: str = typer.Option("auto", "--framework", "-f", help="auto, react, vue, angular or vanilla."),
    no_custom_rules: bool = typer.Option(False, "--no-custom-rules", help="Skip the supplementary heuristic checks."),
    no_performance: bool = typer.Option(False, "--no-performance", help="Skip timing and coverage sampling."),
    no_fixes: bool = typer.Option(False, "--no-fixes", help="Do not generate code fixes."),
    output: Path = typer.Option(Path("./output"), "--output", "-o", help="Directory for report.json and the Markdown report."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use canned reasoning responses (no API calls)."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Scan a website and write a prioritized accessibility report."""
    _setup_logging(verbose)

    try:
        options = ScanOptions(
            max_pages=max_pages,
            framework=framework,
            custom_rules=not no_custom_rules,
            include_performance=not no_performance,
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid scan options:[/] {exc}")
        raise typer.Exit(code=1)

    if dry_run:
        console.print("[yellow]DRY-RUN mode — no API calls will be made.[/]\n")
    console.print(f"[bold]Scanning:[/] {url}\n")

    report = asyncio.run(_run_audit(
        url, options, SiteContext(), ScanSettings(),
        generate_fixes=not no_fixes, dry_run=dry_run,
    ))
    _write_outputs(report, output)


@app.command()
def audit(
    config: Path = typer.Option(..., "--config", "-c", help="Path to scan-config.yml"),
    output: Path = typer.Option(None, "--output", "-o", help="Override output_directory from the config."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Use canned reasoning responses (no API calls)."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Run a full audit described by a YAML config file."""
    _setup_logging(verbose)

    try:
        cfg = load_config(config)
    except Exception as exc:
        console.print(f"[red]Config validation failed:[/] {exc}")
        raise typer.Exit(code=1)

    if dry_run:
        console.print("[yellow]DRY-RUN mode — no API calls will be made.[/]\n")
    console.print(f"[bold]Starting audit for:[/] {cfg.target_url}\n")

    report = asyncio.run(_run_audit(
        cfg.target_url, cfg.options, cfg.site_context, cfg.settings,
        generate_fixes=cfg.generate_fixes, dry_run=dry_run,
    ))
    _write_outputs(report, output or Path(cfg.output_directory))


@app.command()
def validate(
    config: Path = typer.Option(..., "--config", "-c", help="Path to scan-config.yml"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Validate a configuration file without scanning."""
    _setup_logging(verbose)

    try:
        cfg = load_config(config)
    except Exception as exc:
        console.print(f"[red]Config validation failed:[/] {exc}")
        raise typer.Exit(code=1)

    ctx = cfg.site_context
    console.print("[green]Config is valid![/]\n")
    console.print(f"  Target URL:   {cfg.target_url}")
    console.print(f"  Max pages:    {cfg.options.max_pages}")
    console.print(f"  Framework:    {cfg.options.framework}")
    console.print(f"  Custom rules: {'on' if cfg.options.custom_rules else 'off'}")
    console.print(f"  Performance:  {'on' if cfg.options.include_performance else 'off'}")
    console.print(f"  Code fixes:   {'on' if cfg.generate_fixes else 'off'}")
    if ctx.industry:
        console.print(f"  Industry:     {ctx.industry}")
    if ctx.regions:
        console.print(f"  Regions:      {', '.join(ctx.regions)}")
    console.print(f"  Concurrency:  {cfg.settings.concurrency}")
    console.print(f"  Output dir:   {cfg.output_directory}")


@app.command()
def detect(
    url: str = typer.Argument(..., help="Website to inspect."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Print the UI framework a page appears to use."""
    _setup_logging(verbose)

    from a11ynav.scanner.crawl import normalize_url

    try:
        target = normalize_url(url)
    except InvalidInputError as exc:
        console.print(f"[red]{exc}[/]")
        raise typer.Exit(code=1)

    framework = asyncio.run(_run_detect(target))
    console.print(f"[bold]{target}[/]: {framework}")


@app.command()
def render(
    output: Path = typer.Option(..., "--output", "-o", help="Output directory from a previous run (must contain report.json)."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Re-render the Markdown report from a saved report.json. No scanning, no API calls."""
    _setup_logging(verbose)

    if not (output / REPORT_JSON).exists():
        console.print(f"[red]No {REPORT_JSON} found in {output}[/]")
        console.print("Run [bold]a11ynav scan[/] first — it saves report.json at the end.")
        raise typer.Exit(code=1)

    from a11ynav.output.markdown import render_markdown_report

    report = AuditReport.model_validate_json((output / REPORT_JSON).read_text())
    md_path = output / REPORT_MD
    md_path.write_text(render_markdown_report(report))
    console.print(f"[green]Markdown report written to:[/] {md_path}")


async def _run_audit(
    url: str,
    options: ScanOptions,
    site_context: SiteContext,
    settings: ScanSettings,
    *,
    generate_fixes: bool,
    dry_run: bool = False,
) -> AuditReport:
    """Run the pipeline; a failed seed page exits with its categorized message."""
    from a11ynav.pipeline import AuditPipeline
    from a11ynav.shared.browser import BrowserManager
    from a11ynav.shared.progress import PipelineProgress
    from a11ynav.shared.reasoning_client import DryRunClient, ReasoningClient

    client = DryRunClient() if dry_run else ReasoningClient.from_env()
    if client is None:
        console.print("[yellow]OPENAI_API_KEY not set — using deterministic prioritization.[/]\n")

    async with BrowserManager(viewport=(settings.viewport_width, settings.viewport_height)) as browser:
        with PipelineProgress() as progress:
            pipeline = AuditPipeline(browser, client=client, settings=settings, progress=progress)
            try:
                return await pipeline.run(url, options, site_context, generate_fixes=generate_fixes)
            except NavigationError as exc:
                console.print(f"[red]{exc.user_message}[/]")
                raise typer.Exit(code=1)
            except (InvalidInputError, RuleEvaluationError, ScanRejectedError) as exc:
                console.print(f"[red]Scan failed:[/] {exc}")
                raise typer.Exit(code=1)


async def _run_detect(url: str) -> str:
    from a11ynav.scanner.framework import FrameworkDetector
    from a11ynav.shared.browser import BrowserManager

    async with BrowserManager() as browser:
        return await FrameworkDetector(browser).detect(url)


def _write_outputs(report: AuditReport, out_dir: Path) -> None:
    from a11ynav.output.markdown import render_markdown_report

    out_dir.mkdir(parents=True, exist_ok=True)
    json_path = out_dir / REPORT_JSON
    json_path.write_text(report.model_dump_json(indent=2))
    md_path = out_dir / REPORT_MD
    md_path.write_text(render_markdown_report(report))

    scan = report.scan
    console.print(
        f"\n[bold]Accessibility score:[/] {scan.accessibility_score}/100 "
        f"({len(scan.violations)} violation(s) across {scan.pages_scanned} page(s))"
    )
    top = sorted(scan.violations, key=lambda v: -(v.priority_score or 0))[:5]
    for v in top:
        priority = v.priority.value if v.priority else "unscored"
        console.print(f"  \\[{priority}] {escape(v.description)} [dim]({v.wcag_reference})[/]")
    console.print(f"\n[green]JSON report written to:[/] {json_path}")
    console.print(f"[green]Markdown report written to:[/] {md_path}")
