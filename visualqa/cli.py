"""CLI entry point for the visual QA orchestrator."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from visualqa.ai.client import SummaryClient
from visualqa.baseline.store import BaselineStoreUnavailableError, FileBaselineStore
from visualqa.models.config import ConfigurationError, OrchestratorConfig, rebalance_weights
from visualqa.orchestrator import Orchestrator
from visualqa.reporter.reporter import Reporter

console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = "visual-qa.json"

EXIT_BUILD_FAILED = 1
EXIT_CONFIG_ERROR = 2

_CONFIDENCE_STYLE = {"high": "green", "medium": "yellow", "low": "red"}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def load_config(path: str) -> OrchestratorConfig:
    try:
        return OrchestratorConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'visual-qa init' to create a default config.")
        sys.exit(EXIT_CONFIG_ERROR)
    except ValueError as e:
        # Covers malformed JSON and pydantic validation errors
        console.print(f"[red]Invalid config {path}:[/red] {escape(str(e))}")
        sys.exit(EXIT_CONFIG_ERROR)


def apply_skips(cfg: OrchestratorConfig, skip: tuple[str, ...]) -> OrchestratorConfig:
    """Disable the named suites and rebalance the remaining weights."""
    if not skip:
        return cfg
    unknown = set(skip) - {s.name for s in cfg.suites}
    if unknown:
        raise click.BadParameter(f"Unknown suites: {', '.join(sorted(unknown))}", param_hint="--skip")
    suites = [s.model_copy(update={"enabled": False}) if s.name in skip else s for s in cfg.suites]
    return cfg.model_copy(update={"suites": rebalance_weights(suites)})


def _make_ai_client(cfg: OrchestratorConfig) -> SummaryClient | None:
    if not cfg.ai_summary:
        return None
    try:
        return SummaryClient(
            model=cfg.ai_model,
            max_tokens=cfg.ai_max_summary_tokens,
            transcript_dir=Path(cfg.output_dir) / "debug",
        )
    except EnvironmentError as e:
        logger.warning("AI client unavailable: %s", e)
        return None


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Visual test orchestration and regression detection"""
    setup_logging(verbose)


@cli.command()
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.option("--target", "-t", default=None, help="Override the configured target URL")
@click.option("--skip", multiple=True, help="Suite to skip (repeatable)")
def run(config: str, target: str | None, skip: tuple[str, ...]) -> None:
    """Run every enabled suite, compare baselines and write reports."""
    cfg = load_config(config)
    if target:
        cfg = cfg.model_copy(update={"target_url": target})
    cfg = apply_skips(cfg, skip)

    orchestrator = Orchestrator(cfg)
    try:
        report = orchestrator.run_all()
    except ConfigurationError as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        sys.exit(EXIT_CONFIG_ERROR)

    reporter = Reporter(cfg, _make_ai_client(cfg))
    report = reporter.with_summary(report)
    reports = reporter.generate_reports(report)

    console.print("\n[bold green]Run Complete[/bold green]")
    table = Table(title="Suites")
    table.add_column("Suite", style="bold")
    table.add_column("Status")
    table.add_column("Checks")
    table.add_column("Duration")
    for r in report.per_suite_results:
        status = "[green]ok[/green]" if r.successful else f"[red]failed[/red] {escape(r.error or '')}"
        table.add_row(r.suite_name, status,
                      f"{r.summary.passed_checks}/{r.summary.total_checks}",
                      f"{r.duration_ms / 1000:.1f}s")
    console.print(table)

    style = _CONFIDENCE_STYLE[report.confidence_level]
    console.print(f"Overall score: [bold]{report.overall_score:.1f}[/bold]  "
                  f"Visual perfection: {report.visual_perfection_score:.0f}  "
                  f"Confidence: [{style}]{report.confidence_level}[/{style}]")
    console.print(f"Regressions: {report.correlation_signals.regression_count}  "
                  f"New baselines: {len(report.regression.baselines_created)}")
    for issue in report.critical_issues:
        console.print(f"  [red]CRITICAL[/red] {escape(issue.message)}")
    for fmt, path in reports.items():
        console.print(f"  {fmt.upper()} report: [blue]{path}[/blue]")

    if report.should_fail_build:
        sys.exit(EXIT_BUILD_FAILED)


@cli.command()
@click.option("--target", "-t", prompt="Target URL", help="Website URL to test")
def init(target: str) -> None:
    """Create a default configuration file."""
    config_path = Path(DEFAULT_CONFIG)
    if config_path.exists():
        if not click.confirm(f"{DEFAULT_CONFIG} already exists. Overwrite?"):
            return

    cfg = OrchestratorConfig(target_url=target)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nYou can now customize this file and run:")
    console.print("  [blue]visual-qa run[/blue]")


@cli.group()
def baseline() -> None:
    """Inspect or regenerate visual baselines."""
    pass


@baseline.command("list")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
def baseline_list(config: str) -> None:
    """List recorded baselines."""
    cfg = load_config(config)
    store = FileBaselineStore(Path(cfg.regression.baselines_dir))
    try:
        entries = store.entries()
    except BaselineStoreUnavailableError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_BUILD_FAILED)

    if not entries:
        console.print("[yellow]No baselines recorded yet[/yellow]")
        return
    table = Table(title=f"Baselines in {store.root}")
    table.add_column("Key", style="bold")
    table.add_column("Created")
    table.add_column("Regenerated")
    table.add_column("Image")
    for e in entries:
        table.add_row(e.key, e.created_at, "yes" if e.regenerated else "", e.image_path)
    console.print(table)


@baseline.command("update")
@click.option("--config", "-c", default=DEFAULT_CONFIG, help="Config file path")
@click.confirmation_option(prompt="Overwrite every baseline with a fresh capture?")
def baseline_update(config: str) -> None:
    """Recapture all regression scenarios and overwrite their baselines."""
    cfg = load_config(config)
    orchestrator = Orchestrator(cfg)
    try:
        written = orchestrator.run_regenerate()
    except (ConfigurationError, BaselineStoreUnavailableError) as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        sys.exit(EXIT_CONFIG_ERROR)
    console.print(f"[green]Regenerated {len(written)} baselines[/green]")


if __name__ == "__main__":
    cli()
