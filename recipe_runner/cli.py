"""CLI entry point for the recipe runner."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
import uuid
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from recipe_runner.artifacts.capture import ArtifactCapture
from recipe_runner.checks.github import GitHubClient
from recipe_runner.classifier.classifier import ResultClassifier
from recipe_runner.executor.engine import ExecutionEngine
from recipe_runner.executor.executor import RecipeExecutor
from recipe_runner.models.config import RunnerConfig
from recipe_runner.models.recipe import TestRecipe, load_selector_hints
from recipe_runner.models.results import ExecutionResult, ScenarioStatus
from recipe_runner.orchestrator import Orchestrator, PullRequestRef, build_ai_client
from recipe_runner.reporter.json_report import load_json_report
from recipe_runner.reporter.markdown_report import render_report
from recipe_runner.synthesizer.synthesizer import ActionSynthesizer

console = Console()

_STATUS_STYLES = {
    ScenarioStatus.PASS: "green",
    ScenarioStatus.FAIL: "red",
    ScenarioStatus.ERROR: "red",
    ScenarioStatus.SKIP: "yellow",
}


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def _load_config(path: Optional[str]) -> RunnerConfig:
    if not path:
        return RunnerConfig.from_env()
    try:
        return RunnerConfig.load(path)
    except FileNotFoundError:
        console.print(f"[red]Config file not found: {path}[/red]")
        console.print("Run 'recipe-runner init' to create a default config.")
        sys.exit(1)


def _load_recipe(path: str) -> TestRecipe:
    try:
        recipe = TestRecipe.load(path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Invalid recipe: {e}[/red]")
        sys.exit(1)
    if recipe.is_empty:
        console.print("[yellow]Recipe contains no scenarios, nothing to run[/yellow]")
        sys.exit(1)
    return recipe


def _print_summary(result: ExecutionResult) -> None:
    table = Table(title=f"Execution {result.execution_id[:8]}")
    table.add_column("Scenario", style="bold")
    table.add_column("Priority")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    for s in result.scenarios:
        style = _STATUS_STYLES.get(s.status, "white")
        table.add_row(s.scenario, s.priority.value, f"[{style}]{s.status.value}[/{style}]",
                      f"{s.duration_ms / 1000:.1f}s")
    console.print(table)
    colour = "green" if result.all_passed else "red"
    console.print(f"[bold {colour}]{result.passed}/{result.total_tests} tests passed[/bold {colour}]"
                  f" ({result.failed} failed, {result.skipped} skipped)")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """AI-guided execution of natural-language test recipes."""
    setup_logging(verbose)


@cli.command()
@click.option("--output", "-o", default="recipe-runner.json", help="Config file path")
@click.option("--base-url", default="", help="Default environment URL to test")
def init(output: str, base_url: str) -> None:
    """Create a default configuration file."""
    config_path = Path(output)
    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    cfg = RunnerConfig(base_url=base_url)
    cfg.save(config_path)
    console.print(f"[green]Created {config_path}[/green]")
    console.print("\nRun a recipe locally with:")
    console.print(f"  [blue]recipe-runner run --recipe recipe.json --config {config_path}[/blue]")


@cli.command()
@click.option("--recipe", "-r", "recipe_file", required=True, help="Path to test recipe JSON")
@click.option("--base-url", "-u", default=None, help="Environment URL (overrides config)")
@click.option("--hints", "hints_file", default=None, help="Path to selector hints JSON")
@click.option("--config", "-c", default=None, help="Config file path (default: environment)")
@click.option("--headed", is_flag=True, help="Show the browser window")
@click.option("--no-video", is_flag=True, help="Disable video recording")
@click.option("--report-out", default=None, help="Where to write the Markdown report")
def run(recipe_file: str, base_url: Optional[str], hints_file: Optional[str], config: Optional[str],
        headed: bool, no_video: bool, report_out: Optional[str]) -> None:
    """Execute a recipe locally and write the Markdown report."""
    cfg = _load_config(config)
    updates = {}
    if headed:
        updates["headless"] = False
    if no_video:
        updates["record_video"] = False
    if updates:
        cfg = cfg.model_copy(update=updates)

    target = base_url or cfg.base_url
    if not target:
        console.print("[red]No base URL: pass --base-url or set it in the config[/red]")
        sys.exit(1)

    recipe = _load_recipe(recipe_file)
    hints = load_selector_hints(hints_file) if hints_file else []

    ai_client = build_ai_client(cfg)
    capture = ArtifactCapture(Path(cfg.runs_dir), uuid.uuid4().hex,
                              record_video=cfg.record_video,
                              capture_screenshots=cfg.capture_screenshots)
    executor = RecipeExecutor(
        cfg,
        synthesizer=ActionSynthesizer(ai_client, target),
        engine=ExecutionEngine(capture),
        classifier=ResultClassifier(ai_client),
        capture=capture,
    )
    result = asyncio.run(executor.execute(recipe, hints))

    _print_summary(result)
    report_path = Path(report_out) if report_out else capture.run_dir / "report.md"
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(render_report(result, dashboard_url=cfg.dashboard_url))
    console.print(f"  Markdown report: [blue]{report_path}[/blue]")
    console.print(f"  Artifacts: [blue]{capture.run_dir}[/blue]")
    if not result.all_passed:
        sys.exit(1)


@cli.command()
@click.argument("results_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--video-url", default=None, help="Public URL of the run video")
@click.option("--dashboard-url", default=None, help="Link shown in the report footer")
@click.option("--output", "-o", default=None, help="Write to a file instead of stdout")
def report(results_json: str, video_url: Optional[str], dashboard_url: Optional[str],
           output: Optional[str]) -> None:
    """Re-render the Markdown report from a saved results.json."""
    try:
        result = load_json_report(Path(results_json))
    except (json.JSONDecodeError, ValueError) as e:
        console.print(f"[red]Could not read {results_json}: {e}[/red]")
        sys.exit(1)

    body = render_report(result, video_url=video_url, dashboard_url=dashboard_url)
    if output:
        Path(output).write_text(body)
        console.print(f"[green]Report written to {output}[/green]")
    else:
        click.echo(body)


@cli.command()
@click.option("--owner", required=True, help="Repository owner")
@click.option("--repo", required=True, help="Repository name")
@click.option("--pr", "pr_number", required=True, type=int, help="Pull request number")
@click.option("--sha", required=True, help="Head commit SHA")
@click.option("--recipe", "-r", "recipe_file", required=True, help="Path to test recipe JSON")
@click.option("--base-url", "-u", default=None, help="Environment URL (overrides config)")
@click.option("--hints", "hints_file", default=None, help="Path to selector hints JSON")
@click.option("--label", "labels", multiple=True, help="PR label (repeatable)")
@click.option("--config", "-c", default=None, help="Config file path (default: environment)")
def github(owner: str, repo: str, pr_number: int, sha: str, recipe_file: str,
           base_url: Optional[str], hints_file: Optional[str], labels: tuple[str, ...],
           config: Optional[str]) -> None:
    """Run the full flow against a pull request (check run + comment).

    Reads the API token from GITHUB_TOKEN. An explicit invocation always
    counts as enabled; trigger labels in the config still apply.
    """
    token = os.environ.get("GITHUB_TOKEN")
    if not token:
        console.print("[red]GITHUB_TOKEN is not set[/red]")
        sys.exit(1)

    cfg = _load_config(config).model_copy(update={"automation_enabled": True})
    recipe = _load_recipe(recipe_file)
    hints = load_selector_hints(hints_file) if hints_file else []
    pull_request = PullRequestRef(owner=owner, repo=repo, number=pr_number, head_sha=sha)

    orchestrator = Orchestrator(cfg, build_ai_client(cfg), GitHubClient(token))
    outcome = asyncio.run(orchestrator.run(
        recipe, pull_request, base_url=base_url, selector_hints=hints, labels=list(labels)))

    if not outcome.triggered:
        console.print(f"[yellow]Not triggered: {outcome.reason}[/yellow]")
        return
    if outcome.result is not None:
        _print_summary(outcome.result)
    if outcome.success:
        console.print(f"[green]Report posted to {pull_request.slug}[/green]")
    else:
        console.print(f"[red]Run failed: {outcome.error}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli()
