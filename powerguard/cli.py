"""CLI entry point for powerguard."""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

import powerguard
from powerguard.actionables.types import TYPE_DESCRIPTIONS, ActionableType

app = typer.Typer(
    name="powerguard",
    help="AI-assisted battery and data optimizer for Android devices.",
    no_args_is_help=True,
)
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug logging"
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Could not read {path}: {e}[/]")
        raise typer.Exit(1)


def _severity_style(severity: str) -> str:
    return {"HIGH": "red", "MEDIUM": "yellow"}.get(severity, "dim")


@app.command()
def analyze(
    snapshot: Path = typer.Argument(..., help="Device snapshot JSON file"),
    goal: Optional[str] = typer.Option(
        None, "--goal", "-g", help="What you want to achieve, in plain words"
    ),
    model: Optional[str] = typer.Option(
        None, "--model", "-m", help="LLM model to use"
    ),
    offline: bool = typer.Option(
        False, "--offline", help="Skip inference and use the heuristic analysis"
    ),
    as_json: bool = typer.Option(
        False, "--json", help="Print the response as JSON"
    ),
) -> None:
    """Analyze a device snapshot and propose actionables."""
    from powerguard.core.analyzer import PowerGuardAnalyzer
    from powerguard.core.config import InferenceConfig
    from powerguard.core.models import DeviceSnapshot
    from powerguard.core.providers import detect_provider, get_provider_class

    config = InferenceConfig.from_env(model=model)
    if offline:
        config = replace(config, offline=True)

    if not config.offline:
        try:
            provider_class = get_provider_class(detect_provider(config.model))
        except ImportError as e:
            console.print(f"[yellow]{e}. Falling back to offline analysis.[/]")
            config = replace(config, offline=True)
        else:
            has_key, key_name = provider_class.check_api_key()
            if not has_key:
                console.print(
                    f"[yellow]{key_name} environment variable not set. "
                    f"Falling back to offline analysis.[/]"
                )
                config = replace(config, offline=True)

    device_snapshot = DeviceSnapshot.from_dict(_load_json(snapshot))
    with PowerGuardAnalyzer(config=config) as analyzer:
        response = analyzer.analyze(device_snapshot, goal)

    if as_json:
        typer.echo(json.dumps(response.to_dict(), indent=2))
        return

    console.print(f"[bold]{response.message}[/]")
    scores = Table(title="Scores")
    scores.add_column("Battery", justify="right")
    scores.add_column("Data", justify="right")
    scores.add_column("Performance", justify="right")
    scores.add_row(
        f"{response.battery_score:.0f}",
        f"{response.data_score:.0f}",
        f"{response.performance_score:.0f}",
    )
    console.print(scores)

    if response.insights:
        table = Table(title="Insights")
        table.add_column("Type", style="cyan")
        table.add_column("Severity")
        table.add_column("Title")
        table.add_column("Description")
        for insight in response.insights:
            severity = insight.severity.value
            table.add_row(
                insight.type.value,
                f"[{_severity_style(severity)}]{severity}[/]",
                insight.title,
                insight.description,
            )
        console.print(table)

    if response.actionables:
        table = Table(title="Actionables")
        table.add_column("Type", style="cyan")
        table.add_column("Package")
        table.add_column("Description")
        for actionable in response.actionables:
            table.add_row(
                actionable.type_name,
                actionable.target_package,
                actionable.description,
            )
        console.print(table)

    console.print(
        f"[dim]Estimated savings: "
        f"{response.estimated_savings.battery_minutes:g} min battery, "
        f"{response.estimated_savings.data_mb:g} MB data[/]"
    )


@app.command()
def execute(
    actionables: Path = typer.Argument(
        ..., help="JSON file with an actionable list or an analysis response"
    ),
    serial: Optional[str] = typer.Option(
        None, "--serial", "-s", help="adb serial of the target device"
    ),
    revert: bool = typer.Option(
        False, "--revert", help="Undo the actionables instead of applying them"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Show what would run without touching the device"
    ),
) -> None:
    """Apply (or revert) actionables on a connected device."""
    from powerguard.actionables.dispatcher import ActionableDispatcher, result_keys
    from powerguard.actionables.platform import AdbPlatform, NullPlatform
    from powerguard.actionables.registry import build_registry
    from powerguard.core.models import Actionable

    data = _load_json(actionables)
    if isinstance(data, dict):
        data = data.get("actionables") or data.get("actionable") or []
    if not isinstance(data, list):
        console.print("[red]Expected a list of actionables.[/]")
        raise typer.Exit(1)
    items = [Actionable.from_dict(item) for item in data if isinstance(item, dict)]
    if not items:
        console.print("[yellow]No actionables to run.[/]")
        return

    platform = NullPlatform()
    if not dry_run:
        adb = AdbPlatform(serial=serial)
        if adb.is_connected():
            platform = adb
            console.print(f"[dim]Device SDK level: {adb.sdk_level}[/]")
        else:
            console.print(
                "[yellow]No device reachable over adb; every actionable "
                "will be reported as unsupported.[/]"
            )

    dispatcher = ActionableDispatcher(build_registry(platform))

    if dry_run:
        table = Table(title="Dry run")
        table.add_column("ID", style="dim")
        table.add_column("Type", style="cyan")
        table.add_column("Package")
        table.add_column("Supported")
        for item in items:
            supported = dispatcher.is_supported(item.type)
            table.add_row(
                item.id,
                item.type_name,
                item.target_package,
                "[green]yes[/]" if supported else "[red]no[/]",
            )
        console.print(table)
        return

    results = dispatcher.revert(items) if revert else dispatcher.dispatch(items)

    table = Table(title="Revert results" if revert else "Results")
    table.add_column("ID", style="dim")
    table.add_column("Type", style="cyan")
    table.add_column("Status")
    table.add_column("Detail")
    for item, key in zip(items, result_keys(items)):
        result = results[key]
        status = "[green]ok[/]" if result.succeeded else "[red]failed[/]"
        table.add_row(item.id, item.type_name, status, result.detail)
    console.print(table)

    if not all(r.succeeded for r in results.values()):
        raise typer.Exit(1)


@app.command("list-actionables")
def list_actionables() -> None:
    """List supported actionable types."""
    table = Table(title="Supported Actionables")
    table.add_column("Type", style="cyan")
    table.add_column("Description")
    for actionable_type in ActionableType:
        table.add_row(actionable_type.value, TYPE_DESCRIPTIONS[actionable_type])
    console.print(table)


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"powerguard {powerguard.__version__}")
