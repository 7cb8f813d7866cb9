"""
PerfSight CLI - Command Line Interface for personal CS2 performance analytics

Provides commands for:
- Analyzing a player's match history
- Generating and inspecting configuration files
"""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from perfsight import __version__
from perfsight.analysis.engine import (
    EnhancedAnalysisEngine,
    assess_data_quality,
    filter_components,
    normalize_components,
)
from perfsight.analysis.models import EnhancedAnalysisResult, ExtractionError, InsufficientData
from perfsight.core.config import (
    PerfSightConfig,
    config_to_dict,
    configure_logging,
    generate_default_config,
    load_config,
)
from perfsight.core.constants import METRIC_LABELS, Severity
from perfsight.core.utils import to_optional_float

app = typer.Typer(
    name="perfsight",
    help="Personal CS2 performance analytics - baselines, tilt, flow and predictive alerts",
    add_completion=False,
)
console = Console()

logger = logging.getLogger(__name__)

SEVERITY_STYLES = {
    Severity.LOW: "green",
    Severity.MODERATE: "yellow",
    Severity.HIGH: "red",
}


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold blue]PerfSight[/bold blue] v{__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-V",
        help="Enable verbose output",
    ),
    config_file: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Path to a configuration file (YAML, TOML or JSON)",
        exists=True,
        dir_okay=False,
    ),
) -> None:
    """PerfSight - Personal CS2 Performance Analytics"""
    config = load_config(config_file)
    configure_logging(config.logging)
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    ctx.obj = config


def _load_history(path: Path) -> tuple[list[Any], dict[str, Any]]:
    """Read a match history file: a JSON list, or an object with a ``matches`` list."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]Error reading history:[/red] {path} is not valid JSON ({e})")
        raise typer.Exit(1) from e

    if isinstance(data, list):
        return data, {}
    if isinstance(data, dict) and isinstance(data.get("matches"), list):
        return data["matches"], data

    console.print(
        "[red]Error reading history:[/red] expected a list of matches "
        "or an object with a 'matches' list"
    )
    raise typer.Exit(1)


@app.command()
def analyze(
    ctx: typer.Context,
    history_path: Path = typer.Argument(
        ...,
        help="JSON file with the player's match history (oldest first)",
        exists=True,
        dir_okay=False,
        resolve_path=True,
    ),
    player: Optional[str] = typer.Option(
        None,
        "--player",
        "-p",
        help="Player identifier (defaults to the file's player_id)",
    ),
    premier_rating: Optional[int] = typer.Option(
        None,
        "--premier-rating",
        "-r",
        help="Current Premier rating used to select tier thresholds",
    ),
    components: Optional[list[str]] = typer.Option(
        None,
        "--component",
        "-c",
        help="Components to include: all, tilt_detection, performance_state, "
        "correlation_analysis, pattern_recognition (repeatable)",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the analysis as JSON to this file",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the analysis as JSON instead of tables",
    ),
) -> None:
    """
    Analyze a player's match history.

    Computes personal baselines, tilt and flow indicators, the current
    performance state, metric correlations and predictive alerts.
    """
    config: PerfSightConfig = ctx.obj or load_config()
    matches, meta = _load_history(history_path)
    player_id = player or str(meta.get("player_id") or "player")
    if premier_rating is None:
        premier_rating = to_optional_float(meta.get("premier_rating"))

    try:
        requested = [c.value for c in normalize_components(components)]
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(2) from e

    engine = EnhancedAnalysisEngine(config)
    try:
        result = engine.analyze(
            matches, player_id, premier_rating=premier_rating, generated_at=datetime.now(UTC)
        )
    except ExtractionError as e:
        console.print(f"[red]Error extracting matches:[/red] {e}")
        raise typer.Exit(1) from e

    if isinstance(result, InsufficientData):
        if as_json:
            typer.echo(json.dumps(result.to_dict(), indent=2))
        else:
            console.print(f"[yellow]Insufficient data:[/yellow] {result.message}")
        raise typer.Exit(1)

    payload = {
        "type": "enhanced_analysis",
        "player_id": player_id,
        "components": requested,
        "match_count": result.match_count,
        "analysis": filter_components(result, requested),
        "data_quality": assess_data_quality(result),
        "generated_at": result.generated_at.isoformat() if result.generated_at else None,
    }

    if output:
        output.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info(f"Wrote analysis to {output}")

    if as_json:
        typer.echo(json.dumps(payload, indent=2))
        return

    _display_result(result)
    if output:
        console.print(f"\n[green]Results exported to:[/green] {output}")


def _display_result(result: EnhancedAnalysisResult) -> None:
    console.print(
        f"\n[bold blue]PerfSight[/bold blue] - {result.player_id} "
        f"({result.match_count} matches, {result.thresholds.tier} tier)\n"
    )
    _display_state(result)
    _display_baselines(result)
    _display_drivers(result)
    _display_alerts(result)

    if result.warnings:
        console.print("[bold yellow]Data quality warnings[/bold yellow]")
        for warning in result.warnings:
            console.print(f"  - {warning}")


def _display_state(result: EnhancedAnalysisResult) -> None:
    """Display the current performance state with tilt and flow indicators."""
    state = result.state
    lines = [
        f"[bold]{state.classification.value}[/bold] (confidence {state.confidence:.0%})",
    ]
    lines.extend(f"  - {item}" for item in state.evidence)
    if state.recommendations:
        lines.append("")
        lines.extend(f"> {item}" for item in state.recommendations)
    console.print(Panel("\n".join(lines), title="Performance State", expand=False))

    tilt = result.tilt
    table = Table(title="Tilt and Flow", show_header=False)
    table.add_column("Property", style="cyan")
    table.add_column("Value")
    style = SEVERITY_STYLES.get(tilt.severity, "white")
    table.add_row("Tilt active", "yes" if tilt.active else "no")
    table.add_row("Tilt severity", f"[{style}]{tilt.severity.value}[/{style}]")
    table.add_row("Cascade length", str(tilt.cascade_length))
    table.add_row("Recovery", tilt.recovery_prediction)
    table.add_row("Action", tilt.recommended_action)
    table.add_row("Flow active", "yes" if result.flow.active else "no")
    table.add_row("Flow last seen", result.flow.last_occurrence)
    table.add_row("Flow boost", result.flow.performance_boost)
    console.print(table)
    console.print()


def _display_baselines(result: EnhancedAnalysisResult) -> None:
    """Display personal baselines table."""
    table = Table(title="Personal Baselines")
    table.add_column("Metric", style="cyan")
    table.add_column("Baseline", justify="right")
    table.add_column("95% CI", justify="right")
    table.add_column("Matches", justify="right")
    table.add_column("Confidence", justify="right")

    for metric, baseline in result.baselines.items():
        if baseline.sample_size == 0:
            continue
        low, high = baseline.confidence_interval
        table.add_row(
            METRIC_LABELS[metric],
            f"{baseline.value:.2f}",
            f"{low:.2f} - {high:.2f}",
            str(baseline.sample_size),
            baseline.confidence_level.value,
        )

    console.print(table)
    console.print()


def _display_drivers(result: EnhancedAnalysisResult) -> None:
    """Display primary performance drivers table."""
    drivers = result.correlation.primary_performance_drivers
    if not drivers:
        console.print("[yellow]No significant performance drivers found[/yellow]\n")
        return

    table = Table(title="Primary Performance Drivers")
    table.add_column("Metric", style="cyan")
    table.add_column("r", justify="right")
    table.add_column("Significance", justify="right")
    table.add_column("Target")

    for driver in drivers:
        table.add_row(
            METRIC_LABELS[driver.metric],
            f"{driver.correlation_to_rating:+.2f}",
            driver.significance.value,
            driver.threshold,
        )

    console.print(table)
    console.print()


def _display_alerts(result: EnhancedAnalysisResult) -> None:
    """Display predictive alerts table."""
    alerts = result.predictive_warnings.immediate_alerts
    if not alerts:
        console.print("[green]No predictive alerts[/green]\n")
        return

    table = Table(title="Predictive Alerts")
    table.add_column("Type", style="cyan")
    table.add_column("Severity")
    table.add_column("Evidence")
    table.add_column("Action")

    for alert in alerts:
        style = SEVERITY_STYLES.get(alert.severity, "white")
        table.add_row(
            alert.alert_type.value,
            f"[{style}]{alert.severity.value}[/{style}]",
            alert.evidence,
            alert.recommended_action,
        )

    console.print(table)
    console.print()


@app.command()
def config(
    ctx: typer.Context,
    init: Optional[Path] = typer.Option(
        None,
        "--init",
        help="Write a default configuration file to this path (.yaml, .yml or .json)",
    ),
    show: bool = typer.Option(
        False,
        "--show",
        help="Print the resolved configuration",
    ),
) -> None:
    """Generate or inspect configuration files."""
    if init is None and not show:
        console.print("Use --init PATH to write a default config or --show to print it")
        raise typer.Exit(1)

    if init is not None:
        if init.exists():
            console.print(f"[red]Error:[/red] {init} already exists")
            raise typer.Exit(1)
        try:
            generate_default_config(init)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from e
        console.print(f"[green]Wrote default configuration to:[/green] {init}")

    if show:
        resolved: PerfSightConfig = ctx.obj or load_config()
        typer.echo(yaml.safe_dump(config_to_dict(resolved), sort_keys=False))


if __name__ == "__main__":
    app()
