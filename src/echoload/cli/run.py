"""``echoload run``: execute the echo-id scenario with live terminal output."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from echoload._internal.errors import EchoLoadError
from echoload.engine.runner import LoadTestRunner
from echoload.scenarios.echo_id import build_scenario

if TYPE_CHECKING:
    from echoload.metrics.models import MetricSnapshot, TestResult

console = Console(stderr=True)

# Same exit code k6 uses when thresholds are crossed.
THRESHOLDS_FAILED_EXIT_CODE = 99


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------


def _parse_env_overrides(pairs: list[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` strings from repeated ``--env`` flags.

    Raises:
        typer.BadParameter: If a pair has no ``=`` or an empty key.
    """
    overrides: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            msg = f"--env expects KEY=VALUE, got {pair!r}"
            raise typer.BadParameter(msg)
        overrides[key] = value
    return overrides


# ---------------------------------------------------------------------------
# Rich display
# ---------------------------------------------------------------------------


def _make_live_table(snapshot: MetricSnapshot | None) -> Table:
    """Build the live metrics table for the latest tick."""
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Status", "Starting...")
        return table

    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.0f}s")
    table.add_row("Virtual Users", str(snapshot.active_users))
    table.add_row("Requests/sec", f"{snapshot.requests_per_second:.1f}")
    table.add_row("p95 Latency", f"{snapshot.latency_p95:.1f}ms")
    table.add_row("p99 Latency", f"{snapshot.latency_p99:.1f}ms")
    table.add_row("Failed Requests", str(snapshot.total_errors))
    table.add_row("Checks Passed", f"{snapshot.checks_rate * 100:.2f}%")
    return table


def _print_summary(result: TestResult) -> None:
    """Print run summary, per-check and per-threshold tables."""
    summary = result.final_summary
    table = Table(title="Run Summary", show_header=True, header_style="bold green", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Scenario", result.scenario_name)
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    if summary is not None:
        table.add_row(
            "http_reqs", f"{summary.total_requests} ({summary.requests_per_second:.1f}/s)"
        )
        table.add_row("iterations", str(summary.iterations))
        table.add_row(
            "http_req_duration",
            f"avg={summary.latency_avg:.1f}ms p(90)={summary.latency_p90:.1f}ms "
            f"p(95)={summary.latency_p95:.1f}ms p(99)={summary.latency_p99:.1f}ms",
        )
        table.add_row("http_req_failed", f"{summary.error_rate * 100:.2f}%")
        table.add_row("checks", f"{summary.checks_rate * 100:.2f}%")
    console.print(table)

    if result.checks:
        checks_table = Table(
            title="Checks", show_header=True, header_style="bold cyan", expand=True
        )
        checks_table.add_column("Check")
        checks_table.add_column("Passed", justify="right")
        checks_table.add_column("Failed", justify="right")
        checks_table.add_column("Rate", justify="right")
        for tally in result.checks.values():
            mark = "[green]✓[/green]" if tally.fails == 0 else "[red]✗[/red]"
            checks_table.add_row(
                f"{mark} {tally.name}",
                str(tally.passes),
                str(tally.fails),
                f"{tally.pass_rate * 100:.2f}%",
            )
        console.print(checks_table)

    if result.thresholds:
        thr_table = Table(
            title="Thresholds", show_header=True, header_style="bold cyan", expand=True
        )
        thr_table.add_column("Metric")
        thr_table.add_column("Expression")
        thr_table.add_column("Actual", justify="right")
        thr_table.add_column("Result", justify="right")
        for outcome in result.thresholds:
            thr_table.add_row(
                outcome.threshold.metric,
                outcome.threshold.source,
                f"{outcome.actual:.2f}",
                "[green]PASS[/green]" if outcome.passed else "[red]FAIL[/red]",
            )
        console.print(thr_table)


# ---------------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------------


def run_cmd(
    profile: str = typer.Option(
        "default",
        "--profile",
        "-p",
        help="Run options profile: default (15s ramp to 300 users) or gradual.",
    ),
    env: list[str] | None = typer.Option(
        None,
        "--env",
        "-e",
        help="Set an environment variable for the scenario, e.g. -e MY_APP_URL=http://svc/items/.",
    ),
    seed: int | None = typer.Option(
        None,
        "--seed",
        help="Seed the id generator for a reproducible request sequence.",
    ),
    tick_interval: float = typer.Option(
        1.0,
        "--tick-interval",
        help="Seconds between virtual user count adjustments.",
        min=0.05,
    ),
    summary_export: Path | None = typer.Option(
        None,
        "--summary-export",
        help="Write the run summary as JSON to this path.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose (DEBUG) logging.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Emit log records as JSON lines.",
    ),
) -> None:
    """Run the echo-id scenario against MY_APP_URL."""
    environ = {**os.environ, **_parse_env_overrides(env or [])}

    try:
        scenario = build_scenario(environ, profile=profile)
    except EchoLoadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    console.print(
        Panel(
            f"[bold]Scenario:[/bold] {scenario.name}\n"
            f"[bold]Profile:[/bold]  {profile}\n"
            f"[bold]Stages:[/bold]   {scenario.options.describe()}\n"
            f"[bold]Target:[/bold]   {environ.get('MY_APP_URL', '')}<id>",
            title="echoload",
            border_style="cyan",
        )
    )

    try:
        with Live(
            _make_live_table(None),
            console=console,
            refresh_per_second=2,
            transient=True,
        ) as live:
            runner = LoadTestRunner(
                scenario,
                tick_interval=tick_interval,
                seed=seed,
                on_snapshot=lambda snapshot: live.update(_make_live_table(snapshot)),
                log_level=logging.DEBUG if verbose else logging.INFO,
                json_logs=json_logs,
            )
            result = runner.run()
    except EchoLoadError as exc:
        console.print(f"[red]Load test failed:[/red] {exc}")
        raise typer.Exit(code=1) from exc

    _print_summary(result)

    if summary_export is not None:
        summary_export.parent.mkdir(parents=True, exist_ok=True)
        summary_export.write_text(json.dumps(result.to_dict(), indent=2))
        console.print(f"[green]Summary written to[/green] {summary_export}")

    if not result.passed:
        console.print("[red]FAIL:[/red] one or more thresholds were crossed")
        raise typer.Exit(code=THRESHOLDS_FAILED_EXIT_CODE)

    console.print("[green]Load test completed successfully.[/green]")
