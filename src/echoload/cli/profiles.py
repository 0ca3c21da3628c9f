"""``echoload profiles``: list the available run option profiles."""

from __future__ import annotations

from rich.console import Console
from rich.table import Table

from echoload.scenarios.echo_id import PROFILES

console = Console()


def profiles_cmd() -> None:
    """Show every run options profile with its stages and thresholds."""
    table = Table(title="Run Profiles", show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Profile", style="bold")
    table.add_column("Stages")
    table.add_column("Duration", justify="right")
    table.add_column("Thresholds")

    for name, options in PROFILES.items():
        stages = ", ".join(f"{s.duration} -> {s.target}" for s in options.stages)
        thresholds = "; ".join(
            f"{metric}: {', '.join(exprs)}" for metric, exprs in options.thresholds.items()
        )
        table.add_row(name, stages, f"{options.total_duration:g}s", thresholds)

    console.print(table)
