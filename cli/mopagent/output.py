"""Rich console output utilities for the mopagent CLI."""

import json
from typing import Any

from rich.console import Console
from rich.table import Table

from schemas.build import BuildResult, StageStatus

console = Console()
error_console = Console(stderr=True)

_STATUS_ICONS = {
    StageStatus.COMPLETED: "[green]✓[/green]",
    StageStatus.FAILED: "[red]✗[/red]",
    StageStatus.RUNNING: "[cyan]…[/cyan]",
    StageStatus.PENDING: "[dim]○[/dim]",
}


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    error_console.print(f"[red]✗[/red] {message}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]![/yellow] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[blue]→[/blue] {message}")


def print_json(data: Any) -> None:
    """Print formatted JSON."""
    console.print_json(json.dumps(data, indent=2, default=str))


def print_config(config: dict[str, dict[str, Any]]) -> None:
    """Print configuration sections as a table."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting", no_wrap=True)
    table.add_column("Value")

    for section, values in config.items():
        for key, value in sorted(values.items()):
            table.add_row(f"{section}.{key}", str(value))

    console.print(table)


def print_build_result(result: BuildResult) -> None:
    """Print per-stage results followed by the outcome line."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Stage")
    table.add_column("Exit", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Error", style="red")

    for stage in result.stages:
        duration = f"{stage.duration_seconds:.2f}s" if stage.duration_seconds is not None else ""
        exit_status = "" if stage.exit_status is None else str(stage.exit_status)
        table.add_row(
            _STATUS_ICONS.get(stage.status, ""),
            stage.stage.value,
            exit_status,
            duration,
            stage.error or "",
        )

    console.print(table)

    if result.success:
        print_success(result.message)
    else:
        kind = result.failure_kind.value if result.failure_kind else "unknown"
        print_error(f"{result.message} [dim]({kind})[/dim]")
    if not result.workspace_removed:
        print_warning("Staging workspace could not be deleted; remove it with `mopagent clean`")


def print_checks(checks: list[tuple[str, bool, str]]) -> None:
    """Print preflight checks as a table of (name, ok, detail)."""
    table = Table(show_header=True, header_style="bold")
    table.add_column("", width=2)
    table.add_column("Check", no_wrap=True)
    table.add_column("Detail", style="dim", overflow="fold")

    for name, ok, detail in checks:
        table.add_row("[green]✓[/green]" if ok else "[red]✗[/red]", name, detail)

    console.print(table)
