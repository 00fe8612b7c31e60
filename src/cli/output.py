"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich table output (default) and machine-parseable
JSON output (--json flag). All formatting goes through these functions
so the CLI commands stay clean.
"""

import json

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from src.models import AgentResult, AnalysisResult, Flag, RemovalResult
from src.services.event_stream import StreamEvent

console = Console()

# Status color map (matches web UI domain colors)
STATUS_COLORS = {
    "pending": "yellow",
    "running": "blue",
    "completed": "green",
    "failed": "red",
    "cancelled": "dim",
}

LEVEL_COLORS = {
    "info": "white",
    "warn": "yellow",
    "error": "red",
    "debug": "dim",
}

RISK_COLORS = {
    "low": "green",
    "medium": "yellow",
    "high": "red",
}


def _render(renderable) -> str:
    with console.capture() as capture:
        console.print(renderable)
    return capture.get()


def format_flag_table(flags: list[Flag], as_json: bool = False) -> str:
    """Format registry flags as a Rich table or JSON.

    Args:
        flags: Flags in registry order.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    if as_json:
        return json.dumps([f.model_dump(by_alias=True, exclude_none=True) for f in flags], indent=2)

    if not flags:
        return "No flags found."

    table = Table(title="Flags", show_lines=False)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("State")
    table.add_column("Owner")
    table.add_column("Last Modified")
    table.add_column("Description", style="white")

    for flag in flags:
        table.add_row(
            escape(flag.key),
            escape(flag.state),
            escape(flag.owner or "-"),
            (flag.last_modified or "-")[:19],
            escape(flag.description or ""),
        )
    return _render(table)


def format_event(event: StreamEvent) -> str:
    """Format one stream event as a single console markup line."""
    data = event.data or {}
    if event.type == "log":
        color = LEVEL_COLORS.get(data.get("level"), "white")
        return f"[{color}]{data.get('level', 'info'):>5}[/{color}] {escape(data.get('message', ''))}"
    if event.type == "status":
        color = STATUS_COLORS.get(data.get("status"), "white")
        return f"[bold]status[/bold] [{color}]{data.get('status')}[/{color}]"
    if event.type == "complete":
        color = STATUS_COLORS.get(data.get("status"), "white")
        suffix = f" ({escape(data['error'])})" if data.get("error") else ""
        return f"[bold]complete[/bold] [{color}]{data.get('status')}[/{color}]{suffix}"
    if event.type == "error":
        return f"[red]error[/red] {escape(data.get('message', ''))}"
    return f"[bold]{event.type}[/bold]"


def format_result(result: AgentResult, as_json: bool = False) -> str:
    """Format an analysis or removal result as Rich output or JSON.

    Args:
        result: Extracted result.
        as_json: If True, return JSON string instead of Rich output.

    Returns:
        Formatted string output.
    """
    if as_json:
        return result.model_dump_json(indent=2)

    if isinstance(result, AnalysisResult):
        table = Table(title="Flag Analysis", show_lines=True)
        table.add_column("Flag", style="cyan", no_wrap=True)
        table.add_column("Refs", justify="right")
        table.add_column("Files", justify="right")
        table.add_column("Risk")
        table.add_column("Confidence", justify="right")
        table.add_column("Recommendation")
        for flag in result.flags:
            color = RISK_COLORS.get(flag.risk_level, "white")
            table.add_row(
                escape(flag.key),
                str(flag.reference_count),
                str(len(flag.affected_files)),
                f"[{color}]{flag.risk_level}[/{color}]",
                f"{flag.confidence:.0%}",
                escape(flag.recommendation),
            )
        summary = result.summary
        return _render(table) + (
            f"{summary.total_flags} flags, {summary.total_references} references, "
            f"~{summary.estimated_effort_hours:g}h estimated effort\n"
        )

    removal: RemovalResult = result
    lines = []
    if removal.pr_url:
        lines.append(f"[green]Pull request:[/green] {removal.pr_url}")
    if removal.branch:
        lines.append(f"Branch: {removal.branch}")
    lines.append(f"Flags removed: {', '.join(removal.summary.flags_removed) or 'none'}")
    lines.append(f"Files modified: {removal.summary.files_modified}")
    if removal.summary.tests_passed is not None:
        lines.append(f"Tests passed: {'yes' if removal.summary.tests_passed else 'no'}")
    for error in removal.errors or []:
        lines.append(f"[red]Error:[/red] {escape(error)}")
    if removal.diff:
        lines.append("")
        lines.append(escape(removal.diff))
    title = "Removal Succeeded" if removal.pr_url else "Removal Incomplete"
    return _render(Panel("\n".join(lines), title=title))
