"""flagsweep CLI.

Usage:
    flagsweep serve                    Start the API server
    flagsweep flags OWNER REPO         Print a repository's flag registry
    flagsweep analyze OWNER REPO -f X  Analyze flags and stream progress
    flagsweep version                  Show the installed version
"""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape

from src.cli.output import format_event, format_flag_table, format_result
from src.config import get_settings
from src.errors import FlagSweepError, format_error
from src.models import AnalyzeTask, JobMetadata, JobType, RepoCoordinates
from src.services.agent_client import build_agent_client
from src.services.event_stream import EventStreamPublisher
from src.services.flag_parser import parse_flag_file
from src.services.github_client import fetch_registry_file
from src.services.job_launcher import start_job
from src.services.job_store import JobStore
from src.services.result_extractor import ResultExtractor

_log = logging.getLogger(__name__)

app = typer.Typer(
    name="flagsweep",
    help="Feature flag analysis and removal through an autonomous coding agent",
    no_args_is_help=True,
)

console = Console()


@app.command()
def version():
    """Show flagsweep version."""
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as pkg_version

    try:
        v = pkg_version("flagsweep")
    except PackageNotFoundError:
        v = "unknown"
    console.print(f"[bold]flagsweep[/bold] v{v}")
    console.print(f"  mode: {get_settings().mode}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", help="Bind port"),
    log_level: str = typer.Option("info", "--log-level", help="uvicorn log level"),
):
    """Start the API server (single worker: state is held in memory)."""
    import uvicorn

    console.print(f"[bold]Starting flagsweep on {host}:{port} ({get_settings().mode} mode)[/bold]")
    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        workers=1,
        log_level=log_level,
        lifespan="on",
    )


@app.command()
def flags(
    owner: str = typer.Argument(help="Repository owner"),
    repo: str = typer.Argument(help="Repository name"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to read"),
    path: str = typer.Option("config/flags.json", "--path", "-p", help="Registry file path"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """Print the flags declared in a repository's registry file."""
    settings = get_settings()

    async def _run():
        raw = await fetch_registry_file(
            owner, repo, path, ref=branch, token=settings.require_github_token(),
            timeout=settings.request_timeout_seconds,
        )
        return parse_flag_file(raw, path)

    try:
        registry = asyncio.run(_run())
    except FlagSweepError as e:
        console.print(f"[red]{escape(format_error(e))}[/red]")
        raise typer.Exit(1)
    console.print(format_flag_table(registry, as_json=json_output), markup=False, highlight=False, soft_wrap=True)


@app.command()
def analyze(
    owner: str = typer.Argument(help="Repository owner"),
    repo: str = typer.Argument(help="Repository name"),
    flag: list[str] = typer.Option(..., "--flag", "-f", help="Flag key to analyze (repeatable)"),
    branch: str = typer.Option("main", "--branch", "-b", help="Branch to analyze"),
    pattern: Optional[list[str]] = typer.Option(None, "--pattern", help="File glob to search (repeatable)"),
    json_output: bool = typer.Option(False, "--json", help="Print only the result as JSON"),
):
    """Analyze flags in-process and stream the job's progress."""
    settings = get_settings()
    task = AnalyzeTask(
        repo=RepoCoordinates(owner=owner, repo=repo, branch=branch),
        flag_keys=tuple(flag),
        file_patterns=tuple(pattern) if pattern else None,
    )

    async def _run():
        job_store = JobStore()
        client = build_agent_client(settings)
        extractor = ResultExtractor(fetch_attachment=client.fetch_attachment)
        metadata = JobMetadata(owner=owner, repo=repo, branch=branch, flags=list(flag))
        job_id = await start_job(JobType.analyze, task, metadata, job_store, client)
        publisher = EventStreamPublisher(
            job_id, job_store, client, extractor,
            poll_interval=settings.poll_interval_seconds,
            grace_seconds=settings.drain_grace_seconds,
        )
        async for event in publisher.events():
            if not json_output and event.type != "result":
                console.print(format_event(event))
        return job_store.require(job_id)

    try:
        job = asyncio.run(_run())
    except FlagSweepError as e:
        console.print(f"[red]{escape(format_error(e))}[/red]")
        raise typer.Exit(1)

    if job.result is None:
        console.print(f"[yellow]No result available (job {job.status.value}).[/yellow]")
        raise typer.Exit(1)
    console.print(format_result(job.result, as_json=json_output), markup=False, highlight=False, soft_wrap=True)
