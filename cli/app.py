from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import typer
import uvicorn

from cli.client import ApiClient
from cli.config import CLIConfig, load_config
from cli.render import render_document, render_files, render_health, render_run_report
from logging_config import configure_logging
from services.errors import CollectorError
from services.pipeline import build_orchestrator

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    config: CLIConfig
    client: ApiClient


app = typer.Typer(
    help="Collect gas and electric usage from the utility portal and inspect exported documents.",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


@app.callback()
def main(
    ctx: typer.Context,
    base_url: Optional[str] = typer.Option(
        None,
        "--base-url",
        "-b",
        help="Document server base URL (defaults to API_BASE_URL env or http://localhost:3000).",
    ),
    timeout: Optional[float] = typer.Option(
        None,
        "--timeout",
        help="Seconds to wait for the document server.",
    ),
) -> None:
    """Entry point for the CLI."""
    config = load_config(base_url=base_url, timeout=timeout)
    client = ApiClient(config)
    ctx.obj = CLIState(config=config, client=client)
    ctx.call_on_close(client.close)


@app.command("collect")
def collect_command() -> None:
    """Run the collection pipeline once; exits 1 unless a utility succeeded."""
    configure_logging()
    try:
        report = build_orchestrator().run()
    except CollectorError as exc:
        logger.error("Collection aborted: %s", exc, extra={"reason": type(exc).__name__})
        typer.secho(f"Collection aborted: {exc}", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1) from exc

    render_run_report(report)
    if not report.succeeded:
        typer.secho("All data collection attempts failed.", fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)


@app.command("serve")
def serve_command(
    host: str = typer.Option("0.0.0.0", "--host", envvar="HOST", help="Interface to bind."),
    port: int = typer.Option(3000, "--port", envvar="PORT", help="Port to listen on."),
) -> None:
    """Serve the exported documents over HTTP."""
    uvicorn.run("app.main:app", host=host, port=port)


@app.command("show")
def show_command(
    ctx: typer.Context,
    utility: str = typer.Argument(..., help="gas or electric."),
    view: str = typer.Argument("latest", help="latest, history, recent, monthly, energy-stats or raw."),
) -> None:
    """Print one exported document from the server."""
    state = _get_state(ctx)
    render_document(state.client.get_document(utility, view))


@app.command("files")
def files_command(ctx: typer.Context) -> None:
    """List documents available on the server."""
    state = _get_state(ctx)
    render_files(state.client.list_files())


@app.command("health")
def health_command(ctx: typer.Context) -> None:
    """Show per-utility document presence and freshness."""
    state = _get_state(ctx)
    render_health(state.client.health())
