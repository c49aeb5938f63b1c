from __future__ import annotations

import json
from typing import Any, Dict, Iterable

import typer

from services.pipeline import RunReport


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_run_report(report: RunReport) -> None:
    echo_heading("Collection Summary")
    for outcome in report.outcomes:
        name = outcome.utility.value.capitalize()
        if outcome.succeeded:
            typer.secho(
                f"{name}: success ({outcome.records_processed} records, "
                f"{outcome.total_records} in history)",
                fg=typer.colors.GREEN,
            )
        else:
            stage = outcome.failed_stage.value if outcome.failed_stage else "unknown"
            typer.secho(
                f"{name}: failed during {stage} - {outcome.error or 'unknown error'}",
                fg=typer.colors.RED,
            )
    if report.finished_at is not None:
        elapsed = (report.finished_at - report.started_at).total_seconds()
        typer.echo(f"Completed at {report.finished_at.isoformat()} (took {round(elapsed)}s)")


def render_document(payload: Any) -> None:
    typer.echo(json.dumps(payload, indent=2))


def render_files(payload: Dict[str, Any]) -> None:
    echo_heading("Documents")
    echo_key_values(
        [
            ("data_directory", payload.get("data_directory")),
            ("total_files", payload.get("total_files")),
        ]
    )
    files = payload.get("files") or []
    if not files:
        typer.echo("No documents exported yet.")
        return
    for item in files:
        typer.echo(
            f"  - {item.get('name')} ({item.get('size')} bytes, updated {item.get('last_modified')})"
        )


def render_health(payload: Dict[str, Any]) -> None:
    echo_heading("Server Health")
    echo_key_values(
        [
            ("status", payload.get("status")),
            ("timestamp", payload.get("timestamp")),
            ("data_directory", payload.get("data_directory")),
        ]
    )
    last_updated = payload.get("last_updated") or {}
    for utility, views in (payload.get("files_available") or {}).items():
        typer.echo()
        echo_heading(utility.capitalize())
        typer.echo(f"last_updated: {last_updated.get(utility) or 'never'}")
        for view, present in views.items():
            typer.echo(f"  - {view}: {'yes' if present else 'missing'}")
