"""Command-line interface for sheetdesk (browser spreadsheet editor)."""

from __future__ import annotations

import asyncio
from pathlib import Path

import click

from sheetdesk import __version__


@click.group()
@click.version_option(version=__version__, prog_name="sheetdesk")
def main() -> None:
    """sheetdesk -- in-memory spreadsheet editor with file import and chat."""


# ---------------------------------------------------------------------------
# helpers
# ---------------------------------------------------------------------------


def _print_sheet(sheet_id: str, name: str, rows: list[list[object]], limit: int) -> None:
    from sheetdesk.grid import format_scalar

    n_cols = max((len(r) for r in rows), default=0)
    click.echo(f"[{sheet_id}] {name} ({len(rows)} x {n_cols})")
    for row in rows[:limit]:
        click.echo("  " + "\t".join(format_scalar(v) for v in row))  # type: ignore[arg-type]
    if len(rows) > limit:
        click.echo(f"  ... {len(rows) - limit} more row(s)")


# ---------------------------------------------------------------------------
# Init
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path())
def init(directory: str) -> None:
    """Write a default sheetdesk.yaml into DIRECTORY."""
    from sheetdesk.config import write_default_config

    path = write_default_config(Path(directory))
    click.echo(f"Config: {path}")


# ---------------------------------------------------------------------------
# Import
# ---------------------------------------------------------------------------


@main.command("import")
@click.argument("files", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--config-dir", type=click.Path(exists=True, file_okay=False), default=None,
              help="Directory holding sheetdesk.yaml.")
@click.option("--rows", "row_limit", default=10, type=int, help="Rows to print per sheet.")
def import_cmd(files: tuple[str, ...], config_dir: str | None, row_limit: int) -> None:
    """Import FILES into a fresh workbook and print the resulting sheets."""
    from sheetdesk.config import load_config
    from sheetdesk.ingest import UploadedFile, ingest_uploads
    from sheetdesk.store import WorkbookStore

    try:
        config = load_config(Path(config_dir) if config_dir else None)
    except ValueError as exc:
        raise click.ClickException(str(exc))

    store = WorkbookStore(config)
    uploads = [UploadedFile.from_bytes(Path(f).name, Path(f).read_bytes()) for f in files]
    result = asyncio.run(ingest_uploads(store, uploads))

    for notice in store.drain_notifications():
        line = f"{notice.title}: {notice.description}" if notice.description else notice.title
        click.echo(line, err=notice.variant == "destructive")

    for sheet_id in result.sheet_ids:
        sheet = store.collection.get(sheet_id)
        _print_sheet(sheet.id, sheet.name, sheet.grid.to_scalars(), row_limit)

    if not result.sheet_ids:
        raise click.ClickException("No sheets imported.")


# ---------------------------------------------------------------------------
# Addressing
# ---------------------------------------------------------------------------


@main.command()
@click.argument("indices", nargs=-1, required=True, type=int)
def label(indices: tuple[int, ...]) -> None:
    """Print the column label for each 0-based column index."""
    from sheetdesk.addressing import column_label

    for idx in indices:
        try:
            click.echo(f"{idx}\t{column_label(idx)}")
        except ValueError as exc:
            raise click.ClickException(str(exc))


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------


@main.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--host", default="127.0.0.1", help="Host to bind to.")
@click.option("--port", type=int, default=None, help="Port (auto-select if omitted).")
@click.option("--no-open", is_flag=True, help="Don't auto-open browser.")
def ui(directory: str, host: str, port: int | None, no_open: bool) -> None:
    """Serve the editor API for DIRECTORY."""
    import socket
    import webbrowser

    import uvicorn

    from sheetdesk.ui.server import create_app

    app = create_app(Path(directory))

    if port is None:
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            s.bind((host, 0))
            port = s.getsockname()[1]

    url = f"http://{host}:{port}"
    click.echo(f"Serving API at {url}/api")
    click.echo("Press Ctrl+C to stop")

    if not no_open:
        import threading
        threading.Timer(0.8, lambda: webbrowser.open(f"{url}/docs")).start()

    try:
        uvicorn.run(app, host=host, port=port, log_level="warning")
    except KeyboardInterrupt:
        click.echo("\nStopped.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.argument("directory", type=click.Path(exists=True, file_okay=False))
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--sheet-id", default=None, help="Filter by sheet ID.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(
    directory: str,
    level: str | None,
    event_type: str | None,
    sheet_id: str | None,
    limit: int,
) -> None:
    """Show structured event log for DIRECTORY."""
    from sheetdesk.logging.sink import EventSink

    sink = EventSink(Path(directory) / "logs")
    events = sink.read(level=level, event_type=event_type, sheet_id=sheet_id, limit=limit)

    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        ts = evt.get("ts", "")
        lvl = evt.get("level", "").upper()
        etype = evt.get("event_type", "")
        msg = evt.get("message", "")
        err = evt.get("error_code")
        line = f"[{ts}] {lvl:7s} {etype}: {msg}"
        if err:
            line += f"  ({err})"
        click.echo(line)
