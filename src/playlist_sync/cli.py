"""Command-line interface for playlist-sync."""

import json
from enum import Enum
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from playlist_sync import __version__
from playlist_sync.clients.base import RemoteCatalog
from playlist_sync.clients.soundcloud import SoundCloudCatalog
from playlist_sync.clients.spotify import SpotifyCatalog
from playlist_sync.config import Settings, get_settings
from playlist_sync.errors import PlaylistSyncError
from playlist_sync.logging import setup_logging
from playlist_sync.reports.conflicts import generate_conflict_report
from playlist_sync.state.ledger import SyncLedger, SyncStatus
from playlist_sync.state.library import LibraryStore
from playlist_sync.sync.batch import BatchCoordinator, BatchResult
from playlist_sync.sync.engine import SyncEngine, SyncOptions, SyncResult

app = typer.Typer(
    name="playlist-sync",
    help="Sync local playlists to Spotify and SoundCloud.",
    no_args_is_help=True,
)
sync_app = typer.Typer(help="Sync playlists to music platforms.")
library_app = typer.Typer(help="Manage the local playlist library.")
report_app = typer.Typer(help="Generate reports.")
app.add_typer(sync_app, name="sync")
app.add_typer(library_app, name="library")
app.add_typer(report_app, name="report")

console = Console()

STATUS_STYLES = {
    SyncStatus.COMPLETED: "green",
    SyncStatus.PARTIAL: "yellow",
    SyncStatus.FAILED: "red",
    SyncStatus.IN_PROGRESS: "cyan",
    SyncStatus.PENDING: "dim",
}


class PlatformChoice(str, Enum):
    """Platforms selectable on the command line."""

    spotify = "spotify"
    soundcloud = "soundcloud"


class ReportFormatChoice(str, Enum):
    """Report output formats."""

    csv = "csv"
    json = "json"


PlatformOption = Annotated[
    PlatformChoice,
    typer.Option("--platform", "-p", help="Target platform."),
]
OwnerOption = Annotated[
    str,
    typer.Option("--owner", "-o", help="Owner id of the playlists."),
]
NoCreateOption = Annotated[
    bool,
    typer.Option("--no-create", help="Fail instead of creating a missing remote playlist."),
]
NoUpdateOption = Annotated[
    bool,
    typer.Option("--no-update", help="Keep existing remote tracks instead of replacing them."),
]
NoHandleConflictsOption = Annotated[
    bool,
    typer.Option(
        "--no-handle-conflicts",
        help="Skip songs with several matches instead of taking the first one.",
    ),
]


def _init_settings() -> Settings:
    """Load settings, create data directories and configure logging."""
    settings = get_settings()
    settings.ensure_directories()
    setup_logging(level=settings.log_level, log_file=settings.log_path)
    return settings


def _build_catalog(settings: Settings, platform: str) -> RemoteCatalog:
    """Create the remote catalog for a platform.

    Args:
        settings: Application settings.
        platform: Target platform.

    Returns:
        Catalog client for the platform.
    """
    if platform == PlatformChoice.spotify.value:
        if not settings.spotify_client_id or not settings.spotify_client_secret:
            console.print(
                "[red]Error:[/red] PLAYLIST_SYNC_SPOTIFY_CLIENT_ID and "
                "PLAYLIST_SYNC_SPOTIFY_CLIENT_SECRET not set."
            )
            raise typer.Exit(1)
        return SpotifyCatalog(settings)

    return SoundCloudCatalog(settings)


def _build_engine(settings: Settings, platform: str) -> tuple[SyncEngine, LibraryStore]:
    library = LibraryStore(settings.db_path)
    ledger = SyncLedger(settings.db_path)
    catalog = _build_catalog(settings, platform)
    return SyncEngine(settings, catalog, library, ledger), library


def _options(no_create: bool, no_update: bool, no_handle_conflicts: bool) -> SyncOptions:
    return SyncOptions(
        create_if_not_exists=not no_create,
        update_existing=not no_update,
        handle_conflicts=not no_handle_conflicts,
    )


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"playlist-sync version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Playlist Sync - mirror local playlists on music platforms."""
    pass


@sync_app.command("playlist")
def sync_playlist(
    playlist_id: Annotated[str, typer.Argument(help="Local playlist id.")],
    owner: OwnerOption,
    platform: PlatformOption = PlatformChoice.spotify,
    no_create: NoCreateOption = False,
    no_update: NoUpdateOption = False,
    no_handle_conflicts: NoHandleConflictsOption = False,
) -> None:
    """Sync one playlist to a platform."""
    settings = _init_settings()
    engine, _ = _build_engine(settings, platform.value)

    console.print(f"[bold]Syncing playlist {playlist_id} to {platform.value}...[/bold]")

    try:
        result = engine.synchronize(
            playlist_id,
            owner,
            _options(no_create, no_update, no_handle_conflicts),
        )
    except PlaylistSyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _print_sync_result(result)
    if not result.success:
        raise typer.Exit(1)


@sync_app.command("batch")
def sync_batch(
    playlist_ids: Annotated[list[str], typer.Argument(help="Local playlist ids.")],
    owner: OwnerOption,
    platform: PlatformOption = PlatformChoice.spotify,
    no_create: NoCreateOption = False,
    no_update: NoUpdateOption = False,
    no_handle_conflicts: NoHandleConflictsOption = False,
) -> None:
    """Sync several playlists to a platform, one after another."""
    settings = _init_settings()
    engine, library = _build_engine(settings, platform.value)
    coordinator = BatchCoordinator(
        engine,
        library,
        max_batch_size=settings.max_batch_size,
        delay_seconds=settings.batch_delay_seconds,
    )

    console.print(f"[bold]Syncing {len(playlist_ids)} playlists to {platform.value}...[/bold]")

    try:
        result = coordinator.synchronize_many(
            playlist_ids,
            owner,
            _options(no_create, no_update, no_handle_conflicts),
        )
    except PlaylistSyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    _print_batch_result(result)
    if not result.success:
        raise typer.Exit(1)


@app.command("status")
def status(
    playlist_id: Annotated[str, typer.Argument(help="Local playlist id.")],
    platform: PlatformOption = PlatformChoice.spotify,
    limit: Annotated[
        int,
        typer.Option("--limit", "-n", help="Number of recent log entries to show."),
    ] = 10,
) -> None:
    """Show the sync status of a playlist."""
    settings = get_settings()

    if not settings.db_path.exists():
        console.print("[yellow]Playlist has not been synced yet.[/yellow]")
        return

    report = SyncLedger(settings.db_path).get_status(playlist_id, platform.value, log_limit=limit)
    if report is None:
        console.print("[yellow]Playlist has not been synced yet.[/yellow]")
        return

    sync = report.sync
    style = STATUS_STYLES.get(sync.status, "white")

    summary = Table.grid(padding=1)
    summary.add_column(justify="right")
    summary.add_column()
    summary.add_row("Status:", f"[{style}]{sync.status.value}[/{style}]")
    summary.add_row("Remote playlist:", sync.external_id or "-")
    summary.add_row(
        "Last sync:",
        sync.last_sync_at.strftime("%Y-%m-%d %H:%M") if sync.last_sync_at else "-",
    )
    summary.add_row(
        "Tracks:",
        f"{sync.success_count}/{sync.total_count} synced, "
        f"[yellow]{sync.conflict_count} conflicts[/yellow], "
        f"[red]{sync.error_count} errors[/red]",
    )
    if sync.error_message:
        summary.add_row("Error:", f"[red]{sync.error_message}[/red]")
    console.print(summary)

    if report.recent_logs:
        table = Table(title="Recent Activity")
        table.add_column("Action", style="cyan")
        table.add_column("Status")
        table.add_column("Remote URI", style="green")
        table.add_column("Message", style="dim")
        table.add_column("At", style="dim")

        for log in report.recent_logs:
            log_style = STATUS_STYLES.get(log.status, "white")
            table.add_row(
                log.action.value,
                f"[{log_style}]{log.status.value}[/{log_style}]",
                log.remote_uri or "",
                (log.error_message or "")[:60],
                log.created_at.strftime("%H:%M:%S") if log.created_at else "",
            )

        console.print(table)


@library_app.command("import")
def library_import(
    file: Annotated[
        Path,
        typer.Argument(help="JSON file with name, description, isPublic and songs."),
    ],
    owner: OwnerOption,
) -> None:
    """Import a playlist and its songs from a JSON file."""
    settings = _init_settings()

    try:
        payload = json.loads(file.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[red]Error:[/red] Could not read {file}: {e}")
        raise typer.Exit(1)

    if not isinstance(payload, dict) or "name" not in payload:
        console.print("[red]Error:[/red] Playlist file needs at least a 'name' field.")
        raise typer.Exit(1)

    playlist_id = LibraryStore(settings.db_path).import_playlist(owner, payload)
    console.print(
        f"[green]Imported[/green] {payload['name']} "
        f"({len(payload.get('songs', []))} songs) as [bold]{playlist_id}[/bold]"
    )


@report_app.command("conflicts")
def report_conflicts(
    playlist_id: Annotated[str, typer.Argument(help="Local playlist id.")],
    platform: PlatformOption = PlatformChoice.spotify,
    format: Annotated[
        ReportFormatChoice,
        typer.Option("--format", "-f", help="Output format: csv or json."),
    ] = ReportFormatChoice.csv,
    output: Annotated[
        str | None,
        typer.Option(
            "--output",
            "-o",
            help="Output file path (default: auto-generated in reports dir).",
        ),
    ] = None,
) -> None:
    """Generate a report of songs that conflicted during sync."""
    settings = get_settings()

    if not settings.db_path.exists():
        console.print("[yellow]No sync data found. Run a sync first.[/yellow]")
        return

    output_path = generate_conflict_report(
        ledger=SyncLedger(settings.db_path),
        library=LibraryStore(settings.db_path),
        settings=settings,
        playlist_id=playlist_id,
        platform=platform.value,
        format=format.value,
        output_path=output,
    )

    if output_path:
        console.print(f"[green]Report generated:[/green] {output_path}")
    else:
        console.print("[yellow]No conflicts to report.[/yellow]")


def _print_sync_result(result: SyncResult) -> None:
    """Print a sync result summary."""
    style = STATUS_STYLES.get(result.status, "white")
    console.print()

    summary = Table.grid(padding=1)
    summary.add_column(justify="right")
    summary.add_column()

    summary.add_row("[bold]Summary:[/bold]", f"[{style}]{result.message}[/{style}]")
    summary.add_row("Status:", f"[{style}]{result.status.value}[/{style}]")
    summary.add_row("Total:", str(result.stats.total))
    summary.add_row("Synced:", f"[green]{result.stats.success}[/green]")
    summary.add_row("Conflicts:", f"[yellow]{result.stats.conflicts}[/yellow]")
    summary.add_row("Errors:", f"[red]{result.stats.errors}[/red]")

    console.print(summary)

    if result.stats.conflicts > 0:
        console.print(
            "\n[dim]Run 'playlist-sync report conflicts' to see conflicting songs.[/dim]"
        )


def _print_batch_result(result: BatchResult) -> None:
    """Print a batch result table."""
    console.print()

    table = Table(title="Batch Sync")
    table.add_column("Playlist", style="cyan")
    table.add_column("Status")
    table.add_column("Synced", justify="right")
    table.add_column("Conflicts", justify="right")
    table.add_column("Errors", justify="right")
    table.add_column("Message", style="dim")

    for entry in result.results:
        style = STATUS_STYLES.get(entry.result.status, "white")
        table.add_row(
            entry.playlist_name,
            f"[{style}]{entry.result.status.value}[/{style}]",
            str(entry.result.stats.success),
            str(entry.result.stats.conflicts),
            str(entry.result.stats.errors),
            entry.result.message[:60],
        )

    console.print(table)
    console.print(
        f"[bold]{result.successful_syncs}/{result.total_playlists}[/bold] playlists synced, "
        f"[red]{result.failed_syncs}[/red] failed"
    )


@app.command("serve")
def serve(
    port: Annotated[
        int,
        typer.Option(
            "--port",
            "-P",
            help="Port to run the API server on.",
        ),
    ] = 8000,
    host: Annotated[
        str,
        typer.Option(
            "--host",
            "-h",
            help="Host to bind the server to.",
        ),
    ] = "127.0.0.1",
) -> None:
    """Run the HTTP sync API."""
    import uvicorn

    from playlist_sync.web import create_app

    settings = _init_settings()

    if not settings.api_tokens:
        console.print(
            "[yellow]Warning:[/yellow] PLAYLIST_SYNC_API_TOKENS is empty; every request will be rejected."
        )

    console.print(f"[bold green]Starting sync API at http://{host}:{port}[/bold green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    app_instance = create_app(settings)
    uvicorn.run(app_instance, host=host, port=port, log_level="warning")


if __name__ == "__main__":
    app()
