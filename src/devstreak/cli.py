"""Typer-based CLI for devstreak."""

import asyncio
import json
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .config import DevstreakConfig
from .identity import LocalIdentityProvider
from .journal import count_by_type, read_journal_tail
from .models.entry import EntryDraft, EntryOrigin
from .models.result import OperationResult
from .paths import StatePaths
from .session import AppSession
from .stores.sqlite_ledger import SqliteLedgerStore

app = typer.Typer(
    name="devstreak",
    help="devstreak - daily developer habit tracker with GitHub sync",
    add_completion=False,
)

console = Console()

STATE_DIR_HELP = "Path to state directory (default: DEVSTREAK_STATE_DIR env or ~/.devstreak)"


@app.callback()
def _root(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
):
    """devstreak - daily developer habit tracker with GitHub sync."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_paths(state_dir: Optional[str]) -> tuple[DevstreakConfig, StatePaths]:
    config = DevstreakConfig.from_env(cli_state_dir=state_dir)
    paths = StatePaths.from_config(config)
    if not paths.root.exists():
        console.print(f"[red]Error: State directory not initialized at {config.state_dir}[/red]")
        console.print("[yellow]Run 'devstreak init' first[/yellow]")
        raise typer.Exit(code=1)
    return config, paths


def _open_session(state_dir: Optional[str]) -> AppSession:
    config, _ = _load_paths(state_dir)
    return AppSession.open(config)


def _report(result: OperationResult) -> None:
    """Print a result; exit with code 1 on real failures."""
    if result.success:
        console.print(f"[green]{result.message}[/green]")
        return
    if result.data.get("already_closed"):
        console.print(f"[yellow]{result.message}[/yellow]")
        return
    console.print(f"[red]Error: {result.message}[/red]")
    if result.data.get("not_authenticated"):
        console.print("[yellow]Run 'devstreak login <owner>' first[/yellow]")
    elif result.data.get("needs_reauth"):
        console.print("[yellow]Run 'devstreak login <owner> --github <user> --token <token>'[/yellow]")
    raise typer.Exit(code=1)


@app.command()
def init(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Initialize the devstreak state directory.

    This command is idempotent - it will not overwrite existing data.
    """
    config = DevstreakConfig.from_env(cli_state_dir=state_dir)
    paths = StatePaths.from_config(config)

    if paths.root.exists():
        console.print(f"[yellow]State directory already exists at:[/yellow] {paths.root}")
    else:
        console.print(f"[green]Initializing devstreak state at:[/green] {paths.root}")

    directories_created = []
    for directory in paths.get_all_directories():
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            directories_created.append(directory)

    if directories_created:
        console.print(f"[green]+[/green] Created {len(directories_created)} directories")
    else:
        console.print("[dim]All directories already exist[/dim]")

    if not paths.config_file.exists():
        paths.config_file.write_text(config.to_toml_str(), encoding="utf-8")
        console.print(f"[green]+[/green] Created config: {paths.config_file}")
    else:
        console.print(f"[dim]Config already exists: {paths.config_file}[/dim]")

    if not paths.ledger_db.exists():
        SqliteLedgerStore(paths.ledger_db)
        console.print(f"[green]+[/green] Created ledger: {paths.ledger_db}")
    else:
        console.print(f"[dim]Ledger already exists: {paths.ledger_db}[/dim]")

    if not paths.journal_file.exists():
        paths.journal_file.touch()

    console.print()
    console.print("[bold green]Initialization complete![/bold green]")


@app.command()
def login(
    owner_id: str = typer.Argument(..., help="Local owner name"),
    github: str = typer.Option(None, "--github", "-g", help="GitHub username to link"),
    token: str = typer.Option(None, "--token", help="GitHub personal access token"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Sign in as an owner, optionally linking a GitHub account."""
    with _open_session(state_dir) as session:
        result = session.sign_in(owner_id, github_login=github, token=token)
        _report(result)
        if github and not token and not session.credentials.get(owner_id):
            console.print("[yellow]No GitHub token stored; sync will ask you to re-authenticate[/yellow]")


@app.command()
def logout(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Sign out and forget the stored GitHub token."""
    with _open_session(state_dir) as session:
        _report(session.sign_out())


@app.command()
def add(
    note: str = typer.Argument(..., help="What you did today"),
    title: str = typer.Option(None, "--title", "-t"),
    effort: float = typer.Option(None, "--effort", help="Time spent"),
    unit: str = typer.Option(None, "--unit", help="minutes or hours"),
    difficulty: int = typer.Option(None, "--difficulty", "-d", help="1-5"),
    description: str = typer.Option(None, "--description"),
    mood: str = typer.Option(None, "--mood", "-m", help="One of 😄 😊 😐 😔 😞"),
    tag: str = typer.Option(None, "--tag"),
    day: str = typer.Option(None, "--day", help="Entry day (YYYY-MM-DD, default today)"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Record a manual entry."""
    try:
        draft = EntryDraft(
            note_text=note,
            title=title,
            effort=effort,
            effort_unit=unit,
            difficulty=difficulty,
            description=description,
            mood=mood,
            tag=tag,
            day_key=day,
        )
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    with _open_session(state_dir) as session:
        result = session.create_entry(draft)
        _report(result)
        console.print(f"[dim]Entry ID:[/dim] {result.data['entry_id']}")
        console.print(f"[dim]Current streak:[/dim] {session.streak.current_streak} day(s)")


@app.command()
def edit(
    entry_id: str = typer.Argument(..., help="Entry ID"),
    note: str = typer.Option(None, "--note", "-n"),
    title: str = typer.Option(None, "--title", "-t"),
    effort: float = typer.Option(None, "--effort"),
    unit: str = typer.Option(None, "--unit"),
    difficulty: int = typer.Option(None, "--difficulty", "-d"),
    description: str = typer.Option(None, "--description"),
    mood: str = typer.Option(None, "--mood", "-m"),
    tag: str = typer.Option(None, "--tag"),
    day: str = typer.Option(None, "--day"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Edit fields of an existing entry."""
    supplied = {
        "note_text": note,
        "title": title,
        "effort": effort,
        "effort_unit": unit,
        "difficulty": difficulty,
        "description": description,
        "mood": mood,
        "tag": tag,
        "day_key": day,
    }
    changes = {key: value for key, value in supplied.items() if value is not None}

    with _open_session(state_dir) as session:
        _report(session.edit_entry(entry_id, changes))


@app.command()
def delete(
    entry_id: str = typer.Argument(..., help="Entry ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Delete an entry."""
    if not yes and not typer.confirm(f"Delete entry {entry_id}?"):
        console.print("[dim]Aborted[/dim]")
        raise typer.Exit(code=0)

    with _open_session(state_dir) as session:
        _report(session.delete_entry(entry_id))


@app.command("list")
def list_entries(
    history_range: str = typer.Option("all", "--range", "-r", help="week, month, year or all"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """List entries, newest day first."""
    with _open_session(state_dir) as session:
        result = session.list_entries(history_range)
        if not result.success:
            _report(result)

    entries = result.data["entries"]
    if not entries:
        console.print("[dim]No entries yet[/dim]")
        return

    table = Table(title=f"{len(entries)} Entr{'y' if len(entries) == 1 else 'ies'} ({history_range})")
    table.add_column("Day", style="cyan", no_wrap=True)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Origin", style="magenta")
    table.add_column("Tag", style="yellow")
    table.add_column("Mood")
    table.add_column("Note")

    for entry in entries:
        note = entry.title or entry.note_text
        if len(note) > 60:
            note = note[:57] + "..."
        origin = "github" if entry.origin == EntryOrigin.EXTERNAL_SYNC else "manual"
        table.add_row(entry.day_key, entry.id, origin, entry.tag or "-", entry.mood or "", note)

    console.print(table)


@app.command()
def streak(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Show current and longest streak."""
    with _open_session(state_dir) as session:
        if session.identity is None:
            _report(OperationResult.not_authenticated())
        snapshot = session.streak
        status = session.closure_status()

    console.print(f"[bold]Current streak:[/bold] [green]{snapshot.current_streak}[/green] day(s)")
    console.print(f"[bold]Longest streak:[/bold] {snapshot.longest_streak} day(s)")
    console.print(f"[dim]Last active day:[/dim] {snapshot.last_active_day or '-'}")
    if status is not None:
        console.print(f"[dim]Today ({status.today}):[/dim] {status.state.value}")


@app.command()
def stats(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Show dashboard statistics."""
    with _open_session(state_dir) as session:
        result = session.stats()
    if not result.success:
        _report(result)

    dashboard = result.data["stats"]
    console.print(f"[bold]Total entries:[/bold] {dashboard.total_entries}")
    console.print(f"[bold]Current streak:[/bold] {dashboard.current_streak}")
    console.print(f"[bold]Longest streak:[/bold] {dashboard.longest_streak}")

    if dashboard.top_tags:
        table = Table(title="Top Tags")
        table.add_column("Tag", style="yellow")
        table.add_column("Count", justify="right")
        for item in dashboard.top_tags:
            table.add_row(item.tag, str(item.count))
        console.print(table)

    if dashboard.mood_trend:
        table = Table(title="Mood Trend")
        table.add_column("Mood")
        table.add_column("Count", justify="right")
        for item in dashboard.mood_trend:
            table.add_row(item.mood, str(item.count))
        console.print(table)


@app.command()
def sync(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Fetch recent GitHub commits and merge them into daily entries."""
    with _open_session(state_dir) as session:
        result = session.sync()
    _report(result)
    if result.data.get("trace_path"):
        console.print(f"[dim]Trace:[/dim] {result.data['trace_path']}")


@app.command("close-day")
def close_day(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Call it a day: mark today as finished."""
    with _open_session(state_dir) as session:
        result = session.close_day()
    if "sync_message" in result.data:
        console.print(f"[dim]Sync:[/dim] {result.data['sync_message']}")
    _report(result)


@app.command()
def settings(
    enabled: Optional[bool] = typer.Option(None, "--enable/--disable", help="GitHub sync on or off"),
    auto_create: Optional[bool] = typer.Option(
        None,
        "--auto-create/--no-auto-create",
        help="Write synced commits into entries",
    ),
    daily: Optional[bool] = typer.Option(None, "--daily/--no-daily", help="Scheduled daily sync"),
    daily_time: str = typer.Option(None, "--daily-time", help="Daily sync time (hh:mm)"),
    request_sync: bool = typer.Option(False, "--request-sync", help="Set the remote sync-request flag"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Show or change GitHub sync settings."""
    changes = {}
    if enabled is not None:
        changes["enabled"] = enabled
    if auto_create is not None:
        changes["auto_create_entries"] = auto_create
    if daily is not None:
        changes["daily_sync_enabled"] = daily
    if daily_time is not None:
        changes["daily_sync_time"] = daily_time
    if request_sync:
        changes["sync_requested"] = True

    with _open_session(state_dir) as session:
        if changes:
            _report(session.update_settings(**changes))
        current = session.read_settings()
        if current is None:
            _report(OperationResult.not_authenticated())

    table = Table(title="Sync Settings")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    for key, value in current.model_dump(mode="json").items():
        table.add_row(key, "-" if value is None else str(value))
    console.print(table)


@app.command()
def watch(
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Run the scheduled daily sync until interrupted."""
    session = _open_session(state_dir)
    if session.identity is None:
        session.close()
        _report(OperationResult.not_authenticated())

    console.print(
        f"[green]Watching for daily sync every {session.config.scheduler.poll_interval_seconds:.0f}s "
        f"(Ctrl-C to stop)[/green]"
    )
    loop = asyncio.new_event_loop()
    try:
        session.start_scheduler(loop)
        loop.run_forever()
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")
    finally:
        session.close()
        loop.close()


@app.command("journal-tail")
def journal_tail(
    n: int = typer.Option(20, "--n", help="Number of recent events to display"),
    full: bool = typer.Option(False, "--full", help="Show full payloads with JSON pretty-print"),
    event_types: Optional[list[str]] = typer.Option(None, "--type", "-t", help="Only show this event type (repeatable)"),
    all_owners: bool = typer.Option(False, "--all-owners", help="Include events of every owner"),
    state_dir: str = typer.Option(None, "--state-dir", "-s", help=STATE_DIR_HELP),
):
    """Display the signed-in owner's last N journal events."""
    _, paths = _load_paths(state_dir)
    owner_id = None
    if not all_owners:
        identity = LocalIdentityProvider(paths.identity_file).current()
        if identity is None:
            console.print("[dim]Not signed in; showing events of every owner[/dim]")
        else:
            owner_id = identity.owner_id

    events = read_journal_tail(paths.journal_file, n=n, owner_id=owner_id, event_types=event_types)

    if not events:
        console.print("[dim]No matching events in journal[/dim]")
        return

    if full:
        console.print(f"[bold]Last {len(events)} Journal Event(s)[/bold]\n")
        for i, event in enumerate(events, 1):
            console.print(f"[cyan]Event {i}/{len(events)}[/cyan]")
            console.print(f"  [dim]Event ID:[/dim]    {event.event_id}")
            console.print(f"  [dim]Run ID:[/dim]      {event.run_id}")
            console.print(f"  [dim]Timestamp:[/dim]   {event.ts.strftime('%Y-%m-%d %H:%M:%S')} UTC")
            console.print(f"  [dim]Event Type:[/dim]  [magenta]{event.event_type}[/magenta]")
            console.print(f"  [dim]Owner:[/dim]       {event.owner_id or '-'}")
            console.print("  [dim]Payload:[/dim]")
            for line in json.dumps(event.payload, indent=2, ensure_ascii=False).split("\n"):
                console.print(f"    {line}")
            console.print()
        return

    table = Table(title=f"Last {len(events)} Journal Event(s)")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Event Type", style="magenta")
    table.add_column("Owner", style="yellow")
    table.add_column("Payload", style="dim")

    for event in events:
        payload_str = str(event.payload)
        if len(payload_str) > 60:
            payload_str = payload_str[:57] + "..."
        table.add_row(
            event.ts.strftime("%Y-%m-%d %H:%M:%S"),
            event.event_type,
            event.owner_id or "-",
            payload_str,
        )

    console.print(table)
    counts = ", ".join(f"{count} {event_type}" for event_type, count in count_by_type(events).items())
    console.print(f"[dim]{counts}[/dim]")


@app.command()
def version():
    """Show devstreak version."""
    from . import __version__
    console.print(f"devstreak v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
