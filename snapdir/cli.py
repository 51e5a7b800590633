import functools
from datetime import datetime
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from snapdir import __version__
from snapdir.config import DEFAULT_CONFIG, coerce_value, find_repository_root, save_config
from snapdir.diff import compute_diff, display_diff, working_tree_status
from snapdir.errors import SnapdirError
from snapdir.gitsync import git_args, run_git
from snapdir.log import read_logs
from snapdir.repository import Repository, initialize_repository
from snapdir.snapshot import create_snapshot_store
from snapdir.trash import TrashStore

# Short command names, honoured while enable_aliases is true
ALIASES = {
    "s": "snapshot",
    "l": "list",
    "sh": "show",
    "r": "restore",
    "d": "diff",
    "st": "status",
    "log": "history",
    "c": "clean",
    "b": "branch",
    "sw": "switch",
    "t": "trash",
    "sync": "git-sync",
    "save": "git-save",
    "back": "git-back",
    "share": "git-share",
}


def _start_dir(ctx):
    return ctx.find_root().params.get("directory") or Path.cwd()


def _repo(ctx):
    """The repository containing the start directory, or the start directory itself."""
    start = _start_dir(ctx)
    return Repository(find_repository_root(start) or start)


def _aliases_enabled(ctx):
    repo = _repo(ctx)
    if not repo.is_initialized():
        return True
    try:
        return repo.load_config().get("enable_aliases", True)
    except SnapdirError:
        return True


class AliasedGroup(click.Group):
    """click.Group that also accepts the short names in ALIASES."""

    def get_command(self, ctx, cmd_name):
        command = super().get_command(ctx, cmd_name)
        if command is not None:
            return command
        target = ALIASES.get(cmd_name)
        if target and _aliases_enabled(ctx):
            return super().get_command(ctx, target)
        return None

    def resolve_command(self, ctx, args):
        _, command, args = super().resolve_command(ctx, args)
        return (command.name if command else None), command, args


def handle_errors(f):
    """Turn SnapdirError into a red message and exit code 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except SnapdirError as e:
            Console(stderr=True).print(f"[red]Error:[/red] {escape(str(e))}")
            raise SystemExit(1)

    return wrapper


def _format_time(record, fmt="%d/%m %H:%M"):
    parsed = record.created_datetime()
    return parsed.strftime(fmt) if parsed else record.created_at


def _relative_age(created, now=None):
    """'a few minutes ago' / 'N hours ago' / 'N days ago', else the date."""
    now = now or datetime.now(created.tzinfo)
    seconds = (now - created).total_seconds()
    if seconds < 3600:
        return "a few minutes ago"
    if seconds < 24 * 3600:
        hours = int(seconds // 3600)
        return f"{hours} hour{'s' if hours != 1 else ''} ago"
    if seconds < 7 * 24 * 3600:
        days = int(seconds // (24 * 3600))
        return f"{days} day{'s' if days != 1 else ''} ago"
    return created.strftime("%d %b %Y")


@click.group(cls=AliasedGroup)
@click.version_option(version=__version__, prog_name="snapdir")
@click.option(
    "-C", "--directory",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Run as if started in this directory.",
)
def main(directory):
    """snapdir: snapshot history for a working directory.

    Special ids: HEAD (latest snapshot), PREV (the one before it).
    """


@main.command()
@click.pass_context
@handle_errors
def init(ctx):
    """Initialize a repository in the current directory."""
    console = Console()
    repo, created = initialize_repository(_start_dir(ctx))
    if not created:
        count = len(repo.load_index())
        console.print(f"Repository already exists at {repo.root}")
        console.print(f"  [dim]{count} snapshot(s)[/dim]")
        latest = repo.load_index().latest()
        if latest:
            console.print(f"  [dim]Latest: {latest.id} - {escape(latest.message)}[/dim]")
        return
    console.print(f"[green]Initialized snapdir repository in {repo.metadata_dir}[/green]")
    console.print('  Next: [bold]snapdir snapshot -m "first snapshot"[/bold]')


@main.command()
@click.option("-m", "--message", required=True, help="Snapshot message.")
@click.pass_context
@handle_errors
def snapshot(ctx, message):
    """Capture the working tree as a new snapshot."""
    console = Console()
    if not message.strip():
        console.print("[red]Snapshot message cannot be empty.[/red]")
        raise SystemExit(1)

    store = create_snapshot_store(_repo(ctx))
    record = store.create(message)
    console.print(f"[green]Snapshot created:[/green] [bold cyan]{record.id}[/bold cyan]")
    console.print(f"  Message: {escape(record.message)}")
    console.print(f"  Files:   {record.file_count}")


@main.command("list")
@click.pass_context
@handle_errors
def list_cmd(ctx):
    """List snapshots, oldest first."""
    console = Console()
    repo = _repo(ctx)
    records = create_snapshot_store(repo).list()
    if not records:
        console.print("[dim]No snapshots yet.[/dim]")
        console.print('  Create one with: [bold]snapdir snapshot -m "message"[/bold]')
        return

    table = Table(title=f"Snapshots ({repo.root})")
    table.add_column("", width=1)
    table.add_column("ID", style="bold cyan", no_wrap=True)
    table.add_column("Created", style="dim")
    table.add_column("Files", justify="right")
    table.add_column("Message")
    for i, record in enumerate(records):
        marker = "[green]●[/green]" if i == len(records) - 1 else ""
        table.add_row(marker, record.id, _format_time(record), str(record.file_count), escape(record.message))
    console.print(table)


@main.command()
@click.argument("snapshot_id")
@click.pass_context
@handle_errors
def show(ctx, snapshot_id):
    """Show a snapshot's details and file list."""
    console = Console()
    record = create_snapshot_store(_repo(ctx)).show(snapshot_id)
    console.print("[bold]Snapshot details[/bold]")
    console.print(f"  ID:      [cyan]{record.id}[/cyan]")
    console.print(f"  Date:    {_format_time(record, '%d/%m/%Y %H:%M:%S')}")
    console.print(f"  Hash:    {record.content_hash}")
    console.print(f"  Files:   {record.file_count}")
    console.print(f"  Message: {escape(record.message)}")
    if record.files:
        console.print("\n[bold]Files:[/bold]")
        for path in record.files:
            console.print(f"  • {escape(path)}")


@main.command()
@click.argument("snapshot_id")
@click.option("--force", is_flag=True, help="Restore over the working tree (backup + trash first).")
@click.pass_context
@handle_errors
def restore(ctx, snapshot_id, force):
    """Restore a snapshot into _restore_<id>/, or over the working tree with --force."""
    console = Console()
    result = create_snapshot_store(_repo(ctx)).restore(snapshot_id, force=force)

    if not result.forced:
        console.print(f"[green]Restored {result.snapshot_id}[/green] into {result.target}")
        return

    if result.backup:
        console.print(f"  Backup snapshot: [cyan]{result.backup.id}[/cyan]")
    if result.trash_batch:
        console.print(f"  Previous files moved to trash: [cyan]{result.trash_batch}[/cyan]")
    console.print(f"[green]Restored {result.snapshot_id}[/green] over the working tree ({len(result.files)} files)")


@main.command()
@click.argument("first")
@click.argument("second")
@click.pass_context
@handle_errors
def diff(ctx, first, second):
    """Compare the file lists of two snapshots (e.g. diff PREV HEAD)."""
    console = Console()
    repo = _repo(ctx).require_initialized()
    result = compute_diff(repo.load_index(), first, second, notify=lambda m: console.print(f"[dim]{m}[/dim]"))
    display_diff(result, console)


@main.command()
@click.pass_context
@handle_errors
def status(ctx):
    """Show files that are new or missing since the latest snapshot."""
    console = Console()
    repo = _repo(ctx)
    if not repo.is_initialized():
        console.print("[red]Not a snapdir repository.[/red] Run 'snapdir init' to create one.")
        return

    st = working_tree_status(repo)
    console.print(f"[bold]Repository status[/bold] ({repo.root})")
    console.print(f"  Branch: [cyan]{escape(repo.load_index().label)}[/cyan]")

    if st.latest is None:
        console.print("  [dim]No snapshots yet.[/dim]")
        console.print(f"\n[bold]Files ready for the first snapshot: {len(st.current_files)}[/bold]")
        for path in st.current_files[:10]:
            console.print(f"  • {escape(path)}")
        if len(st.current_files) > 10:
            console.print(f"  [dim](showing 10 of {len(st.current_files)})[/dim]")
        return

    console.print(f"  Latest: [cyan]{st.latest.id}[/cyan] ({_format_time(st.latest)})")
    console.print(f"  Message: {escape(st.latest.message)}")

    if st.new_files:
        console.print("\n[bold green]New files:[/bold green]")
        for path in st.new_files:
            console.print(f"  [green]+ {escape(path)}[/green]")
    if st.missing_files:
        console.print("\n[bold red]Missing files:[/bold red]")
        for path in st.missing_files:
            console.print(f"  [red]- {escape(path)}[/red]")
    if not st.new_files and not st.missing_files:
        console.print("\n[green]No new or missing files.[/green]")


@main.command()
@click.pass_context
@handle_errors
def history(ctx):
    """Show snapshots newest first, with relative ages."""
    console = Console()
    repo = _repo(ctx)
    records = create_snapshot_store(repo).list()
    if not records:
        console.print("[dim]No snapshot history.[/dim]")
        return

    console.print(f"[bold]Snapshot history[/bold] ({repo.root})")
    for record in reversed(records):
        created = record.created_datetime()
        age = _relative_age(created) if created else record.created_at
        console.print(f"\n[bold cyan]{record.id}[/bold cyan]")
        console.print(f"  [dim]{age} | {record.file_count} files[/dim]")
        console.print(f"  {escape(record.message)}")


@main.command()
@click.pass_context
@handle_errors
def clean(ctx):
    """Delete the oldest snapshots beyond max_snapshots."""
    console = Console()
    repo = _repo(ctx)
    store = create_snapshot_store(repo)
    evicted = store.clean()
    if not evicted:
        limit = repo.load_config()["max_snapshots"]
        console.print(f"[green]{len(store.list())} snapshot(s), limit {limit or 'unlimited'}. Nothing to clean.[/green]")
        return
    for record in evicted:
        console.print(f"  [red]Deleted[/red] {record.id}")
    console.print(f"[bold green]Done. {len(evicted)} snapshot(s) removed.[/bold green]")


@main.command()
@click.argument("name", required=False)
@click.pass_context
@handle_errors
def branch(ctx, name):
    """Show the current branch label, or set it to NAME."""
    console = Console()
    repo = _repo(ctx).require_initialized()
    if name is None:
        console.print(f"Current branch: [green]{escape(repo.load_index().label)}[/green]")
        return
    if not name.strip():
        console.print("[red]Branch name cannot be empty.[/red]")
        raise SystemExit(1)
    repo.set_label(name)
    console.print(f"[green]Branch '{escape(name)}' created and selected.[/green]")


@main.command()
@click.argument("name")
@click.pass_context
@handle_errors
def switch(ctx, name):
    """Switch the current branch label to NAME."""
    console = Console()
    previous = _repo(ctx).require_initialized().set_label(name)
    console.print(f"[green]Switched from '{escape(previous)}' to '{escape(name)}'.[/green]")


@main.command("config")
@click.option("--set", "assignments", multiple=True, metavar="KEY=VALUE", help="Update a config value.")
@click.pass_context
@handle_errors
def config_cmd(ctx, assignments):
    """Show or update .snapdir/config.json."""
    console = Console()
    repo = _repo(ctx).require_initialized()

    if assignments:
        updates = {}
        for item in assignments:
            if "=" not in item:
                console.print(f"[red]Expected KEY=VALUE, got {escape(item)!r}[/red]")
                raise SystemExit(1)
            key, value = item.split("=", 1)
            key = key.strip()
            updates[key] = coerce_value(key, value)
        save_config(repo.root, updates)
        for key, value in updates.items():
            console.print(f"  [green]{key}[/green] = {value!r}")
        return

    config = repo.load_config()
    table = Table(title=f"Configuration ({repo.config_path})")
    table.add_column("Key", style="bold")
    table.add_column("Value")
    for key in DEFAULT_CONFIG:
        value = config[key]
        if isinstance(value, list):
            value = ", ".join(value)
        table.add_row(key, escape(str(value)))
    console.print(table)
    console.print("[dim]chunk_size_mb and use_delta are reserved and currently unused.[/dim]")


@main.group(invoke_without_command=True)
@click.pass_context
def trash(ctx):
    """List, restore or empty trash batches."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(trash_list)


@trash.command("list")
@click.pass_context
@handle_errors
def trash_list(ctx):
    """List trash batches."""
    console = Console()
    batches = TrashStore(_repo(ctx).require_initialized()).list_batches()
    if not batches:
        console.print("[dim]Trash is empty.[/dim]")
        return

    table = Table(title="Trash")
    table.add_column("Batch", style="bold cyan", no_wrap=True)
    table.add_column("Files", justify="right")
    table.add_column("Date", style="dim")
    for batch in batches:
        table.add_row(batch.name, str(batch.file_count), batch.created.strftime("%d/%m/%Y %H:%M:%S"))
    console.print(table)
    console.print("[dim]Restore with: snapdir trash restore <batch>[/dim]")


@trash.command("restore")
@click.argument("batch_id")
@click.pass_context
@handle_errors
def trash_restore(ctx, batch_id):
    """Move a batch's files back into the working tree."""
    console = Console()
    restored = TrashStore(_repo(ctx).require_initialized()).restore_batch(batch_id)
    console.print(f"[green]{restored} file(s) restored from {batch_id}.[/green]")


@trash.command("empty")
@click.option("-y", "--yes", is_flag=True, help="Skip confirmation prompt.")
@click.pass_context
@handle_errors
def trash_empty(ctx, yes):
    """Delete every trash batch."""
    console = Console()
    store = TrashStore(_repo(ctx).require_initialized())
    if not store.list_batches():
        console.print("[dim]Trash is already empty.[/dim]")
        return
    emptied = store.empty_all(lambda: yes or click.confirm("Empty the trash?", default=False))
    if emptied:
        console.print("[green]Trash emptied.[/green]")
    else:
        console.print("[dim]Cancelled.[/dim]")


@main.command()
@click.option("-n", "--limit", default=20, help="Number of log entries to show.")
@click.pass_context
@handle_errors
def logs(ctx, limit):
    """Show the repository audit log."""
    console = Console()
    entries = read_logs(_repo(ctx).require_initialized().root, limit)
    if not entries:
        console.print("[dim]No log entries.[/dim]")
        return

    table = Table(title="Audit log")
    table.add_column("Time", style="dim")
    table.add_column("Event", style="bold")
    table.add_column("Snapshot", style="cyan")
    table.add_column("Details")
    for entry in entries:
        ts = entry.get("timestamp", "")
        if ts:
            try:
                ts = datetime.fromisoformat(ts).strftime("%m-%d %H:%M")
            except ValueError:
                pass
        details = {k: v for k, v in entry.items() if k not in ("timestamp", "event", "snapshot")}
        table.add_row(
            ts,
            entry.get("event", ""),
            entry.get("snapshot") or "",
            escape(", ".join(f"{k}={v}" for k, v in details.items())),
        )
    console.print(table)


@main.command()
@click.pass_context
@handle_errors
def doctor(ctx):
    """Check the repository layout and index/archive consistency."""
    console = Console()
    repo = _repo(ctx)

    def _exists(label, path):
        mark = "[green]✓[/green]" if path.exists() else "[red]✗[/red]"
        console.print(f"  {mark} {label}: {path}")

    console.print(f"[bold]Repository:[/bold] {repo.root}")
    _exists("metadata", repo.metadata_dir)
    _exists("index", repo.index_path)
    _exists("snapshots", repo.snapshots_dir)
    _exists("config", repo.config_path)
    _exists("ignore file", repo.ignore_path)
    _exists("trash", repo.trash_dir)
    if not repo.is_initialized():
        return

    index = repo.load_index()
    config = repo.load_config()
    console.print(f"\n  {len(index)} snapshot(s), branch [cyan]{escape(index.label)}[/cyan], "
                  f"max_snapshots {config['max_snapshots']}, trash {'on' if config['enable_trash'] else 'off'}")

    report = create_snapshot_store(repo).check()
    for snapshot_id in report["missing"]:
        console.print(f"  [red]Missing archive for indexed snapshot {snapshot_id}[/red]")
    for snapshot_id in report["orphaned"]:
        console.print(f"  [yellow]Orphaned archive (not in index): {snapshot_id}[/yellow]")
    if not report["missing"] and not report["orphaned"]:
        console.print("  [green]Index and archives are consistent.[/green]")


def _git(ctx, command, argument=None):
    console = Console()
    args = git_args(command, argument)
    console.print(f"[dim]git {' '.join(args)}[/dim]")
    code = run_git(_repo(ctx), args)
    if code != 0:
        console.print(f"[red]git exited with status {code}[/red]")
        raise SystemExit(code)


@main.command("git-sync")
@click.pass_context
@handle_errors
def git_sync(ctx):
    """git pull origin main (requires git_mode)."""
    _git(ctx, "git-sync")


@main.command("git-save")
@click.argument("message")
@click.pass_context
@handle_errors
def git_save(ctx, message):
    """git commit -am MESSAGE (requires git_mode)."""
    _git(ctx, "git-save", message)


@main.command("git-back")
@click.argument("ref")
@click.pass_context
@handle_errors
def git_back(ctx, ref):
    """git checkout REF (requires git_mode)."""
    _git(ctx, "git-back", ref)


@main.command("git-share")
@click.pass_context
@handle_errors
def git_share(ctx):
    """git push origin main (requires git_mode)."""
    _git(ctx, "git-share")


if __name__ == "__main__":
    main()
