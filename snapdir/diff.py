"""File-set comparison between snapshots, and between HEAD and the working tree.

Only file lists are compared. A path present on both sides is reported as
"possibly modified" because record metadata carries no per-file digest.
"""

from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from snapdir.collect import collect_files
from snapdir.errors import EmptyInput
from snapdir.resolve import resolve_id


@dataclass
class SnapshotDiff:
    older: object
    newer: object
    added: list = field(default_factory=list)
    removed: list = field(default_factory=list)
    common: int = 0
    same: bool = False

    @property
    def has_changes(self):
        return bool(self.added or self.removed)


@dataclass
class TreeStatus:
    latest: object
    current_files: list
    new_files: list
    missing_files: list


def _comparable(a, b):
    """Both parsed and both naive or both aware, so '<' won't raise."""
    if a is None or b is None:
        return False
    return (a.tzinfo is None) == (b.tzinfo is None)


def _order(index, first, second):
    """Return (older, newer) for two distinct records."""
    t1 = first.created_datetime()
    t2 = second.created_datetime()

    if not _comparable(t1, t2):
        # Unparsable timestamps: first-requested is older unless the second
        # one sits directly before it in the index.
        pos = index.position(first.id)
        if pos and index.records[pos - 1].id == second.id:
            return second, first
        return first, second

    if t1 == t2:
        # Same second; the index is in creation order
        if index.position(first.id) < index.position(second.id):
            return first, second
        return second, first

    return (first, second) if t1 < t2 else (second, first)


def compute_diff(index, first_id, second_id, notify=None):
    """Compare the file sets of two indexed snapshots, oldest to newest."""
    first_id = resolve_id(index, first_id, notify)
    second_id = resolve_id(index, second_id, notify)

    if first_id == second_id:
        record = index.find(first_id)
        return SnapshotDiff(
            older=record, newer=record, same=True,
            common=record.file_count if record else 0,
        )

    if len(index) < 2:
        raise EmptyInput(f"Need at least two snapshots to compare (have {len(index)})")

    first = index.get(first_id)
    second = index.get(second_id)
    older, newer = _order(index, first, second)

    older_files = set(older.files)
    newer_files = set(newer.files)
    return SnapshotDiff(
        older=older,
        newer=newer,
        added=sorted(newer_files - older_files),
        removed=sorted(older_files - newer_files),
        common=len(older_files & newer_files),
    )


def working_tree_status(repo):
    """Compare the current working tree against the latest snapshot's file list."""
    repo.require_initialized()
    index = repo.load_index()
    current = collect_files(repo.root, repo.load_ignore_patterns())
    latest = index.latest()
    if latest is None:
        return TreeStatus(latest=None, current_files=current, new_files=current, missing_files=[])

    tracked = set(latest.files)
    present = set(current)
    return TreeStatus(
        latest=latest,
        current_files=current,
        new_files=[f for f in current if f not in tracked],
        missing_files=[f for f in latest.files if f not in present],
    )


def _short_time(record):
    parsed = record.created_datetime()
    return parsed.strftime("%d/%m %H:%M") if parsed else record.created_at


def display_diff(diff, console=None):
    """Render a SnapshotDiff with added/removed lists."""
    console = console or Console()

    if diff.same:
        snapshot_id = diff.older.id if diff.older else "?"
        console.print(f"[dim]Both ids refer to the same snapshot ({snapshot_id}). No differences.[/dim]")
        return

    console.print(f"[bold]Comparing[/bold] [cyan]{diff.older.id}[/cyan] → [cyan]{diff.newer.id}[/cyan]")
    console.print(f"  [dim]{_short_time(diff.older)} → {_short_time(diff.newer)}[/dim]")
    console.print(f"  [dim]\"{escape(diff.older.message)}\" → \"{escape(diff.newer.message)}\"[/dim]")

    if diff.added:
        console.print("\n[bold green]Added:[/bold green]")
        for path in diff.added:
            console.print(f"  [green]+ {escape(path)}[/green]")

    if diff.removed:
        console.print("\n[bold red]Removed:[/bold red]")
        for path in diff.removed:
            console.print(f"  [red]- {escape(path)}[/red]")

    if diff.common and diff.has_changes:
        console.print(f"\n[yellow]{diff.common} file(s) in both snapshots (possibly modified)[/yellow]")

    if not diff.has_changes:
        console.print("\n[green]No differences in the file list.[/green]")
