import hashlib
import os
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from snapdir.archive import ARCHIVE_SUFFIX, extract_archive, write_archive
from snapdir.collect import collect_files
from snapdir.errors import EmptyInput, IOFailure, SnapdirError, SnapshotNotFound
from snapdir.index import SnapshotRecord
from snapdir.resolve import resolve_id
from snapdir.snapshot.base import SnapshotStore
from snapdir.trash import TrashStore

ID_TIME_FORMAT = "%Y%m%d-%H%M%S"
HASH_PREFIX_LEN = 12
RESTORE_DIR_PREFIX = "_restore_"

_READ_CHUNK = 1 << 20


def compute_content_hash(root, files):
    """SHA-256 over (path, bytes) for each file, in the given order."""
    root = Path(root)
    h = hashlib.sha256()
    for rel in files:
        h.update(os.fsencode(rel))
        path = root / rel
        try:
            with open(path, "rb") as f:
                for chunk in iter(lambda: f.read(_READ_CHUNK), b""):
                    h.update(chunk)
        except OSError as e:
            raise IOFailure("read", path, e) from e
    return h.hexdigest()


@dataclass
class RestoreResult:
    snapshot_id: str
    target: Path
    files: list
    forced: bool = False
    backup: object = None           # SnapshotRecord taken before a forced restore
    trash_batch: str = None
    warnings: list = field(default_factory=list)


class LocalSnapshotStore(SnapshotStore):

    def __init__(self, repo):
        self.repo = repo

    def _notify(self, message):
        self.repo.console.print(f"[dim]{message}[/dim]")

    def create(self, message):
        repo = self.repo.ensure_initialized()
        config = repo.load_config()
        index = repo.load_index()

        files = collect_files(repo.root, repo.load_ignore_patterns(config))
        if not files:
            raise EmptyInput(f"Nothing to snapshot in {repo.root}: no files, or every file is ignored")

        digest = compute_content_hash(repo.root, files)[:HASH_PREFIX_LEN]
        now = datetime.now().astimezone()
        snapshot_id = f"{now.strftime(ID_TIME_FORMAT)}-{digest}"

        existing = index.find(snapshot_id)
        if existing is not None:
            # Same content within the same second; that snapshot already covers it
            repo.log("snapshot_exists", snapshot=snapshot_id, message=message)
            return existing

        archive = repo.archive_path(snapshot_id)
        write_archive(repo.root, archive, files, config["compression_level"])

        record = SnapshotRecord(
            id=snapshot_id,
            created_at=now.isoformat(timespec="seconds"),
            message=message,
            content_hash=digest,
            files=tuple(files),
        )
        index.append(record)
        evicted = index.evict(config["max_snapshots"])

        try:
            repo.save_index(index)
        except SnapdirError:
            archive.unlink(missing_ok=True)
            raise

        # Only after the index stops referencing them
        for old in evicted:
            repo.delete_archive(old.id)

        repo.log(
            "snapshot", snapshot=snapshot_id, message=message,
            files=record.file_count, evicted=[r.id for r in evicted],
        )
        return record

    def _stage_archive(self, snapshot_id):
        """Copy an archive aside so evicting it mid-restore can't pull it out from under us."""
        src = self.repo.archive_path(snapshot_id)
        staged = self.repo.metadata_dir / f".restore-{snapshot_id}{ARCHIVE_SUFFIX}"
        try:
            shutil.copyfile(src, staged)
        except OSError as e:
            raise IOFailure("stage archive", src, e) from e
        return staged

    def restore(self, snapshot_id, force=False):
        repo = self.repo.require_initialized()
        index = repo.load_index()
        resolved = resolve_id(index, snapshot_id, notify=self._notify)

        archive = repo.archive_path(resolved)
        if index.find(resolved) is None or not archive.exists():
            raise SnapshotNotFound(resolved)

        if not force:
            target = repo.root / f"{RESTORE_DIR_PREFIX}{resolved}"
            files = extract_archive(archive, target)
            repo.log("restore", snapshot=resolved, target=str(target), files=len(files))
            return RestoreResult(snapshot_id=resolved, target=target, files=files)

        result = RestoreResult(snapshot_id=resolved, target=repo.root, files=[], forced=True)
        staged = self._stage_archive(resolved)
        try:
            try:
                result.backup = self.create(f"Backup before restoring {resolved}")
            except EmptyInput:
                # Empty working tree: nothing to back up or trash
                pass

            trash = TrashStore(repo)
            try:
                result.trash_batch = trash.capture("pre_restore")
            except SnapdirError as e:
                result.warnings.append(f"Could not move files to trash: {e}")
            if trash.last_skipped:
                result.warnings.append(
                    f"{len(trash.last_skipped)} file(s) could not be moved to trash and will be overwritten"
                )
            for warning in result.warnings:
                repo.warn(warning, snapshot=resolved)

            result.files = extract_archive(staged, repo.root)
        finally:
            staged.unlink(missing_ok=True)

        repo.log(
            "restore", snapshot=resolved, target=str(repo.root), files=len(result.files),
            forced=True, backup=result.backup.id if result.backup else None,
            trash=result.trash_batch,
        )
        return result

    def list(self):
        return list(self.repo.require_initialized().load_index())

    def show(self, snapshot_id):
        index = self.repo.require_initialized().load_index()
        return index.get(resolve_id(index, snapshot_id, notify=self._notify))

    def delete(self, snapshot_id):
        repo = self.repo.require_initialized()
        index = repo.load_index()
        record = index.remove(resolve_id(index, snapshot_id, notify=self._notify))
        repo.save_index(index)
        repo.delete_archive(record.id)
        repo.log("delete", snapshot=record.id)
        return record

    def clean(self):
        """Apply the max_snapshots retention limit now. Returns evicted records."""
        repo = self.repo.require_initialized()
        config = repo.load_config()
        index = repo.load_index()
        evicted = index.evict(config["max_snapshots"])
        if not evicted:
            return []
        repo.save_index(index)
        for old in evicted:
            repo.delete_archive(old.id)
        repo.log("evict", snapshots=[r.id for r in evicted])
        return evicted

    def check(self):
        """Cross-check index and archive directory.

        Returns {"missing": [ids indexed without an archive],
                 "orphaned": [archive ids with no index entry]}.
        """
        repo = self.repo.require_initialized()
        indexed = [r.id for r in repo.load_index()]
        on_disk = set()
        if repo.snapshots_dir.exists():
            for entry in repo.snapshots_dir.iterdir():
                if entry.name.endswith(ARCHIVE_SUFFIX) and not entry.name.startswith("."):
                    on_disk.add(entry.name[:-len(ARCHIVE_SUFFIX)])
        return {
            "missing": [i for i in indexed if i not in on_disk],
            "orphaned": sorted(on_disk - set(indexed)),
        }
