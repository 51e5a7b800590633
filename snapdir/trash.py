"""Trash batches: reversible relocation of the working tree's files.

A forced restore first moves every tracked file into
    .snapdir/trash/<YYYYmmdd_HHMMSS>_<reason>/<relative path>
so the previous working tree can be put back with `snapdir trash restore`.
Batches are plain directory trees and never depend on the index.
"""

import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from snapdir.collect import collect_files
from snapdir.errors import IOFailure, TrashBatchNotFound


@dataclass
class TrashBatch:
    name: str
    path: Path
    file_count: int
    created: datetime


def _count_files(directory):
    return sum(len(filenames) for _, _, filenames in os.walk(directory))


class TrashStore:

    TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

    def __init__(self, repo):
        self.repo = repo
        # Relative paths that failed to move during the last capture
        self.last_skipped = []

    @property
    def trash_dir(self):
        return self.repo.trash_dir

    def _new_batch_path(self, reason):
        base = f"{datetime.now().strftime(self.TIMESTAMP_FORMAT)}_{reason}"
        candidate = self.trash_dir / base
        n = 2
        while candidate.exists():
            candidate = self.trash_dir / f"{base}_{n}"
            n += 1
        return candidate

    def _batch_path(self, batch_id):
        # Batch ids are single directory names; anything else can't be ours
        if not batch_id or "/" in batch_id or "\\" in batch_id or batch_id in (".", ".."):
            raise TrashBatchNotFound(batch_id)
        path = self.trash_dir / batch_id
        if not path.is_dir():
            raise TrashBatchNotFound(batch_id)
        return path

    def capture(self, reason, config=None):
        """Move every non-ignored file into a new batch. Returns the batch id.

        Returns None without touching anything if trash is disabled. Files that
        fail to move are left in place and listed in last_skipped.
        """
        config = config if config is not None else self.repo.load_config()
        self.last_skipped = []
        if not config.get("enable_trash", True):
            return None

        root = self.repo.root
        files = collect_files(root, self.repo.load_ignore_patterns(config))
        batch_path = self._new_batch_path(reason)
        try:
            batch_path.mkdir(parents=True)
        except OSError as e:
            raise IOFailure("create trash batch", batch_path, e) from e

        moved = 0
        for rel in files:
            dst = batch_path / rel
            try:
                dst.parent.mkdir(parents=True, exist_ok=True)
                shutil.move(str(root / rel), str(dst))
                moved += 1
            except OSError:
                self.last_skipped.append(rel)

        self.repo.log(
            "trash_capture", batch=batch_path.name, reason=reason,
            moved=moved, skipped=len(self.last_skipped),
        )
        return batch_path.name

    def restore_batch(self, batch_id):
        """Move a batch's files back into the working tree. Returns the count restored.

        The batch directory is removed once it is empty. If any file could not
        be moved back, the batch is kept so nothing is lost.
        """
        batch_path = self._batch_path(batch_id)
        root = self.repo.root
        restored = 0
        failed = []

        for dirpath, _, filenames in os.walk(batch_path):
            for name in filenames:
                src = Path(dirpath) / name
                rel = src.relative_to(batch_path)
                dst = root / rel
                try:
                    dst.parent.mkdir(parents=True, exist_ok=True)
                    shutil.move(str(src), str(dst))
                    restored += 1
                except OSError as e:
                    failed.append(rel.as_posix())
                    self.repo.warn(f"Could not restore {rel.as_posix()}: {e}", batch=batch_id)

        if failed:
            self.repo.warn(
                f"{len(failed)} file(s) left in trash batch {batch_id}", batch=batch_id,
            )
        else:
            try:
                shutil.rmtree(batch_path)
            except OSError as e:
                self.repo.warn(f"Could not remove empty batch {batch_id}: {e}", batch=batch_id)

        self.repo.log("trash_restore", batch=batch_id, restored=restored, failed=len(failed))
        return restored

    def list_batches(self):
        if not self.trash_dir.exists():
            return []
        batches = []
        for entry in sorted(self.trash_dir.iterdir()):
            if not entry.is_dir():
                continue
            batches.append(TrashBatch(
                name=entry.name,
                path=entry,
                file_count=_count_files(entry),
                created=datetime.fromtimestamp(entry.stat().st_mtime),
            ))
        return batches

    def empty_all(self, confirm):
        """Delete every batch if confirm() returns True. Returns whether it did."""
        if not confirm():
            return False
        count = len(self.list_batches())
        try:
            if self.trash_dir.exists():
                shutil.rmtree(self.trash_dir)
            self.trash_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure("empty trash", self.trash_dir, e) from e
        self.repo.log("trash_empty", batches=count)
        return True
