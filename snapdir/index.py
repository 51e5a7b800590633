"""Snapshot index.

.snapdir/index.json holds every snapshot record in creation order plus the
current branch label:

    {
      "snapshots": [{"id": ..., "timestamp": ..., "message": ..., "hash": ...,
                     "file_count": ..., "files": [...]}, ...],
      "current": "main"
    }

The index is the only authority on which snapshots exist. An archive on disk
without a record here is an orphan and is never served.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from snapdir.config import write_json
from snapdir.errors import CorruptIndex, IOFailure, NotInitialized, SnapshotNotFound

DEFAULT_LABEL = "main"


@dataclass(frozen=True)
class SnapshotRecord:
    """One immutable index entry."""
    id: str
    created_at: str             # RFC 3339, local offset
    message: str
    content_hash: str
    files: tuple = field(default_factory=tuple)

    @property
    def file_count(self):
        return len(self.files)

    def created_datetime(self):
        """Parsed created_at, or None if it does not parse."""
        try:
            return datetime.fromisoformat(self.created_at)
        except (TypeError, ValueError):
            return None

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.created_at,
            "message": self.message,
            "hash": self.content_hash,
            "file_count": self.file_count,
            "files": list(self.files),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            id=data["id"],
            created_at=data.get("timestamp", ""),
            message=data.get("message", ""),
            content_hash=data.get("hash", ""),
            files=tuple(data.get("files") or ()),
        )


class SnapshotIndex:
    """Ordered snapshot records plus the current label.

    Insertion order is chronological order; nothing ever reorders records.
    """

    def __init__(self, records=None, label=DEFAULT_LABEL):
        self.records = list(records or [])
        self.label = label

    def __len__(self):
        return len(self.records)

    def __iter__(self):
        return iter(self.records)

    @classmethod
    def load(cls, path):
        """Read the index. A missing file means the repository was never initialized."""
        path = Path(path)
        try:
            raw = json.loads(path.read_text())
        except FileNotFoundError:
            # .snapdir/index.json → repository root is two levels up
            raise NotInitialized(path.parent.parent)
        except json.JSONDecodeError as e:
            raise CorruptIndex(path, f"invalid JSON: {e}") from e
        except OSError as e:
            raise IOFailure("read index", path, e) from e

        if not isinstance(raw, dict):
            raise CorruptIndex(path, "top level must be an object")
        try:
            records = [SnapshotRecord.from_dict(s) for s in raw.get("snapshots") or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise CorruptIndex(path, f"malformed snapshot record: {e}") from e
        return cls(records, raw.get("current", DEFAULT_LABEL))

    def save(self, path):
        write_json(path, {
            "snapshots": [r.to_dict() for r in self.records],
            "current": self.label,
        })

    def append(self, record):
        self.records.append(record)

    def evict(self, max_count):
        """Drop the oldest records until at most max_count remain.

        max_count <= 0 means unlimited. Returns the evicted records, oldest
        first, so the caller can delete their archives.
        """
        if max_count <= 0 or len(self.records) <= max_count:
            return []
        excess = len(self.records) - max_count
        evicted = self.records[:excess]
        self.records = self.records[excess:]
        return evicted

    def remove(self, snapshot_id):
        pos = self.position(snapshot_id)
        if pos is None:
            raise SnapshotNotFound(snapshot_id)
        return self.records.pop(pos)

    def set_label(self, name):
        """Overwrite the current label. No validation; snapshots are unaffected."""
        previous = self.label
        self.label = name
        return previous

    def find(self, snapshot_id):
        for record in self.records:
            if record.id == snapshot_id:
                return record
        return None

    def get(self, snapshot_id):
        record = self.find(snapshot_id)
        if record is None:
            raise SnapshotNotFound(snapshot_id)
        return record

    def position(self, snapshot_id):
        for i, record in enumerate(self.records):
            if record.id == snapshot_id:
                return i
        return None

    def latest(self):
        return self.records[-1] if self.records else None
