"""Error types for snapdir operations.

Every core operation either returns a result or raises one of these. The CLI
catches SnapdirError at the edge and turns it into a message and exit code.
"""


class SnapdirError(Exception):
    """Base exception for all snapdir errors."""
    pass


class NotFound(SnapdirError):
    """Raised when a snapshot, trash batch or repository does not exist."""
    pass


class SnapshotNotFound(NotFound):
    def __init__(self, snapshot_id):
        self.snapshot_id = snapshot_id
        super().__init__(f"Snapshot '{snapshot_id}' not found")


class TrashBatchNotFound(NotFound):
    def __init__(self, batch_id):
        self.batch_id = batch_id
        super().__init__(f"Trash batch '{batch_id}' not found")


class NotInitialized(NotFound):
    def __init__(self, root):
        self.root = root
        super().__init__(f"No snapdir repository at {root}. Run 'snapdir init' first.")


class EmptyInput(SnapdirError):
    """Raised when there is nothing to operate on (no files, too few snapshots)."""
    pass


class AlreadyExists(SnapdirError):
    """Raised when initializing a repository that is already initialized.

    Informational: callers usually report it and carry on.
    """

    def __init__(self, root, snapshot_count=0):
        self.root = root
        self.snapshot_count = snapshot_count
        super().__init__(f"Repository already exists at {root} ({snapshot_count} snapshot(s))")


class IOFailure(SnapdirError):
    """Raised when a filesystem read, write or move fails."""

    def __init__(self, operation, path, cause=None):
        self.operation = operation
        self.path = str(path)
        self.cause = cause
        msg = f"I/O failure during {operation}: {path}"
        if cause:
            msg += f" ({cause})"
        super().__init__(msg)


class Corrupt(SnapdirError):
    """Raised when persisted state cannot be decoded."""

    def __init__(self, path, reason):
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{self.kind} {path}: {reason}")

    kind = "Corrupt file"


class CorruptArchive(Corrupt):
    kind = "Corrupt archive"


class CorruptIndex(Corrupt):
    kind = "Corrupt index"


class ConfigError(Corrupt):
    kind = "Invalid config"


class GitUnavailable(SnapdirError):
    def __init__(self):
        super().__init__("git is not installed or not on PATH")


class GitModeDisabled(SnapdirError):
    def __init__(self):
        super().__init__(
            "Git mode is disabled. Enable it with: snapdir config --set git_mode=true"
        )
