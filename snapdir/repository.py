from pathlib import Path

from rich.console import Console
from rich.markup import escape

from snapdir.archive import ARCHIVE_SUFFIX
from snapdir.config import CONFIG_FILE, DEFAULT_CONFIG, INDEX_FILE, load_config, write_json
from snapdir.errors import AlreadyExists, IOFailure, NotInitialized, SnapdirError
from snapdir.ignore import DEFAULT_IGNORE_FILE, IGNORE_FILE, METADATA_DIR, load_ignore_patterns
from snapdir.index import SnapshotIndex
from snapdir.log import write_log


class Repository:
    """Handle on one working directory and its .snapdir metadata.

    Every core operation takes one of these instead of reaching for global
    paths, so two repositories can be used side by side (tests do this).
    """

    def __init__(self, root, console=None):
        self.root = Path(root).resolve()
        self.console = console or Console(stderr=True)

    def __repr__(self):
        return f"Repository({str(self.root)!r})"

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def metadata_dir(self):
        return self.root / METADATA_DIR

    @property
    def snapshots_dir(self):
        return self.metadata_dir / "snapshots"

    @property
    def trash_dir(self):
        return self.metadata_dir / "trash"

    @property
    def index_path(self):
        return self.metadata_dir / INDEX_FILE

    @property
    def config_path(self):
        return self.metadata_dir / CONFIG_FILE

    @property
    def ignore_path(self):
        return self.root / IGNORE_FILE

    def archive_path(self, snapshot_id):
        return self.snapshots_dir / f"{snapshot_id}{ARCHIVE_SUFFIX}"

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def is_initialized(self):
        return self.index_path.exists()

    def initialize(self):
        """Create .snapdir, an empty index, default config and .snapdirignore.

        Raises AlreadyExists if the index is already there; nothing is touched
        in that case.
        """
        if self.is_initialized():
            try:
                count = len(self.load_index())
            except SnapdirError:
                count = 0
            raise AlreadyExists(self.root, count)

        try:
            self.snapshots_dir.mkdir(parents=True, exist_ok=True)
            self.trash_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailure("create metadata directory", self.metadata_dir, e) from e

        if not self.config_path.exists():
            write_json(self.config_path, DEFAULT_CONFIG)
        SnapshotIndex().save(self.index_path)

        if not self.ignore_path.exists():
            try:
                self.ignore_path.write_text(DEFAULT_IGNORE_FILE)
            except OSError as e:
                raise IOFailure("write ignore file", self.ignore_path, e) from e

        self.log("init")
        return self

    def ensure_initialized(self):
        """Initialize on first use; a no-op afterwards."""
        if not self.is_initialized():
            self.initialize()
        return self

    def require_initialized(self):
        if not self.is_initialized():
            raise NotInitialized(self.root)
        return self

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def load_config(self):
        return load_config(self.root)

    def load_ignore_patterns(self, config=None):
        return load_ignore_patterns(self.root, config if config is not None else self.load_config())

    def load_index(self):
        return SnapshotIndex.load(self.index_path)

    def save_index(self, index):
        index.save(self.index_path)

    def set_label(self, name):
        """Point the current label at name. Returns the previous label."""
        index = self.load_index()
        previous = index.set_label(name)
        self.save_index(index)
        self.log("label", previous=previous, current=name)
        return previous

    def delete_archive(self, snapshot_id):
        """Best-effort archive removal. Returns False (after warning) on failure."""
        path = self.archive_path(snapshot_id)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            self.warn(f"Could not delete archive {path.name}: {e}", snapshot=snapshot_id)
            return False
        return True

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def log(self, event, **fields):
        write_log(self.root, {"event": event, **fields})

    def warn(self, message, **fields):
        """Report a non-fatal problem on the console and in the audit log."""
        self.console.print(f"[yellow]Warning: {escape(message)}[/yellow]")
        self.log("warning", message=message, **fields)


def initialize_repository(root, console=None):
    """Initialize root if needed. Returns (repository, created)."""
    repo = Repository(root, console=console)
    try:
        repo.initialize()
    except AlreadyExists:
        return repo, False
    return repo, True
