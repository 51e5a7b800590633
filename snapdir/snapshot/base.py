from abc import ABC, abstractmethod


class SnapshotStore(ABC):
    """Base interface for snapshot backends.

    Implementations: LocalSnapshotStore (archives under .snapdir/snapshots).
    """

    @abstractmethod
    def create(self, message):
        """Snapshot the working tree. Returns the new SnapshotRecord."""
        pass

    @abstractmethod
    def restore(self, snapshot_id, force=False):
        """Restore a snapshot. Returns a RestoreResult."""
        pass

    @abstractmethod
    def list(self):
        """List snapshot records, oldest first."""
        pass

    @abstractmethod
    def delete(self, snapshot_id):
        """Delete a snapshot record and its archive."""
        pass
