from snapdir.snapshot.local import LocalSnapshotStore, RestoreResult, compute_content_hash


def create_snapshot_store(repo):
    """Create the snapshot store for a repository."""
    return LocalSnapshotStore(repo)


__all__ = ["LocalSnapshotStore", "RestoreResult", "compute_content_hash", "create_snapshot_store"]
