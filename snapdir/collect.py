import os
from pathlib import Path

from snapdir.errors import IOFailure
from snapdir.ignore import IGNORE_FILE, METADATA_DIR, is_ignored


def _relative(root, path):
    rel = os.path.relpath(path, root)
    return rel.replace(os.sep, "/")


def collect_files(root, patterns):
    """Walk root and return the sorted list of non-ignored relative file paths.

    The root .snapdirignore is never collected. The sort order is what makes
    content hashes reproducible, so callers must not reorder the result.
    """
    root = str(Path(root))
    files = []

    def _on_error(err):
        raise IOFailure("walk", err.filename or root, err) from err

    for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
        kept = []
        for d in dirnames:
            rel = _relative(root, os.path.join(dirpath, d))
            if rel == METADATA_DIR or rel.startswith(METADATA_DIR + "/"):
                continue
            if is_ignored(rel, patterns):
                continue
            if os.path.islink(os.path.join(dirpath, d)):
                # Directory symlinks are neither followed nor captured
                continue
            kept.append(d)
        # Prune in place so os.walk skips ignored subtrees
        dirnames[:] = kept

        for f in filenames:
            rel = _relative(root, os.path.join(dirpath, f))
            # The root ignore file is repository configuration, not content
            if rel == IGNORE_FILE or is_ignored(rel, patterns):
                continue
            files.append(rel)

    return sorted(files)
