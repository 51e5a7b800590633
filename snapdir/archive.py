"""Snapshot archives.

Each snapshot is stored as a gzipped tarball:
    .snapdir/snapshots/<snapshot_id>.tar.gz

Entries are plain files named by their root-relative forward-slash path, in
the order they were collected. The tarball is written under a temporary name
in the same directory and renamed into place, so a reader never sees half an
archive.
"""

import gzip
import os
import shutil
import tarfile
import uuid
import zlib
from pathlib import Path, PurePosixPath

from snapdir.errors import CorruptArchive, IOFailure

ARCHIVE_SUFFIX = ".tar.gz"

# What tarfile/gzip raise on truncated or garbled input
_DECODE_ERRORS = (tarfile.TarError, EOFError, zlib.error, gzip.BadGzipFile)


def _add_file(tar, root, rel):
    full = Path(root) / rel
    try:
        with open(full, "rb") as f:
            st = os.fstat(f.fileno())
            info = tarfile.TarInfo(rel)
            info.size = st.st_size
            info.mode = st.st_mode & 0o7777
            info.mtime = int(st.st_mtime)
            tar.addfile(info, f)
    except OSError as e:
        raise IOFailure("read", full, e) from e


def write_archive(root, destination, files, compression_level=6):
    """Write files (relative to root) into a gzipped tarball at destination."""
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    tmp = destination.with_name(f".{destination.name}.{uuid.uuid4().hex[:8]}.tmp")

    try:
        with tarfile.open(tmp, "w:gz", compresslevel=compression_level) as tar:
            for rel in files:
                _add_file(tar, root, rel)
        os.replace(tmp, destination)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise IOFailure("write archive", destination, e) from e
    except Exception:
        tmp.unlink(missing_ok=True)
        raise

    return destination


def _iter_members(path):
    path = Path(path)
    try:
        with tarfile.open(path, "r:gz") as tar:
            for member in tar:
                if not member.isfile():
                    continue
                yield member, tar.extractfile(member)
    except _DECODE_ERRORS as e:
        raise CorruptArchive(path, str(e) or type(e).__name__) from e
    except OSError as e:
        raise IOFailure("read archive", path, e) from e


def read_archive(path):
    """Yield (relative_path, file object) for every file entry in the archive.

    The file object is only valid until the next item is requested.
    """
    for member, f in _iter_members(path):
        yield member.name, f


def list_archive(path):
    """Return the relative paths stored in an archive, in archive order."""
    return [name for name, _ in read_archive(path)]


def _safe_destination(target, name, archive_path):
    """Map an entry name under target, refusing anything that would escape it."""
    pure = PurePosixPath(name)
    if pure.is_absolute() or ".." in pure.parts or not pure.parts:
        raise CorruptArchive(archive_path, f"unsafe path in archive: {name!r}")
    return target.joinpath(*pure.parts)


def extract_archive(path, target_dir):
    """Extract an archive into target_dir, overwriting existing files.

    Returns the list of extracted relative paths. A corrupted or truncated
    archive raises CorruptArchive partway through; files already written are
    left in place.
    """
    path = Path(path)
    target = Path(target_dir)
    target.mkdir(parents=True, exist_ok=True)
    extracted = []

    for member, src in _iter_members(path):
        dest = _safe_destination(target, member.name, path)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            # Unlink first so read-only files and symlinks get replaced, not written through
            if dest.is_symlink() or dest.exists():
                dest.unlink()
            with open(dest, "wb") as out:
                shutil.copyfileobj(src, out)
            os.chmod(dest, member.mode & 0o777)
            os.utime(dest, (member.mtime, member.mtime))
        except _DECODE_ERRORS as e:
            raise CorruptArchive(path, str(e) or type(e).__name__) from e
        except OSError as e:
            raise IOFailure("extract", dest, e) from e
        extracted.append(member.name)

    return extracted
