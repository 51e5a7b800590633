from fnmatch import fnmatchcase
from pathlib import Path

from snapdir.errors import IOFailure

METADATA_DIR = ".snapdir"
IGNORE_FILE = ".snapdirignore"

# Always ignored regardless of .snapdirignore or config
METADATA_PATTERN = METADATA_DIR + "/"

DEFAULT_IGNORE_FILE = """\
# Files ignored by snapdir
# Common directories
node_modules/
build/
dist/
.snapdir/
.vscode/
.idea/
__pycache__/
*.pyc

# Binaries
*.exe
*.dll
*.so
*.dylib
*.bin

# Environment files
.env
.env.*
.secret*

# Logs and temporaries
*.log
*.tmp
*.temp
*.cache

# System files
Thumbs.db
.DS_Store
desktop.ini

# Backup files
*.bak
*.backup
*~
"""


def load_ignore_file(root):
    """Load patterns from .snapdirignore, skipping blanks and comments."""
    ignore_file = Path(root) / IGNORE_FILE
    try:
        text = ignore_file.read_text()
    except FileNotFoundError:
        return []
    except OSError as e:
        raise IOFailure("read ignore file", ignore_file, e) from e
    patterns = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


def load_ignore_patterns(root, config=None):
    """Get the full pattern list: ignore file + config auto_ignore + metadata dir."""
    if config is None:
        from snapdir.config import load_config
        config = load_config(root)
    return load_ignore_file(root) + list(config.get("auto_ignore", [])) + [METADATA_PATTERN]


def _match_glob(pattern, path, name):
    # fnmatch lets "*" cross "/", so multi-segment patterns are matched per segment
    if "/" not in pattern:
        return fnmatchcase(name, pattern)
    pattern_parts = pattern.split("/")
    path_parts = path.split("/")
    if len(pattern_parts) != len(path_parts):
        return False
    return all(fnmatchcase(part, pat) for part, pat in zip(path_parts, pattern_parts))


def is_ignored(path, patterns):
    """Check if a root-relative path matches any ignore pattern."""
    path = str(path).replace("\\", "/")
    name = path.rsplit("/", 1)[-1]

    for p in patterns:
        p = p.strip().replace("\\", "/")
        if not p:
            continue

        if p.endswith("/"):
            if path.startswith(p):
                return True
            if any(part + "/" == p for part in path.split("/")):
                return True
            continue

        if "*" in p:
            if _match_glob(p, path, name):
                return True
            # Suffix form: "*.log" also means "ends with .log"
            if p.startswith("*") and path.endswith(p[1:]):
                return True
            continue

        if name == p:
            return True
        if path.endswith(p):
            return True

    return False
