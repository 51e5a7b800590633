"""Repository audit logging.

Appends structured JSON entries to .snapdir/logs.jsonl.
Each entry records a repository event (snapshot, restore, evict, trash,
warning) with a timestamp and whatever ids and paths the event touched.
"""

import json
from datetime import datetime
from pathlib import Path

from snapdir.ignore import METADATA_DIR

LOGS_FILE = "logs.jsonl"


def logs_path(root):
    return Path(root) / METADATA_DIR / LOGS_FILE


def write_log(root, entry):
    """Append an audit log entry. Silently skipped if the repository is gone."""
    path = logs_path(root)
    if not path.parent.exists():
        return
    entry = {"timestamp": datetime.now().isoformat(), **entry}
    with open(path, "a") as f:
        f.write(json.dumps(entry) + "\n")


def read_logs(root, limit=None):
    """Return parsed log entries, oldest first. Malformed lines are skipped."""
    path = logs_path(root)
    if not path.exists():
        return []
    entries = []
    for line in path.read_text().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    if limit:
        entries = entries[-limit:]
    return entries
