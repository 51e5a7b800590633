import copy
import json
import os
from pathlib import Path

from snapdir.errors import ConfigError, IOFailure
from snapdir.ignore import METADATA_DIR

CONFIG_FILE = "config.json"
INDEX_FILE = "index.json"

DEFAULT_CONFIG = {
    "version": "1.0",
    "auto_ignore": [
        "node_modules/", ".git/", "__pycache__/", ".snapdir/",
        "*.exe", "*.dll", "*.so", "*.dylib", "_restore_*",
    ],
    "compression_level": 6,
    "max_snapshots": 100,         # 0 = unlimited
    # Declared for forward compatibility; nothing in snapdir reads these two.
    "chunk_size_mb": 10,
    "use_delta": False,
    "enable_aliases": True,       # only the CLI looks at this
    "enable_trash": True,
    "git_mode": False,
}


def config_path(root):
    return Path(root) / METADATA_DIR / CONFIG_FILE


def find_repository_root(start=None):
    """Walk up from start (default cwd) to find .snapdir/index.json, like git finds .git."""
    current = Path(start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        if (parent / METADATA_DIR / INDEX_FILE).exists():
            return parent
    return None


def validate_config(config, path="<config>"):
    """Check types and ranges. Raises ConfigError on the first bad key."""
    for key, default in DEFAULT_CONFIG.items():
        value = config.get(key)
        if isinstance(default, bool):
            ok = isinstance(value, bool)
        elif isinstance(default, int):
            ok = isinstance(value, int) and not isinstance(value, bool)
        elif isinstance(default, list):
            ok = isinstance(value, list) and all(isinstance(v, str) for v in value)
        else:
            ok = isinstance(value, str)
        if not ok:
            raise ConfigError(path, f"{key} must be {type(default).__name__}, got {value!r}")

    if not 0 <= config["compression_level"] <= 9:
        raise ConfigError(path, f"compression_level must be 0-9, got {config['compression_level']}")
    if config["max_snapshots"] < 0:
        raise ConfigError(path, f"max_snapshots must be >= 0, got {config['max_snapshots']}")
    return config


def write_json(path, data):
    """Write JSON through a temp file so readers never see half a file."""
    path = Path(path)
    tmp = path.with_name(f".{path.name}.tmp-{os.getpid()}")
    try:
        tmp.write_text(json.dumps(data, indent=2) + "\n")
        os.replace(tmp, path)
    except OSError as e:
        tmp.unlink(missing_ok=True)
        raise IOFailure("write", path, e) from e


def load_config(root):
    """Load .snapdir/config.json merged over defaults.

    A missing file is created with defaults, matching how a fresh repository
    behaves.
    """
    path = config_path(root)
    if not path.exists():
        config = copy.deepcopy(DEFAULT_CONFIG)
        if path.parent.exists():
            write_json(path, config)
        return config

    try:
        raw = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(path, f"invalid JSON: {e}") from e
    except OSError as e:
        raise IOFailure("read", path, e) from e
    if not isinstance(raw, dict):
        raise ConfigError(path, "top level must be an object")

    # Merge order: defaults → repository config.json
    config = {**copy.deepcopy(DEFAULT_CONFIG), **raw}
    return validate_config(config, path)


def save_config(root, updates):
    """Merge updates into .snapdir/config.json and return the new config."""
    config = load_config(root)
    config.update(updates)
    validate_config(config, config_path(root))
    write_json(config_path(root), config)
    return config


def coerce_value(key, raw):
    """Turn a CLI string into the type the default for key has."""
    if key not in DEFAULT_CONFIG:
        raise ConfigError(CONFIG_FILE, f"unknown key {key!r}. Known: {', '.join(DEFAULT_CONFIG)}")
    default = DEFAULT_CONFIG[key]
    if isinstance(default, bool):
        lowered = raw.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
        raise ConfigError(CONFIG_FILE, f"{key} expects true/false, got {raw!r}")
    if isinstance(default, int):
        try:
            return int(raw)
        except ValueError:
            raise ConfigError(CONFIG_FILE, f"{key} expects an integer, got {raw!r}")
    if isinstance(default, list):
        return [p.strip() for p in raw.split(",") if p.strip()]
    return raw
