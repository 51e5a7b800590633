import io

import pytest
from rich.console import Console

from snapdir.repository import Repository
from snapdir.snapshot import create_snapshot_store


def write_files(root, files):
    """Write {relative path: text} under root, creating parent dirs."""
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)


@pytest.fixture
def console():
    return Console(file=io.StringIO(), width=200)


@pytest.fixture
def repo(tmp_path, console):
    """An initialized repository in tmp_path/work with output captured."""
    root = tmp_path / "work"
    root.mkdir()
    return Repository(root, console=console).initialize()


@pytest.fixture
def store(repo):
    return create_snapshot_store(repo)
