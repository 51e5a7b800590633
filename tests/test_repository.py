import pytest

from snapdir.errors import AlreadyExists
from snapdir.log import read_logs
from snapdir.repository import Repository, initialize_repository


class TestInitialize:

    def test_creates_layout(self, repo):
        assert repo.snapshots_dir.is_dir()
        assert repo.trash_dir.is_dir()
        assert repo.config_path.exists()
        assert repo.ignore_path.exists()
        assert len(repo.load_index()) == 0

    def test_second_initialize_raises_already_exists(self, repo):
        with pytest.raises(AlreadyExists) as exc:
            repo.initialize()
        assert exc.value.snapshot_count == 0

    def test_initialize_repository_reports_created(self, tmp_path, console):
        _, created = initialize_repository(tmp_path, console=console)
        _, again = initialize_repository(tmp_path, console=console)
        assert created is True
        assert again is False


class TestWarn:

    def test_markup_in_message_is_printed_literally(self, repo, console):
        repo.warn("Could not restore [/x].txt")
        assert "Could not restore [/x].txt" in console.file.getvalue()
        assert read_logs(repo.root)[-1]["message"] == "Could not restore [/x].txt"


class TestLabel:

    def test_set_label_persists(self, repo):
        assert repo.set_label("feature") == "main"
        assert Repository(repo.root).load_index().label == "feature"
