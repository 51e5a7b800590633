import os

import pytest

from conftest import write_files
from snapdir.collect import collect_files
from snapdir.errors import IOFailure
from snapdir.ignore import METADATA_PATTERN


class TestCollectFiles:

    def test_returns_sorted_relative_paths(self, tmp_path):
        write_files(tmp_path, {"b.txt": "b", "a.txt": "a", "src/z.py": "z", "src/lib/m.py": "m"})
        assert collect_files(tmp_path, []) == ["a.txt", "b.txt", "src/lib/m.py", "src/z.py"]

    def test_same_tree_gives_same_list(self, tmp_path):
        write_files(tmp_path, {"x/1": "1", "x/2": "2", "y": "3"})
        assert collect_files(tmp_path, []) == collect_files(tmp_path, [])

    def test_ignored_directories_are_pruned(self, tmp_path):
        write_files(tmp_path, {"main.py": "", "node_modules/a/b.js": "", "build/out.bin": ""})
        assert collect_files(tmp_path, ["node_modules/", "build/"]) == ["main.py"]

    def test_ignored_files_are_skipped(self, tmp_path):
        write_files(tmp_path, {"keep.txt": "", "drop.log": "", "sub/drop.log": ""})
        assert collect_files(tmp_path, ["*.log"]) == ["keep.txt"]

    def test_metadata_dir_never_collected(self, tmp_path):
        write_files(tmp_path, {"a.txt": "", ".snapdir/index.json": "{}"})
        assert collect_files(tmp_path, []) == ["a.txt"]
        assert collect_files(tmp_path, [METADATA_PATTERN]) == ["a.txt"]

    def test_empty_directory_gives_empty_list(self, tmp_path):
        (tmp_path / "empty").mkdir()
        assert collect_files(tmp_path, []) == []

    def test_everything_ignored_gives_empty_list(self, tmp_path):
        write_files(tmp_path, {"a.log": "", "b.log": ""})
        assert collect_files(tmp_path, ["*.log"]) == []

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_directory_symlinks_are_skipped(self, tmp_path):
        outside = tmp_path / "outside"
        write_files(outside, {"secret.txt": "x"})
        root = tmp_path / "root"
        write_files(root, {"a.txt": ""})
        os.symlink(outside, root / "link", target_is_directory=True)
        assert collect_files(root, []) == ["a.txt"]

    def test_missing_root_raises_io_failure(self, tmp_path):
        with pytest.raises(IOFailure):
            collect_files(tmp_path / "nope", [])

    def test_root_ignore_file_not_collected(self, tmp_path):
        write_files(tmp_path, {".snapdirignore": "*.log\n", "a.txt": "", "sub/.snapdirignore": ""})
        assert collect_files(tmp_path, []) == ["a.txt", "sub/.snapdirignore"]
