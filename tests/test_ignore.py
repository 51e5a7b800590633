"""Ignore pattern matching and pattern loading."""

import pytest

from snapdir.config import DEFAULT_CONFIG
from snapdir.errors import IOFailure
from snapdir.ignore import (
    IGNORE_FILE,
    METADATA_PATTERN,
    is_ignored,
    load_ignore_file,
    load_ignore_patterns,
)


class TestIsIgnored:

    def test_directory_pattern_matches_prefix(self):
        assert is_ignored("node_modules/pkg/index.js", ["node_modules/"])

    def test_directory_pattern_matches_any_segment(self):
        assert is_ignored("web/node_modules/pkg/index.js", ["node_modules/"])

    def test_directory_pattern_matches_the_directory_itself(self):
        assert is_ignored("build", ["build/"])

    def test_directory_pattern_does_not_match_similar_names(self):
        assert not is_ignored("rebuild/out.txt", ["build/"])
        assert not is_ignored("build.txt", ["build/"])

    def test_glob_matches_basename(self):
        assert is_ignored("src/module.pyc", ["*.pyc"])
        assert is_ignored("app.exe", ["*.exe"])

    def test_leading_star_also_matches_as_suffix(self):
        assert is_ignored("notes.txt~", ["*~"])
        assert is_ignored("dir/archive.backup", ["*.backup"])

    def test_glob_with_slash_matches_per_segment(self):
        assert is_ignored("logs/today.txt", ["logs/*.txt"])
        assert not is_ignored("logs/deep/today.txt", ["logs/*.txt"])

    def test_glob_with_inner_star(self):
        assert is_ignored(".env.local", [".env.*"])
        assert is_ignored(".secret_key", [".secret*"])
        assert not is_ignored("config.env", [".env.*"])

    def test_literal_matches_name(self):
        assert is_ignored("sub/.DS_Store", [".DS_Store"])

    def test_literal_matches_path_suffix(self):
        assert is_ignored("a/b/c.txt", ["b/c.txt"])

    def test_unmatched_path(self):
        assert not is_ignored("src/main.py", ["*.pyc", "build/", ".env"])

    def test_blank_patterns_are_skipped(self):
        assert not is_ignored("main.py", ["", "   "])

    def test_backslash_separators_are_normalized(self):
        assert is_ignored("node_modules\\x.js", ["node_modules/"])

    def test_metadata_pattern_always_matches_metadata_dir(self):
        assert is_ignored(".snapdir/index.json", [METADATA_PATTERN])


class TestLoadIgnoreFile:

    def test_missing_file_gives_no_patterns(self, tmp_path):
        assert load_ignore_file(tmp_path) == []

    def test_comments_and_blank_lines_skipped(self, tmp_path):
        (tmp_path / IGNORE_FILE).write_text("# comment\n\n*.log\n  build/  \n")
        assert load_ignore_file(tmp_path) == ["*.log", "build/"]

    def test_unreadable_path_raises_io_failure(self, tmp_path):
        # A directory where the file should be cannot be read as text
        (tmp_path / IGNORE_FILE).mkdir()
        with pytest.raises(IOFailure):
            load_ignore_file(tmp_path)


class TestLoadIgnorePatterns:

    def test_combines_file_config_and_metadata(self, tmp_path):
        (tmp_path / IGNORE_FILE).write_text("*.log\n")
        config = dict(DEFAULT_CONFIG, auto_ignore=["tmp/"])
        assert load_ignore_patterns(tmp_path, config) == ["*.log", "tmp/", METADATA_PATTERN]

    def test_metadata_dir_ignored_even_with_empty_config(self, tmp_path):
        config = dict(DEFAULT_CONFIG, auto_ignore=[])
        assert load_ignore_patterns(tmp_path, config) == [METADATA_PATTERN]

    def test_defaults_used_without_repository(self, tmp_path):
        patterns = load_ignore_patterns(tmp_path)
        assert "node_modules/" in patterns
        assert patterns[-1] == METADATA_PATTERN
