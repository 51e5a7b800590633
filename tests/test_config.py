import json

import pytest

from snapdir.config import (
    DEFAULT_CONFIG,
    coerce_value,
    config_path,
    find_repository_root,
    load_config,
    save_config,
)
from snapdir.errors import ConfigError


@pytest.fixture
def metadata(tmp_path):
    (tmp_path / ".snapdir").mkdir()
    return tmp_path


class TestLoadConfig:

    def test_missing_file_is_written_with_defaults(self, metadata):
        config = load_config(metadata)
        assert config == DEFAULT_CONFIG
        assert json.loads(config_path(metadata).read_text()) == DEFAULT_CONFIG

    def test_defaults_are_not_shared(self, metadata):
        load_config(metadata)["auto_ignore"].append("mutated/")
        assert "mutated/" not in DEFAULT_CONFIG["auto_ignore"]

    def test_partial_file_merged_over_defaults(self, metadata):
        config_path(metadata).write_text(json.dumps({"max_snapshots": 5}))
        config = load_config(metadata)
        assert config["max_snapshots"] == 5
        assert config["compression_level"] == DEFAULT_CONFIG["compression_level"]

    def test_invalid_json_raises(self, metadata):
        config_path(metadata).write_text("{broken")
        with pytest.raises(ConfigError):
            load_config(metadata)

    @pytest.mark.parametrize("updates", [
        {"compression_level": 10},
        {"compression_level": -1},
        {"max_snapshots": -3},
        {"enable_trash": "yes"},
        {"auto_ignore": "node_modules/"},
    ])
    def test_bad_values_raise(self, metadata, updates):
        config_path(metadata).write_text(json.dumps(updates))
        with pytest.raises(ConfigError):
            load_config(metadata)


class TestSaveConfig:

    def test_updates_are_persisted(self, metadata):
        save_config(metadata, {"max_snapshots": 2, "enable_trash": False})
        config = load_config(metadata)
        assert config["max_snapshots"] == 2
        assert config["enable_trash"] is False

    def test_invalid_update_leaves_file_alone(self, metadata):
        load_config(metadata)
        with pytest.raises(ConfigError):
            save_config(metadata, {"compression_level": 42})
        assert load_config(metadata)["compression_level"] == DEFAULT_CONFIG["compression_level"]


class TestCoerceValue:

    @pytest.mark.parametrize("raw,expected", [("true", True), ("Off", False), ("1", True)])
    def test_booleans(self, raw, expected):
        assert coerce_value("git_mode", raw) is expected

    def test_integers(self):
        assert coerce_value("max_snapshots", "7") == 7

    def test_lists_split_on_commas(self):
        assert coerce_value("auto_ignore", "a/, *.log ,") == ["a/", "*.log"]

    def test_unknown_key(self):
        with pytest.raises(ConfigError):
            coerce_value("colour", "blue")

    def test_bad_integer(self):
        with pytest.raises(ConfigError):
            coerce_value("compression_level", "max")


class TestFindRepositoryRoot:

    def test_walks_up_to_index(self, tmp_path):
        (tmp_path / ".snapdir").mkdir()
        (tmp_path / ".snapdir" / "index.json").write_text("{}")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_repository_root(nested) == tmp_path.resolve()

    def test_none_outside_a_repository(self, tmp_path):
        assert find_repository_root(tmp_path) is None
