"""Tests for configuration loading."""

import pytest

from urllens.config import get_default_config, get_profile, load_config, merge_configs


class TestLoadConfig:
    """Tests for load_config."""

    def test_overrides_merged_over_defaults(self, tmp_path):
        """Test a partial file only changes the keys it lists."""
        path = tmp_path / "urllens.yaml"
        path.write_text("discovery:\n  max_urls: 7\n  user_agent: TestBot/2.0\n", encoding="utf-8")

        config = load_config(path)

        assert config["discovery"]["max_urls"] == 7
        assert config["discovery"]["user_agent"] == "TestBot/2.0"
        assert config["discovery"]["max_depth"] == 2
        assert config["ingest"]["max_file_bytes"] == 5 * 1024 * 1024

    def test_empty_file(self, tmp_path):
        """Test an empty file yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path) == get_default_config()

    def test_missing_explicit_path(self, tmp_path):
        """Test a missing explicit path raises."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_no_file_found(self, tmp_path, monkeypatch):
        """Test defaults are used when no config file exists."""
        monkeypatch.setattr("urllens.config.DEFAULT_CONFIG_PATHS", [tmp_path / "missing.yaml"])
        assert load_config() == get_default_config()


class TestProfiles:
    """Tests for budget profiles."""

    def test_known_profiles(self):
        """Test the shipped profiles."""
        config = get_default_config()
        assert get_profile(config, "quick")["max_urls"] == 25
        assert get_profile(config, "standard")["max_urls"] == 100
        assert get_profile(config, "thorough")["max_urls"] == 1000

    def test_unknown_profile_falls_back(self):
        """Test an unknown profile falls back to standard."""
        config = get_default_config()
        assert get_profile(config, "missing") == get_profile(config, "standard")

    def test_config_without_profiles(self):
        """Test the built-in profiles are used when the config has none."""
        assert get_profile({}, "quick")["max_urls"] == 25


class TestMergeConfigs:
    """Tests for merge_configs."""

    def test_nested_merge(self):
        """Test nested dictionaries merge recursively."""
        base = {"a": {"x": 1, "y": 2}, "b": 1}
        merged = merge_configs(base, {"a": {"y": 3}, "c": 4})
        assert merged == {"a": {"x": 1, "y": 3}, "b": 1, "c": 4}
        assert base == {"a": {"x": 1, "y": 2}, "b": 1}

    def test_scalar_replaces_dict(self):
        """Test a non-dict override replaces the value."""
        assert merge_configs({"a": {"x": 1}}, {"a": None}) == {"a": None}
