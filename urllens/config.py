"""YAML configuration for discovery budgets and ingestion limits."""

import copy
from pathlib import Path
from typing import Any

import yaml

# Searched in order when no explicit file is given
DEFAULT_CONFIG_PATHS = [
    Path("configs/default.yaml"),
    Path("urllens.yaml"),
    Path.home() / ".urllens" / "config.yaml",
]

DEFAULT_PROFILE = "standard"


def find_config_file(config_path: Path | None = None) -> Path | None:
    """Locate the config file to load.

    Args:
        config_path: Explicit file; must exist when given.

    Returns:
        First existing candidate, or None when nothing is found.

    Raises:
        FileNotFoundError: If ``config_path`` is given but missing.
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return config_path

    return next((path for path in DEFAULT_CONFIG_PATHS if path.exists()), None)


def load_config(config_path: Path | None = None) -> dict[str, Any]:
    """Load settings, layering the YAML file over the built-in defaults.

    A file only needs the keys it changes; everything else keeps its
    default value.

    Args:
        config_path: Explicit YAML file. The default locations are searched
                    when omitted.

    Returns:
        Complete settings dictionary.

    Raises:
        FileNotFoundError: If an explicit config path does not exist.
    """
    defaults = get_default_config()
    source = find_config_file(config_path)
    if source is None:
        return defaults

    overrides = yaml.safe_load(source.read_text(encoding="utf-8")) or {}
    return merge_configs(defaults, overrides)


def get_default_config() -> dict[str, Any]:
    """Built-in settings, returned as a fresh dictionary on every call."""
    return {
        "discovery": {
            "max_urls": 100,
            "max_sitemaps": 50,
            "max_depth": 2,
            "max_concurrency": 5,
            "timeout": 10,
            "max_document_bytes": 10 * 1024 * 1024,
            "user_agent": "URLLensBot/1.0",
            "respect_robots_txt": True,
            "probe_standard_sitemaps": True,
            "include_root": True,
        },
        "ingest": {
            "max_file_bytes": 5 * 1024 * 1024,
            "delimiter_sample_lines": 5,
        },
        "profiles": {
            "quick": {
                "max_urls": 25,
                "max_sitemaps": 5,
                "max_depth": 1,
                "max_concurrency": 3,
                "timeout": 5,
            },
            "standard": {
                "max_urls": 100,
                "max_sitemaps": 50,
                "max_depth": 2,
                "max_concurrency": 5,
                "timeout": 10,
            },
            "thorough": {
                "max_urls": 1000,
                "max_sitemaps": 200,
                "max_depth": 2,
                "max_concurrency": 10,
                "timeout": 20,
            },
        },
    }


def get_profile(config: dict[str, Any], profile_name: str) -> dict[str, Any]:
    """Look up a discovery budget profile by name.

    Args:
        config: Settings dictionary.
        profile_name: ``quick``, ``standard`` or ``thorough``.

    Returns:
        Budget overrides of the profile; the standard profile when the name
        is unknown.
    """
    profiles = config.get("profiles") or get_default_config()["profiles"]
    if profile_name in profiles:
        return profiles[profile_name]
    return profiles[DEFAULT_PROFILE]


def merge_configs(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge ``override`` into a copy of ``base``.

    Nested sections merge key by key; any other value in ``override``
    replaces the one in ``base``. Neither input is modified.
    """
    merged = copy.deepcopy(base)

    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = copy.deepcopy(value)

    return merged
