# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the workspace configuration module."""

from pathlib import Path

import pytest

from tokensets.workspace import CONFIG_FILE, ConfigError, Settings, load_settings, save_settings

# ###############
# Helpers
# ###############


def _write_config(tmp_path: Path, content: str) -> Path:
    """Write a workspace config file and return its path."""
    config_file = tmp_path / CONFIG_FILE
    config_file.write_text(content, encoding="utf-8")
    return config_file


# ###############
# Normal Cases
# ###############


def test_missing_file_yields_defaults(tmp_path: Path) -> None:
    """Without a config file every setting has its default."""
    settings = load_settings(tmp_path)

    assert settings.tokens_directory == "tokens"
    assert settings.canonical_path == "tokensource.json"
    assert settings.max_backups == 10
    assert settings.max_path_length is None
    assert settings.root == tmp_path


def test_empty_file_yields_defaults(tmp_path: Path) -> None:
    """An empty config file is treated like a missing one."""
    _write_config(tmp_path, "")
    assert load_settings(tmp_path).backup_directory == ".backups"


def test_paths_resolve_against_root(tmp_path: Path) -> None:
    """Relative paths resolve against the workspace root; absolute ones are kept."""
    _write_config(tmp_path, f"tokens-directory: design/tokens\nlog-directory: {tmp_path / 'logs'}\n")
    settings = load_settings(tmp_path)

    assert settings.tokens_path == tmp_path / "design" / "tokens"
    assert settings.canonical_file == tmp_path / "tokensource.json"
    assert settings.log_path == tmp_path / "logs"
    assert settings.ignored() == [tmp_path / ".backups", tmp_path / "logs"]


def test_partition_section(tmp_path: Path) -> None:
    """The partition section configures the partition policy."""
    content = """\
partition:
  set-priority: [base, theme]
  group-assignments:
    elevation: base
  residual-set: rest
"""
    _write_config(tmp_path, content)
    policy = load_settings(tmp_path).policy()

    assert policy.set_priority == ["base", "theme"]
    assert policy.group_assignments == {"elevation": "base"}
    assert policy.residual_set == "rest"


def test_validation_sets(tmp_path: Path) -> None:
    """Expected, required and recommended sets are configurable."""
    _write_config(tmp_path, "expected-sets: [base]\nrequired-sets: [base]\nrecommended-sets: []\n")
    settings = load_settings(tmp_path)

    assert settings.expected_sets == ["base"]
    assert settings.required_sets == ["base"]
    assert settings.recommended_sets == []


def test_backup_manager_uses_settings(tmp_path: Path) -> None:
    """The backup manager honours the backup directory and limits."""
    _write_config(tmp_path, "max-backups: 3\nmax-path-length: 200\n")
    manager = load_settings(tmp_path).backup_manager()

    assert manager.backup_dir == tmp_path / ".backups"
    assert manager.max_backups == 3
    assert manager.max_path_length == 200
    assert tmp_path / ".logs" in manager.ignore


def test_at_returns_independent_copy(tmp_path: Path) -> None:
    """at() rebinds the root without touching the original settings."""
    settings = Settings()
    moved = settings.at(tmp_path)

    assert moved.root == tmp_path
    assert settings.root == Path.cwd()


def test_save_and_load(tmp_path: Path) -> None:
    """Saved settings load back unchanged."""
    settings = Settings(tokens_directory="src/tokens", max_backups=5).at(tmp_path)
    path = save_settings(settings)

    assert path == tmp_path / CONFIG_FILE
    assert "tokens-directory: src/tokens" in path.read_text(encoding="utf-8")
    assert load_settings(tmp_path).model_dump() == settings.model_dump()


# ###############
# Error Cases
# ###############


def test_invalid_yaml(tmp_path: Path) -> None:
    """Malformed YAML raises ConfigError."""
    _write_config(tmp_path, "tokens-directory: [unclosed\n")
    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_settings(tmp_path)


def test_non_mapping(tmp_path: Path) -> None:
    """A YAML list is not a configuration."""
    _write_config(tmp_path, "- tokens\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_settings(tmp_path)


def test_unknown_key(tmp_path: Path) -> None:
    """Unknown keys are rejected."""
    _write_config(tmp_path, "token-dir: tokens\n")
    with pytest.raises(ConfigError, match="Invalid configuration"):
        load_settings(tmp_path)


def test_max_backups_must_be_positive(tmp_path: Path) -> None:
    """max-backups below one is rejected."""
    _write_config(tmp_path, "max-backups: 0\n")
    with pytest.raises(ConfigError):
        load_settings(tmp_path)


def test_empty_residual_set(tmp_path: Path) -> None:
    """The residual set needs a name."""
    _write_config(tmp_path, "partition:\n  residual-set: ''\n")
    with pytest.raises(ConfigError):
        load_settings(tmp_path)
