# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Settings model and YAML loader for the ``.tokensets.yaml`` workspace file."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from tokensets.engine.partition import (
    DEFAULT_GROUP_ASSIGNMENTS,
    DEFAULT_RESIDUAL_SET,
    DEFAULT_SET_PRIORITY,
    PartitionPolicy,
)
from tokensets.recovery.backup import DEFAULT_MAX_BACKUPS, BackupManager
from tokensets.validation.checks import DEFAULT_EXPECTED_SETS, DEFAULT_RECOMMENDED_SETS, DEFAULT_REQUIRED_SETS

# ###############
# Public Interface
# ###############

CONFIG_FILE = ".tokensets.yaml"


class ConfigError(Exception):
    """Raised when the workspace configuration cannot be read, written, or is invalid."""


class PartitionSettings(BaseModel):
    """The ``partition`` section: how a canonical document is split into sets."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    set_priority: list[str] = Field(alias="set-priority", default_factory=lambda: list(DEFAULT_SET_PRIORITY))
    group_assignments: dict[str, str] = Field(
        alias="group-assignments", default_factory=lambda: dict(DEFAULT_GROUP_ASSIGNMENTS)
    )
    residual_set: str = Field(alias="residual-set", default=DEFAULT_RESIDUAL_SET, min_length=1)


class Settings(BaseModel):
    """Workspace settings.

    Relative paths are resolved against :attr:`root`, the directory holding
    the configuration file.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    tokens_directory: str = Field(alias="tokens-directory", default="tokens")
    canonical_path: str = Field(alias="canonical-path", default="tokensource.json")
    backup_directory: str = Field(alias="backup-directory", default=".backups")
    log_directory: str = Field(alias="log-directory", default=".logs")
    max_backups: int = Field(alias="max-backups", default=DEFAULT_MAX_BACKUPS, ge=1)
    max_path_length: int | None = Field(alias="max-path-length", default=None, gt=0)
    expected_sets: list[str] = Field(alias="expected-sets", default_factory=lambda: list(DEFAULT_EXPECTED_SETS))
    required_sets: list[str] = Field(alias="required-sets", default_factory=lambda: list(DEFAULT_REQUIRED_SETS))
    recommended_sets: list[str] = Field(
        alias="recommended-sets", default_factory=lambda: list(DEFAULT_RECOMMENDED_SETS)
    )
    partition: PartitionSettings = Field(default_factory=PartitionSettings)

    _root: Path = PrivateAttr(default_factory=Path.cwd)

    @property
    def root(self) -> Path:
        return self._root

    def at(self, root: Path) -> Settings:
        """Return a copy whose relative paths resolve against *root*."""
        settings = self.model_copy(deep=True)
        settings._root = root
        return settings

    def path(self, value: str | Path) -> Path:
        """Resolve *value* against the workspace root."""
        path = Path(value)
        return path if path.is_absolute() else self._root / path

    @property
    def tokens_path(self) -> Path:
        return self.path(self.tokens_directory)

    @property
    def canonical_file(self) -> Path:
        return self.path(self.canonical_path)

    @property
    def backup_path(self) -> Path:
        return self.path(self.backup_directory)

    @property
    def log_path(self) -> Path:
        return self.path(self.log_directory)

    def ignored(self) -> list[Path]:
        """Directories that never hold token sets and are never backed up."""
        return [self.backup_path, self.log_path]

    def policy(self) -> PartitionPolicy:
        return PartitionPolicy(
            set_priority=list(self.partition.set_priority),
            group_assignments=dict(self.partition.group_assignments),
            residual_set=self.partition.residual_set,
        )

    def backup_manager(self) -> BackupManager:
        return BackupManager(
            self.backup_path,
            max_backups=self.max_backups,
            ignore=[self.log_path],
            max_path_length=self.max_path_length,
        )


def load_settings(root: Path) -> Settings:
    """Load the settings of the workspace rooted at *root*.

    A missing configuration file yields the defaults. An empty file is treated
    the same way.

    Args:
        root: The workspace directory.

    Returns:
        The validated settings, resolving relative paths against *root*.

    Raises:
        ConfigError: If the file cannot be read, contains invalid YAML, or
            does not conform to the expected schema.
    """
    path = root / CONFIG_FILE
    if not path.exists():
        return Settings().at(root)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read configuration '{path}': {exc}") from exc

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in configuration '{path}': {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: configuration must be a YAML mapping")

    try:
        return Settings.model_validate(data).at(root)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration '{path}': {exc}") from exc


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Save *settings* as YAML with sorted keys.

    Args:
        settings: The settings to serialize.
        path: Destination; defaults to ``CONFIG_FILE`` in the settings root.

    Returns:
        The written path.

    Raises:
        ConfigError: If the file cannot be written.
    """
    path = path or settings.root / CONFIG_FILE
    data = settings.model_dump(by_alias=True, exclude_none=True)
    try:
        path.write_text(yaml.dump(data, default_flow_style=False, sort_keys=True), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot write configuration '{path}': {exc}") from exc
    return path
