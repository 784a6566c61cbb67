# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Workspace configuration for tokensets."""

from tokensets.workspace.config import (
    CONFIG_FILE,
    ConfigError,
    PartitionSettings,
    Settings,
    load_settings,
    save_settings,
)

__all__ = [
    "CONFIG_FILE",
    "ConfigError",
    "PartitionSettings",
    "Settings",
    "load_settings",
    "save_settings",
]
