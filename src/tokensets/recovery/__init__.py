# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Operation lifecycle, backups, rollback and automatic repair."""

from tokensets.recovery.backup import (
    DEFAULT_MAX_BACKUPS,
    BackupFile,
    BackupManager,
    BackupManifest,
    BackupOutcome,
    file_digest,
)
from tokensets.recovery.git_ops import GitError, repository_root, uncommitted_changes
from tokensets.recovery.jsonrepair import STRATEGIES, JsonRepair, repair_json
from tokensets.recovery.lifecycle import LifecycleError, OperationLifecycle, OperationState
from tokensets.recovery.repair import attempt_partial_recovery, error_report

__all__ = [
    "DEFAULT_MAX_BACKUPS",
    "STRATEGIES",
    "BackupFile",
    "BackupManager",
    "BackupManifest",
    "BackupOutcome",
    "GitError",
    "JsonRepair",
    "LifecycleError",
    "OperationLifecycle",
    "OperationState",
    "attempt_partial_recovery",
    "error_report",
    "file_digest",
    "repair_json",
    "repository_root",
    "uncommitted_changes",
]
