# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Backups taken before mutating operations, and rollback to them.

A backup lives in ``<backup-dir>/<id>/``: ``manifest.json`` describes it and
``data/<n>/`` holds a copy of the n-th source path. Source paths that did not
exist are recorded so that rollback can remove what the operation created.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import shutil
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tokensets.files.structure import check_path_length, os_error_issue, write_json
from tokensets.logs import context
from tokensets.model.reports import Issue, IssueKind, Result, Severity
from tokensets.recovery.git_ops import GitError, uncommitted_changes

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

MANIFEST_FILE = "manifest.json"
DATA_DIR = "data"
DEFAULT_MAX_BACKUPS = 10


class BackupFile(BaseModel):
    """A file copied into a backup."""

    model_config = ConfigDict(populate_by_name=True)

    original_path: str = Field(alias="originalPath")
    backup_path: str = Field(alias="backupPath")
    sha256: str


class BackupManifest(BaseModel):
    """Description of one backup, stored as ``manifest.json``.

    Attributes:
        id: Backup identifier, also its directory name.
        timestamp: UTC creation time in ISO 8601.
        operation: Name of the operation the backup protects.
        source_paths: Absolute paths that were backed up.
        files: Every copied file.
        absent_paths: Source paths that did not exist at backup time.
        directories: Every directory that existed below the source paths.
        result_files: Hash of every file below the source paths once the
            operation completed (``None`` until sealed).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    timestamp: str
    operation: str
    source_paths: list[str] = Field(alias="sourcePaths", default_factory=list)
    files: list[BackupFile] = Field(default_factory=list)
    absent_paths: list[str] = Field(alias="absentPaths", default_factory=list)
    directories: list[str] = Field(default_factory=list)
    result_files: dict[str, str] | None = Field(alias="resultFiles", default=None)

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True)


@dataclass
class BackupOutcome:
    """Result of :meth:`BackupManager.create`.

    Attributes:
        manifest: The written manifest, or ``None`` when the backup was
            aborted.
        warnings: Why the backup was aborted, if it was.
    """

    manifest: BackupManifest | None = None
    warnings: list[Issue] = field(default_factory=list)

    @property
    def created(self) -> bool:
        return self.manifest is not None

    @property
    def backup_id(self) -> str | None:
        return self.manifest.id if self.manifest is not None else None


class BackupManager:
    """Creates, lists, prunes and restores backups.

    Args:
        backup_dir: Directory holding one sub-directory per backup.
        max_backups: Number of backups kept; the oldest are pruned first.
        ignore: Directories never copied or touched (the log directory). The
            backup directory itself is always ignored.
        max_path_length: Override of the platform path length limit.
    """

    def __init__(
        self,
        backup_dir: Path,
        max_backups: int = DEFAULT_MAX_BACKUPS,
        ignore: Iterable[Path] = (),
        max_path_length: int | None = None,
    ) -> None:
        self.backup_dir = backup_dir
        self.max_backups = max_backups
        self.ignore = [backup_dir, *ignore]
        self.max_path_length = max_path_length

    def create(self, operation: str, paths: Iterable[Path], protect: Iterable[str] = ()) -> BackupOutcome:
        """Back up *paths* before *operation* modifies them.

        Args:
            operation: Operation name, recorded in the manifest and the id.
            paths: Files and directories the operation may modify.
            protect: Backup ids that pruning must keep.

        Returns:
            The outcome. An over-long path aborts the backup, leaving nothing
            behind, and is reported as a warning instead of an error.

        Raises:
            OSError: If copying fails for another reason.
        """
        now = datetime.now(timezone.utc)
        backup_id = f"{operation}-{now:%Y%m%dT%H%M%S%f}-{secrets.token_hex(3)}"
        target = self.backup_dir / backup_id
        manifest = BackupManifest(id=backup_id, timestamp=now.isoformat(), operation=operation)

        plan: list[tuple[Path, Path]] = []
        for number, source in enumerate(Path(p).absolute() for p in paths):
            manifest.source_paths.append(str(source))
            if not source.exists():
                manifest.absent_paths.append(str(source))
                continue
            if source.is_dir():
                manifest.directories.extend(str(folder) for folder in self._directories(source))
                for file in self._files(source):
                    plan.append((file, Path(DATA_DIR, str(number), file.relative_to(source))))
            else:
                plan.append((source, Path(DATA_DIR, str(number), source.name)))

        too_long = [
            issue
            for _, relative in plan
            if (issue := check_path_length(target / relative, self.max_path_length)) is not None
        ]
        if too_long:
            for issue in too_long:
                logger.warning(
                    "backup for %s aborted: %s", operation, issue.describe(), extra=context(operation=operation)
                )
            return BackupOutcome(warnings=too_long)

        try:
            for source, relative in plan:
                destination = target / relative
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(source, destination)
                manifest.files.append(
                    BackupFile(original_path=str(source), backup_path=relative.as_posix(), sha256=file_digest(source))
                )
            target.mkdir(parents=True, exist_ok=True)
            write_json(target / MANIFEST_FILE, manifest.to_json())
        except OSError:
            shutil.rmtree(target, ignore_errors=True)
            raise

        logger.info(
            "created backup %s (%d files)",
            backup_id,
            len(manifest.files),
            extra=context(operation=operation, backup_id=backup_id),
        )
        self.prune(protect=[backup_id, *protect])
        return BackupOutcome(manifest=manifest)

    def seal(self, backup_id: str) -> BackupManifest | None:
        """Record the post-operation hash of every file below the source paths.

        Rollback later refuses to overwrite files whose hash changed since.
        """
        manifest = self.get(backup_id)
        if manifest is None:
            return None
        manifest.result_files = self._current_hashes(manifest)
        write_json(self.backup_dir / backup_id / MANIFEST_FILE, manifest.to_json())
        return manifest

    def list(self) -> list[BackupManifest]:
        """Return every readable backup, newest first."""
        manifests: list[BackupManifest] = []
        if not self.backup_dir.is_dir():
            return manifests
        for folder in self.backup_dir.iterdir():
            manifest = self._load(folder)
            if manifest is not None:
                manifests.append(manifest)
        manifests.sort(key=lambda m: (m.timestamp, m.id), reverse=True)
        return manifests

    def get(self, backup_id: str) -> BackupManifest | None:
        """Return the manifest of *backup_id*, or ``None`` if it does not exist."""
        if not backup_id or "/" in backup_id or "\\" in backup_id or backup_id.startswith("."):
            return None
        return self._load(self.backup_dir / backup_id)

    def prune(self, protect: Iterable[str] = ()) -> list[str]:
        """Delete the oldest backups beyond ``max_backups``.

        Returns:
            The ids of the deleted backups.
        """
        keep = set(protect)
        removed: list[str] = []
        manifests = self.list()
        excess = len(manifests) - self.max_backups
        for manifest in reversed(manifests):
            if excess <= 0:
                break
            if manifest.id in keep:
                continue
            shutil.rmtree(self.backup_dir / manifest.id, ignore_errors=True)
            removed.append(manifest.id)
            excess -= 1
        for backup_id in removed:
            logger.info("pruned backup %s", backup_id, extra=context(backup_id=backup_id))
        return removed

    def plan_rollback(self, manifest: BackupManifest) -> tuple[list[str], list[str]]:
        """Return ``(restore, remove)``: files to restore and paths to delete."""
        restore = [entry.original_path for entry in manifest.files]
        backed_up = set(restore)
        remove: list[str] = []
        for source in manifest.source_paths:
            path = Path(source)
            if source in manifest.absent_paths:
                if path.exists():
                    remove.append(source)
            elif path.is_dir():
                remove.extend(str(file) for file in self._files(path) if str(file) not in backed_up)
        return restore, remove

    def rollback(self, backup_id: str, dry_run: bool = False, force: bool = False) -> Result:
        """Restore the files recorded in a backup.

        Files the operation created are removed, so the affected paths end up
        byte-for-byte as they were when the backup was taken.

        Args:
            backup_id: The backup to restore.
            dry_run: Report what would be restored and removed without
                touching the disk.
            force: Skip the check for changes made after the operation.

        Returns:
            The result; ``details`` lists restored and removed paths and the
            id of the pre-rollback backup.
        """
        manifest = self.get(backup_id)
        if manifest is None:
            issue = Issue(
                kind=IssueKind.MISSING_REQUIRED_FILE,
                severity=Severity.CRITICAL,
                message=f"backup '{backup_id}' does not exist",
                file=str(self.backup_dir / backup_id),
                suggestion="Run 'tokensets backups' to list the available backups",
            )
            return Result.failure(f"Backup '{backup_id}' not found", [issue])

        restore, remove = self.plan_rollback(manifest)
        if dry_run:
            return Result(
                success=True,
                message=f"Dry run: would restore {len(restore)} files and remove {len(remove)} from backup {backup_id}",
                details={"backup_id": backup_id, "dry_run": True, "restore": restore, "remove": remove},
            )

        if not force:
            conflicts = self.unsafe_changes(manifest)
            if conflicts:
                issue = Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message=f"{len(conflicts)} files changed after the operation and would be overwritten",
                    file=conflicts[0],
                    suggestion="Commit or copy the changes, or rerun the rollback with --force",
                    details={"changed": conflicts},
                )
                return Result.failure(f"Rollback to {backup_id} is not safe", [issue], backup_id=backup_id)

        existing = [Path(p) for p in manifest.source_paths if Path(p).exists()]
        pre_rollback = self.create("pre-rollback", existing, protect=[backup_id]) if existing else BackupOutcome()
        warnings = [issue.describe() for issue in pre_rollback.warnings]

        try:
            for path in remove:
                _remove(Path(path), self.ignore)
            for entry in manifest.files:
                destination = Path(entry.original_path)
                destination.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(self.backup_dir / backup_id / entry.backup_path, destination)
            for source in manifest.source_paths:
                if Path(source).is_dir() and source not in manifest.absent_paths:
                    self._remove_new_directories(Path(source), set(manifest.directories))
        except OSError as exc:
            issue = os_error_issue(exc, Path(getattr(exc, "filename", None) or self.backup_dir))
            logger.error("rollback to %s failed: %s", backup_id, exc, extra=context(backup_id=backup_id))
            return Result.failure(
                f"Rollback to {backup_id} failed",
                [issue],
                backup_id=backup_id,
                pre_rollback_backup=pre_rollback.backup_id,
            )

        logger.info(
            "rolled back to %s (%d restored, %d removed)",
            backup_id,
            len(restore),
            len(remove),
            extra=context(operation="rollback", backup_id=backup_id),
        )
        return Result(
            success=True,
            message=f"Restored {len(restore)} files from backup {backup_id}",
            suggestions=warnings,
            details={
                "backup_id": backup_id,
                "restore": restore,
                "remove": remove,
                "pre_rollback_backup": pre_rollback.backup_id,
            },
        )

    def unsafe_changes(self, manifest: BackupManifest) -> list[str]:
        """Return paths whose local changes a rollback would silently discard.

        A sealed backup compares current hashes with those recorded after the
        operation. An unsealed backup (the operation never completed) falls
        back to asking git for uncommitted changes; outside a repository, or
        without git, nothing is reported.
        """
        if manifest.result_files is not None:
            current = self._current_hashes(manifest)
            changed = [path for path, digest in manifest.result_files.items() if current.get(path) != digest]
            changed.extend(path for path in current if path not in manifest.result_files)
            return sorted(changed)
        try:
            return uncommitted_changes(Path(p) for p in manifest.source_paths if p not in manifest.absent_paths)
        except GitError as exc:
            logger.debug("git status unavailable, skipping uncommitted change check: %s", exc)
            return []

    # ################
    # Implementation
    # ################

    def _is_ignored(self, path: Path) -> bool:
        resolved = path.resolve()
        for root in self.ignore:
            root = root.resolve()
            if resolved == root or root in resolved.parents:
                return True
        return False

    def _files(self, directory: Path) -> Iterator[Path]:
        for path in sorted(directory.rglob("*")):
            if path.is_file() and not self._is_ignored(path):
                yield path

    def _directories(self, directory: Path) -> Iterator[Path]:
        yield directory
        for path in sorted(directory.rglob("*")):
            if path.is_dir() and not self._is_ignored(path):
                yield path

    def _current_hashes(self, manifest: BackupManifest) -> dict[str, str]:
        hashes: dict[str, str] = {}
        for source in manifest.source_paths:
            path = Path(source)
            if path.is_dir():
                hashes.update((str(file), file_digest(file)) for file in self._files(path))
            elif path.is_file():
                hashes[str(path)] = file_digest(path)
        return hashes

    def _remove_new_directories(self, root: Path, known: set[str]) -> None:
        for folder in sorted(self._directories(root), key=lambda p: len(p.parts), reverse=True):
            if str(folder) in known or folder == root:
                continue
            if not any(folder.iterdir()):
                folder.rmdir()

    def _load(self, folder: Path) -> BackupManifest | None:
        path = folder / MANIFEST_FILE
        if not path.is_file():
            return None
        try:
            return BackupManifest.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("ignoring unreadable backup manifest %s: %s", path, exc)
            return None


def file_digest(path: Path) -> str:
    """Return the SHA-256 hex digest of a file's bytes."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(65536), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _remove(path: Path, ignore: list[Path]) -> None:
    """Delete *path*, keeping any ignored directory below it."""
    if path.is_file() or path.is_symlink():
        path.unlink()
        return
    if not path.is_dir():
        return
    resolved_ignore = [root.resolve() for root in ignore]
    for child in path.iterdir():
        if child.resolve() in resolved_ignore:
            continue
        if child.is_dir() and not child.is_symlink():
            _remove(child, ignore)
        else:
            child.unlink()
    if not any(path.iterdir()):
        path.rmdir()
