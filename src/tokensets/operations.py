# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Public operations.

Every operation takes optional :class:`~tokensets.workspace.config.Settings`
(defaults when omitted) and never raises for problems with the token files:
module errors are converted into a failed :class:`~tokensets.model.reports.Result`
whose errors name the path, the kind and a remediation. Mutating operations
back up what they touch before writing, and track their progress with an
:class:`~tokensets.recovery.lifecycle.OperationLifecycle`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from tokensets import engine
from tokensets.codec.studio import CodecError
from tokensets.engine.partition import TransformError
from tokensets.files.structure import (
    StructureError,
    init_modular_tree,
    os_error_issue,
    read_json_file,
    scan_modular_tree,
    write_json,
    write_modular_tree,
)
from tokensets.logs import context
from tokensets.model.reports import Issue, IssueKind, Result, Severity, ValidationReport
from tokensets.recovery.backup import BackupManifest, BackupOutcome
from tokensets.recovery.lifecycle import OperationLifecycle, OperationState
from tokensets.recovery.repair import attempt_partial_recovery, error_report
from tokensets.session import EditingSession
from tokensets.validation.checks import validate_tree
from tokensets.workspace.config import CONFIG_FILE, ConfigError, Settings, save_settings

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def split(canonical_path: Path, output_dir: Path, settings: Settings | None = None) -> Result:
    """Split the canonical document into a modular tree.

    The tree is checked for round-trip equivalence before anything is
    written. Set files in *output_dir* that the new tree no longer contains
    are removed.

    Returns:
        The result; ``details`` holds ``backup_id``, the ``sets`` in order,
        the ``files`` written and advisory ``warnings``.
    """
    settings = settings or Settings()
    lifecycle = OperationLifecycle("split")
    try:
        document = _read_canonical(canonical_path)
        policy = settings.policy()
        tree = engine.split(document, policy)
        differences = engine.verify_roundtrip(document, tree, policy)
        if differences:
            raise TransformError("Split would not round-trip to the canonical document", differences)

        _backup(lifecycle, settings, [output_dir])
        lifecycle.executing()
        written = write_modular_tree(
            output_dir,
            tree,
            prune_stale=True,
            max_path_length=settings.max_path_length,
            ignore=settings.ignored(),
        )
        report = _validate(output_dir, settings, canonical=document)
        if not report.is_valid:
            return _failed(lifecycle, "Split produced an invalid modular tree", report.blocking_issues)
        return _succeeded(
            lifecycle,
            settings,
            f"Split {canonical_path.name} into {len(tree.sets)} token sets",
            sets=tree.order,
            files=[str(path) for path in written],
            warnings=[issue.describe() for issue in report.warnings],
        )
    except (StructureError, TransformError) as exc:
        return _failed(lifecycle, str(exc), exc.issues)
    except CodecError as exc:
        return _failed(lifecycle, str(exc), [exc.issue])
    except OSError as exc:
        return _failed(lifecycle, f"Split failed: {exc}", [os_error_issue(exc, Path(exc.filename or output_dir))])
    except Exception as exc:
        return _unexpected(lifecycle, exc, canonical_path=str(canonical_path), output_dir=str(output_dir))


def consolidate(input_dir: Path, canonical_path: Path, settings: Settings | None = None) -> Result:
    """Rebuild the canonical document from a modular tree.

    The tree is validated first; blocking issues abort the operation before
    the canonical document is touched. The written document is read back and
    verified against the tree.

    Returns:
        The result; ``details`` holds ``backup_id``, the ``sets``, the
        ``tokens`` count and advisory ``warnings``.
    """
    settings = settings or Settings()
    lifecycle = OperationLifecycle("consolidate")
    try:
        report = _validate(input_dir, settings)
        if not report.is_valid:
            return _failed(
                lifecycle,
                f"Modular tree '{input_dir}' has {len(report.blocking_issues)} blocking issues",
                report.blocking_issues,
            )
        tree = scan_modular_tree(input_dir, settings.ignored()).tree
        consolidation = engine.consolidate(tree)

        _backup(lifecycle, settings, [canonical_path])
        lifecycle.executing()
        try:
            write_json(canonical_path, consolidation.document)
        except OSError as exc:
            issue = os_error_issue(exc, canonical_path)
            raise StructureError(f"Cannot write '{canonical_path}': {issue.message}", [issue]) from exc

        differences = engine.verify_roundtrip(_read_canonical(canonical_path), tree, settings.policy())
        if differences:
            return _failed(lifecycle, "Consolidated document does not match the modular tree", differences)
        return _succeeded(
            lifecycle,
            settings,
            f"Consolidated {len(tree.sets)} token sets into {canonical_path.name}",
            sets=tree.order,
            tokens=len(consolidation.index),
            warnings=[issue.describe() for issue in report.warnings],
        )
    except (StructureError, TransformError) as exc:
        return _failed(lifecycle, str(exc), exc.issues)
    except CodecError as exc:
        return _failed(lifecycle, str(exc), [exc.issue])
    except OSError as exc:
        return _failed(lifecycle, f"Consolidate failed: {exc}", [os_error_issue(exc, Path(exc.filename or input_dir))])
    except Exception as exc:
        return _unexpected(lifecycle, exc, input_dir=str(input_dir), canonical_path=str(canonical_path))


def validate(
    input_dir: Path,
    canonical_path: Path | None = None,
    session: EditingSession | None = None,
    settings: Settings | None = None,
) -> ValidationReport:
    """Validate a modular tree, optionally against the canonical document.

    Args:
        input_dir: The tokens directory.
        canonical_path: When given, the tree is also compared with this
            canonical document at the resolved-value level.
        session: When given, the report is narrowed to the files the
            session touched.
        settings: Workspace settings.
    """
    settings = settings or Settings()
    canonical: dict[str, Any] | None = None
    report = ValidationReport()
    if canonical_path is not None:
        try:
            canonical = _read_canonical(canonical_path)
        except StructureError as exc:
            report.issues.extend(exc.issues)
    report.extend(_validate(input_dir, settings, canonical=canonical))
    if session is not None:
        report = session.narrow(report)
    logger.info(
        "validated %s: %d blocking issues, %d warnings",
        input_dir,
        len(report.blocking_issues),
        len(report.warnings),
        extra=context(operation="validate", file_path=str(input_dir)),
    )
    return report


def list_backups(settings: Settings | None = None) -> list[BackupManifest]:
    """Return every backup, newest first."""
    settings = settings or Settings()
    return settings.backup_manager().list()


def rollback(backup_id: str, dry_run: bool = False, force: bool = False, settings: Settings | None = None) -> Result:
    """Restore the files recorded in a backup.

    See :meth:`~tokensets.recovery.backup.BackupManager.rollback`.
    """
    settings = settings or Settings()
    try:
        return settings.backup_manager().rollback(backup_id, dry_run=dry_run, force=force)
    except OSError as exc:
        issue = os_error_issue(exc, Path(exc.filename or settings.backup_path))
        logger.error("rollback to %s failed: %s", backup_id, exc, extra=context(backup_id=backup_id))
        return Result.failure(f"Rollback to {backup_id} failed", [issue], backup_id=backup_id)


def recover(
    report: ValidationReport | None,
    input_dir: Path,
    dry_run: bool = False,
    fix_references: bool = False,
    settings: Settings | None = None,
) -> Result:
    """Repair what can be repaired in a modular tree.

    Args:
        report: The report to act on; the tree is validated first when
            omitted.
        input_dir: The tokens directory.
        dry_run: Report the planned fixes without writing.
        fix_references: Apply unambiguous reference replacements.
        settings: Workspace settings.

    Returns:
        The result of :func:`~tokensets.recovery.repair.attempt_partial_recovery`.
        Unless *dry_run*, ``details`` also holds the ``report`` of a fresh
        validation, and the result only succeeds if that report is valid.
    """
    settings = settings or Settings()
    if report is None:
        report = validate(input_dir, settings=settings)
    if dry_run:
        return _recover(report, input_dir, settings, dry_run=True, fix_references=fix_references)

    lifecycle = OperationLifecycle("recover")
    if report.is_valid:
        lifecycle.executing()
    else:
        lifecycle.failed(f"{len(report.blocking_issues)} blocking issues")
        lifecycle.recovering()
    try:
        result = _recover(report, input_dir, settings, dry_run=False, fix_references=fix_references)
        lifecycle.backup_id = result.details.get("backup_id")
        after = _validate(input_dir, settings)
    except Exception as exc:
        if lifecycle.state is OperationState.EXECUTING:
            lifecycle.failed(str(exc))
            lifecycle.recovering()
        lifecycle.unrecovered(str(exc))
        return Result.failure(
            f"Recovery failed: {exc}",
            [_unexpected_issue(exc, operation="recover", input_dir=str(input_dir))],
        )

    result.details["report"] = after.to_dict()
    if not after.is_valid:
        remaining = [issue.describe() for issue in after.blocking_issues if issue.describe() not in result.errors]
        result.success = False
        result.errors.extend(remaining)
    if lifecycle.state is OperationState.EXECUTING:
        if result.success:
            lifecycle.succeeded(result.message)
        else:
            lifecycle.failed(result.message)
    elif result.success:
        lifecycle.recovered(result.message)
    else:
        lifecycle.unrecovered(result.message)
    if not result.success and result.details.get("backup_id"):
        result.suggestions.append(f"Run 'tokensets rollback {result.details['backup_id']}' to undo the recovery")
    return result


def init(directory: Path, settings: Settings | None = None) -> Result:
    """Create a workspace in *directory*.

    Writes ``.tokensets.yaml`` and creates the tokens directory with an
    empty ``$metadata.json`` and a default ``$themes.json``. Existing files
    are left untouched.
    """
    settings = (settings or Settings()).at(directory)
    created: list[str] = []
    try:
        directory.mkdir(parents=True, exist_ok=True)
        config = directory / CONFIG_FILE
        if not config.exists():
            created.append(str(save_settings(settings, config)))
        created.extend(str(path) for path in init_modular_tree(settings.tokens_path, settings.max_path_length))
    except ConfigError as exc:
        issue = Issue(
            kind=IssueKind.PERMISSION_DENIED,
            severity=Severity.CRITICAL,
            message=str(exc),
            file=str(directory / CONFIG_FILE),
            suggestion="Check that the directory is writable",
        )
        return Result.failure(f"Cannot initialize workspace in '{directory}'", [issue])
    except StructureError as exc:
        return Result.failure(f"Cannot initialize workspace in '{directory}'", exc.issues)
    except OSError as exc:
        return Result.failure(f"Cannot initialize workspace in '{directory}'", [os_error_issue(exc, directory)])

    logger.info("initialized workspace %s", directory, extra=context(operation="init", file_path=str(directory)))
    if not created:
        return Result(success=True, message=f"Workspace in '{directory}' already initialized", details={"created": []})
    return Result(success=True, message=f"Initialized workspace in '{directory}'", details={"created": created})


# ################
# Implementation
# ################


def _read_canonical(path: Path) -> dict[str, Any]:
    data, issue = read_json_file(path)
    if issue is not None:
        raise StructureError(f"Cannot read canonical document '{path}': {issue.message}", [issue])
    if not isinstance(data, dict):
        issue = Issue(
            kind=IssueKind.STRUCTURAL_MISMATCH,
            severity=Severity.CRITICAL,
            message="canonical document must be a JSON object",
            file=str(path),
            suggestion="Wrap the token groups in a JSON object",
        )
        raise StructureError(f"Invalid canonical document '{path}'", [issue])
    return data


def _validate(directory: Path, settings: Settings, canonical: dict[str, Any] | None = None) -> ValidationReport:
    return validate_tree(
        directory,
        canonical,
        expected_sets=settings.expected_sets,
        required_sets=settings.required_sets,
        recommended_sets=settings.recommended_sets,
        policy=settings.policy(),
        ignore=settings.ignored(),
    )


def _recover(
    report: ValidationReport, input_dir: Path, settings: Settings, *, dry_run: bool, fix_references: bool
) -> Result:
    return attempt_partial_recovery(
        report,
        input_dir,
        settings.backup_manager(),
        dry_run=dry_run,
        fix_references=fix_references,
        ignore=settings.ignored(),
        policy=settings.policy(),
    )


def _backup(lifecycle: OperationLifecycle, settings: Settings, paths: list[Path]) -> BackupOutcome:
    outcome = settings.backup_manager().create(lifecycle.operation, paths)
    if outcome.created:
        lifecycle.backed_up(outcome.backup_id)
    return outcome


def _succeeded(lifecycle: OperationLifecycle, settings: Settings, message: str, **details: Any) -> Result:
    if lifecycle.backup_id is not None:
        settings.backup_manager().seal(lifecycle.backup_id)
    lifecycle.succeeded(message)
    return Result(success=True, message=message, details={"backup_id": lifecycle.backup_id, **details})


def _failed(lifecycle: OperationLifecycle, message: str, issues: list[Issue]) -> Result:
    lifecycle.failed(message)
    result = Result.failure(message, issues, backup_id=lifecycle.backup_id)
    if lifecycle.backup_id is not None:
        result.suggestions.append(f"Run 'tokensets rollback {lifecycle.backup_id}' to restore the previous state")
    return result


def _unexpected(lifecycle: OperationLifecycle, exc: Exception, **info: Any) -> Result:
    issue = _unexpected_issue(exc, operation=lifecycle.operation, **info)
    return _failed(lifecycle, f"{lifecycle.operation} failed unexpectedly: {exc}", [issue])


def _unexpected_issue(exc: Exception, **info: Any) -> Issue:
    summary = error_report(exc, info)
    logger.exception("unexpected %s", summary["error"]["type"], extra=context(operation=info.get("operation")))
    return Issue(
        kind=IssueKind.STRUCTURAL_MISMATCH,
        severity=Severity(summary["severity"]),
        message=f"{summary['error']['type']}: {summary['error']['message']}",
        suggestion=summary["suggestions"][0] if summary["suggestions"] else None,
        details={"category": summary["category"]},
    )
