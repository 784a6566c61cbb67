# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Best-effort automatic repair of a modular tree from a validation report.

Recovery always backs the tree up first, so the original content of every
file it touches stays available for rollback. Each recoverable issue is
addressed by exactly one fix; issues without a fix are reported back with
their suggestions and make the recovery unsuccessful.
"""

from __future__ import annotations

import json
import logging
import platform
import re
import sys
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tokensets.engine.partition import PartitionPolicy, derive_order
from tokensets.files.structure import (
    StructureError,
    default_theme,
    list_set_files,
    os_error_issue,
    read_json_file,
    set_file_path,
    write_json,
)
from tokensets.logs import context as log_context
from tokensets.model.reports import Issue, IssueKind, Result, Severity, ValidationReport
from tokensets.model.tree import METADATA_FILE, THEMES_FILE, Metadata
from tokensets.recovery.backup import BackupManager
from tokensets.recovery.git_ops import GitError
from tokensets.recovery.jsonrepair import repair_json
from tokensets.resolver.references import REFERENCE_PATTERN

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


def attempt_partial_recovery(
    report: ValidationReport,
    directory: Path,
    backups: BackupManager,
    *,
    dry_run: bool = False,
    fix_references: bool = False,
    ignore: Iterable[Path] = (),
    policy: PartitionPolicy | None = None,
) -> Result:
    """Repair what can be repaired automatically.

    Fixes, one per issue:

    - missing ``$metadata.json``: recreated with the set files present,
      ordered by the partition policy's set priority;
    - missing ``$themes.json``: recreated with the ``Base`` theme;
    - set listed in ``tokenSetOrder`` without a file: an empty set file;
    - invalid JSON: repaired with :func:`~tokensets.recovery.jsonrepair.repair_json`,
      or replaced by a minimal valid default when no strategy helps;
    - token without a type: the inferred ``$type`` is inserted;
    - unresolved reference: with *fix_references*, replaced by the single
      suggested candidate; otherwise reported with its suggestions;
    - reference only resolving through another naming convention: with
      *fix_references*, rewritten to the spelling that resolves.

    Args:
        report: Report of :func:`~tokensets.validation.checks.validate_tree`.
        directory: The tokens directory the report describes.
        backups: Manager used for the backup taken before any change.
        dry_run: Report the planned fixes without backing up or writing.
        fix_references: Apply unambiguous reference replacements.
        ignore: Directories below *directory* that never hold token sets.
        policy: Policy used to order an inferred ``tokenSetOrder``.

    Returns:
        The result. ``details`` holds ``backup_id``, the ``actions`` taken
        (or planned) and the ``unrecovered`` issues.
    """
    plan = _RecoveryPlan(directory, list(ignore), policy or PartitionPolicy(), fix_references)
    for issue in report.issues:
        plan.address(issue)

    details: dict[str, Any] = {
        "backup_id": None,
        "dry_run": dry_run,
        "actions": list(plan.actions),
        "unrecovered": [issue.to_dict() for issue in plan.unrecovered],
    }
    if dry_run:
        return _outcome(plan, details, "Dry run: ")

    if plan.writes:
        outcome = backups.create("recover", [directory])
        if not outcome.created:
            return Result.failure(
                "Refusing to recover without a backup",
                outcome.warnings,
                actions=[],
                unrecovered=[issue.to_dict() for issue in report.issues],
            )
        details["backup_id"] = outcome.backup_id
        try:
            plan.apply()
        except StructureError as exc:
            logger.error(
                "recovery of %s failed: %s",
                directory,
                exc,
                extra=log_context(operation="recover", backup_id=outcome.backup_id),
            )
            return Result.failure(f"Recovery failed: {exc}", exc.issues, **details)
        backups.seal(outcome.backup_id)

    for action in plan.actions:
        logger.info("recover: %s", action, extra=log_context(operation="recover", backup_id=details["backup_id"]))
    return _outcome(plan, details, "")


def error_report(exc: BaseException, context: dict[str, Any] | None = None) -> dict[str, Any]:
    """Summarise an unexpected exception for logs and bug reports.

    Args:
        exc: The exception.
        context: What was being done (operation, paths, ...).

    Returns:
        A JSON-serializable mapping with the error, its assessed severity and
        category, remediation suggestions and basic system information.
    """
    context = dict(context or {})
    category = _categorize(exc)
    issues = [issue for issue in getattr(exc, "issues", []) or [] if isinstance(issue, Issue)]
    suggestions = [issue.suggestion for issue in issues if issue.suggestion]
    suggestions.extend(_SUGGESTIONS.get(category, ()))
    if context.get("operation") == "split":
        suggestions.append("Check that the canonical document is a JSON object of token groups")
    if context.get("operation") == "consolidate":
        suggestions.append("Run 'tokensets validate' on the tokens directory first")
    return {
        "error": {
            "type": type(exc).__name__,
            "message": str(exc),
            "issues": [issue.to_dict() for issue in issues],
        },
        "context": context,
        "category": category,
        "severity": _assess_severity(category, issues).value,
        "suggestions": list(dict.fromkeys(suggestions)),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "system": {
            "python": sys.version.split()[0],
            "platform": platform.platform(),
            "cwd": str(Path.cwd()),
        },
    }


# ################
# Implementation
# ################

_SUGGESTIONS: dict[str, tuple[str, ...]] = {
    "missing_file": ("Check that the file or directory exists", "Run 'tokensets split' to create the token files"),
    "permission": ("Check the file permissions", "Ensure you have write access to the directory"),
    "json": ("Fix the JSON syntax in the affected file", "Run 'tokensets recover' to repair common JSON faults"),
    "git": ("Check the git repository status", "Rerun the rollback with --force to skip the git check"),
    "tokens": ("Run 'tokensets validate' for a full report",),
    "internal": ("Rerun with --verbose and report the log output",),
}


def _categorize(exc: BaseException) -> str:
    if isinstance(exc, FileNotFoundError):
        return "missing_file"
    if isinstance(exc, PermissionError):
        return "permission"
    if isinstance(exc, (json.JSONDecodeError, UnicodeDecodeError)):
        return "json"
    if isinstance(exc, GitError):
        return "git"
    if getattr(exc, "issues", None) is not None:
        return "tokens"
    if isinstance(exc, OSError):
        return "missing_file" if exc.filename else "internal"
    return "internal"


def _assess_severity(category: str, issues: list[Issue]) -> Severity:
    if issues:
        return min((issue.severity for issue in issues), key=_SEVERITY_RANK.index)
    if category == "missing_file":
        return Severity.CRITICAL
    if category in ("json", "permission"):
        return Severity.HIGH
    if category == "git":
        return Severity.LOW
    return Severity.MEDIUM


_SEVERITY_RANK = [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


def _outcome(plan: _RecoveryPlan, details: dict[str, Any], prefix: str) -> Result:
    unrecovered = plan.unrecovered
    suggestions = list(dict.fromkeys(issue.suggestion for issue in unrecovered if issue.suggestion))
    if unrecovered:
        return Result(
            success=False,
            message=f"{prefix}{len(plan.actions)} fixes, {len(unrecovered)} issues need manual attention",
            errors=[issue.describe() for issue in unrecovered],
            suggestions=suggestions,
            details=details,
        )
    if not plan.actions:
        return Result(success=True, message=f"{prefix}nothing to recover", details=details)
    return Result(success=True, message=f"{prefix}{len(plan.actions)} fixes", details=details)


@dataclass
class _RecoveryPlan:
    """Collects file changes for a recovery before anything is written."""

    directory: Path
    ignore: list[Path]
    policy: PartitionPolicy
    fix_references: bool
    writes: dict[Path, Any] = field(default_factory=dict)
    loaded: dict[Path, Any] = field(default_factory=dict)
    actions: list[str] = field(default_factory=list)
    unrecovered: list[Issue] = field(default_factory=list)

    def address(self, issue: Issue) -> None:
        handled = False
        if issue.kind is IssueKind.MISSING_REQUIRED_FILE:
            handled = self._missing_file(issue)
        elif issue.kind is IssueKind.INVALID_JSON:
            handled = self._invalid_json(issue)
        elif issue.kind is IssueKind.STRUCTURAL_MISMATCH and "set" in issue.details:
            handled = self._missing_set(issue.details["set"])
        elif issue.kind is IssueKind.MISSING_TOKEN_TYPE:
            handled = self._insert_type(issue)
        elif issue.kind is IssueKind.UNRESOLVED_REFERENCE:
            handled = self._fix_unresolved(issue)
        elif issue.kind is IssueKind.FORMAT_ISSUE and "replacement" in issue.details:
            handled = self._fix_alternative(issue)
        if not handled and issue.severity.blocking:
            self.unrecovered.append(issue)

    def apply(self) -> None:
        for path, data in self.writes.items():
            try:
                write_json(path, data)
            except OSError as exc:
                issue = os_error_issue(exc, path)
                raise StructureError(f"cannot write '{path}': {issue.message}", [issue]) from exc

    # Fixes. Each returns True if the issue is addressed.

    def _missing_file(self, issue: Issue) -> bool:
        if issue.file in (METADATA_FILE, THEMES_FILE) or issue.file == str(self.directory):
            if issue.file != THEMES_FILE:
                self._recreate_metadata()
            if issue.file != METADATA_FILE:
                self._recreate_themes()
            return True
        return False

    def _recreate_metadata(self) -> None:
        path = self.directory / METADATA_FILE
        if path in self.writes:
            return
        order = self._inferred_order()
        self.writes[path] = Metadata(token_set_order=order).to_json()
        self.actions.append(f"recreated {METADATA_FILE} with tokenSetOrder {order}")

    def _recreate_themes(self) -> None:
        path = self.directory / THEMES_FILE
        if path in self.writes:
            return
        order = self._current_order()
        self.writes[path] = [default_theme(order, self.policy.foundation(order)).to_json()]
        self.actions.append(f"recreated {THEMES_FILE} with the default theme")

    def _missing_set(self, name: str) -> bool:
        path = set_file_path(self.directory, name)
        if path not in self.writes:
            self.writes[path] = {}
            self.actions.append(f"created empty token set file {self._display(path)}")
        return True

    def _invalid_json(self, issue: Issue) -> bool:
        if issue.file is None:
            return False
        path = self._resolve(issue.file)
        try:
            text = path.read_bytes().decode("utf-8", errors="replace")
        except OSError:
            return False
        repaired = repair_json(text)
        if repaired is not None and self._acceptable(path, repaired.data):
            self.writes[path] = repaired.data
            applied = ", ".join(repaired.applied) or "re-encoding"
            self.actions.append(f"repaired {self._display(path)} ({applied})")
            return True

        if path.name == METADATA_FILE:
            self.writes[path] = Metadata(token_set_order=self._inferred_order()).to_json()
        elif path.name == THEMES_FILE:
            order = self._current_order()
            self.writes[path] = [default_theme(order, self.policy.foundation(order)).to_json()]
        else:
            self.writes[path] = {}
        self.actions.append(f"replaced unrepairable {self._display(path)} with a minimal default")
        return True

    def _insert_type(self, issue: Issue) -> bool:
        set_name = issue.details.get("set")
        token_path = issue.details.get("token_path")
        inferred = issue.details.get("inferred")
        if not (set_name and token_path and inferred):
            return False
        node = self._token_node(set_name, token_path)
        if node is None:
            return False
        key = "type" if "value" in node and "$value" not in node else "$type"
        typed = {key: inferred, **node}
        node.clear()
        node.update(typed)
        self._modified(set_name)
        self.actions.append(f"set type '{inferred}' on {set_name}.{token_path}")
        return True

    def _fix_unresolved(self, issue: Issue) -> bool:
        candidates = issue.details.get("candidates") or []
        if not self.fix_references or len(candidates) != 1:
            return False
        return self._replace_reference(issue, candidates[0])

    def _fix_alternative(self, issue: Issue) -> bool:
        if not self.fix_references:
            return False
        return self._replace_reference(issue, issue.details["replacement"])

    def _replace_reference(self, issue: Issue, replacement: str) -> bool:
        set_name = issue.details.get("set")
        token_path = issue.details.get("token_path")
        reference = issue.details.get("reference")
        if not (set_name and token_path and reference):
            return False
        node = self._token_node(set_name, token_path)
        if node is None:
            return False
        key = "$value" if "$value" in node else "value"
        updated = _replace_in(node[key], reference, replacement)
        if updated == node[key]:
            return False
        node[key] = updated
        self._modified(set_name)
        self.actions.append(f"replaced {{{reference}}} with {{{replacement}}} in {set_name}.{token_path}")
        return True

    # Helpers.

    def _resolve(self, file: str) -> Path:
        path = Path(file)
        return path if path.is_absolute() else self.directory / path

    def _display(self, path: Path) -> str:
        try:
            return path.relative_to(self.directory).as_posix()
        except ValueError:
            return str(path)

    def _acceptable(self, path: Path, data: Any) -> bool:
        if path.name == METADATA_FILE:
            return isinstance(data, dict)
        if path.name == THEMES_FILE:
            return isinstance(data, list)
        return isinstance(data, dict)

    def _set_names(self) -> list[str]:
        names = list(list_set_files(self.directory, self.ignore))
        for path in self.writes:
            if path.name not in (METADATA_FILE, THEMES_FILE) and path.suffix == ".json":
                name = self._display(path)[: -len(".json")]
                if name not in names:
                    names.append(name)
        return names

    def _inferred_order(self) -> list[str]:
        names = self._set_names()
        return derive_order(dict.fromkeys(names), [], self.policy)

    def _current_order(self) -> list[str]:
        pending = self.writes.get(self.directory / METADATA_FILE)
        if isinstance(pending, dict):
            return list(pending.get("tokenSetOrder", []))
        data, issue = read_json_file(self.directory / METADATA_FILE)
        if issue is None and isinstance(data, dict) and isinstance(data.get("tokenSetOrder"), list):
            return [name for name in data["tokenSetOrder"] if isinstance(name, str)]
        return self._inferred_order()

    def _set_content(self, set_name: str) -> dict[str, Any] | None:
        path = set_file_path(self.directory, set_name)
        if path in self.writes:
            content = self.writes[path]
            return content if isinstance(content, dict) else None
        if path not in self.loaded:
            data, issue = read_json_file(path)
            self.loaded[path] = data if issue is None and isinstance(data, dict) else None
        return self.loaded[path]

    def _modified(self, set_name: str) -> None:
        path = set_file_path(self.directory, set_name)
        if path not in self.writes:
            self.writes[path] = self.loaded[path]

    def _token_node(self, set_name: str, token_path: str) -> dict[str, Any] | None:
        node: Any = self._set_content(set_name)
        for key in token_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return None
            node = node[key]
        return node if isinstance(node, dict) else None


def _replace_in(value: Any, old: str, new: str) -> Any:
    """Replace every reference to the path *old*, however it is spaced inside the braces."""

    def swap(match: re.Match[str]) -> str:
        return f"{{{new}}}" if match.group(1).strip() == old else match.group(0)

    if isinstance(value, str):
        return REFERENCE_PATTERN.sub(swap, value)
    if isinstance(value, dict):
        return {key: _replace_in(item, old, new) for key, item in value.items()}
    if isinstance(value, list):
        return [_replace_in(item, old, new) for item in value]
    return value
