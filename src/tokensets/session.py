# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Editing sessions: which files of a modular tree a caller has worked on."""

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tokensets.model.reports import Issue, ValidationReport

# ###############
# Public Interface
# ###############


@dataclass
class Change:
    """One recorded edit."""

    file: str
    kind: str
    timestamp: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class EditingSession:
    """Files opened and changed while editing a modular tree.

    A session is a plain value owned by the caller. Nothing is tracked
    globally; pass the session to :func:`tokensets.operations.validate` to
    restrict a report to the files it touched.

    Attributes:
        directory: The tokens directory being edited.
        id: Session identifier.
        opened_files: Opened files, relative to *directory*.
        changes: Recorded edits, oldest first.
        started: UTC start time in ISO 8601.
    """

    directory: Path
    id: str = field(default_factory=lambda: secrets.token_hex(6))
    opened_files: list[str] = field(default_factory=list)
    changes: list[Change] = field(default_factory=list)
    started: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def open(self, file: str | Path) -> str:
        """Record that *file* was opened and return its session-relative name."""
        name = self._relative(file)
        if name not in self.opened_files:
            self.opened_files.append(name)
        return name

    def record_change(self, file: str | Path, kind: str = "edit", **details: Any) -> Change:
        """Record an edit of *file*; the file counts as opened from then on."""
        change = Change(
            file=self.open(file),
            kind=kind,
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=details,
        )
        self.changes.append(change)
        return change

    @property
    def touched_files(self) -> list[str]:
        return list(self.opened_files)

    @property
    def modified_files(self) -> list[str]:
        return list(dict.fromkeys(change.file for change in self.changes))

    def touched_sets(self) -> list[str]:
        """Return the token set names of the touched set files."""
        return [
            name[: -len(".json")] for name in self.opened_files if name.endswith(".json") and not name.startswith("$")
        ]

    def concerns(self, issue: Issue) -> bool:
        """Return True if *issue* is about a file this session touched."""
        if issue.file is not None and self._relative(issue.file) in self.opened_files:
            return True
        sets = self.touched_sets()
        set_name = issue.details.get("set")
        if isinstance(set_name, str) and set_name in sets:
            return True
        return issue.path is not None and any(issue.path.startswith(f"{name}.") for name in sets)

    def narrow(self, report: ValidationReport) -> ValidationReport:
        """Return the part of *report* about the touched files."""
        return ValidationReport(
            issues=[issue for issue in report.issues if self.concerns(issue)],
            suggestions=list(report.suggestions),
        )

    def summary(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "directory": str(self.directory),
            "started": self.started,
            "opened_files": list(self.opened_files),
            "modified_files": self.modified_files,
            "changes": len(self.changes),
        }

    # ################
    # Implementation
    # ################

    def _relative(self, file: str | Path) -> str:
        path = Path(file)
        if path.is_absolute():
            try:
                return path.relative_to(self.directory).as_posix()
            except ValueError:
                try:
                    return path.resolve().relative_to(self.directory.resolve()).as_posix()
                except ValueError:
                    return path.as_posix()
        return path.as_posix()
