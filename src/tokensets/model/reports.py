# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Issues, validation reports and operation results shared by all components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

# ###############
# Public Interface
# ###############


class Severity(Enum):
    """How strongly an issue blocks automatic continuation."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def blocking(self) -> bool:
        """Return True for severities that stop an operation."""
        return self in (Severity.CRITICAL, Severity.HIGH)


class IssueKind(Enum):
    """Classified error kinds."""

    MISSING_REQUIRED_FILE = "missing_required_file"
    INVALID_JSON = "invalid_json"
    UNRESOLVED_REFERENCE = "unresolved_reference"
    CIRCULAR_REFERENCE = "circular_reference"
    PATH_TOO_LONG = "path_too_long"
    PERMISSION_DENIED = "permission_denied"
    STRUCTURAL_MISMATCH = "structural_mismatch"
    THEME_MISCONFIGURATION = "theme_misconfiguration"
    # Advisory kinds.
    FORMAT_ISSUE = "format_issue"
    MISSING_TOKEN_TYPE = "missing_token_type"
    INVALID_TOKEN = "invalid_token"
    UNLISTED_TOKEN_SET = "unlisted_token_set"
    UNUSED_TOKEN_SET = "unused_token_set"
    NAMING_CONVENTION = "naming_convention"
    ROUNDTRIP_MISMATCH = "roundtrip_mismatch"


# Issue kinds that attempt_partial_recovery knows how to address.
RECOVERABLE_KINDS = frozenset(
    {
        IssueKind.MISSING_REQUIRED_FILE,
        IssueKind.INVALID_JSON,
        IssueKind.MISSING_TOKEN_TYPE,
        IssueKind.STRUCTURAL_MISMATCH,
        IssueKind.UNRESOLVED_REFERENCE,
        IssueKind.FORMAT_ISSUE,
    }
)


@dataclass(frozen=True)
class Issue:
    """A single problem found in a canonical document or modular tree.

    Attributes:
        kind: The classified error kind.
        severity: How strongly the issue blocks continuation.
        message: Human-readable description of the problem.
        path: Dotted token path (``set.group.token``) when the issue concerns
            a token, otherwise ``None``.
        file: File path relative to the tree directory, when known.
        suggestion: A suggested remediation.
        details: Extra machine-readable data used by recovery.
    """

    kind: IssueKind
    severity: Severity
    message: str
    path: str | None = None
    file: str | None = None
    suggestion: str | None = None
    details: dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def recoverable(self) -> bool:
        """Return True if automatic recovery may address this issue."""
        return self.kind in RECOVERABLE_KINDS

    def describe(self) -> str:
        """Return a one-line description naming the location, kind and remediation."""
        location = self.path or self.file or "<tree>"
        text = f"[{self.kind.value}] {location}: {self.message}"
        if self.suggestion:
            text += f" (suggestion: {self.suggestion})"
        return text

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
        }
        if self.path is not None:
            d["path"] = self.path
        if self.file is not None:
            d["file"] = self.file
        if self.suggestion is not None:
            d["suggestion"] = self.suggestion
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class ValidationReport:
    """Result of one or more validation passes.

    Attributes:
        issues: Every issue found, in discovery order.
        suggestions: Report-level recommendations.
    """

    issues: list[Issue] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Return True if no critical or high severity issue was found."""
        return not any(issue.severity.blocking for issue in self.issues)

    @property
    def blocking_issues(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity.blocking]

    @property
    def warnings(self) -> list[Issue]:
        return [issue for issue in self.issues if not issue.severity.blocking]

    def of_kind(self, kind: IssueKind) -> list[Issue]:
        """Return all issues of the given kind."""
        return [issue for issue in self.issues if issue.kind is kind]

    def extend(self, other: ValidationReport) -> None:
        """Merge another report into this one, skipping duplicate issues."""
        for issue in other.issues:
            if issue not in self.issues:
                self.issues.append(issue)
        for suggestion in other.suggestions:
            if suggestion not in self.suggestions:
                self.suggestions.append(suggestion)

    def to_dict(self) -> dict[str, Any]:
        return {
            "isValid": self.is_valid,
            "issues": [issue.to_dict() for issue in self.issues],
            "suggestions": list(self.suggestions),
        }


@dataclass
class Result:
    """Outcome of a public operation.

    Attributes:
        success: Whether the operation completed without blocking problems.
        message: Short summary for humans.
        errors: One line per failure, each naming path, kind and remediation.
        suggestions: Actionable next steps.
        details: Operation-specific data (written files, backup id, ...).
    """

    success: bool
    message: str
    errors: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(cls, message: str, issues: list[Issue], **details: Any) -> Result:
        """Build a failed result from a list of issues."""
        suggestions = [issue.suggestion for issue in issues if issue.suggestion]
        return cls(
            success=False,
            message=message,
            errors=[issue.describe() for issue in issues],
            suggestions=list(dict.fromkeys(suggestions)),
            details={"issues": [issue.to_dict() for issue in issues], **details},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "errors": list(self.errors),
            "suggestions": list(self.suggestions),
            "details": self.details,
        }
