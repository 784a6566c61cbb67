# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the tokensets semantic model."""

import pytest

from tokensets.model.reports import Issue, IssueKind, Result, Severity, ValidationReport
from tokensets.model.tokens import (
    BorderToken,
    ColorToken,
    DimensionToken,
    GenericToken,
    ShadowToken,
    TypographyToken,
    is_token,
    make_token,
)
from tokensets.model.tree import Metadata, ModularTree, Theme, TokenSetStatus

# ###############
# Test Helpers
# ###############


def _issue(severity: Severity, kind: IssueKind = IssueKind.FORMAT_ISSUE, **kwargs) -> Issue:
    return Issue(kind=kind, severity=severity, message="something is off", **kwargs)


# ###############
# Public Interface
# ###############


class TestSeverity:
    def test_critical_and_high_block(self):
        """Critical and high severities stop an operation."""
        assert Severity.CRITICAL.blocking
        assert Severity.HIGH.blocking

    def test_medium_and_low_are_advisory(self):
        """Medium and low severities are advisory."""
        assert not Severity.MEDIUM.blocking
        assert not Severity.LOW.blocking


class TestIssue:
    def test_describe_names_location_kind_and_suggestion(self):
        """describe() contains the path, the kind and the remediation."""
        issue = Issue(
            kind=IssueKind.UNRESOLVED_REFERENCE,
            severity=Severity.HIGH,
            message="reference {a.b} does not match any token",
            path="global.color.accent",
            suggestion="Define a token at 'a.b'",
        )
        text = issue.describe()
        assert "global.color.accent" in text
        assert "unresolved_reference" in text
        assert "Define a token" in text

    def test_describe_falls_back_to_file(self):
        """Without a path, the file names the location."""
        issue = _issue(Severity.LOW, file="$metadata.json")
        assert "$metadata.json" in issue.describe()

    def test_to_dict_omits_empty_fields(self):
        """Optional fields are only serialized when set."""
        data = _issue(Severity.LOW).to_dict()
        assert data == {"type": "format_issue", "severity": "low", "message": "something is off"}

    def test_to_dict_includes_details(self):
        """Details are serialized as given."""
        data = _issue(Severity.LOW, path="a.b", details={"replacement": "c.d"}).to_dict()
        assert data["path"] == "a.b"
        assert data["details"] == {"replacement": "c.d"}

    def test_recoverable_kinds(self):
        """Missing files and invalid JSON are recoverable; cycles are not."""
        assert _issue(Severity.CRITICAL, IssueKind.MISSING_REQUIRED_FILE).recoverable
        assert _issue(Severity.CRITICAL, IssueKind.INVALID_JSON).recoverable
        assert not _issue(Severity.CRITICAL, IssueKind.CIRCULAR_REFERENCE).recoverable


class TestValidationReport:
    def test_empty_report_is_valid(self):
        """A report without issues is valid."""
        assert ValidationReport().is_valid

    def test_advisory_issues_keep_report_valid(self):
        """Medium and low issues do not invalidate a report."""
        report = ValidationReport(issues=[_issue(Severity.MEDIUM), _issue(Severity.LOW)])
        assert report.is_valid
        assert len(report.warnings) == 2
        assert report.blocking_issues == []

    def test_blocking_issue_invalidates_report(self):
        """A single high issue invalidates a report."""
        report = ValidationReport(issues=[_issue(Severity.LOW), _issue(Severity.HIGH)])
        assert not report.is_valid
        assert [issue.severity for issue in report.blocking_issues] == [Severity.HIGH]

    def test_extend_skips_duplicates(self):
        """Merging reports keeps each issue and suggestion once."""
        first = ValidationReport(issues=[_issue(Severity.LOW, path="a")], suggestions=["x"])
        second = ValidationReport(issues=[_issue(Severity.LOW, path="a"), _issue(Severity.LOW, path="b")])
        second.suggestions.append("x")
        first.extend(second)
        assert [issue.path for issue in first.issues] == ["a", "b"]
        assert first.suggestions == ["x"]

    def test_of_kind_filters(self):
        """of_kind returns only issues of the requested kind."""
        report = ValidationReport(
            issues=[_issue(Severity.LOW), _issue(Severity.HIGH, IssueKind.CIRCULAR_REFERENCE)],
        )
        assert len(report.of_kind(IssueKind.CIRCULAR_REFERENCE)) == 1

    def test_to_dict(self):
        """to_dict exposes isValid, issues and suggestions."""
        report = ValidationReport(issues=[_issue(Severity.CRITICAL)], suggestions=["fix it"])
        data = report.to_dict()
        assert data["isValid"] is False
        assert data["issues"][0]["severity"] == "critical"
        assert data["suggestions"] == ["fix it"]


class TestResult:
    def test_failure_collects_errors_and_suggestions(self):
        """Result.failure turns issues into error lines and unique suggestions."""
        issues = [
            _issue(Severity.HIGH, path="a", suggestion="do x"),
            _issue(Severity.HIGH, path="b", suggestion="do x"),
        ]
        result = Result.failure("broken", issues, backup_id="b-1")
        assert not result.success
        assert len(result.errors) == 2
        assert result.suggestions == ["do x"]
        assert result.details["backup_id"] == "b-1"
        assert len(result.details["issues"]) == 2


class TestTokens:
    @pytest.mark.parametrize(
        ("type_name", "cls"),
        [
            ("color", ColorToken),
            ("dimension", DimensionToken),
            ("typography", TypographyToken),
            ("boxShadow", ShadowToken),
            ("border", BorderToken),
        ],
    )
    def test_make_token_selects_union_member(self, type_name, cls):
        """Known types get their dedicated model."""
        token = make_token(type_name, "x")
        assert isinstance(token, cls)
        assert token.type == type_name

    def test_unknown_type_is_generic(self):
        """Any other type string is carried by GenericToken."""
        token = make_token("fontWeights", "Bold")
        assert isinstance(token, GenericToken)
        assert token.type == "fontWeights"

    def test_empty_type_rejected(self):
        """A token always has a non-empty type."""
        with pytest.raises(ValueError):
            make_token("", "x")

    def test_is_token(self):
        """is_token distinguishes token models from raw mappings."""
        assert is_token(make_token("color", "#fff"))
        assert not is_token({"$value": "#fff"})

    def test_tokens_are_frozen(self):
        """Token models are immutable."""
        token = make_token("color", "#fff")
        with pytest.raises(Exception):
            token.value = "#000"  # type: ignore[misc]


class TestTree:
    def test_metadata_keeps_unknown_keys(self):
        """Extra $metadata keys survive a load/dump cycle."""
        metadata = Metadata.model_validate({"tokenSetOrder": ["core"], "version": 2})
        assert metadata.token_set_order == ["core"]
        assert metadata.to_json() == {"tokenSetOrder": ["core"], "version": 2}

    def test_theme_passthrough_keys(self):
        """Figma references and other unknown keys are written back verbatim."""
        raw = {
            "id": "t1",
            "name": "Light",
            "selectedTokenSets": {"core": "source", "global": "enabled", "dark": "disabled"},
            "$figmaStyleReferences": {"color.primary": "S:123"},
            "group": "Mode",
        }
        theme = Theme.model_validate(raw)
        assert theme.active_sets() == ["core", "global"]
        assert theme.selected_token_sets["dark"] is TokenSetStatus.DISABLED
        assert theme.style_references == {"color.primary": "S:123"}
        assert theme.to_json() == raw

    def test_ordered_sets_follow_metadata(self):
        """ordered_sets follows tokenSetOrder and skips sets without content."""
        tree = ModularTree(
            metadata=Metadata(token_set_order=["global", "core", "missing"]),
            sets={"core": {"a": 1}, "global": {"b": 2}},
        )
        assert [name for name, _ in tree.ordered_sets()] == ["global", "core"]

    def test_tree_equality_ignores_set_insertion_order(self):
        """Trees compare by metadata, themes and ordered content."""
        first = ModularTree(metadata=Metadata(token_set_order=["a", "b"]), sets={"a": {}, "b": {}})
        second = ModularTree(metadata=Metadata(token_set_order=["a", "b"]), sets={"b": {}, "a": {}})
        assert first == second
        second.metadata.token_set_order = ["b", "a"]
        assert first != second
