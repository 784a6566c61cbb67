# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for modular tree validation checks."""

import json
from pathlib import Path

from tokensets.files.structure import scan_modular_tree
from tokensets.model.reports import IssueKind, Severity
from tokensets.model.tree import METADATA_FILE, THEMES_FILE, Metadata, ModularTree, Theme
from tokensets.resolver.references import MAX_HOPS
from tokensets.validation.checks import (
    validate_references,
    validate_roundtrip,
    validate_structure,
    validate_themes,
    validate_tree,
)

# ###############
# Test Helpers
# ###############


def _tree(sets: dict, themes: list | None = None) -> ModularTree:
    return ModularTree(
        metadata=Metadata(token_set_order=list(sets)),
        themes=[Theme.model_validate(theme) for theme in themes or []],
        sets=sets,
    )


def _write_tree(directory: Path, sets: dict, themes: list | None = None, order: list | None = None) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / METADATA_FILE).write_text(json.dumps({"tokenSetOrder": order or list(sets)}), encoding="utf-8")
    (directory / THEMES_FILE).write_text(json.dumps(themes or []), encoding="utf-8")
    for name, content in sets.items():
        (directory / f"{name}.json").write_text(json.dumps(content), encoding="utf-8")


def _theme(selected: dict, theme_id: str = "light") -> dict:
    return {"id": theme_id, "name": theme_id.title(), "selectedTokenSets": selected}


_CORE = {"color": {"primary": {"$type": "color", "$value": "#112233"}}}


# ###############
# Public Interface
# ###############


class TestValidateStructure:
    def test_clean_tree(self, tmp_path):
        """A complete tree has no issues."""
        _write_tree(tmp_path, {"core": _CORE, "global": {}})
        report = validate_structure(scan_modular_tree(tmp_path))
        assert report.issues == []
        assert report.is_valid

    def test_missing_token_type(self, tmp_path):
        """An untyped token is a medium issue carrying the inferred type."""
        _write_tree(tmp_path, {"core": {"space": {"sm": {"$value": "4px"}}}, "global": {}})
        report = validate_structure(scan_modular_tree(tmp_path))
        issue = report.of_kind(IssueKind.MISSING_TOKEN_TYPE)[0]
        assert issue.severity is Severity.MEDIUM
        assert issue.path == "core.space.sm"
        assert issue.file == "core.json"
        assert issue.details == {"set": "core", "token_path": "space.sm", "inferred": "dimension"}
        assert report.is_valid

    def test_group_type_counts_as_type(self, tmp_path):
        """Tokens under a typed group are not missing a type."""
        _write_tree(tmp_path, {"core": {"space": {"$type": "dimension", "sm": {"$value": "4px"}}}, "global": {}})
        assert validate_structure(scan_modular_tree(tmp_path)).issues == []

    def test_invalid_token_node(self, tmp_path):
        """A scalar leaf is an invalid token."""
        _write_tree(tmp_path, {"core": {"color": {"primary": "#112233"}}, "global": {}})
        report = validate_structure(scan_modular_tree(tmp_path))
        issue = report.of_kind(IssueKind.INVALID_TOKEN)[0]
        assert issue.path == "core.color.primary"
        assert not report.is_valid

    def test_missing_expected_set_in_consistent_tree_is_a_warning(self, tmp_path):
        """A tree with its own coherent naming only gets a low warning."""
        _write_tree(tmp_path, {"base": _CORE, "theme": {}}, [_theme({"base": "source", "theme": "enabled"})])
        report = validate_structure(scan_modular_tree(tmp_path))
        issue = report.of_kind(IssueKind.NAMING_CONVENTION)[0]
        assert issue.severity is Severity.LOW
        assert issue.details["missing"] == ["core", "global"]
        assert report.is_valid

    def test_missing_expected_set_in_inconsistent_tree_blocks(self, tmp_path):
        """Without a coherent scheme the missing set is a high issue."""
        _write_tree(tmp_path, {"base": _CORE}, order=["base", "gone"])
        report = validate_structure(scan_modular_tree(tmp_path))
        issue = report.of_kind(IssueKind.NAMING_CONVENTION)[0]
        assert issue.severity is Severity.HIGH

    def test_missing_metadata_suggests_recovery(self, tmp_path):
        """A missing required file is critical and recovery is suggested."""
        _write_tree(tmp_path, {"core": _CORE, "global": {}})
        (tmp_path / METADATA_FILE).unlink()
        report = validate_structure(scan_modular_tree(tmp_path))
        issue = report.of_kind(IssueKind.MISSING_REQUIRED_FILE)[0]
        assert issue.severity is Severity.CRITICAL
        assert any("recover" in suggestion for suggestion in report.suggestions)


class TestValidateReferences:
    def test_unresolved_reference_is_reported_on_holder(self):
        """A reference to a missing token is one high issue at the holding token."""
        tree = _tree(
            {
                "core": _CORE,
                "global": {"color": {"accent": {"$type": "color", "$value": "{core.color.missing}"}}},
            }
        )
        report = validate_references(tree)
        issues = report.of_kind(IssueKind.UNRESOLVED_REFERENCE)
        assert len(issues) == 1
        assert issues[0].path == "global.color.accent"
        assert issues[0].severity is Severity.HIGH
        assert issues[0].details["reference"] == "core.color.missing"
        assert "core.color.primary" in issues[0].details["candidates"]

    def test_broken_link_is_not_repeated_down_the_chain(self):
        """Tokens that alias a broken token do not repeat its issue."""
        tree = _tree(
            {
                "core": {"a": {"$value": "{core.missing}"}},
                "global": {"b": {"$value": "{core.a}"}},
            }
        )
        issues = validate_references(tree).of_kind(IssueKind.UNRESOLVED_REFERENCE)
        assert [issue.path for issue in issues] == ["core.a"]

    def test_circular_reference_names_both_paths(self):
        """A two-token cycle is reported once, naming both tokens."""
        tree = _tree({"a": {"y": {"$value": "{b.x}"}}, "b": {"x": {"$value": "{a.y}"}}})
        issues = validate_references(tree).of_kind(IssueKind.CIRCULAR_REFERENCE)
        assert len(issues) == 1
        assert issues[0].severity is Severity.CRITICAL
        assert set(issues[0].details["cycle"]) == {"a.y", "b.x"}
        assert "a.y" in issues[0].message
        assert "b.x" in issues[0].message

    def test_alias_into_cycle_is_not_a_second_cycle(self):
        """A token pointing into a cycle does not add another cycle issue."""
        tree = _tree(
            {
                "a": {"y": {"$value": "{b.x}"}},
                "b": {"x": {"$value": "{a.y}"}},
                "c": {"z": {"$value": "{a.y}"}},
            }
        )
        assert len(validate_references(tree).of_kind(IssueKind.CIRCULAR_REFERENCE)) == 1

    def test_alternative_naming_is_a_format_issue(self):
        """A legacy reference that resolves through a mapping is a low format issue."""
        tree = _tree(
            {
                "core": {"Font Weight": {"bold": {"$type": "fontWeights", "$value": "700"}}},
                "global": {"heading": {"$type": "fontWeights", "$value": "{fontWeights.bold}"}},
            }
        )
        report = validate_references(tree)
        issue = report.of_kind(IssueKind.FORMAT_ISSUE)[0]
        assert issue.severity is Severity.LOW
        assert issue.details["replacement"] == "Font Weight.bold"
        assert issue.details["token_path"] == "heading"
        assert report.is_valid

    def test_format_issue_only_on_the_token_holding_the_legacy_name(self):
        """An alias of a token with a legacy reference resolves directly and is not flagged."""
        tree = _tree(
            {
                "core": {"Font Weight": {"regular": {"$type": "fontWeights", "$value": "400"}}},
                "global": {
                    "text": {
                        "weight": {"$type": "fontWeights", "$value": "{fontWeights.roboto-1}"},
                        "body": {"$type": "fontWeights", "$value": "{text.weight}"},
                    }
                },
            }
        )
        issues = validate_references(tree).of_kind(IssueKind.FORMAT_ISSUE)
        assert [issue.path for issue in issues] == ["global.text.weight"]
        assert issues[0].details["replacement"] == "Font Weight.regular"

    def test_chain_beyond_hop_limit_is_one_issue(self):
        """An over-long alias chain is one critical issue, not one per token on it."""
        count = MAX_HOPS + 5
        tokens = {f"t{i}": {"$type": "dimension", "$value": f"{{core.t{i + 1}}}"} for i in range(count)}
        tokens[f"t{count}"] = {"$type": "dimension", "$value": "4px"}
        report = validate_references(_tree({"core": tokens}))
        issues = report.of_kind(IssueKind.CIRCULAR_REFERENCE)
        assert len(issues) == 1
        assert issues[0].severity is Severity.CRITICAL
        assert issues[0].path == "core.t0"
        assert not report.is_valid

    def test_theme_limits_sets(self):
        """With a theme, references into disabled sets do not resolve."""
        tree = _tree(
            {
                "core": _CORE,
                "global": {"accent": {"$value": "{core.color.primary}"}},
            }
        )
        theme = Theme.model_validate(_theme({"core": "disabled", "global": "enabled"}))
        report = validate_references(tree, theme)
        assert len(report.of_kind(IssueKind.UNRESOLVED_REFERENCE)) == 1


class TestValidateThemes:
    def test_theme_selecting_missing_set(self):
        """A theme that selects a set without a file is a theme misconfiguration."""
        theme = _theme({"core": "source", "global": "enabled", "brand": "enabled"})
        tree = _tree({"core": _CORE, "global": {}}, [theme])
        report = validate_themes(tree)
        issue = report.of_kind(IssueKind.THEME_MISCONFIGURATION)[0]
        assert issue.severity is Severity.HIGH
        assert issue.details["set"] == "brand"
        assert "brand" in issue.message
        assert not report.is_valid

    def test_duplicate_theme_ids(self):
        """Two themes sharing an id are reported."""
        selected = {"core": "source", "global": "enabled"}
        tree = _tree({"core": _CORE, "global": {}}, [_theme(selected), _theme(selected)])
        report = validate_themes(tree)
        assert any("more than one" in issue.message for issue in report.issues)

    def test_required_set_not_selected(self):
        """An existing required set must be active in every theme."""
        tree = _tree({"core": _CORE, "global": {}}, [_theme({"core": "disabled", "global": "enabled"})])
        report = validate_themes(tree)
        assert not report.is_valid
        assert report.blocking_issues[0].details["set"] == "core"

    def test_unused_set_is_low(self):
        """A set no theme enables is an advisory finding."""
        tree = _tree({"core": _CORE, "global": {}, "extra": {}}, [_theme({"core": "source", "global": "enabled"})])
        report = validate_themes(tree)
        unused = report.of_kind(IssueKind.UNUSED_TOKEN_SET)
        assert [issue.path for issue in unused] == ["extra"]
        assert report.is_valid

    def test_missing_recommended_set_is_low(self):
        """A missing recommended set is advisory."""
        report = validate_themes(_tree({"core": _CORE}))
        assert report.is_valid
        assert report.issues[0].severity is Severity.LOW


class TestValidateRoundtrip:
    def test_matching_tree(self):
        """A tree equivalent to the document has no differences."""
        document = {"core": _CORE}
        tree = _tree({"core": _CORE}, [])
        tree.themes = [Theme.model_validate(_theme({"core": "source"}, "base-theme"))]
        document["$themes"] = [_theme({"core": "source"}, "base-theme")]
        assert validate_roundtrip(document, tree).issues == []

    def test_changed_value(self):
        """A changed value invalidates the report."""
        document = {"core": _CORE, "$themes": []}
        tree = _tree({"core": {"color": {"primary": {"$type": "color", "$value": "#000000"}}}})
        report = validate_roundtrip(document, tree)
        assert not report.is_valid
        assert report.issues[0].kind is IssueKind.ROUNDTRIP_MISMATCH


class TestValidateTree:
    def test_merges_every_check(self, tmp_path):
        """validate_tree runs structure, reference and theme checks."""
        _write_tree(
            tmp_path,
            {"core": _CORE, "global": {"accent": {"$type": "color", "$value": "{core.color.missing}"}}},
            [_theme({"core": "source", "global": "enabled", "brand": "enabled"})],
        )
        report = validate_tree(tmp_path)
        kinds = {issue.kind for issue in report.issues}
        assert IssueKind.UNRESOLVED_REFERENCE in kinds
        assert IssueKind.THEME_MISCONFIGURATION in kinds
        assert not report.is_valid

    def test_roundtrip_skipped_on_critical_scan_issue(self, tmp_path):
        """A tree that could not be read is not compared with the document."""
        report = validate_tree(tmp_path / "missing", {"core": _CORE})
        assert not report.of_kind(IssueKind.ROUNDTRIP_MISMATCH)
        assert report.of_kind(IssueKind.MISSING_REQUIRED_FILE)
