# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for splitting, consolidating and round-trip equivalence."""

import pytest

from tokensets.engine.partition import TransformError
from tokensets.engine.roundtrip import diff_graphs, document_graph, resolved_graph
from tokensets.engine.transform import consolidate, fill_alias_types, split, verify_roundtrip
from tokensets.model.reports import IssueKind
from tokensets.model.tree import METADATA_KEY, THEMES_KEY, Metadata, ModularTree
from tokensets.resolver.references import resolve

# ###############
# Test Helpers
# ###############


def _document() -> dict:
    return {
        "core": {
            "color": {"primary": {"$type": "color", "$value": "#112233"}},
            "spacing": {"$type": "dimension", "sm": {"$value": "4px"}, "md": {"value": "8px"}},
        },
        "global": {
            "color": {"accent": {"$type": "color", "$value": "{core.color.primary}"}},
            "button": {
                "$type": "typography",
                "label": {"$value": {"fontFamily": "Inter", "fontSize": "{core.spacing.md}"}},
            },
        },
        "semantic": {"text": {"$value": "{global.color.accent}"}},
    }


# ###############
# Public Interface
# ###############


class TestSplit:
    def test_sets_and_files(self):
        """Each top-level set becomes one set of the tree, in priority order."""
        tree = split(_document())
        assert tree.order == ["core", "global", "semantic"]
        assert set(tree.sets) == {"core", "global", "semantic"}
        assert tree.sets["core"]["color"]["primary"] == {"$type": "color", "$value": "#112233"}

    def test_legacy_tokens_are_written_in_studio_form(self):
        """Legacy value/type spelling becomes $value/$type."""
        tree = split(_document())
        assert tree.sets["core"]["spacing"]["md"] == {"$type": "dimension", "$value": "8px"}

    def test_untyped_alias_takes_target_type(self):
        """An untyped alias gets the type of the token it points at."""
        tree = split(_document())
        assert tree.sets["semantic"]["text"]["$type"] == "color"

    def test_default_theme_is_derived(self):
        """A document without themes gets one Base theme."""
        tree = split(_document())
        assert [theme.id for theme in tree.themes] == ["base-theme"]
        assert tree.themes[0].active_sets() == ["core", "global", "semantic"]

    def test_invalid_node_raises(self):
        """A scalar where a token is expected aborts the split."""
        with pytest.raises(TransformError) as exc_info:
            split({"core": {"color": {"primary": "#112233"}}})
        assert exc_info.value.issues[0].kind is IssueKind.STRUCTURAL_MISMATCH

    def test_document_is_not_modified(self):
        """Splitting leaves the input document untouched."""
        document = _document()
        split(document)
        assert document == _document()


class TestConsolidate:
    def test_resolves_cross_set_reference(self):
        """An alias across sets resolves to the concrete value after consolidation."""
        document = {
            "core": {"color": {"primary": {"$type": "color", "$value": "#112233"}}},
            "global": {"color": {"accent": {"$type": "color", "$value": "{core.color.primary}"}}},
        }
        tree = split(document)
        assert tree.order == ["core", "global"]
        result = consolidate(tree)
        resolution = resolve("{global.color.accent}", result.index)
        assert resolution.resolved
        assert resolution.value == "#112233"

    def test_document_layout(self):
        """The document holds every set in order, then $themes and $metadata."""
        result = consolidate(split(_document()))
        assert list(result.document) == ["core", "global", "semantic", THEMES_KEY, METADATA_KEY]
        assert result.document[METADATA_KEY] == {"tokenSetOrder": ["core", "global", "semantic"]}

    def test_reports_differences_against_original(self):
        """A changed value shows up as a round-trip mismatch."""
        tree = split(_document())
        tree.sets["core"]["color"]["primary"]["$value"] = "#000000"
        differences = consolidate(tree, original=_document()).differences
        paths = {issue.path for issue in differences}
        assert "core.color.primary" in paths
        assert "global.color.accent" in paths
        assert all(issue.kind is IssueKind.ROUNDTRIP_MISMATCH for issue in differences)


class TestRoundTrip:
    def test_split_then_consolidate_is_equivalent(self):
        """consolidate(split(X)) has the resolved values of X."""
        document = _document()
        assert verify_roundtrip(document, split(document)) == []

    def test_flat_document_round_trips(self):
        """A document of assigned groups round-trips through its sets."""
        document = {
            "color": {"black": {"$type": "color", "$value": "#000"}},
            "spacing": {"sm": {"$type": "dimension", "$value": "4px"}},
            "elevation": {"low": {"$type": "other", "$value": "1"}},
        }
        tree = split(document)
        assert tree.order == ["core", "global", "misc"]
        assert verify_roundtrip(document, tree) == []

    def test_split_is_idempotent(self):
        """split(consolidate(split(X))) equals split(X)."""
        first = split(_document())
        second = split(consolidate(first).document)
        assert second == first

    def test_themes_round_trip_verbatim(self):
        """Declared themes and unknown metadata keys survive a round trip."""
        document = _document()
        document[THEMES_KEY] = [
            {
                "id": "light",
                "name": "Light",
                "selectedTokenSets": {"core": "source", "global": "enabled", "semantic": "disabled"},
                "$figmaStyleReferences": {"color.accent": "S:abc"},
            }
        ]
        document[METADATA_KEY] = {"tokenSetOrder": ["core", "global", "semantic"], "revision": 3}
        result = consolidate(split(document))
        assert result.document[THEMES_KEY] == document[THEMES_KEY]
        assert result.document[METADATA_KEY] == document[METADATA_KEY]

    def test_order_change_is_a_difference(self):
        """Reordering sets changes the overlay and is reported."""
        document = _document()
        tree = split(document)
        tree.metadata = Metadata(token_set_order=["global", "core", "semantic"])
        issues = verify_roundtrip(document, tree)
        assert any("order" in issue.message for issue in issues)


class TestGraphs:
    def test_resolved_graph_keeps_unresolved_values(self):
        """Unresolvable references are kept as written."""
        graph = resolved_graph({"core": {"a": {"$value": "{missing.x}"}}}, ["core"])
        assert graph.values == {"core.a": "{missing.x}"}
        assert graph.membership == {"core": ["a"]}

    def test_identical_documents_have_no_differences(self):
        """A document compared with itself has no differences."""
        graph = document_graph(_document())
        assert diff_graphs(graph, graph) == []

    def test_missing_and_added_tokens(self):
        """Missing and added tokens are both reported."""
        expected = resolved_graph({"core": {"a": {"$value": "1"}}}, ["core"])
        actual = resolved_graph({"core": {"b": {"$value": "1"}}}, ["core"])
        messages = {issue.message for issue in diff_graphs(expected, actual)}
        assert messages == {"token is missing", "token was added"}


class TestFillAliasTypes:
    def test_group_typed_tokens_are_left_alone(self):
        """Tokens under a typed group keep relying on the group type."""
        sets = {
            "core": {"a": {"$type": "color", "$value": "#000"}},
            "global": {"$type": "color", "b": {"$value": "{core.a}"}},
        }
        assert fill_alias_types(sets, ["core", "global"]) == sets

    def test_legacy_alias_gets_legacy_type_key(self):
        """A legacy alias is typed with the legacy key."""
        sets = {"core": {"a": {"type": "color", "value": "#000"}, "b": {"value": "{core.a}"}}}
        filled = fill_alias_types(sets, ["core"])
        assert filled["core"]["b"] == {"value": "{core.a}", "type": "color"}
        assert "type" not in sets["core"]["b"]


class TestConsolidateErrors:
    def test_invalid_node_in_tree(self):
        """A malformed node in a set file aborts consolidation."""
        tree = ModularTree(metadata=Metadata(token_set_order=["core"]), sets={"core": {"a": [1, 2]}})
        with pytest.raises(TransformError):
            consolidate(tree)
