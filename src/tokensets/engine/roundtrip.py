# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Resolved-value equivalence between canonical documents and modular trees.

Two projections of a token graph are equivalent when, after reference
resolution, every qualified token path carries the same value, every set holds
the same paths, the sets come in the same order and the theme definitions are
equal. Whitespace, key order and token type spelling are not compared.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from tokensets.engine.partition import PartitionPolicy, derive_themes, partition
from tokensets.model.reports import Issue, IssueKind, Severity
from tokensets.resolver.index import build_index
from tokensets.resolver.references import resolve_value

# ###############
# Public Interface
# ###############


@dataclass
class ResolvedGraph:
    """The comparable content of one projection.

    Attributes:
        values: Qualified token path to its resolved value. Unresolvable
            references are kept as written.
        membership: Set name to the in-set paths it holds.
        order: Set evaluation order.
        themes: Theme definitions as JSON.
    """

    values: dict[str, Any] = field(default_factory=dict)
    membership: dict[str, list[str]] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)
    themes: list[dict[str, Any]] = field(default_factory=list)


def resolved_graph(
    sets: dict[str, dict[str, Any]],
    order: list[str],
    themes: Iterable[dict[str, Any]] = (),
) -> ResolvedGraph:
    """Resolve every token of *sets* and collect the comparable content."""
    index = build_index(sets, order)
    graph = ResolvedGraph(order=list(order), themes=list(themes))
    for name in index.order:
        graph.membership[name] = []
    for entry in index.entries():
        value, _failures = resolve_value(entry.value, index, {entry.qualified_path})
        graph.values[entry.qualified_path] = value
        graph.membership[entry.set_name].append(entry.path)
    return graph


def document_graph(document: dict[str, Any], policy: PartitionPolicy | None = None) -> ResolvedGraph:
    """Return the resolved graph of a canonical document.

    The document is partitioned exactly as a split would partition it, so a
    flat document and its split form are comparable.

    Raises:
        TransformError: If the document cannot be partitioned.
    """
    policy = policy or PartitionPolicy()
    sets, order, _warnings = partition(document, policy)
    themes = [theme.to_json() for theme in derive_themes(document, order, policy)]
    return resolved_graph(sets, order, themes)


def diff_graphs(expected: ResolvedGraph, actual: ResolvedGraph) -> list[Issue]:
    """Return one ``roundtrip_mismatch`` issue per difference between two graphs."""
    issues: list[Issue] = []

    for name in expected.membership:
        if name not in actual.membership:
            issues.append(
                _mismatch(f"token set '{name}' is missing", name, "Restore the set file or its tokenSetOrder entry")
            )
    for name in actual.membership:
        if name not in expected.membership:
            issues.append(
                _mismatch(f"token set '{name}' was added", name, "Remove the set or add it to the canonical document")
            )

    if expected.order != actual.order:
        issues.append(
            _mismatch(
                f"token set order differs: expected {expected.order}, found {actual.order}",
                None,
                "Restore tokenSetOrder in $metadata.json",
                expected=expected.order,
                actual=actual.order,
            )
        )

    for path, value in expected.values.items():
        if path not in actual.values:
            issues.append(_mismatch("token is missing", path, "Restore the token or rerun split", expected=value))
        elif actual.values[path] != value:
            issues.append(
                _mismatch(
                    f"resolved value differs: expected {value!r}, found {actual.values[path]!r}",
                    path,
                    "Check the token value and the references it depends on",
                    expected=value,
                    actual=actual.values[path],
                )
            )
    for path, value in actual.values.items():
        if path not in expected.values:
            issues.append(
                _mismatch("token was added", path, "Remove the token or add it to the canonical document", actual=value)
            )

    if expected.themes != actual.themes:
        expected_ids = [theme.get("id") for theme in expected.themes]
        actual_ids = [theme.get("id") for theme in actual.themes]
        issues.append(
            _mismatch(
                f"theme definitions differ (expected ids {expected_ids}, found {actual_ids})",
                None,
                "Restore $themes.json from the canonical document",
                expected=expected.themes,
                actual=actual.themes,
            )
        )
    return issues


# ################
# Implementation
# ################


def _mismatch(message: str, path: str | None, suggestion: str, **details: Any) -> Issue:
    return Issue(
        kind=IssueKind.ROUNDTRIP_MISMATCH,
        severity=Severity.HIGH,
        message=message,
        path=path,
        suggestion=suggestion,
        details=details,
    )
