# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Conversion between the canonical document and the modular tree."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from tokensets.codec.studio import CodecError, denormalize_set, is_token_node, normalize_set, raw_type, raw_value
from tokensets.engine.partition import (
    PartitionPolicy,
    TransformError,
    derive_metadata,
    derive_themes,
    partition,
)
from tokensets.engine.roundtrip import diff_graphs, document_graph
from tokensets.model.reports import Issue
from tokensets.model.tree import METADATA_KEY, THEMES_KEY, ModularTree
from tokensets.resolver.index import TokenIndex, build_index
from tokensets.resolver.references import reference_type

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


@dataclass
class Consolidation:
    """Result of consolidating a modular tree.

    Attributes:
        document: The canonical document: every set keyed by name in
            ``tokenSetOrder`` order, then ``$themes``, then ``$metadata``.
        index: Overlay index of the tree in declared order.
        differences: Round-trip differences against the original document,
            when one was given.
    """

    document: dict[str, Any]
    index: TokenIndex
    differences: list[Issue] = field(default_factory=list)


def split(document: dict[str, Any], policy: PartitionPolicy | None = None) -> ModularTree:
    """Partition a canonical document into a modular tree.

    Every token is normalized to the Studio shape. Untyped alias tokens take
    the type of the token they point at.

    Args:
        document: The canonical document.
        policy: How top-level groups map to sets. Defaults apply when omitted.

    Returns:
        The modular tree with metadata, themes and normalized set content.

    Raises:
        TransformError: If the document cannot be partitioned or a node is
            neither a token nor a group.
    """
    policy = policy or PartitionPolicy()
    sets, order, warnings = partition(document, policy)
    for warning in warnings:
        logger.warning("%s", warning.describe())

    typed = fill_alias_types(sets, order)
    normalized: dict[str, dict[str, Any]] = {}
    for name in order:
        try:
            normalized[name] = denormalize_set(normalize_set(typed[name], name))
        except CodecError as exc:
            raise TransformError(f"Cannot normalize token set '{name}': {exc}", [exc.issue]) from exc

    tree = ModularTree(
        metadata=derive_metadata(document, order),
        themes=derive_themes(document, order, policy),
        sets=normalized,
    )
    logger.info("split canonical document into %d token sets", len(order))
    return tree


def consolidate(
    tree: ModularTree,
    original: dict[str, Any] | None = None,
    policy: PartitionPolicy | None = None,
) -> Consolidation:
    """Reassemble a modular tree into the canonical document.

    Args:
        tree: The modular tree.
        original: When given, the consolidated document is compared against
            it at the resolved-value level and the differences are returned.
        policy: Partition policy used for the comparison.

    Raises:
        TransformError: If a set holds a node that is neither a token nor a
            group.
    """
    index = build_index(tree.sets, tree.order)
    document: dict[str, Any] = {}
    for name, content in tree.ordered_sets():
        try:
            document[name] = denormalize_set(normalize_set(content, name))
        except CodecError as exc:
            raise TransformError(f"Cannot normalize token set '{name}': {exc}", [exc.issue]) from exc
    document[THEMES_KEY] = tree.themes_json()
    document[METADATA_KEY] = tree.metadata.to_json()

    result = Consolidation(document=document, index=index)
    if original is not None:
        result.differences = diff_graphs(document_graph(original, policy), document_graph(document, policy))
    logger.info("consolidated %d token sets (%d tokens)", len(index.order), len(index))
    return result


def verify_roundtrip(
    document: dict[str, Any],
    tree: ModularTree,
    policy: PartitionPolicy | None = None,
) -> list[Issue]:
    """Return the differences between *document* and the consolidation of *tree*.

    An empty list means the two are equivalent at the resolved-value level.

    Raises:
        TransformError: If either side cannot be processed.
    """
    return consolidate(tree, original=document, policy=policy).differences


def fill_alias_types(sets: dict[str, dict[str, Any]], order: list[str]) -> dict[str, dict[str, Any]]:
    """Return a copy of *sets* where untyped alias tokens carry their target's type.

    Tokens inside a group that declares ``$type`` are left alone; the codec
    applies the group type to them.
    """
    index = build_index(sets, order)
    result = copy.deepcopy(sets)
    for content in result.values():
        _fill_group(content, index, group_typed=False)
    return result


# ################
# Implementation
# ################


def _fill_group(group: dict[str, Any], index: TokenIndex, group_typed: bool) -> None:
    group_typed = group_typed or isinstance(group.get("$type"), str)
    for key, child in group.items():
        if key.startswith("$") or not isinstance(child, dict):
            continue
        if not is_token_node(child):
            _fill_group(child, index, group_typed)
            continue
        if group_typed or raw_type(child) is not None:
            continue
        type_name = reference_type(raw_value(child), index)
        if type_name is not None:
            child["$type" if "$value" in child else "type"] = type_name
