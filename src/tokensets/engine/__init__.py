# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Split and consolidation of token corpora, with round-trip verification."""

from tokensets.engine.partition import (
    DEFAULT_GROUP_ASSIGNMENTS,
    DEFAULT_RESIDUAL_SET,
    DEFAULT_SET_PRIORITY,
    Partition,
    PartitionPolicy,
    TransformError,
    declared_order,
    derive_metadata,
    derive_order,
    derive_themes,
    partition,
)
from tokensets.engine.roundtrip import ResolvedGraph, diff_graphs, document_graph, resolved_graph
from tokensets.engine.transform import Consolidation, consolidate, fill_alias_types, split, verify_roundtrip

__all__ = [
    "Consolidation",
    "DEFAULT_GROUP_ASSIGNMENTS",
    "DEFAULT_RESIDUAL_SET",
    "DEFAULT_SET_PRIORITY",
    "Partition",
    "PartitionPolicy",
    "ResolvedGraph",
    "TransformError",
    "consolidate",
    "declared_order",
    "derive_metadata",
    "derive_order",
    "derive_themes",
    "diff_graphs",
    "document_graph",
    "fill_alias_types",
    "partition",
    "resolved_graph",
    "split",
    "verify_roundtrip",
]
