# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Reference resolution over a flattened token index."""

from tokensets.resolver.index import IndexEntry, TokenIndex, build_index
from tokensets.resolver.references import (
    MAX_HOPS,
    REFERENCE_PATTERN,
    Resolution,
    alternatives,
    find_references,
    is_reference,
    reference_type,
    resolve,
    resolve_value,
    strip_reference,
    suggest,
)

__all__ = [
    "IndexEntry",
    "MAX_HOPS",
    "REFERENCE_PATTERN",
    "Resolution",
    "TokenIndex",
    "alternatives",
    "build_index",
    "find_references",
    "is_reference",
    "reference_type",
    "resolve",
    "resolve_value",
    "strip_reference",
    "suggest",
]
