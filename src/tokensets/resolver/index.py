# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Flattened token index built from the token sets of a modular tree."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from tokensets.codec.studio import is_token_node, raw_type, raw_value
from tokensets.model.tree import Theme

# ###############
# Public Interface
# ###############


@dataclass(frozen=True)
class IndexEntry:
    """One token as seen by the resolver.

    Attributes:
        set_name: Token set that holds the token.
        path: Dotted path of the token inside its set.
        value: The raw (unresolved) token value.
        type: The explicit or group-inherited token type, or ``None`` when
            the token is untyped.
    """

    set_name: str
    path: str
    value: Any
    type: str | None = None

    @property
    def qualified_path(self) -> str:
        return f"{self.set_name}.{self.path}"


@dataclass
class TokenIndex:
    """Lookup structure for reference resolution.

    Attributes:
        overlay: In-set path to entry. When several sets hold the same path,
            the set that comes later in the order wins.
        qualified: ``set.path`` to entry for every indexed token.
        order: Names of the indexed sets in evaluation order.
    """

    overlay: dict[str, IndexEntry] = field(default_factory=dict)
    qualified: dict[str, IndexEntry] = field(default_factory=dict)
    order: list[str] = field(default_factory=list)

    def lookup(self, path: str) -> IndexEntry | None:
        """Return the entry for *path*, trying the overlay before qualified paths."""
        entry = self.overlay.get(path)
        if entry is not None:
            return entry
        return self.qualified.get(path)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, str) and self.lookup(path) is not None

    def __len__(self) -> int:
        return len(self.qualified)

    def entries(self) -> Iterator[IndexEntry]:
        """Yield every indexed entry in set order, then in document order."""
        yield from self.qualified.values()

    def paths(self) -> list[str]:
        """Return every lookup key known to the index, overlay keys first."""
        return list(self.overlay) + [key for key in self.qualified if key not in self.overlay]


def build_index(
    sets: Mapping[str, dict[str, Any]],
    order: Sequence[str],
    theme: Theme | None = None,
) -> TokenIndex:
    """Build a token index from raw token set content.

    Args:
        sets: Raw JSON content keyed by set name.
        order: Evaluation order; later sets override earlier ones in the
            overlay.
        theme: When given, only the theme's ``source`` and ``enabled`` sets
            are indexed.

    Returns:
        A freshly built index. Sets listed in *order* without content are
        skipped.
    """
    active = set(theme.active_sets()) if theme is not None else None
    index = TokenIndex()
    for set_name in order:
        if set_name not in sets:
            continue
        if active is not None and set_name not in active:
            continue
        index.order.append(set_name)
        for path, node, type_name in _walk(sets[set_name], "", None):
            entry = IndexEntry(set_name=set_name, path=path, value=raw_value(node), type=type_name)
            index.overlay[path] = entry
            index.qualified[entry.qualified_path] = entry
    return index


# ################
# Implementation
# ################


def _walk(raw: dict[str, Any], prefix: str, group_type: str | None) -> Iterator[tuple[str, dict[str, Any], str | None]]:
    declared = raw.get("$type")
    if isinstance(declared, str) and declared:
        group_type = declared
    for key, child in raw.items():
        if key.startswith("$") or not isinstance(child, dict):
            continue
        path = f"{prefix}.{key}" if prefix else key
        if is_token_node(child):
            yield path, child, raw_type(child) or group_type
        else:
            yield from _walk(child, path, group_type)
