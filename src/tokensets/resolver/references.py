# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Resolution of ``{dotted.path}`` references against a token index.

Chains are followed iteratively. Every hop records the qualified path of the
token it lands on; landing on a path that is already part of the current
chain is a circular reference. Composite values and strings with embedded
references are resolved per sub-value, each sub-resolution inheriting the
chain of its parent.
"""

from __future__ import annotations

import difflib
import re
from dataclasses import dataclass
from typing import Any

from tokensets.codec.studio import infer_type
from tokensets.model.reports import IssueKind
from tokensets.resolver.index import IndexEntry, TokenIndex

# ###############
# Public Interface
# ###############

MAX_HOPS = 64

REFERENCE_PATTERN = re.compile(r"\{\s*([^{}\s][^{}]*)\}")


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving a single reference.

    Attributes:
        resolved: True if a concrete value was reached.
        value: The concrete value, with nested references substituted.
        path: Qualified path of the token that produced the value.
        errors: Human-readable failure messages.
        kind: ``unresolved_reference`` or ``circular_reference`` on failure.
        alternative: The rewritten path used when the reference only
            resolved through an alternative naming convention.
        cycle: Qualified paths forming the cycle, first path repeated last.
        reference: The dotted path that failed to resolve, if any.
    """

    resolved: bool
    value: Any = None
    path: str | None = None
    errors: tuple[str, ...] = ()
    kind: IssueKind | None = None
    alternative: str | None = None
    cycle: tuple[str, ...] = ()
    reference: str | None = None


def is_reference(value: object) -> bool:
    """Return True if *value* is a string consisting of exactly one reference."""
    return isinstance(value, str) and REFERENCE_PATTERN.fullmatch(value.strip()) is not None


def find_references(value: object) -> list[str]:
    """Return the dotted paths of every reference in *value*, in order of appearance."""
    found: list[str] = []
    stack: list[object] = [value]
    while stack:
        current = stack.pop()
        if isinstance(current, str):
            found.extend(match.strip() for match in REFERENCE_PATTERN.findall(current))
        elif isinstance(current, dict):
            stack.extend(reversed(list(current.values())))
        elif isinstance(current, list):
            stack.extend(reversed(current))
    return found


def strip_reference(reference: str) -> str:
    """Return the dotted path of ``{a.b}`` (or *reference* itself when unbraced)."""
    text = reference.strip()
    if text.startswith("{") and text.endswith("}"):
        text = text[1:-1]
    return text.strip()


def alternatives(path: str) -> list[str]:
    """Return the alternative spellings of *path* under known naming conventions.

    Legacy fragmented names (``fontWeights.x``) map to Studio group names
    (``Font Weight.x``) and back. Numeric weight and line-height suffixes map
    to their named equivalents.
    """
    parts = path.split(".")
    head, rest = parts[0], parts[1:]
    result: list[str] = []
    for mapped in _FORMAT_MAPPINGS.get(head, ()):
        result.append(".".join([mapped, *rest]))
    if rest:
        last = rest[-1]
        if head == "fontWeights" and last in _WEIGHT_SUFFIXES:
            named = _WEIGHT_SUFFIXES[last]
            result.extend(
                [
                    f"Font Weight.{named}",
                    f"fontWeight.{named}",
                    ".".join([head, *rest[:-1], "roboto", named]),
                ]
            )
        if head == "lineHeights" and last in _LINE_HEIGHT_SUFFIXES:
            named = _LINE_HEIGHT_SUFFIXES[last]
            result.extend([f"Line Height.{named}", f"lineHeight.{named}"])
    return [candidate for candidate in dict.fromkeys(result) if candidate != path]


def resolve(reference: str, index: TokenIndex, visiting: set[str] | None = None) -> Resolution:
    """Resolve *reference* to a concrete value.

    Args:
        reference: ``{a.b.c}`` or the bare dotted path ``a.b.c``.
        index: The token index to resolve against.
        visiting: Qualified paths already on the current resolution chain,
            e.g. the path of the token whose value holds the reference. The
            set is not modified.

    Returns:
        The resolution. Failures carry ``kind`` and ``errors`` instead of
        raising.
    """
    return _follow(strip_reference(reference), index, sorted(visiting or ()))


def resolve_value(value: Any, index: TokenIndex, visiting: set[str] | None = None) -> tuple[Any, list[Resolution]]:
    """Substitute every reference inside *value*.

    Returns:
        The value with resolvable references replaced, and the failed
        resolutions. Unresolvable references are left in place.
    """
    return _substitute(value, index, sorted(visiting or ()))


def suggest(reference: str, index: TokenIndex, limit: int = 5) -> list[str]:
    """Return likely intended paths for an unresolved reference.

    Alternative spellings that exist in the index come first, followed by
    close textual matches among the indexed paths. A token reachable under
    several keys is suggested once, under its best-ranked key.
    """
    path = strip_reference(reference)
    found = [candidate for candidate in alternatives(path) if candidate in index]
    candidates = index.paths()
    found.extend(difflib.get_close_matches(path, candidates, n=limit, cutoff=0.6))
    last = path.rsplit(".", 1)[-1]
    found.extend(candidate for candidate in candidates if candidate.rsplit(".", 1)[-1] == last)

    unique: dict[str, str] = {}
    for candidate in found:
        entry = index.lookup(candidate)
        if entry is not None:
            unique.setdefault(entry.qualified_path, candidate)
    return list(unique.values())[:limit]


def reference_type(value: Any, index: TokenIndex) -> str | None:
    """Return the type of the token an alias value points at.

    The chain is followed until a typed token or a concrete value is found.
    Returns ``None`` when *value* is not a single reference or the chain is
    broken.
    """
    if not is_reference(value):
        return None
    path = strip_reference(value)
    for _ in range(MAX_HOPS):
        entry, _rewritten = _lookup(path, index)
        if entry is None:
            return None
        if entry.type:
            return entry.type
        if not is_reference(entry.value):
            return infer_type(entry.value)
        path = strip_reference(entry.value)
    return None


# ################
# Implementation
# ################

_FORMAT_MAPPINGS: dict[str, tuple[str, ...]] = {
    "fontWeights": ("Font Weight", "fontWeight"),
    "fontSizes": ("Font Size", "fontSize"),
    "lineHeights": ("Line Height", "lineHeight"),
    "letterSpacing": ("Letter Spacing",),
    "paragraphSpacing": ("Paragraph Spacing",),
    "paragraphIndent": ("Paragraph Indent",),
    "textCase": ("Text Case",),
    "textDecoration": ("Text Decoration",),
    "fontFamily": ("Font Family", "FontFamily"),
    "spacing": ("Spacing",),
    "color": ("Color",),
    "shadow": ("Shadow",),
    "borderRadius": ("Border Radius",),
    "opacity": ("Opacity",),
}

# Reverse direction: Studio group naming back to the legacy names.
for _legacy, _studio_names in list(_FORMAT_MAPPINGS.items()):
    for _studio in _studio_names:
        _FORMAT_MAPPINGS.setdefault(_studio, ())
        if _legacy not in _FORMAT_MAPPINGS[_studio]:
            _FORMAT_MAPPINGS[_studio] = (*_FORMAT_MAPPINGS[_studio], _legacy)
del _legacy, _studio_names, _studio

_WEIGHT_SUFFIXES = {"roboto-0": "light", "roboto-1": "regular", "roboto-2": "medium", "roboto-3": "bold"}
_LINE_HEIGHT_SUFFIXES = {"0": "tight", "1": "normal", "2": "loose"}


def _lookup(path: str, index: TokenIndex) -> tuple[IndexEntry | None, str | None]:
    entry = index.lookup(path)
    if entry is not None:
        return entry, None
    for candidate in alternatives(path):
        entry = index.lookup(candidate)
        if entry is not None:
            return entry, candidate
    return None, None


def _follow(start: str, index: TokenIndex, ancestors: list[str]) -> Resolution:
    trail = list(ancestors)
    chain = set(trail)
    current = start
    alternative: str | None = None

    for hop in range(MAX_HOPS):
        entry, rewritten = _lookup(current, index)
        if entry is None:
            return Resolution(
                resolved=False,
                errors=(f"reference {{{current}}} does not match any token",),
                kind=IssueKind.UNRESOLVED_REFERENCE,
                reference=current,
            )
        # Rewrites further down the chain belong to the token that holds them.
        if rewritten is not None and hop == 0:
            alternative = rewritten

        key = entry.qualified_path
        if key in chain:
            cycle = [*trail[trail.index(key) :], key]
            return Resolution(
                resolved=False,
                errors=("circular reference: " + " -> ".join(cycle),),
                kind=IssueKind.CIRCULAR_REFERENCE,
                cycle=tuple(cycle),
                reference=start,
            )
        chain.add(key)
        trail.append(key)

        if is_reference(entry.value):
            current = strip_reference(entry.value)
            continue

        value, failures = _substitute(entry.value, index, trail)
        if failures:
            first = failures[0]
            return Resolution(
                resolved=False,
                path=key,
                errors=tuple(error for failure in failures for error in failure.errors),
                kind=first.kind,
                alternative=alternative,
                cycle=first.cycle,
                reference=first.reference,
            )
        return Resolution(resolved=True, value=value, path=key, alternative=alternative)

    return Resolution(
        resolved=False,
        errors=(f"reference {{{start}}} exceeds the limit of {MAX_HOPS} hops",),
        kind=IssueKind.CIRCULAR_REFERENCE,
        cycle=tuple(trail[len(ancestors) :]),
        reference=start,
    )


def _substitute(value: Any, index: TokenIndex, trail: list[str]) -> tuple[Any, list[Resolution]]:
    """Resolve references nested in a composite or embedded in a string."""
    failures: list[Resolution] = []

    def replace(match: re.Match[str]) -> str:
        resolution = _follow(match.group(1).strip(), index, trail)
        if resolution.resolved:
            return str(resolution.value)
        failures.append(resolution)
        return match.group(0)

    def visit(node: Any) -> Any:
        if isinstance(node, dict):
            return {key: visit(child) for key, child in node.items()}
        if isinstance(node, list):
            return [visit(child) for child in node]
        if not isinstance(node, str) or not REFERENCE_PATTERN.search(node):
            return node
        if is_reference(node):
            resolution = _follow(strip_reference(node), index, trail)
            if resolution.resolved:
                return resolution.value
            failures.append(resolution)
            return node
        return REFERENCE_PATTERN.sub(replace, node)

    return visit(value), failures
