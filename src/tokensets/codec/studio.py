# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Conversion between raw JSON token nodes and normalized Studio tokens.

A raw node is either a *token* (it carries a value-bearing marker key) or a
*group* (a mapping of further nodes). Two spellings of a token are accepted:

* Studio form: ``{"$type": ..., "$value": ..., "$description": ...}``
* Legacy form: ``{"type": ..., "value": ..., "description": ...}``

Normalization always yields Studio semantics; denormalization always writes
the Studio form. Group-level ``$``-prefixed properties are kept verbatim and a
group ``$type`` is inherited by untyped children.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

from tokensets.model.reports import Issue, IssueKind, Severity
from tokensets.model.tokens import Group, Token, TokenValue, is_token, make_token

# ###############
# Public Interface
# ###############

STUDIO_KEYS = ("$type", "$value", "$description", "$extensions")
LEGACY_KEYS = ("type", "value", "description", "extensions")

FALLBACK_TYPE = "other"


class CodecError(Exception):
    """Raised when a node is neither a valid token nor a group.

    Attributes:
        issue: The classified issue describing the failing node.
    """

    def __init__(self, issue: Issue) -> None:
        super().__init__(issue.describe())
        self.issue = issue


def is_token_node(node: object) -> bool:
    """Return True if a raw JSON node is a token rather than a group."""
    if not isinstance(node, dict):
        return False
    if "$value" in node:
        return True
    if "value" not in node:
        return False
    if "type" in node:
        return True
    # A legacy ``value`` key is a marker unless it holds nested nodes, in
    # which case it is a group containing a child named ``value``.
    value = node["value"]
    if not isinstance(value, dict):
        return True
    return not any(isinstance(child, dict) for child in value.values())


def infer_type(value: TokenValue) -> str:
    """Infer a token type from the shape of its value.

    Only used when a token carries no explicit type; an explicit type is
    never overwritten.
    """
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "dimension"
    if isinstance(value, str):
        text = value.strip()
        if _HEX_COLOR_RE.match(text) or _FUNC_COLOR_RE.match(text) or "gradient" in text:
            return "color"
        if _DIMENSION_RE.match(text) or _NUMBER_RE.match(text):
            return "dimension"
        return FALLBACK_TYPE
    if isinstance(value, dict):
        return _infer_composite(value)
    if isinstance(value, list) and value and all(isinstance(item, dict) for item in value):
        if all(_SHADOW_KEYS & item.keys() for item in value):
            return "boxShadow"
    return FALLBACK_TYPE


def normalize(raw: object, inherited_type: str | None = None, *, path: str = "") -> Token | Group:
    """Normalize a raw JSON node into a token model or a group.

    Args:
        raw: The raw JSON node.
        inherited_type: ``$type`` declared on an enclosing group.
        path: Dotted path of the node, used in error messages.

    Returns:
        A token model when the node is a token, otherwise a group mapping
        whose token children are normalized recursively.

    Raises:
        CodecError: If the node (or any descendant) is neither a token nor a
            group.
    """
    if not isinstance(raw, dict):
        raise CodecError(_shape_issue(raw, path))
    if is_token_node(raw):
        return _normalize_token(raw, path, inherited_type)

    group_type = raw.get("$type") if isinstance(raw.get("$type"), str) else inherited_type
    group: Group = {}
    for key, child in raw.items():
        if key.startswith("$"):
            group[key] = child
            continue
        child_path = f"{path}.{key}" if path else key
        group[key] = normalize(child, group_type, path=child_path)
    return group


def normalize_set(raw: object, set_name: str) -> Group:
    """Normalize the content of a whole token set file.

    Raises:
        CodecError: If the set is not a JSON object or contains invalid nodes.
    """
    if not isinstance(raw, dict) or is_token_node(raw):
        raise CodecError(
            Issue(
                kind=IssueKind.STRUCTURAL_MISMATCH,
                severity=Severity.HIGH,
                message=f"token set '{set_name}' must be a JSON object of groups and tokens",
                path=set_name,
                suggestion="Wrap the tokens in a JSON object keyed by group name",
            )
        )
    node = normalize(raw, path=set_name)
    assert isinstance(node, dict)
    return node


def denormalize(node: Token | Group) -> dict[str, Any]:
    """Convert a normalized token or group back to its raw Studio JSON form."""
    if is_token(node):
        raw: dict[str, Any] = {"$type": node.type, "$value": node.value}  # type: ignore[union-attr]
        if node.description is not None:  # type: ignore[union-attr]
            raw["$description"] = node.description  # type: ignore[union-attr]
        if node.extensions is not None:  # type: ignore[union-attr]
            raw["$extensions"] = node.extensions  # type: ignore[union-attr]
        return raw
    return {key: (child if key.startswith("$") else denormalize(child)) for key, child in node.items()}


def denormalize_set(group: Group) -> dict[str, Any]:
    """Convert a normalized token set back to the JSON written to ``<set>.json``."""
    return denormalize(group)


def iter_tokens(group: Group, prefix: str = "") -> Iterator[tuple[str, Token]]:
    """Yield ``(dotted_path, token)`` for every token in a normalized group, in order."""
    for key, child in group.items():
        if key.startswith("$"):
            continue
        path = f"{prefix}.{key}" if prefix else key
        if is_token(child):
            yield path, child
        else:
            yield from iter_tokens(child, path)


def iter_raw_tokens(raw: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield ``(dotted_path, raw_node)`` for every token node in raw JSON, skipping invalid nodes."""
    for key, child in raw.items():
        if key.startswith("$") or not isinstance(child, dict):
            continue
        path = f"{prefix}.{key}" if prefix else key
        if is_token_node(child):
            yield path, child
        else:
            yield from iter_raw_tokens(child, path)


def raw_type(node: dict[str, Any]) -> str | None:
    """Return the explicit type of a raw token node, if any."""
    for key in ("$type", "type"):
        value = node.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def raw_value(node: dict[str, Any]) -> Any:
    """Return the value of a raw token node."""
    return node["$value"] if "$value" in node else node.get("value")


# ################
# Implementation
# ################

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3,4}|[0-9a-fA-F]{6}|[0-9a-fA-F]{8})$")
_FUNC_COLOR_RE = re.compile(r"^(?:rgba?|hsla?|oklch|color)\(", re.IGNORECASE)
_DIMENSION_RE = re.compile(r"^-?\d+(?:\.\d+)?(?:px|rem|em|%|pt|vh|vw)$")
_NUMBER_RE = re.compile(r"^-?\d+(?:\.\d+)?$")

_SHADOW_KEYS = frozenset({"x", "y", "blur", "spread", "offsetX", "offsetY"})


def _infer_composite(value: dict[str, Any]) -> str:
    keys = value.keys()
    if "fontFamily" in keys:
        return "typography"
    if _SHADOW_KEYS & keys:
        return "boxShadow"
    if "width" in keys and "style" in keys:
        return "border"
    return "composition"


def _normalize_token(raw: dict[str, Any], path: str, inherited_type: str | None) -> Token:
    studio = "$value" in raw
    keys = STUDIO_KEYS if studio else LEGACY_KEYS
    value = raw[keys[1]]
    if value is None:
        raise CodecError(
            Issue(
                kind=IssueKind.INVALID_TOKEN,
                severity=Severity.HIGH,
                message="token value must not be null",
                path=path,
                suggestion="Give the token a value or a {reference}",
            )
        )
    explicit = raw_type(raw)
    type_name = explicit or inherited_type or infer_type(value)

    description = raw.get(keys[2])
    if description is not None and not isinstance(description, str):
        description = str(description)
    extensions = raw.get(keys[3])
    if extensions is not None and not isinstance(extensions, dict):
        raise CodecError(
            Issue(
                kind=IssueKind.INVALID_TOKEN,
                severity=Severity.HIGH,
                message="token extensions must be a JSON object",
                path=path,
                suggestion="Store vendor data under $extensions as an object",
            )
        )
    return make_token(type_name, value, description=description, extensions=extensions)


def _shape_issue(raw: object, path: str) -> Issue:
    found = "array" if isinstance(raw, list) else type(raw).__name__
    return Issue(
        kind=IssueKind.STRUCTURAL_MISMATCH,
        severity=Severity.HIGH,
        message=f"expected a token or a group object, found {found}",
        path=path or None,
        suggestion="Replace the node with a {\"$type\": ..., \"$value\": ...} token or a group object",
    )
