# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Assignment of canonical document groups to token sets.

Each top-level key of a canonical document ends up in exactly one token set.
The decision is made by :class:`PartitionPolicy`, in this order:

1. keys declared in ``$metadata.tokenSetOrder`` are token sets;
2. keys named in ``group_assignments`` are groups moved into that set;
3. keys equal to a name in ``set_priority`` are token sets;
4. anything else is a group collected into ``residual_set``.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from pydantic import ValidationError

from tokensets.codec.studio import is_token_node
from tokensets.files.structure import default_theme
from tokensets.model.reports import Issue, IssueKind, Severity
from tokensets.model.tree import METADATA_KEY, THEMES_KEY, Metadata, Theme

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

DEFAULT_SET_PRIORITY = ["core", "global", "semantic", "brand", "simulate", "components"]

DEFAULT_GROUP_ASSIGNMENTS = {
    "Color Ramp": "core",
    "typography": "core",
    "spacing": "core",
    "color": "global",
    "dark": "global",
    "light": "global",
    "header": "global",
    "body": "global",
    "label": "global",
    "opacity": "global",
    "borderRadius": "global",
    "borderWidth": "global",
    "appBackground": "simulate",
    "surface": "simulate",
    "content": "simulate",
    "primary": "simulate",
    "secondary": "simulate",
    "button": "components",
    "CTA": "components",
    "FontFamily": "components",
}

DEFAULT_RESIDUAL_SET = "misc"


class TransformError(Exception):
    """Raised when a document cannot be split or a tree cannot be consolidated.

    Attributes:
        issues: The classified issues behind the failure.
    """

    def __init__(self, message: str, issues: Iterable[Issue] = ()) -> None:
        super().__init__(message)
        self.issues = list(issues)


@dataclass
class PartitionPolicy:
    """How top-level groups of a canonical document map to token sets.

    Attributes:
        set_priority: Known set names, foundation first. Also the order of
            sets that ``$metadata`` does not declare.
        group_assignments: Top-level group name to the set it belongs in.
        residual_set: Set collecting every group nothing else claims.
    """

    set_priority: list[str] = field(default_factory=lambda: list(DEFAULT_SET_PRIORITY))
    group_assignments: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_GROUP_ASSIGNMENTS))
    residual_set: str = DEFAULT_RESIDUAL_SET

    def foundation(self, order: list[str]) -> str | None:
        """Return the set a derived theme marks as ``source``."""
        for name in self.set_priority:
            if name in order:
                return name
        return order[0] if order else None


class Partition(NamedTuple):
    """Token sets carved out of a canonical document."""

    sets: dict[str, dict[str, Any]]
    order: list[str]
    warnings: list[Issue]


def declared_order(document: dict[str, Any]) -> list[str]:
    """Return ``$metadata.tokenSetOrder`` of a canonical document, or ``[]``.

    Raises:
        TransformError: If ``$metadata`` is present but malformed.
    """
    raw = document.get(METADATA_KEY)
    if raw is None:
        return []
    try:
        metadata = Metadata.model_validate(raw)
    except ValidationError as exc:
        raise TransformError(
            "Invalid $metadata in canonical document",
            [
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message="$metadata must be an object with a tokenSetOrder list of strings "
                    f"({exc.error_count()} errors)",
                    path=METADATA_KEY,
                    suggestion='Use "$metadata": {"tokenSetOrder": ["core", "global", ...]}',
                )
            ],
        ) from exc
    return list(dict.fromkeys(metadata.token_set_order))


def partition(document: dict[str, Any], policy: PartitionPolicy | None = None) -> Partition:
    """Split the top-level keys of *document* into token sets.

    The input is not modified; set content is deep-copied.

    Raises:
        TransformError: If the document is not an object, a declared set is
            not an object, or two groups claim the same key in one set.
    """
    policy = policy or PartitionPolicy()
    if not isinstance(document, dict):
        raise TransformError(
            "Canonical document must be a JSON object",
            [
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.CRITICAL,
                    message="canonical document must be a JSON object keyed by token set or group",
                    suggestion="Export the tokens as a single JSON object",
                )
            ],
        )

    declared = declared_order(document)
    sets: dict[str, dict[str, Any]] = {}
    warnings: list[Issue] = []

    for name in declared:
        content = document.get(name)
        if content is None:
            warnings.append(
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.LOW,
                    message=f"token set '{name}' is declared in $metadata but has no content; an empty set was created",
                    path=name,
                    suggestion=f"Remove '{name}' from tokenSetOrder if it is no longer needed",
                )
            )
            content = {}
        sets[name] = _set_content(name, content)

    residual: dict[str, Any] = {}
    for key, value in document.items():
        if key in (METADATA_KEY, THEMES_KEY) or key in declared:
            continue
        if key.startswith("$"):
            warnings.append(
                Issue(
                    kind=IssueKind.FORMAT_ISSUE,
                    severity=Severity.LOW,
                    message=f"top-level property '{key}' is not a token set and was not carried over",
                    path=key,
                    suggestion="Move document-level properties into $metadata",
                )
            )
            continue
        target = policy.group_assignments.get(key)
        if target is not None:
            _place(sets.setdefault(target, {}), target, key, value)
        elif key in policy.set_priority:
            target_set = sets.setdefault(key, {})
            for child_key, child in _set_content(key, value).items():
                _place(target_set, key, child_key, child)
        else:
            _place(residual, policy.residual_set, key, value)
            warnings.append(
                Issue(
                    kind=IssueKind.NAMING_CONVENTION,
                    severity=Severity.LOW,
                    message=f"top-level group '{key}' matches no token set and was collected into "
                    f"'{policy.residual_set}'",
                    path=key,
                    suggestion=f"Add '{key}' to partition.group-assignments to choose its set",
                )
            )

    if residual:
        for child_key, child in residual.items():
            _place(sets.setdefault(policy.residual_set, {}), policy.residual_set, child_key, child)

    order = derive_order(sets, declared, policy)
    for warning in warnings:
        logger.debug("partition: %s", warning.describe())
    return Partition(sets={name: sets[name] for name in order}, order=order, warnings=warnings)


def derive_order(sets: dict[str, Any], declared: list[str], policy: PartitionPolicy) -> list[str]:
    """Return the set order: declared sets, then ``set_priority``, then source order.

    The residual set always comes last unless it was declared.
    """
    order = [name for name in declared if name in sets]
    order.extend(name for name in policy.set_priority if name in sets and name not in order)
    order.extend(name for name in sets if name not in order and name != policy.residual_set)
    if policy.residual_set in sets and policy.residual_set not in order:
        order.append(policy.residual_set)
    return order


def derive_themes(document: dict[str, Any], order: list[str], policy: PartitionPolicy | None = None) -> list[Theme]:
    """Return the document's themes, or a single derived ``Base`` theme.

    Declared themes are kept verbatim, including keys this package does not
    interpret.

    Raises:
        TransformError: If ``$themes`` is not a list of valid themes.
    """
    policy = policy or PartitionPolicy()
    raw = document.get(THEMES_KEY)
    if raw is None:
        return [default_theme(order, policy.foundation(order))]
    if not isinstance(raw, list):
        raise TransformError(
            "Invalid $themes in canonical document",
            [_theme_issue("$themes must be a JSON array of theme objects")],
        )
    themes: list[Theme] = []
    for position, entry in enumerate(raw):
        try:
            themes.append(Theme.model_validate(entry))
        except ValidationError as exc:
            raise TransformError(
                f"Invalid theme #{position} in canonical document",
                [_theme_issue(f"theme #{position} is invalid ({exc.error_count()} errors)")],
            ) from exc
    return themes


def derive_metadata(document: dict[str, Any], order: list[str]) -> Metadata:
    """Return the metadata for a split tree, keeping unknown ``$metadata`` keys."""
    raw = document.get(METADATA_KEY)
    metadata = Metadata.model_validate(raw) if isinstance(raw, dict) else Metadata()
    metadata.token_set_order = list(order)
    return metadata


# ################
# Implementation
# ################


def _set_content(name: str, content: Any) -> dict[str, Any]:
    if not isinstance(content, dict) or is_token_node(content):
        raise TransformError(
            f"Token set '{name}' is not a group",
            [
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message=f"token set '{name}' must be a JSON object of groups and tokens",
                    path=name,
                    suggestion="Wrap the tokens in a JSON object keyed by group name",
                )
            ],
        )
    return copy.deepcopy(content)


def _place(target: dict[str, Any], set_name: str, key: str, value: Any) -> None:
    if key in target:
        raise TransformError(
            f"Group '{key}' collides in token set '{set_name}'",
            [
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message=f"group '{key}' is assigned to token set '{set_name}', which already holds '{key}'",
                    path=f"{set_name}.{key}",
                    suggestion="Rename one of the groups or change partition.group-assignments",
                )
            ],
        )
    target[key] = copy.deepcopy(value)


def _theme_issue(message: str) -> Issue:
    return Issue(
        kind=IssueKind.THEME_MISCONFIGURATION,
        severity=Severity.HIGH,
        message=message,
        path=THEMES_KEY,
        suggestion="Each theme needs an id, a name and selectedTokenSets mapping set names to "
        "source, enabled or disabled",
    )
