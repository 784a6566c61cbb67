# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Integrity checks for modular token trees.

Each check returns a :class:`~tokensets.model.reports.ValidationReport`.
Critical and high severity issues make a report invalid; medium and low
severity issues are advisory.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from pathlib import Path
from typing import Any

from tokensets.codec.studio import CodecError, infer_type, is_token_node, normalize, raw_type, raw_value
from tokensets.engine.partition import PartitionPolicy, TransformError
from tokensets.engine.transform import consolidate
from tokensets.files.structure import TreeScan, scan_modular_tree, set_file_path
from tokensets.model.reports import Issue, IssueKind, Severity, ValidationReport
from tokensets.model.tree import ModularTree, Theme
from tokensets.resolver.index import TokenIndex, build_index
from tokensets.resolver.references import find_references, reference_type, resolve, suggest

# ###############
# Public Interface
# ###############

DEFAULT_EXPECTED_SETS = ("core", "global")
DEFAULT_REQUIRED_SETS = ("core",)
DEFAULT_RECOMMENDED_SETS = ("global",)


def validate_structure(scan: TreeScan, expected_sets: Sequence[str] = DEFAULT_EXPECTED_SETS) -> ValidationReport:
    """Check file presence, token shapes, token types and expected sets.

    Checks performed:

    1. **Files** (critical/high): every issue found while reading the tree.
    2. **Token shape** (high): nodes that are neither a token nor a group,
       and tokens the codec rejects, are ``invalid_token``.
    3. **Token type** (medium): tokens without an explicit or inherited type
       are ``missing_token_type``; the inferred type is attached for
       recovery.
    4. **Expected sets** (high, or low): a missing expected set such as
       ``core`` is downgraded to a warning when the tree follows another but
       self-consistent naming scheme.
    """
    report = ValidationReport(issues=list(scan.issues))
    tree = scan.tree
    index = build_index(tree.sets, tree.order)
    for name, content in tree.ordered_sets():
        file = scan.relative(scan.files.get(name, set_file_path(scan.directory, name)))
        report.issues.extend(_check_token_shapes(name, content, file))
        report.issues.extend(_check_token_types(name, content, file, index))

    missing = [name for name in expected_sets if name not in tree.sets]
    if missing:
        consistent = _self_consistent(scan)
        report.issues.append(
            Issue(
                kind=IssueKind.NAMING_CONVENTION,
                severity=Severity.LOW if consistent else Severity.HIGH,
                message=f"expected token sets missing: {', '.join(missing)}"
                + (" (the tree uses a different but self-consistent naming scheme)" if consistent else ""),
                suggestion=f"Create {', '.join(f'{name}.json' for name in missing)} or configure expected-sets",
                details={"missing": missing, "self_consistent": consistent},
            )
        )
    if any(issue.recoverable and issue.severity.blocking for issue in report.issues):
        report.suggestions.append("Run 'tokensets recover' to repair missing files and malformed JSON")
    return report


def validate_references(tree: ModularTree, theme: Theme | None = None) -> ValidationReport:
    """Resolve every reference in the tree.

    A reference that only resolves through an alternative naming convention
    is a low ``format_issue``. An unresolvable reference is a high
    ``unresolved_reference`` on the token that holds it. Each distinct cycle
    is reported once as a critical ``circular_reference`` naming every path
    on it. A chain that exceeds the hop limit is reported once, on the first
    token found on it.

    Args:
        tree: The modular tree.
        theme: When given, only the theme's active sets are considered.
    """
    report = ValidationReport()
    index = build_index(tree.sets, tree.order, theme)
    seen_cycles: set[frozenset[str]] = set()
    long_chains: list[set[str]] = []

    for entry in index.entries():
        for reference in find_references(entry.value):
            resolution = resolve(reference, index, {entry.qualified_path})
            if resolution.resolved:
                if resolution.alternative is not None:
                    report.issues.append(
                        Issue(
                            kind=IssueKind.FORMAT_ISSUE,
                            severity=Severity.LOW,
                            message=f"reference {{{reference}}} only resolves as {{{resolution.alternative}}}",
                            path=entry.qualified_path,
                            suggestion=f"Replace {{{reference}}} with {{{resolution.alternative}}}",
                            details={
                                "reference": reference,
                                "replacement": resolution.alternative,
                                "set": entry.set_name,
                                "token_path": entry.path,
                            },
                        )
                    )
                continue

            if resolution.kind is IssueKind.CIRCULAR_REFERENCE and not _closed(resolution.cycle):
                chain = {entry.qualified_path, *resolution.cycle}
                if any(chain & seen for seen in long_chains):
                    continue
                long_chains.append(chain)
                report.issues.append(
                    Issue(
                        kind=IssueKind.CIRCULAR_REFERENCE,
                        severity=Severity.CRITICAL,
                        message=resolution.errors[0],
                        path=entry.qualified_path,
                        suggestion="Shorten the alias chain or give a token along it a concrete value",
                        details={"chain": list(resolution.cycle)},
                    )
                )
                continue

            if resolution.kind is IssueKind.CIRCULAR_REFERENCE:
                key = frozenset(resolution.cycle)
                if key in seen_cycles:
                    continue
                seen_cycles.add(key)
                cycle = " -> ".join(resolution.cycle)
                report.issues.append(
                    Issue(
                        kind=IssueKind.CIRCULAR_REFERENCE,
                        severity=Severity.CRITICAL,
                        message=f"circular reference: {cycle}",
                        path=resolution.cycle[0] if resolution.cycle else entry.qualified_path,
                        suggestion="Break the cycle by giving one of the tokens a concrete value",
                        details={"cycle": list(resolution.cycle)},
                    )
                )
                continue

            # A broken link further down the chain is reported on the token
            # that holds it.
            if resolution.reference != reference:
                continue
            candidates = suggest(reference, index)
            report.issues.append(
                Issue(
                    kind=IssueKind.UNRESOLVED_REFERENCE,
                    severity=Severity.HIGH,
                    message=f"reference {{{reference}}} does not match any token",
                    path=entry.qualified_path,
                    suggestion=(
                        "Did you mean " + ", ".join(f"{{{candidate}}}" for candidate in candidates) + "?"
                        if candidates
                        else f"Define a token at '{reference}' or correct the reference"
                    ),
                    details={
                        "reference": reference,
                        "candidates": candidates,
                        "set": entry.set_name,
                        "token_path": entry.path,
                    },
                )
            )

    if report.of_kind(IssueKind.UNRESOLVED_REFERENCE):
        report.suggestions.append("Run 'tokensets recover --fix-references' to apply unambiguous replacements")
    return report


def validate_themes(
    tree: ModularTree,
    required_sets: Sequence[str] = DEFAULT_REQUIRED_SETS,
    recommended_sets: Sequence[str] = DEFAULT_RECOMMENDED_SETS,
) -> ValidationReport:
    """Check that themes only select existing sets and cover the foundation.

    Checks performed:

    1. **Unknown sets** (high): every ``selectedTokenSets`` key must be a set
       in ``tokenSetOrder``.
    2. **Duplicate ids** (high): theme ids must be unique.
    3. **Required sets** (high): an existing required set must be selected
       as ``source`` or ``enabled`` by every theme.
    4. **Recommended sets** (low): recommended sets should exist and be used.
    5. **Unused sets** (low): sets that no theme activates.
    """
    report = ValidationReport()
    known = set(tree.order)

    seen_ids: set[str] = set()
    for theme in tree.themes:
        label = f"$themes.{theme.name}"
        if theme.id in seen_ids:
            report.issues.append(
                _theme_issue(
                    f"theme id '{theme.id}' is used by more than one theme",
                    label,
                    "Give every theme a unique id",
                    theme,
                )
            )
        seen_ids.add(theme.id)

        for set_name in theme.selected_token_sets:
            if set_name not in known:
                report.issues.append(
                    _theme_issue(
                        f"theme '{theme.name}' selects token set '{set_name}', which does not exist",
                        f"{label}.selectedTokenSets.{set_name}",
                        f"Create the '{set_name}' token set or remove it from the theme",
                        theme,
                        set=set_name,
                    )
                )

        active = set(theme.active_sets())
        for set_name in required_sets:
            if set_name in known and set_name not in active:
                report.issues.append(
                    _theme_issue(
                        f"theme '{theme.name}' does not select the required token set '{set_name}'",
                        f"{label}.selectedTokenSets",
                        f"Mark '{set_name}' as source in theme '{theme.name}'",
                        theme,
                        set=set_name,
                    )
                )

    used = {name for theme in tree.themes for name in theme.active_sets()}
    for set_name in recommended_sets:
        if set_name not in known or (tree.themes and set_name not in used):
            report.issues.append(
                Issue(
                    kind=IssueKind.THEME_MISCONFIGURATION,
                    severity=Severity.LOW,
                    message=f"recommended token set '{set_name}' is not "
                    + ("present" if set_name not in known else "used by any theme"),
                    path=set_name,
                    suggestion=f"Add a '{set_name}' token set and enable it in the themes",
                )
            )

    if tree.themes:
        for set_name in tree.order:
            if set_name not in used:
                report.issues.append(
                    Issue(
                        kind=IssueKind.UNUSED_TOKEN_SET,
                        severity=Severity.LOW,
                        message=f"token set '{set_name}' is not enabled in any theme",
                        path=set_name,
                        suggestion=f"Enable '{set_name}' in a theme or remove it",
                    )
                )
    return report


def validate_roundtrip(
    original: dict[str, Any],
    tree: ModularTree,
    policy: PartitionPolicy | None = None,
) -> ValidationReport:
    """Consolidate *tree* and compare it with *original* at the resolved-value level."""
    try:
        differences = consolidate(tree, original=original, policy=policy).differences
    except TransformError as exc:
        return ValidationReport(issues=list(exc.issues))
    report = ValidationReport(issues=differences)
    if differences:
        report.suggestions.append("Run 'tokensets consolidate' to update the canonical document, or split it again")
    return report


def validate_tree(
    directory: Path,
    canonical: dict[str, Any] | None = None,
    *,
    expected_sets: Sequence[str] = DEFAULT_EXPECTED_SETS,
    required_sets: Sequence[str] = DEFAULT_REQUIRED_SETS,
    recommended_sets: Sequence[str] = DEFAULT_RECOMMENDED_SETS,
    policy: PartitionPolicy | None = None,
    ignore: Iterable[Path] = (),
) -> ValidationReport:
    """Run every check against a tokens directory and merge the reports.

    Args:
        directory: The tokens directory.
        canonical: The canonical document to compare against, if any.
        expected_sets: Sets the structure check looks for.
        required_sets: Sets every theme must select.
        recommended_sets: Sets that should exist.
        policy: Partition policy for the round-trip comparison.
        ignore: Directories below *directory* that never hold token sets.
    """
    scan = scan_modular_tree(directory, ignore)
    report = validate_structure(scan, expected_sets)
    report.extend(validate_references(scan.tree))
    report.extend(validate_themes(scan.tree, required_sets, recommended_sets))
    if canonical is not None and not any(issue.severity is Severity.CRITICAL for issue in scan.issues):
        report.extend(validate_roundtrip(canonical, scan.tree, policy))
    return report


# ################
# Implementation
# ################


def _walk(
    raw: dict[str, Any], prefix: str, group_type: str | None
) -> Iterator[tuple[str, Any, str | None]]:
    """Yield ``(path, node, inherited_type)`` for every non-``$`` child, depth first."""
    declared = raw.get("$type")
    if isinstance(declared, str) and declared:
        group_type = declared
    for key, child in raw.items():
        if key.startswith("$"):
            continue
        path = f"{prefix}.{key}" if prefix else key
        yield path, child, group_type
        if isinstance(child, dict) and not is_token_node(child):
            yield from _walk(child, path, group_type)


def _check_token_shapes(set_name: str, content: dict[str, Any], file: str) -> list[Issue]:
    issues: list[Issue] = []
    for path, node, group_type in _walk(content, "", None):
        qualified = f"{set_name}.{path}"
        if not isinstance(node, dict):
            issues.append(
                Issue(
                    kind=IssueKind.INVALID_TOKEN,
                    severity=Severity.HIGH,
                    message="node is neither a token nor a group",
                    path=qualified,
                    file=file,
                    suggestion='Use {"$type": ..., "$value": ...} for tokens and objects for groups',
                )
            )
        elif is_token_node(node):
            try:
                normalize(node, group_type, path=qualified)
            except CodecError as exc:
                issues.append(
                    Issue(
                        kind=IssueKind.INVALID_TOKEN,
                        severity=Severity.HIGH,
                        message=exc.issue.message,
                        path=qualified,
                        file=file,
                        suggestion=exc.issue.suggestion,
                    )
                )
    return issues


def _check_token_types(set_name: str, content: dict[str, Any], file: str, index: TokenIndex) -> list[Issue]:
    issues: list[Issue] = []
    for path, node, group_type in _walk(content, "", None):
        if not isinstance(node, dict) or not is_token_node(node):
            continue
        if raw_type(node) is not None or group_type is not None:
            continue
        value = raw_value(node)
        inferred = reference_type(value, index) or infer_type(value)
        issues.append(
            Issue(
                kind=IssueKind.MISSING_TOKEN_TYPE,
                severity=Severity.MEDIUM,
                message=f"token has no $type; '{inferred}' would be inferred",
                path=f"{set_name}.{path}",
                file=file,
                suggestion=f'Add "$type": "{inferred}" or run recovery to insert it',
                details={"set": set_name, "token_path": path, "inferred": inferred},
            )
        )
    return issues


def _closed(cycle: tuple[str, ...]) -> bool:
    return len(cycle) > 1 and cycle[0] == cycle[-1]


def _self_consistent(scan: TreeScan) -> bool:
    """Return True if the tree is coherent under its own naming scheme.

    Coherent means: at least one set, ``tokenSetOrder`` and the set files
    match one to one, and every theme selects only existing sets.
    """
    tree = scan.tree
    if not tree.sets:
        return False
    if any(
        issue.kind in (IssueKind.STRUCTURAL_MISMATCH, IssueKind.UNLISTED_TOKEN_SET, IssueKind.MISSING_REQUIRED_FILE)
        for issue in scan.issues
    ):
        return False
    if set(tree.order) != set(scan.files):
        return False
    known = set(tree.order)
    return all(name in known for theme in tree.themes for name in theme.selected_token_sets)


def _theme_issue(message: str, path: str, suggestion: str, theme: Theme, **details: Any) -> Issue:
    return Issue(
        kind=IssueKind.THEME_MISCONFIGURATION,
        severity=Severity.HIGH,
        message=message,
        path=path,
        file="$themes.json",
        suggestion=suggestion,
        details={"theme_id": theme.id, **details},
    )
