# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""On-disk layout of a modular token tree.

A modular tree directory holds ``$metadata.json``, ``$themes.json`` and one
``<set>.json`` file per token set. Set names containing ``/`` live in
sub-directories (``brand/dark`` is stored as ``brand/dark.json``).
"""

from __future__ import annotations

import errno
import json
import logging
import os
import sys
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from tokensets.model.reports import Issue, IssueKind, Severity
from tokensets.model.tree import METADATA_FILE, THEMES_FILE, Metadata, ModularTree, Theme, TokenSetStatus

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############

DEFAULT_MAX_PATH_LENGTH = 260 if sys.platform == "win32" else 4096
MAX_COMPONENT_LENGTH = 255

DEFAULT_THEME_ID = "base-theme"
DEFAULT_THEME_NAME = "Base"


class StructureError(Exception):
    """Raised when a modular tree cannot be read or written.

    Attributes:
        issues: The classified issues behind the failure.
    """

    def __init__(self, message: str, issues: Iterable[Issue] = ()) -> None:
        super().__init__(message)
        self.issues = list(issues)


@dataclass
class TreeScan:
    """Everything learned from reading a modular tree directory.

    Attributes:
        directory: The scanned directory.
        tree: The tree as far as it could be read. Unreadable files are
            missing from ``tree.sets``.
        issues: Problems found while reading, in discovery order.
        files: Set name to the file that holds it, for every set file found.
    """

    directory: Path
    tree: ModularTree = field(default_factory=ModularTree)
    issues: list[Issue] = field(default_factory=list)
    files: dict[str, Path] = field(default_factory=dict)

    @property
    def blocking_issues(self) -> list[Issue]:
        return [issue for issue in self.issues if issue.severity.blocking]

    def relative(self, path: Path) -> str:
        """Return *path* relative to the scanned directory, in POSIX form."""
        try:
            return path.relative_to(self.directory).as_posix()
        except ValueError:
            return path.as_posix()


def dump_json(data: Any) -> str:
    """Serialize *data* in the on-disk format: two-space indent, UTF-8, trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def set_file_path(directory: Path, set_name: str) -> Path:
    """Return the file that stores *set_name* inside *directory*."""
    *parents, leaf = set_name.split("/")
    return directory.joinpath(*parents, f"{leaf}.json")


def default_theme(order: list[str], foundation: str | None = None) -> Theme:
    """Return the ``Base`` theme used when no theme is declared.

    The foundation set (the first set when not given) is marked ``source``
    and every other set ``enabled``.
    """
    if foundation is None and order:
        foundation = order[0]
    selected = {
        name: TokenSetStatus.SOURCE if name == foundation else TokenSetStatus.ENABLED for name in order
    }
    return Theme.model_validate(
        {
            "id": DEFAULT_THEME_ID,
            "name": DEFAULT_THEME_NAME,
            "selectedTokenSets": selected,
            "$figmaStyleReferences": {},
            "$figmaVariableReferences": {},
        }
    )


def check_path_length(path: Path, max_length: int | None = None) -> Issue | None:
    """Return a ``path_too_long`` issue if *path* exceeds the platform limits."""
    limit = max_length or DEFAULT_MAX_PATH_LENGTH
    text = str(path.absolute())
    if len(text) > limit:
        return Issue(
            kind=IssueKind.PATH_TOO_LONG,
            severity=Severity.CRITICAL,
            message=f"path is {len(text)} characters long, the limit is {limit}",
            file=str(path),
            suggestion="Move the tokens directory closer to the filesystem root or shorten set names",
        )
    for part in path.parts:
        if len(part) > MAX_COMPONENT_LENGTH:
            return Issue(
                kind=IssueKind.PATH_TOO_LONG,
                severity=Severity.CRITICAL,
                message=f"path component '{part[:32]}...' exceeds {MAX_COMPONENT_LENGTH} characters",
                file=str(path),
                suggestion="Shorten the token set name",
            )
    return None


def read_json_file(path: Path, display: str | None = None) -> tuple[Any, Issue | None]:
    """Read and parse a JSON file, classifying every failure as an issue.

    Returns:
        ``(data, None)`` on success, ``(None, issue)`` otherwise.
    """
    name = display or str(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None, Issue(
            kind=IssueKind.MISSING_REQUIRED_FILE,
            severity=Severity.CRITICAL,
            message="file does not exist",
            file=name,
            suggestion="Run recovery to recreate the file with a minimal default",
        )
    except OSError as exc:
        return None, os_error_issue(exc, path, display=name)
    except UnicodeDecodeError as exc:
        return None, Issue(
            kind=IssueKind.INVALID_JSON,
            severity=Severity.CRITICAL,
            message=f"file is not valid UTF-8 at byte {exc.start}",
            file=name,
            suggestion="Re-save the file with UTF-8 encoding",
            details={"offset": exc.start},
        )
    try:
        return json.loads(text), None
    except json.JSONDecodeError as exc:
        return None, Issue(
            kind=IssueKind.INVALID_JSON,
            severity=Severity.CRITICAL,
            message=f"{exc.msg} at line {exc.lineno}, column {exc.colno} (char {exc.pos})",
            file=name,
            suggestion="Fix the JSON syntax or run recovery to repair common faults",
            details={"line": exc.lineno, "column": exc.colno, "offset": exc.pos},
        )


def os_error_issue(exc: OSError, path: Path, display: str | None = None) -> Issue:
    """Classify an ``OSError`` raised while touching *path*."""
    name = display or str(path)
    if isinstance(exc, PermissionError):
        return Issue(
            kind=IssueKind.PERMISSION_DENIED,
            severity=Severity.CRITICAL,
            message=f"permission denied: {exc.strerror or exc}",
            file=name,
            suggestion="Check the file permissions and that no other program holds the file",
        )
    if exc.errno == errno.ENAMETOOLONG:
        return Issue(
            kind=IssueKind.PATH_TOO_LONG,
            severity=Severity.CRITICAL,
            message="file name too long for the filesystem",
            file=name,
            suggestion="Shorten the token set name",
        )
    return Issue(
        kind=IssueKind.MISSING_REQUIRED_FILE if isinstance(exc, FileNotFoundError) else IssueKind.STRUCTURAL_MISMATCH,
        severity=Severity.CRITICAL,
        message=f"cannot access file: {exc.strerror or exc}",
        file=name,
        suggestion="Check that the path exists and is a regular file",
    )


def atomic_write_text(path: Path, text: str) -> None:
    """Write *text* to *path* through a temporary file in the same directory.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_json(path: Path, data: Any) -> None:
    """Atomically write *data* as formatted JSON."""
    atomic_write_text(path, dump_json(data))


def list_set_files(directory: Path, ignore: Iterable[Path] = ()) -> dict[str, Path]:
    """Return every token set file below *directory*, keyed by set name.

    ``$``-prefixed files, hidden entries and the *ignore* directories (backup
    and log locations) are skipped. Names are sorted for a stable order.
    """
    ignored = [p.resolve() for p in ignore]
    found: dict[str, Path] = {}
    if not directory.is_dir():
        return found
    for path in sorted(directory.rglob("*.json")):
        relative = path.relative_to(directory)
        if any(part.startswith((".", "$")) for part in relative.parts):
            continue
        resolved = path.resolve()
        if any(resolved == root or root in resolved.parents for root in ignored):
            continue
        found[relative.with_suffix("").as_posix()] = path
    return found


def scan_modular_tree(directory: Path, ignore: Iterable[Path] = ()) -> TreeScan:
    """Read a modular tree, collecting problems instead of raising.

    Args:
        directory: The tokens directory.
        ignore: Directories below *directory* that never hold token sets.

    Returns:
        The scan with the readable part of the tree and every issue found.
    """
    scan = TreeScan(directory=directory)
    if not directory.is_dir():
        scan.issues.append(
            Issue(
                kind=IssueKind.MISSING_REQUIRED_FILE,
                severity=Severity.CRITICAL,
                message="tokens directory does not exist",
                file=str(directory),
                suggestion="Run 'tokensets init' or 'tokensets split' to create it",
            )
        )
        return scan

    scan.files = list_set_files(directory, ignore)
    order = _scan_metadata(scan)
    _scan_themes(scan)

    seen: set[str] = set()
    for name in order:
        if name in seen:
            scan.issues.append(
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message=f"token set '{name}' is listed more than once in tokenSetOrder",
                    path=name,
                    file=METADATA_FILE,
                    suggestion="Remove the duplicate entry from tokenSetOrder",
                )
            )
            continue
        seen.add(name)
        if name not in scan.files:
            scan.issues.append(
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message=f"token set '{name}' is listed in tokenSetOrder but has no file",
                    path=name,
                    file=scan.relative(set_file_path(directory, name)),
                    suggestion=f"Create {set_file_path(Path(), name).as_posix()} or remove '{name}' from tokenSetOrder",
                    details={"set": name},
                )
            )

    extras = [name for name in scan.files if name not in seen]
    for name in extras:
        scan.issues.append(
            Issue(
                kind=IssueKind.UNLISTED_TOKEN_SET,
                severity=Severity.LOW,
                message=f"token set file '{name}' is not listed in tokenSetOrder and was appended",
                path=name,
                file=scan.relative(scan.files[name]),
                suggestion=f"Add '{name}' to tokenSetOrder in {METADATA_FILE}",
            )
        )
    final_order = [name for name in dict.fromkeys(order)] + extras
    scan.tree.metadata.token_set_order = final_order

    for name in final_order:
        path = scan.files.get(name)
        if path is None:
            continue
        data, issue = read_json_file(path, display=scan.relative(path))
        if issue is not None:
            scan.issues.append(issue)
            continue
        if not isinstance(data, dict):
            scan.issues.append(
                Issue(
                    kind=IssueKind.STRUCTURAL_MISMATCH,
                    severity=Severity.HIGH,
                    message="token set file must contain a JSON object",
                    path=name,
                    file=scan.relative(path),
                    suggestion="Wrap the tokens in a JSON object keyed by group name",
                )
            )
            continue
        scan.tree.sets[name] = data

    logger.debug("scanned %s: %d sets, %d issues", directory, len(scan.tree.sets), len(scan.issues))
    return scan


def read_modular_tree(directory: Path, ignore: Iterable[Path] = ()) -> ModularTree:
    """Read a modular tree.

    Raises:
        StructureError: If any critical or high severity issue was found.
    """
    scan = scan_modular_tree(directory, ignore)
    blocking = scan.blocking_issues
    if blocking:
        raise StructureError(f"Cannot read modular tree '{directory}': {blocking[0].describe()}", blocking)
    return scan.tree


def write_modular_tree(
    directory: Path,
    tree: ModularTree,
    prune_stale: bool = False,
    max_path_length: int | None = None,
    ignore: Iterable[Path] = (),
) -> list[Path]:
    """Write a modular tree to *directory*.

    Every path is checked against the length limits before the first write.
    Each file is replaced atomically.

    Args:
        directory: Destination tokens directory.
        tree: The tree to write. Sets are written in ``tokenSetOrder`` order.
        prune_stale: Delete set files in *directory* that the tree no longer
            contains.
        max_path_length: Override of the platform path length limit.
        ignore: Directories never considered for pruning.

    Returns:
        The files written, metadata and themes first.

    Raises:
        StructureError: If a path is too long or a file cannot be written.
    """
    targets: list[tuple[Path, Any]] = [
        (directory / METADATA_FILE, tree.metadata.to_json()),
        (directory / THEMES_FILE, tree.themes_json()),
    ]
    targets.extend((set_file_path(directory, name), content) for name, content in tree.ordered_sets())

    too_long = [issue for path, _ in targets if (issue := check_path_length(path, max_path_length))]
    if too_long:
        raise StructureError(f"Refusing to write modular tree '{directory}': path too long", too_long)

    stale: list[Path] = []
    if prune_stale:
        stale = [path for name, path in list_set_files(directory, ignore).items() if name not in tree.sets]

    written: list[Path] = []
    for path, data in targets:
        try:
            write_json(path, data)
        except OSError as exc:
            issue = os_error_issue(exc, path)
            raise StructureError(f"Cannot write '{path}': {issue.message}", [issue]) from exc
        written.append(path)

    for path in stale:
        try:
            path.unlink()
        except OSError as exc:
            issue = os_error_issue(exc, path)
            raise StructureError(f"Cannot remove stale set file '{path}': {issue.message}", [issue]) from exc
        _remove_empty_parents(path.parent, directory)
        logger.info("removed stale token set file %s", path)

    logger.debug("wrote %d files to %s", len(written), directory)
    return written


def init_modular_tree(directory: Path, max_path_length: int | None = None) -> list[Path]:
    """Create the required files of an empty modular tree where they are missing.

    Existing files are left untouched.

    Returns:
        The files that were created.

    Raises:
        StructureError: If the directory or a file cannot be created.
    """
    defaults: list[tuple[Path, Any]] = [
        (directory / METADATA_FILE, Metadata().to_json()),
        (directory / THEMES_FILE, [default_theme([]).to_json()]),
    ]
    created: list[Path] = []
    for path, data in defaults:
        issue = check_path_length(path, max_path_length)
        if issue is not None:
            raise StructureError(f"Cannot create '{path}': {issue.message}", [issue])
        if path.exists():
            continue
        try:
            write_json(path, data)
        except OSError as exc:
            issue = os_error_issue(exc, path)
            raise StructureError(f"Cannot create '{path}': {issue.message}", [issue]) from exc
        created.append(path)
    return created


# ################
# Implementation
# ################


def _scan_metadata(scan: TreeScan) -> list[str]:
    """Read ``$metadata.json`` and return the declared order.

    When the file is unusable the order falls back to the set files found.
    """
    data, issue = read_json_file(scan.directory / METADATA_FILE, display=METADATA_FILE)
    if issue is not None:
        scan.issues.append(issue)
        return []
    try:
        scan.tree.metadata = Metadata.model_validate(data)
    except ValidationError as exc:
        scan.issues.append(
            Issue(
                kind=IssueKind.STRUCTURAL_MISMATCH,
                severity=Severity.HIGH,
                message=f"metadata must be an object with a tokenSetOrder list of strings ({exc.error_count()} errors)",
                file=METADATA_FILE,
                suggestion='Use {"tokenSetOrder": ["core", "global", ...]}',
            )
        )
        return []
    return list(scan.tree.metadata.token_set_order)


def _scan_themes(scan: TreeScan) -> None:
    data, issue = read_json_file(scan.directory / THEMES_FILE, display=THEMES_FILE)
    if issue is not None:
        scan.issues.append(issue)
        return
    if not isinstance(data, list):
        scan.issues.append(
            Issue(
                kind=IssueKind.THEME_MISCONFIGURATION,
                severity=Severity.HIGH,
                message="themes file must contain a JSON array of themes",
                file=THEMES_FILE,
                suggestion="Wrap the theme objects in a JSON array",
            )
        )
        return
    for position, entry in enumerate(data):
        try:
            scan.tree.themes.append(Theme.model_validate(entry))
        except ValidationError as exc:
            scan.issues.append(
                Issue(
                    kind=IssueKind.THEME_MISCONFIGURATION,
                    severity=Severity.HIGH,
                    message=f"theme #{position} is invalid ({exc.error_count()} errors)",
                    file=THEMES_FILE,
                    suggestion="Each theme needs an id, a name and selectedTokenSets mapping set names "
                    "to source, enabled or disabled",
                )
            )


def _remove_empty_parents(folder: Path, root: Path) -> None:
    while folder != root and root in folder.parents:
        try:
            folder.rmdir()
        except OSError:
            return
        folder = folder.parent
