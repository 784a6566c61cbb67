# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Git queries used to decide whether a rollback would discard local work."""

import subprocess
from collections.abc import Iterable
from pathlib import Path

# ###############
# Public Interface
# ###############


class GitError(Exception):
    """Raised when a git operation fails."""


def repository_root(path: Path) -> Path | None:
    """Return the top-level directory of the repository containing *path*.

    Args:
        path: A file or directory, which need not exist.

    Returns:
        The repository root, or None if *path* is not inside a git working
        tree.

    Raises:
        GitError: If git is not available on the system.
    """
    folder = path if path.is_dir() else path.parent
    while not folder.exists() and folder != folder.parent:
        folder = folder.parent
    result = _run_git_raw(["-C", str(folder), "rev-parse", "--show-toplevel"], timeout=10)
    if result.returncode != 0:
        return None
    top = result.stdout.strip()
    return Path(top) if top else None


def uncommitted_changes(paths: Iterable[Path]) -> list[str]:
    """Return ``git status --porcelain`` lines for changes under *paths*.

    Paths outside any git working tree contribute nothing.

    Raises:
        GitError: If git is not available or the status query fails.
    """
    by_root: dict[Path, list[str]] = {}
    for path in paths:
        root = repository_root(path)
        if root is None:
            continue
        try:
            relative = path.resolve().relative_to(root.resolve())
        except ValueError:
            continue
        by_root.setdefault(root, []).append(relative.as_posix() or ".")

    changes: list[str] = []
    for root, relatives in by_root.items():
        output = _run_git(["-C", str(root), "status", "--porcelain", "--", *relatives], timeout=30)
        changes.extend(line for line in output.splitlines() if line.strip())
    return changes


# ################
# Implementation
# ################


def _run_git_raw(args: list[str], *, timeout: int = 120) -> subprocess.CompletedProcess[str]:
    """Run a git command and return the raw CompletedProcess result.

    Raises:
        GitError: If git is not found on PATH or the command times out.
    """
    try:
        return subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found on PATH") from exc
    except subprocess.TimeoutExpired as exc:
        raise GitError(f"Git command timed out: git {' '.join(args)}") from exc


def _run_git(args: list[str], *, timeout: int = 120) -> str:
    """Run a git command and return stdout, raising GitError on non-zero exit.

    Raises:
        GitError: If git is not found, times out, or exits with a non-zero code.
    """
    result = _run_git_raw(args, timeout=timeout)
    if result.returncode != 0:
        raise GitError(f"git {' '.join(args)}: {result.stderr.strip()}")
    return result.stdout
