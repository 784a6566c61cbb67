#!/usr/bin/env python3
# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Run all CI checks locally: format, lint, tests, and build."""

import subprocess
import sys
import time
from pathlib import Path

from yachalk import chalk

# ###############
# Public Interface
# ###############

STEPS: list[tuple[str, list[str]]] = [
    ("Format check", ["ruff", "format", "--check", "src/", "tests/", "tools/"]),
    ("Lint", ["ruff", "check", "src/", "tests/", "tools/"]),
    ("Tests", ["pytest", "--cov=tokensets", "--cov-report=term-missing"]),
    ("Build", ["hatch", "build"]),
]


def main(steps: list[tuple[str, list[str]]] | None = None) -> int:
    """Run every CI step and return 0 if all of them passed."""
    results: list[tuple[str, bool, float]] = []

    for name, cmd in steps or STEPS:
        _banner(name)
        start = time.monotonic()
        try:
            passed = subprocess.run(cmd, cwd=_repo_root()).returncode == 0
        except FileNotFoundError:
            print(chalk.red(f"{cmd[0]} is not installed"))
            passed = False
        results.append((name, passed, time.monotonic() - start))

    _banner("  Summary")
    for name, passed, elapsed in results:
        status = chalk.green("PASS") if passed else chalk.red("FAIL")
        print(f"  {status}  {name} ({elapsed:.1f}s)")
    print()
    return 0 if all(passed for _, passed, _ in results) else 1


# ################
# Implementation
# ################


def _banner(title: str) -> None:
    sep = chalk.blue("=" * 60)
    print(f"\n{sep}")
    print(chalk.blue(title))
    print(sep)


def _repo_root() -> Path:
    return Path(__file__).parent.parent


if __name__ == "__main__":
    sys.exit(main())
