# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Entry point for the tokensets command-line interface."""

import argparse
import json
import logging
import sys
from pathlib import Path

from yachalk import chalk

from tokensets import operations
from tokensets.logs import setup_logging
from tokensets.model.reports import Issue, Result, Severity, ValidationReport
from tokensets.workspace.config import ConfigError, Settings, load_settings

# ###############
# Public Interface
# ###############


def main() -> None:
    """Run the tokensets CLI."""
    parser = argparse.ArgumentParser(
        prog="tokensets",
        description="tokensets: split, consolidate and validate Tokens Studio token sets",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output to standard error")
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # init subcommand
    init_parser = subparsers.add_parser(
        "init",
        help="Initialize a new tokensets workspace",
        description="Create .tokensets.yaml and an empty modular token tree.",
    )
    _add_directory(init_parser, "Directory to initialize the workspace in (default: current directory)")

    # split subcommand
    split_parser = subparsers.add_parser(
        "split",
        help="Split the canonical document into token set files",
        description="Partition the canonical token document into one file per token set.",
    )
    _add_directory(split_parser)
    split_parser.add_argument("--canonical", help="Canonical document (default: canonical-path setting)")
    split_parser.add_argument("--output", help="Tokens directory (default: tokens-directory setting)")

    # consolidate subcommand
    consolidate_parser = subparsers.add_parser(
        "consolidate",
        help="Rebuild the canonical document from token set files",
        description="Validate the modular tree and write the canonical token document.",
    )
    _add_directory(consolidate_parser)
    consolidate_parser.add_argument("--input", help="Tokens directory (default: tokens-directory setting)")
    consolidate_parser.add_argument("--canonical", help="Canonical document (default: canonical-path setting)")

    # validate subcommand
    validate_parser = subparsers.add_parser(
        "validate",
        help="Check the modular tree for integrity problems",
        description="Check files, token types, references and themes of the modular tree.",
    )
    _add_directory(validate_parser)
    validate_parser.add_argument("--input", help="Tokens directory (default: tokens-directory setting)")
    validate_parser.add_argument(
        "--canonical",
        help="Also compare the tree with this canonical document",
    )
    validate_parser.add_argument(
        "--roundtrip",
        action="store_true",
        help="Also compare the tree with the configured canonical document",
    )
    validate_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    # backups subcommand
    backups_parser = subparsers.add_parser(
        "backups",
        help="List available backups",
        description="List the backups taken before mutating operations, newest first.",
    )
    _add_directory(backups_parser)

    # rollback subcommand
    rollback_parser = subparsers.add_parser(
        "rollback",
        help="Restore the files recorded in a backup",
        description="Restore the files recorded in a backup and remove files the operation created.",
    )
    rollback_parser.add_argument("backup_id", help="Backup to restore (see 'tokensets backups')")
    _add_directory(rollback_parser)
    rollback_parser.add_argument("--dry-run", action="store_true", help="Show what would change without writing")
    rollback_parser.add_argument("--force", action="store_true", help="Overwrite changes made after the operation")

    # recover subcommand
    recover_parser = subparsers.add_parser(
        "recover",
        help="Repair missing files, malformed JSON and missing token types",
        description="Validate the modular tree and repair what can be repaired automatically.",
    )
    _add_directory(recover_parser)
    recover_parser.add_argument("--input", help="Tokens directory (default: tokens-directory setting)")
    recover_parser.add_argument("--dry-run", action="store_true", help="Show the planned fixes without writing")
    recover_parser.add_argument(
        "--fix-references",
        action="store_true",
        help="Apply unambiguous replacements for broken references",
    )

    args = parser.parse_args()
    if args.command is None:
        parser.print_help()
        sys.exit(0)

    sys.exit(_dispatch(args))


# ################
# Implementation
# ################


def _add_directory(parser: argparse.ArgumentParser, help_text: str | None = None) -> None:
    parser.add_argument(
        "directory",
        nargs="?",
        default=".",
        help=help_text or "Directory containing the tokensets workspace (default: current directory)",
    )


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch to the appropriate subcommand handler."""
    directory = Path(args.directory).resolve()
    if args.command == "init":
        _configure_logging(Settings().at(directory), args.verbose, files=False)
        return _cmd_init(directory)

    if not directory.exists():
        print(chalk.red(f"Error: directory '{directory}' does not exist."), file=sys.stderr)
        return 1
    try:
        settings = load_settings(directory)
    except ConfigError as exc:
        print(chalk.red(f"Error: {exc}"), file=sys.stderr)
        return 1
    _configure_logging(settings, args.verbose)

    if args.command == "split":
        return _cmd_split(args, settings)
    if args.command == "consolidate":
        return _cmd_consolidate(args, settings)
    if args.command == "validate":
        return _cmd_validate(args, settings)
    if args.command == "backups":
        return _cmd_backups(settings)
    if args.command == "rollback":
        return _cmd_rollback(args, settings)
    if args.command == "recover":
        return _cmd_recover(args, settings)
    return 0


def _configure_logging(settings: Settings, verbose: bool, files: bool = True) -> None:
    setup_logging(
        settings.log_path if files else None,
        level=logging.DEBUG if verbose else logging.WARNING,
    )


def _cmd_init(directory: Path) -> int:
    """Handle the init subcommand."""
    result = operations.init(directory)
    return _print_result(result)


def _cmd_split(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the split subcommand."""
    canonical = settings.path(args.canonical) if args.canonical else settings.canonical_file
    output = settings.path(args.output) if args.output else settings.tokens_path
    print(f"Splitting {canonical} into {output}...")
    return _print_result(operations.split(canonical, output, settings))


def _cmd_consolidate(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the consolidate subcommand."""
    source = settings.path(args.input) if args.input else settings.tokens_path
    canonical = settings.path(args.canonical) if args.canonical else settings.canonical_file
    print(f"Consolidating {source} into {canonical}...")
    return _print_result(operations.consolidate(source, canonical, settings))


def _cmd_validate(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the validate subcommand."""
    source = settings.path(args.input) if args.input else settings.tokens_path
    canonical: Path | None = None
    if args.canonical:
        canonical = settings.path(args.canonical)
    elif args.roundtrip:
        canonical = settings.canonical_file
    report = operations.validate(source, canonical, settings=settings)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False))
        return 0 if report.is_valid else 1
    return _print_report(report)


def _cmd_backups(settings: Settings) -> int:
    """Handle the backups subcommand."""
    manifests = operations.list_backups(settings)
    if not manifests:
        print("No backups found.")
        return 0
    for manifest in manifests:
        sealed = "" if manifest.result_files is not None else chalk.yellow(" (incomplete)")
        files = len(manifest.files)
        print(f"  {chalk.bold(manifest.id)}  {manifest.timestamp}  {manifest.operation}  {files} files{sealed}")
    return 0


def _cmd_rollback(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the rollback subcommand."""
    result = operations.rollback(args.backup_id, dry_run=args.dry_run, force=args.force, settings=settings)
    code = _print_result(result)
    if result.success and args.dry_run:
        for path in result.details.get("restore", []):
            print(f"  restore {path}")
        for path in result.details.get("remove", []):
            print(f"  remove  {path}")
    return code


def _cmd_recover(args: argparse.Namespace, settings: Settings) -> int:
    """Handle the recover subcommand."""
    source = settings.path(args.input) if args.input else settings.tokens_path
    result = operations.recover(
        None,
        source,
        dry_run=args.dry_run,
        fix_references=args.fix_references,
        settings=settings,
    )
    for action in result.details.get("actions", []):
        print(f"  {chalk.green('fixed')} {action}")
    return _print_result(result)


def _print_result(result: Result) -> int:
    if result.success:
        print(chalk.green(result.message))
    else:
        print(chalk.red(f"Error: {result.message}"), file=sys.stderr)
        for error in result.errors:
            print(chalk.red(f"  {error}"), file=sys.stderr)
    for suggestion in result.suggestions:
        print(chalk.yellow(f"  hint: {suggestion}"))
    backup_id = result.details.get("backup_id")
    if backup_id:
        print(f"  backup: {backup_id}")
    return 0 if result.success else 1


_SEVERITY_STYLE = {
    Severity.CRITICAL: chalk.red.bold,
    Severity.HIGH: chalk.red,
    Severity.MEDIUM: chalk.yellow,
    Severity.LOW: chalk.blue,
}


def _print_issue(issue: Issue) -> None:
    style = _SEVERITY_STYLE[issue.severity]
    stream = sys.stderr if issue.severity.blocking else sys.stdout
    print(style(f"{issue.severity.value.upper():8} {issue.describe()}"), file=stream)


def _print_report(report: ValidationReport) -> int:
    for issue in report.blocking_issues:
        _print_issue(issue)
    for issue in report.warnings:
        _print_issue(issue)
    for suggestion in report.suggestions:
        print(chalk.yellow(f"  hint: {suggestion}"))
    if not report.is_valid:
        print(chalk.red(f"{len(report.blocking_issues)} blocking issues, {len(report.warnings)} warnings."))
        return 1
    print(chalk.green(f"No blocking issues found ({len(report.warnings)} warnings)."))
    return 0
