# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Tests for the tokensets CLI entry point."""

import json
import sys
from pathlib import Path

import pytest

from tokensets.cli.main import main
from tokensets.logs import setup_logging
from tokensets.model.tree import METADATA_FILE
from tokensets.workspace import CONFIG_FILE

# ###############
# Test Helpers
# ###############

_DOCUMENT = {
    "core": {"color": {"primary": {"$type": "color", "$value": "#112233"}}},
    "global": {"color": {"accent": {"$type": "color", "$value": "{core.color.primary}"}}},
}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    setup_logging(None, console=False)


def _run(monkeypatch: pytest.MonkeyPatch, *args: str) -> int:
    monkeypatch.setattr(sys, "argv", ["tokensets", *args])
    with pytest.raises(SystemExit) as exc_info:
        main()
    return exc_info.value.code


def _canonical(tmp_path: Path, document=None) -> Path:
    path = tmp_path / "tokensource.json"
    path.write_text(json.dumps(document if document is not None else _DOCUMENT), encoding="utf-8")
    return path


# ###############
# Public Interface
# ###############


def test_main_no_args_prints_help_and_exits(monkeypatch: pytest.MonkeyPatch) -> None:
    """main() with no subcommand prints help and exits with code 0."""
    assert _run(monkeypatch) == 0


# -------- init tests --------


def test_init_creates_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """init writes .tokensets.yaml and an empty tokens tree."""
    assert _run(monkeypatch, "init", str(tmp_path)) == 0
    assert (tmp_path / CONFIG_FILE).is_file()
    assert (tmp_path / "tokens" / METADATA_FILE).is_file()


def test_init_default_directory_uses_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """init with no directory argument uses the current working directory."""
    monkeypatch.chdir(tmp_path)
    assert _run(monkeypatch, "init") == 0
    assert (tmp_path / CONFIG_FILE).exists()


def test_init_twice_succeeds(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A second init leaves the workspace alone and still succeeds."""
    _run(monkeypatch, "init", str(tmp_path))
    capsys.readouterr()
    assert _run(monkeypatch, "init", str(tmp_path)) == 0
    assert "already initialized" in capsys.readouterr().out


# -------- split / consolidate tests --------


def test_split_and_consolidate(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """split writes the set files; consolidate rebuilds the canonical document."""
    _canonical(tmp_path)
    assert _run(monkeypatch, "split", str(tmp_path)) == 0
    out = capsys.readouterr().out
    assert "into 2 token sets" in out
    assert "backup:" in out
    assert (tmp_path / "tokens" / "core.json").is_file()

    assert _run(monkeypatch, "consolidate", str(tmp_path), "--canonical", "rebuilt.json") == 0
    rebuilt = json.loads((tmp_path / "rebuilt.json").read_text(encoding="utf-8"))
    assert rebuilt["global"] == _DOCUMENT["global"]


def test_split_writes_log_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Operations are logged below the configured log directory."""
    _canonical(tmp_path)
    _run(monkeypatch, "split", str(tmp_path))
    assert list((tmp_path / ".logs").glob("operations-*.log"))


def test_split_missing_canonical(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """A missing canonical document exits with 1 and a hint."""
    assert _run(monkeypatch, "split", str(tmp_path)) == 1
    captured = capsys.readouterr()
    assert "Error:" in captured.err
    assert "hint:" in captured.out


def test_split_custom_paths(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """--canonical and --output override the configured locations."""
    _canonical(tmp_path).rename(tmp_path / "source.json")
    code = _run(monkeypatch, "split", str(tmp_path), "--canonical", "source.json", "--output", "design/tokens")
    assert code == 0
    assert (tmp_path / "design" / "tokens" / "global.json").is_file()


# -------- validate tests --------


def test_validate_valid_tree(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """validate exits with 0 for a consistent tree."""
    _canonical(tmp_path)
    _run(monkeypatch, "split", str(tmp_path))
    capsys.readouterr()
    assert _run(monkeypatch, "validate", str(tmp_path), "--roundtrip") == 0
    assert "No blocking issues found" in capsys.readouterr().out


def test_validate_reports_issues(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """validate exits with 1 and prints blocking issues to stderr."""
    _canonical(tmp_path)
    _run(monkeypatch, "split", str(tmp_path))
    (tmp_path / "tokens" / METADATA_FILE).unlink()
    capsys.readouterr()
    assert _run(monkeypatch, "validate", str(tmp_path)) == 1
    assert "missing_required_file" in capsys.readouterr().err


def test_validate_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """--json prints the report as JSON."""
    _canonical(tmp_path)
    _run(monkeypatch, "split", str(tmp_path))
    capsys.readouterr()
    assert _run(monkeypatch, "validate", str(tmp_path), "--json") == 0
    report = json.loads(capsys.readouterr().out)
    assert report["isValid"] is True


def test_validate_missing_directory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """A workspace directory that does not exist exits with 1."""
    assert _run(monkeypatch, "validate", str(tmp_path / "nonexistent")) == 1


def test_invalid_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """An invalid .tokensets.yaml exits with 1."""
    (tmp_path / CONFIG_FILE).write_text("max-backups: 0\n", encoding="utf-8")
    assert _run(monkeypatch, "validate", str(tmp_path)) == 1
    assert "Error:" in capsys.readouterr().err


# -------- backups / rollback tests --------


def test_backups_empty(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """backups reports when there is nothing to list."""
    assert _run(monkeypatch, "backups", str(tmp_path)) == 0
    assert "No backups found." in capsys.readouterr().out


def test_rollback_dry_run(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    """rollback --dry-run lists the plan and keeps the files."""
    _canonical(tmp_path)
    _run(monkeypatch, "split", str(tmp_path))
    capsys.readouterr()
    _run(monkeypatch, "backups", str(tmp_path))
    listing = capsys.readouterr().out
    assert "split" in listing

    backup_id = next(path.name for path in (tmp_path / ".backups").iterdir() if path.name.startswith("split-"))
    assert _run(monkeypatch, "rollback", backup_id, str(tmp_path), "--dry-run") == 0
    assert "  remove  " in capsys.readouterr().out
    assert (tmp_path / "tokens" / "core.json").exists()


def test_rollback_unknown_backup(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Rolling back an unknown backup exits with 1."""
    assert _run(monkeypatch, "rollback", "split-missing", str(tmp_path)) == 1


# -------- recover tests --------


def test_recover_recreates_metadata(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    """recover repairs a deleted $metadata.json and lists the fix."""
    _canonical(tmp_path)
    _run(monkeypatch, "split", str(tmp_path))
    (tmp_path / "tokens" / METADATA_FILE).unlink()
    capsys.readouterr()
    assert _run(monkeypatch, "recover", str(tmp_path)) == 0
    assert "fixed" in capsys.readouterr().out
    assert (tmp_path / "tokens" / METADATA_FILE).is_file()
