# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""Operation and error logging.

Every module logs through ``logging.getLogger(__name__)`` below the
``tokensets`` logger. :func:`setup_logging` attaches a console handler and two
append-only JSON-lines files per day: ``operations-YYYY-MM-DD.log`` with every
record and ``errors-YYYY-MM-DD.log`` with errors only. A failing log handler
never interrupts the operation that logged.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

# ###############
# Public Interface
# ###############

LOGGER_NAME = "tokensets"

# Extra attributes copied from a log record into the JSON line.
CONTEXT_FIELDS = ("operation", "operation_id", "state", "backup_id", "file_path")


class JSONFormatter(logging.Formatter):
    """Format a record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = value
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class DatePartitionedFileHandler(logging.Handler):
    """Append records to ``<directory>/<prefix>-YYYY-MM-DD.log``.

    The file is chosen per record from the record's UTC date, so a long
    running process rolls over at midnight without any bookkeeping.

    Attributes:
        failures: Number of records that could not be written.
    """

    def __init__(self, directory: Path, prefix: str, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.directory = directory
        self.prefix = prefix
        self.failures = 0
        self.setFormatter(JSONFormatter())

    def path_for(self, record: logging.LogRecord) -> Path:
        day = datetime.fromtimestamp(record.created, tz=timezone.utc).strftime("%Y-%m-%d")
        return self.directory / f"{self.prefix}-{day}.log"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
            path = self.path_for(record)
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8") as handle:
                handle.write(line + "\n")
        except Exception:
            self.handleError(record)

    def handleError(self, record: logging.LogRecord) -> None:  # noqa: N802
        self.failures += 1


def setup_logging(log_dir: Path | None = None, level: int = logging.INFO, console: bool = True) -> logging.Logger:
    """Configure the ``tokensets`` logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        log_dir: Directory for the date-partitioned log files. No files are
            written when omitted.
        level: Minimum level for the console handler.
        console: Whether to log to standard error.

    Returns:
        The configured ``tokensets`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if getattr(handler, "_tokensets", False):
            logger.removeHandler(handler)
            handler.close()

    logger.setLevel(logging.DEBUG)
    if console:
        stream = logging.StreamHandler(sys.stderr)
        stream.setLevel(level)
        stream.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
        _install(logger, stream)
    if log_dir is not None:
        _install(logger, DatePartitionedFileHandler(log_dir, "operations", logging.INFO))
        _install(logger, DatePartitionedFileHandler(log_dir, "errors", logging.ERROR))
    return logger


def context(**fields: Any) -> dict[str, Any]:
    """Return an ``extra`` mapping holding the non-empty operation context fields."""
    return {name: value for name, value in fields.items() if name in CONTEXT_FIELDS and value is not None}


# ################
# Implementation
# ################


def _install(logger: logging.Logger, handler: logging.Handler) -> None:
    handler._tokensets = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
