# Copyright 2026 tokensets Contributors
# SPDX-License-Identifier: Apache-2.0

"""State machine tracking one mutating operation from backup to outcome."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from tokensets.logs import context

logger = logging.getLogger(__name__)

# ###############
# Public Interface
# ###############


class OperationState(Enum):
    PENDING = "pending"
    BACKED_UP = "backed_up"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RECOVERING = "recovering"
    RECOVERED = "recovered"
    UNRECOVERED = "unrecovered"


class LifecycleError(Exception):
    """Raised on a transition the state machine does not allow."""


# An operation whose backup was aborted (path too long) continues without
# one, hence PENDING -> EXECUTING.
TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    OperationState.PENDING: frozenset({OperationState.BACKED_UP, OperationState.EXECUTING, OperationState.FAILED}),
    OperationState.BACKED_UP: frozenset({OperationState.EXECUTING, OperationState.FAILED}),
    OperationState.EXECUTING: frozenset({OperationState.SUCCEEDED, OperationState.FAILED}),
    OperationState.FAILED: frozenset({OperationState.RECOVERING}),
    OperationState.RECOVERING: frozenset({OperationState.RECOVERED, OperationState.UNRECOVERED}),
    OperationState.SUCCEEDED: frozenset(),
    OperationState.RECOVERED: frozenset(),
    OperationState.UNRECOVERED: frozenset(),
}


@dataclass
class OperationLifecycle:
    """Tracks the state of one operation and logs every transition.

    Attributes:
        operation: Operation name (``split``, ``consolidate``, ...).
        id: Identifier shared by every log line of the operation.
        state: Current state.
        backup_id: Backup taken before the operation started executing.
        history: ``(state, timestamp)`` for every state entered.
    """

    operation: str
    id: str = field(default_factory=lambda: secrets.token_hex(6))
    state: OperationState = OperationState.PENDING
    backup_id: str | None = None
    history: list[tuple[OperationState, datetime]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append((self.state, datetime.now(timezone.utc)))
        logger.info("%s started", self.operation, extra=self._extra())

    @property
    def finished(self) -> bool:
        return not TRANSITIONS[self.state]

    def advance(self, state: OperationState, detail: str = "") -> None:
        """Move to *state*.

        Raises:
            LifecycleError: If the transition is not allowed from the current
                state.
        """
        if state not in TRANSITIONS[self.state]:
            raise LifecycleError(f"{self.operation}: cannot move from {self.state.value} to {state.value}")
        self.state = state
        self.history.append((state, datetime.now(timezone.utc)))
        message = f"{self.operation} {state.value}" + (f": {detail}" if detail else "")
        if state in (OperationState.FAILED, OperationState.UNRECOVERED):
            logger.error(message, extra=self._extra())
        else:
            logger.info(message, extra=self._extra())

    def backed_up(self, backup_id: str) -> None:
        self.backup_id = backup_id
        self.advance(OperationState.BACKED_UP, backup_id)

    def executing(self) -> None:
        self.advance(OperationState.EXECUTING)

    def succeeded(self, detail: str = "") -> None:
        self.advance(OperationState.SUCCEEDED, detail)

    def failed(self, detail: str = "") -> None:
        self.advance(OperationState.FAILED, detail)

    def recovering(self) -> None:
        self.advance(OperationState.RECOVERING)

    def recovered(self, detail: str = "") -> None:
        self.advance(OperationState.RECOVERED, detail)

    def unrecovered(self, detail: str = "") -> None:
        self.advance(OperationState.UNRECOVERED, detail)

    def _extra(self) -> dict[str, str]:
        return context(
            operation=self.operation,
            operation_id=self.id,
            state=self.state.value,
            backup_id=self.backup_id,
        )
