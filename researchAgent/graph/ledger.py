"""Response ledger: exactly one correlated response per dispatched tool call.

The decision model expects a ToolMessage for every tool call it issued. A
missing response is unrecoverable (the next model call would be rejected or
reason about a call that never answered), so completeness is asserted before
the round returns and a violation is raised, not logged.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from langchain_core.messages import ToolMessage

from researchAgent.graph.tasks import OutcomeKind, Task, TaskOutcome
from researchAgent.utils.error_handler import LedgerError, ProtocolViolationError

LOGGER = logging.getLogger(__name__)


class ResponseLedger:
    """Write-once map of task id → outcome for one round.

    Args:
        strict: raise LedgerError on a second write for the same id. When
            False the first write is kept and the duplicate is logged.
    """

    def __init__(self, strict: bool = True):
        self.strict = strict
        self._entries: Dict[str, TaskOutcome] = {}

    def record(self, task_id: str, outcome: TaskOutcome) -> bool:
        """Record the outcome of a task.

        Returns:
            True if written, False if a duplicate was ignored (non-strict mode)

        Raises:
            LedgerError: duplicate write in strict mode
        """
        if task_id in self._entries:
            message = (
                f"Ledger entry for {task_id} already recorded as "
                f"{self._entries[task_id].kind.value}; refusing {outcome.kind.value}"
            )
            if self.strict:
                raise LedgerError(message)
            LOGGER.error(message)
            return False

        self._entries[task_id] = outcome
        return True

    def record_all(self, pairs: Iterable[tuple]) -> None:
        for task_id, outcome in pairs:
            self.record(task_id, outcome)

    def get(self, task_id: str) -> Optional[TaskOutcome]:
        return self._entries.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def items(self):
        return self._entries.items()

    def missing(self, task_ids: Iterable[str]) -> List[str]:
        return [task_id for task_id in task_ids if task_id not in self._entries]

    def assert_complete(self, task_ids: Iterable[str]) -> None:
        """Every dispatched task must have an entry.

        Raises:
            ProtocolViolationError: at least one task has no entry
        """
        missing = self.missing(task_ids)
        if missing:
            raise ProtocolViolationError(
                f"{len(missing)} dispatched tool call(s) have no response: {', '.join(missing)}"
            )

    def count(self, kind: OutcomeKind) -> int:
        return sum(1 for outcome in self._entries.values() if outcome.kind is kind)

    def to_tool_messages(self, tasks: Sequence[Task]) -> List[ToolMessage]:
        """One ToolMessage per task, in dispatch order."""
        self.assert_complete(task.id for task in tasks)
        return [
            ToolMessage(
                content=self._entries[task.id].content,
                tool_call_id=task.id,
                name=task.name,
                status="success" if self._entries[task.id].kind is not OutcomeKind.FAILURE else "error",
            )
            for task in tasks
        ]


__all__ = ["ResponseLedger"]
