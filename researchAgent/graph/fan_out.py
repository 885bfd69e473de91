"""Fan-out/fan-in executor for delegate tasks.

One asyncio task per delegation, each given only its own payload and its own
copy of the context (event parent scope). The executor waits for all of them:
no first-to-finish short-circuit, no partial result. Worker exceptions stop
here and become failure outcomes; cancellation of the whole run is not
swallowed.

Results come back in dispatch order, whatever order the workers finished in.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import nullcontext
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from researchAgent.events.emitter import EventHandle, parent_scope
from researchAgent.graph.tasks import (
    EMPTY_RESEARCH_MESSAGE,
    ResearchFailure,
    ResearchResult,
    ResearchWorker,
    Task,
    TaskOutcome,
)
from researchAgent.utils.logging_utils import log_tool_call, log_tool_result

LOGGER = logging.getLogger(__name__)

TaskResults = List[Tuple[str, TaskOutcome]]


def outcome_from_result(result: object) -> TaskOutcome:
    """Map a worker return value onto a ledger outcome."""
    if isinstance(result, ResearchFailure):
        return TaskOutcome.failure(f"Research failed: {result.reason}")
    if isinstance(result, ResearchResult):
        if not result.compressed_research:
            return TaskOutcome.failure(EMPTY_RESEARCH_MESSAGE)
        return TaskOutcome.success(result.compressed_research, tuple(result.raw_notes or ()))
    return TaskOutcome.failure(f"Research failed: unexpected worker result {type(result).__name__}")


class FanOutExecutor:
    """Runs delegations concurrently and joins on all of them.

    Args:
        worker: ResearchWorker invoked as ``worker(task.id, task.payload)``
        max_concurrency: optional cap on workers running at once (0/None = unbounded)
    """

    def __init__(self, worker: ResearchWorker, max_concurrency: Optional[int] = None):
        self.worker = worker
        self.max_concurrency = max_concurrency or None

    async def run(
        self,
        tasks: Sequence[Task],
        handles: Optional[Mapping[str, EventHandle]] = None,
    ) -> TaskResults:
        """Dispatch every task and wait for every outcome.

        Args:
            tasks: Delegate tasks in dispatch order
            handles: Optional tool-call event handles keyed by task id; each
                gets a running envelope on start and a terminal one on completion

        Returns:
            [(task_id, outcome)] in dispatch order
        """
        if not tasks:
            return []

        handles = handles or {}
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        LOGGER.info(f"[FanOut] Dispatching {len(tasks)} delegation(s)")
        outcomes = await asyncio.gather(
            *(self._run_one(task, handles.get(task.id), semaphore) for task in tasks)
        )
        return [(task.id, outcome) for task, outcome in zip(tasks, outcomes)]

    async def _run_one(
        self,
        task: Task,
        handle: Optional[EventHandle],
        semaphore: Optional[asyncio.Semaphore],
    ) -> TaskOutcome:
        async with semaphore or nullcontext():
            log_tool_call(LOGGER, task)
            if handle is not None:
                handle.update(tool_call_data(task, status="running"))

            scope = handle.event_id if handle is not None else None
            try:
                with parent_scope(scope):
                    result = await self.worker(task.id, task.payload)
            except Exception as e:
                LOGGER.warning(f"[FanOut] Delegation {task.id} raised {type(e).__name__}: {e}")
                outcome = TaskOutcome.failure(f"Research failed: {type(e).__name__}: {e}")
            else:
                outcome = outcome_from_result(result)

        log_tool_result(LOGGER, task, outcome)
        if handle is not None:
            data = tool_call_data(task, status=outcome.kind.value, output=outcome.content)
            if outcome.ok:
                handle.finish(data)
            else:
                handle.fail(data)
        return outcome


def tool_call_data(task: Task, status: str, output: Optional[str] = None) -> Dict[str, object]:
    data: Dict[str, object] = {
        "tool_name": task.name,
        "tool_call_id": task.id,
        "args": task.args,
        "status": status,
    }
    if output is not None:
        data["output"] = output
    return data


def aggregate_notes(results: TaskResults) -> List[str]:
    """Compressed findings of successful delegates, in dispatch order."""
    return [outcome.content for _, outcome in results if outcome.ok]


def aggregate_raw_notes(results: TaskResults) -> List[str]:
    """Each successful delegate's raw notes joined by newlines, in dispatch order."""
    joined = ("\n".join(outcome.raw_notes) for _, outcome in results if outcome.ok)
    return [notes for notes in joined if notes]


__all__ = [
    "FanOutExecutor",
    "TaskResults",
    "aggregate_notes",
    "aggregate_raw_notes",
    "outcome_from_result",
    "tool_call_data",
]

