"""supervisor_tools node - executes one round of supervisor actions.

Flow of a round:
1. Interpret the latest AIMessage's tool calls into an ActionBatch
2. Ask the governor whether delegations may still run
3. Reflections and finish signals execute inline; delegations fan out
   (or are refused once the limit is reached)
4. The ledger asserts one outcome per tool call and yields the ToolMessages
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional

from researchAgent.events.emitter import EventEmitter, EventHandle
from researchAgent.graph.action_batch import interpret_actions, latest_tool_calls
from researchAgent.graph.fan_out import (
    FanOutExecutor,
    aggregate_notes,
    aggregate_raw_notes,
    tool_call_data,
)
from researchAgent.graph.governor import IterationGovernor
from researchAgent.graph.ledger import ResponseLedger
from researchAgent.graph.state import SupervisorState
from researchAgent.graph.tasks import (
    ITERATION_LIMIT_MESSAGE,
    RESEARCH_COMPLETE_MESSAGE,
    OutcomeKind,
    Task,
    TaskOutcome,
)
from researchAgent.tools.research_tools import think_tool
from researchAgent.utils.error_handler import ProtocolViolationError
from researchAgent.utils.logging_utils import log_round_summary, log_tool_call, log_tool_result
from shared.events import SUPERVISOR_GROUP, SUPERVISOR_TOOL_CALL, MergeRule

LOGGER = logging.getLogger(__name__)


def build_supervisor_tools_node(
    *,
    executor: FanOutExecutor,
    governor: IterationGovernor,
    emitter: EventEmitter,
    strict_ledger: bool = True,
) -> Callable:
    """Build the supervisor_tools node.

    Args:
        executor: Fan-out executor running the delegations
        governor: Iteration governor bounding the number of rounds
        emitter: Event emitter shared by all nodes of the graph
        strict_ledger: Raise on duplicate ledger writes instead of logging them

    Returns:
        Async function that processes SupervisorState
    """

    async def supervisor_tools_node(state: SupervisorState) -> dict:
        group = _supervisor_group(emitter, state)
        try:
            batch = interpret_actions(
                latest_tool_calls(state.get("supervisor_messages", [])),
                dispatched_ids=state.get("dispatched_task_ids", []),
            )
        except ProtocolViolationError as e:
            _fail_group(group, e)
            raise

        if batch.is_empty:
            LOGGER.info("[SupervisorTools] No tool calls, ending research")
            if group is not None:
                group.finish("Research ended: no further actions requested\n", merge_rule=MergeRule.CONCAT)
            return {"research_complete": True, "stop_reason": "no_actions", "supervisor_event_id": None}

        decision = governor.check(state.get("research_iterations", 0))
        ledger = ResponseLedger(strict=strict_ledger)
        parent_id = group.event_id if group is not None else None

        handles: Dict[str, EventHandle] = {
            task.id: emitter.open(
                SUPERVISOR_TOOL_CALL,
                tool_call_data(task, status="pending"),
                parent_id=parent_id,
                secondary_key=task.id,
            )
            for task in batch.tasks
        }

        try:
            for task in batch.reflections:
                _settle(ledger, handles[task.id], task, await _reflect(task))

            for task in batch.finish_signals:
                _settle(ledger, handles[task.id], task, TaskOutcome.success(RESEARCH_COMPLETE_MESSAGE))

            for task in batch.unrecognized:
                _settle(ledger, handles[task.id], task, TaskOutcome.failure(f"Unknown tool: {task.name}"))

            if decision.exhausted:
                LOGGER.warning(
                    f"[SupervisorTools] Iteration limit reached "
                    f"({decision.rounds_completed}/{decision.max_rounds}), "
                    f"refusing {len(batch.delegations)} delegation(s)"
                )
                delegated = governor.refuse(batch.delegations)
                for task, (_, outcome) in zip(batch.delegations, delegated):
                    _close(handles[task.id], task, outcome)
            else:
                delegated = await executor.run(
                    batch.delegations,
                    {task.id: handles[task.id] for task in batch.delegations},
                )
            ledger.record_all(delegated)

            tool_messages = ledger.to_tool_messages(batch.tasks)
        except ProtocolViolationError as e:
            _fail_group(group, e)
            raise

        finished = bool(batch.finish_signals)
        research_complete = decision.exhausted or finished
        log_round_summary(
            LOGGER,
            decision.round_number,
            decision.max_rounds,
            [(task.id, ledger.get(task.id)) for task in batch.tasks],
            exhausted=decision.exhausted,
        )

        update: dict = {
            "supervisor_messages": tool_messages,
            "dispatched_task_ids": batch.task_ids,
            "notes": aggregate_notes(delegated),
            "raw_notes": aggregate_raw_notes(delegated),
            "research_iterations": decision.rounds_completed + 1,
            "research_complete": research_complete,
        }
        if decision.exhausted:
            update["stop_reason"] = "iteration_limit"
            update["limit_notice"] = ITERATION_LIMIT_MESSAGE
        elif finished:
            update["stop_reason"] = "research_complete"

        if group is not None:
            group.progress(
                f"Round {decision.round_number}/{decision.max_rounds}: "
                f"{len(batch.delegations)} delegated, "
                f"{ledger.count(OutcomeKind.SUCCESS)} succeeded, "
                f"{ledger.count(OutcomeKind.FAILURE)} failed, "
                f"{ledger.count(OutcomeKind.REFUSED)} refused\n"
            )
            if research_complete:
                group.finish(f"Research ended: {update['stop_reason']}\n", merge_rule=MergeRule.CONCAT)
                update["supervisor_event_id"] = None

        return update

    return supervisor_tools_node


def _supervisor_group(emitter: EventEmitter, state: SupervisorState) -> Optional[EventHandle]:
    event_id = state.get("supervisor_event_id")
    if not event_id or emitter.is_terminal(event_id):
        return None
    return emitter.resume(event_id, SUPERVISOR_GROUP)


def _fail_group(group: Optional[EventHandle], error: ProtocolViolationError) -> None:
    LOGGER.error(f"[SupervisorTools] Protocol violation: {error}")
    if group is not None and not group.is_closed:
        group.fail(f"Protocol violation: {error}\n", merge_rule=MergeRule.CONCAT)


def _close(handle: EventHandle, task: Task, outcome: TaskOutcome) -> None:
    """Terminal envelope of a tool-call node: error for failures, finished otherwise."""
    data = tool_call_data(task, status=outcome.kind.value, output=outcome.content)
    if outcome.kind is OutcomeKind.FAILURE:
        handle.fail(data)
    else:
        handle.finish(data)


def _settle(ledger: ResponseLedger, handle: EventHandle, task: Task, outcome: TaskOutcome) -> None:
    if ledger.record(task.id, outcome):
        _close(handle, task, outcome)


async def _reflect(task: Task) -> TaskOutcome:
    log_tool_call(LOGGER, task)
    try:
        content = await think_tool.ainvoke(task.args)
    except Exception as e:
        LOGGER.warning(f"[SupervisorTools] Reflection {task.id} failed: {e}")
        outcome = TaskOutcome.failure(f"Reflection failed: {type(e).__name__}: {e}")
    else:
        outcome = TaskOutcome.success(str(content))
    log_tool_result(LOGGER, task, outcome)
    return outcome


__all__ = ["build_supervisor_tools_node"]
