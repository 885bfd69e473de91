"""ActionBatch interpreter.

Splits the tool calls of the supervisor's latest AIMessage into reflections,
delegations and finish signals. Classification is a pure partition by kind:
order inside each list is the order of the tool calls, so a replay of the
same decision yields the same dispatch order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from langchain_core.messages import AIMessage, BaseMessage

from researchAgent.graph.tasks import TOOL_NAME_TO_KIND, Task, TaskKind
from researchAgent.utils.error_handler import ProtocolViolationError

LOGGER = logging.getLogger(__name__)

_PAYLOAD_ARG = {
    TaskKind.REFLECT: "reflection",
    TaskKind.DELEGATE: "research_topic",
}


@dataclass
class ActionBatch:
    reflections: List[Task] = field(default_factory=list)
    delegations: List[Task] = field(default_factory=list)
    finish_signals: List[Task] = field(default_factory=list)
    unrecognized: List[Task] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    """Every task in tool call order (the order responses are returned in)."""

    @property
    def is_empty(self) -> bool:
        return not self.tasks

    @property
    def task_ids(self) -> List[str]:
        return [task.id for task in self.tasks]


def latest_tool_calls(messages: Sequence[BaseMessage]) -> List[Dict[str, Any]]:
    """Tool calls of the most recent message, or [] if it requested none."""
    if not messages:
        return []
    last_message = messages[-1]
    if not isinstance(last_message, AIMessage):
        return []
    return list(last_message.tool_calls or [])


def task_from_tool_call(tool_call: Dict[str, Any]) -> Task:
    call_id = tool_call.get("id")
    name = tool_call.get("name") or ""
    if not call_id:
        raise ProtocolViolationError(
            f"Tool call {name!r} has no id; its response could never be correlated"
        )

    args = dict(tool_call.get("args") or {})
    # kind is None for tool names the supervisor does not know
    kind = TOOL_NAME_TO_KIND.get(name)
    payload_arg = _PAYLOAD_ARG.get(kind)
    payload = str(args.get(payload_arg, "")) if payload_arg else ""

    return Task(id=call_id, kind=kind, name=name, payload=payload, args=args)


def interpret_actions(
    tool_calls: Optional[Iterable[Dict[str, Any]]],
    dispatched_ids: Iterable[str] = (),
) -> ActionBatch:
    """Partition tool calls by kind.

    Args:
        tool_calls: LangChain tool call dicts ({"name", "args", "id"})
        dispatched_ids: Tool call ids answered in earlier rounds of the run

    Returns:
        ActionBatch; ``is_empty`` means no further action was requested

    Raises:
        ProtocolViolationError: a tool call has no id, an id appears twice, or an
            id was already dispatched in an earlier round
    """
    batch = ActionBatch()
    seen: set[str] = set()
    earlier = set(dispatched_ids)

    for tool_call in tool_calls or []:
        task = task_from_tool_call(tool_call)
        if task.id in seen:
            raise ProtocolViolationError(f"Tool call id {task.id} dispatched twice in one batch")
        if task.id in earlier:
            raise ProtocolViolationError(f"Tool call id {task.id} was already dispatched in an earlier round")
        seen.add(task.id)

        batch.tasks.append(task)
        if task.kind is TaskKind.REFLECT:
            batch.reflections.append(task)
        elif task.kind is TaskKind.DELEGATE:
            batch.delegations.append(task)
        elif task.kind is TaskKind.FINISH:
            batch.finish_signals.append(task)
        else:
            LOGGER.warning(f"Unrecognized supervisor tool call: {task.name} ({task.id})")
            batch.unrecognized.append(task)

    return batch


__all__ = ["ActionBatch", "interpret_actions", "latest_tool_calls", "task_from_tool_call"]
