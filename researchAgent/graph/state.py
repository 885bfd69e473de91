"""Supervisor state for the research graph.

One graph step pair (supervisor → supervisor_tools) is one round. Rounds are
serialised by the graph: the next supervisor call only starts after the
previous supervisor_tools node joined all its delegates and returned its
update.
"""

from __future__ import annotations

import operator
from typing import Annotated, List, Literal, Optional, TypedDict

from langchain_core.messages import BaseMessage
from langgraph.graph import add_messages

StopReason = Literal["no_actions", "research_complete", "iteration_limit"]


class SupervisorState(TypedDict, total=False):
    """State for the research supervisor."""

    # ========== Conversation with the decision model ==========
    supervisor_messages: Annotated[List[BaseMessage], add_messages]
    """Brief, AIMessages with tool calls, and exactly one ToolMessage per tool call."""

    research_brief: str

    # ========== Aggregated results ==========
    notes: Annotated[List[str], operator.add]
    """Compressed findings of successful delegates, round after round, dispatch order."""

    raw_notes: Annotated[List[str], operator.add]

    # ========== Loop control ==========
    dispatched_task_ids: Annotated[List[str], operator.add]
    """Every tool call id answered so far; a decision may never reuse one."""

    research_iterations: int
    """Completed rounds (incremented once per supervisor_tools execution that ran a batch)."""

    research_complete: bool
    stop_reason: Optional[StopReason]
    limit_notice: Optional[str]
    """Set when the iteration limit forced termination."""

    # ========== Session / events ==========
    supervisor_event_id: Optional[str]
    """Event id of the supervisor group node in the execution stream."""

    thread_id: str


class ResearchState(SupervisorState, total=False):
    """Full run state: the scope phase in front of the supervisor loop."""

    messages: Annotated[List[BaseMessage], add_messages]
    """Conversation with the user: requests, clarifying questions and answers."""

    need_clarification: bool


__all__ = ["ResearchState", "StopReason", "SupervisorState"]
