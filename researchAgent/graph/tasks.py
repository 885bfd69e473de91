"""Task, outcome and worker contracts of the supervisor round."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from researchAgent.tools.research_tools import ConductResearch, ResearchComplete, think_tool


class TaskKind(str, Enum):
    REFLECT = "reflect"      # no side effect, executed inline
    DELEGATE = "delegate"    # isolated concurrent sub-execution
    FINISH = "finish"        # terminal signal


TOOL_NAME_TO_KIND: Dict[str, TaskKind] = {
    think_tool.name: TaskKind.REFLECT,
    ConductResearch.__name__: TaskKind.DELEGATE,
    ResearchComplete.__name__: TaskKind.FINISH,
}


@dataclass(frozen=True, slots=True)
class Task:
    """One requested action, correlated by the tool call id."""

    id: str
    kind: Optional[TaskKind]  # None for unrecognized tool names
    name: str
    payload: str = ""
    args: Dict[str, Any] = field(default_factory=dict)


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    REFUSED = "refused"  # declined by the iteration governor, not a failure


ITERATION_LIMIT_MESSAGE = "Research iteration limit reached. Unable to conduct further research."
RESEARCH_COMPLETE_MESSAGE = "Research marked as complete"
EMPTY_RESEARCH_MESSAGE = "Error synthesizing research report"


@dataclass(frozen=True, slots=True)
class TaskOutcome:
    kind: OutcomeKind
    content: str
    raw_notes: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS

    @classmethod
    def success(cls, content: str, raw_notes: Tuple[str, ...] = ()) -> "TaskOutcome":
        return cls(OutcomeKind.SUCCESS, content, tuple(raw_notes))

    @classmethod
    def failure(cls, reason: str) -> "TaskOutcome":
        return cls(OutcomeKind.FAILURE, reason)

    @classmethod
    def refused(cls) -> "TaskOutcome":
        return cls(OutcomeKind.REFUSED, ITERATION_LIMIT_MESSAGE)


@dataclass
class ResearchResult:
    """Successful worker result: compressed findings plus supporting raw notes."""

    compressed_research: str
    raw_notes: List[str] = field(default_factory=list)


@dataclass
class ResearchFailure:
    """Expected business failure reported by a worker."""

    reason: str


WorkerResult = Union[ResearchResult, ResearchFailure]


class ResearchWorker(Protocol):
    """Executes one delegated topic in isolation.

    Must return ResearchFailure for expected failures; raising is reserved for
    unexpected faults (the executor records those as failures too).
    """

    async def __call__(self, correlation_id: str, payload: str) -> WorkerResult:
        ...


__all__ = [
    "TaskKind",
    "TOOL_NAME_TO_KIND",
    "Task",
    "OutcomeKind",
    "TaskOutcome",
    "ITERATION_LIMIT_MESSAGE",
    "RESEARCH_COMPLETE_MESSAGE",
    "EMPTY_RESEARCH_MESSAGE",
    "ResearchResult",
    "ResearchFailure",
    "WorkerResult",
    "ResearchWorker",
]
