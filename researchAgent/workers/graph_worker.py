"""ResearchWorker adapter for compiled LangGraph researcher graphs."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from researchAgent.events.emitter import EventEmitter, parent_scope
from researchAgent.graph.tasks import (
    EMPTY_RESEARCH_MESSAGE,
    ResearchResult,
    WorkerResult,
)
from researchAgent.utils.error_handler import WorkerExecutionError
from shared.events import RESEARCHER_GROUP, MergeRule

LOGGER = logging.getLogger(__name__)


class GraphResearchWorker:
    """Runs one delegated topic through a researcher graph.

    Each call is an isolated execution: a fresh input state, its own thread id
    and its own ``/researcher/group`` event, opened under the current parent
    scope (the delegate's tool-call node).

    Args:
        graph: Compiled LangGraph graph whose final state carries
            ``compressed_research`` and ``raw_notes``
        emitter: Event emitter shared with the supervisor graph
        recursion_limit: LangGraph recursion limit of a single research run
    """

    def __init__(self, graph: Any, emitter: EventEmitter, recursion_limit: Optional[int] = None):
        self.graph = graph
        self.emitter = emitter
        self.recursion_limit = recursion_limit

    async def __call__(self, correlation_id: str, payload: str) -> WorkerResult:
        group = self.emitter.open(RESEARCHER_GROUP, f"Researching: {payload}\n")

        config: Dict[str, Any] = {"configurable": {"thread_id": f"research-{correlation_id}"}}
        if self.recursion_limit:
            config["recursion_limit"] = self.recursion_limit

        final_state: Dict[str, Any] = {}
        steps = 0
        try:
            with parent_scope(group.event_id):
                async for state in self.graph.astream(
                    {"research_topic": payload},
                    config=config,
                    stream_mode="values",
                ):
                    final_state = state
                    steps += 1
                    group.progress(f"Step {steps}: {len(state.get('raw_notes') or [])} note(s)\n")
        except Exception as e:
            LOGGER.warning(f"[Researcher {correlation_id}] Run failed: {type(e).__name__}: {e}")
            group.fail(f"Research failed: {type(e).__name__}: {e}\n", merge_rule=MergeRule.CONCAT)
            raise WorkerExecutionError(str(e), user_message="Research worker failed") from e

        compressed = final_state.get("compressed_research") or ""
        raw_notes = [str(note) for note in final_state.get("raw_notes") or []]

        if compressed:
            group.finish(compressed)
        else:
            group.fail(EMPTY_RESEARCH_MESSAGE)
        return ResearchResult(compressed_research=compressed, raw_notes=raw_notes)


__all__ = ["GraphResearchWorker"]
