"""Factories for assembling the research StateGraphs."""

from __future__ import annotations

import logging
from typing import Any, Optional

from langgraph.graph import END, START, StateGraph

from researchAgent.config.settings import Settings, get_settings
from researchAgent.events.emitter import EventEmitter
from researchAgent.graph.fan_out import FanOutExecutor
from researchAgent.graph.governor import IterationGovernor
from researchAgent.graph.nodes import (
    build_brief_node,
    build_clarify_node,
    build_supervisor_node,
    build_supervisor_tools_node,
)
from researchAgent.graph.routing import clarify_route, supervisor_tools_route
from researchAgent.graph.state import ResearchState, SupervisorState
from researchAgent.graph.tasks import ResearchWorker

LOGGER = logging.getLogger(__name__)


def _add_supervisor_loop(
    graph: StateGraph,
    *,
    decision_model: Any,
    worker: ResearchWorker,
    emitter: EventEmitter,
    settings: Settings,
) -> None:
    """Add the supervisor ⇄ supervisor_tools loop; the caller wires the entry edge."""
    governance = settings.governance

    supervisor_node = build_supervisor_node(
        decision_model=decision_model,
        settings=settings,
        emitter=emitter,
    )
    supervisor_tools_node = build_supervisor_tools_node(
        executor=FanOutExecutor(worker, max_concurrency=governance.max_concurrent_research_units),
        governor=IterationGovernor(governance.max_researcher_iterations),
        emitter=emitter,
        strict_ledger=settings.ledger_is_strict,
    )

    graph.add_node("supervisor", supervisor_node)
    graph.add_node("supervisor_tools", supervisor_tools_node)

    graph.add_edge("supervisor", "supervisor_tools")
    graph.add_conditional_edges(
        "supervisor_tools",
        supervisor_tools_route,
        {
            "supervisor": "supervisor",
            "end": END,
        },
    )

    LOGGER.info(
        f"Supervisor loop built (max rounds: {governance.max_researcher_iterations}, "
        f"concurrency: {governance.max_concurrent_research_units or 'unbounded'}, "
        f"strict ledger: {settings.ledger_is_strict})"
    )


def build_supervisor_graph(
    *,
    decision_model: Any,
    worker: ResearchWorker,
    emitter: Optional[EventEmitter] = None,
    settings: Optional[Settings] = None,
    checkpointer=None,
):
    """Compose the research supervisor graph.

    Architecture:

        START → supervisor → supervisor_tools → supervisor → ... → END

    - supervisor: decision model emits a batch of tool calls
    - supervisor_tools: reflections inline, delegations fanned out to the
      worker, one ToolMessage per tool call, round counter incremented
    - the loop ends on a finish signal, an empty batch or the iteration limit
    """
    settings = settings or get_settings()
    emitter = emitter or EventEmitter()

    graph = StateGraph(SupervisorState)
    _add_supervisor_loop(
        graph,
        decision_model=decision_model,
        worker=worker,
        emitter=emitter,
        settings=settings,
    )
    graph.add_edge(START, "supervisor")

    return graph.compile(checkpointer=checkpointer)


def build_research_graph(
    *,
    scope_model: Any,
    decision_model: Any,
    worker: ResearchWorker,
    emitter: Optional[EventEmitter] = None,
    settings: Optional[Settings] = None,
    checkpointer=None,
):
    """Compose the full research graph: scope phase, then the supervisor loop.

    Architecture:

        START → clarify_with_user ─┬→ END (question for the user)
                                   └→ write_research_brief → supervisor ⇄ supervisor_tools → END

    A clarifying question ends the run; the user's answer re-enters on the
    same thread, so a checkpointer is needed for the follow-up to see the
    earlier messages.
    """
    settings = settings or get_settings()
    emitter = emitter or EventEmitter()

    graph = StateGraph(ResearchState)
    graph.add_node(
        "clarify_with_user",
        build_clarify_node(
            model=scope_model,
            emitter=emitter,
            allow_clarification=settings.scope.allow_clarification,
        ),
    )
    graph.add_node("write_research_brief", build_brief_node(model=scope_model, emitter=emitter))
    _add_supervisor_loop(
        graph,
        decision_model=decision_model,
        worker=worker,
        emitter=emitter,
        settings=settings,
    )

    graph.add_edge(START, "clarify_with_user")
    graph.add_conditional_edges(
        "clarify_with_user",
        clarify_route,
        {
            "write_research_brief": "write_research_brief",
            "end": END,
        },
    )
    graph.add_edge("write_research_brief", "supervisor")

    LOGGER.info(f"Research graph built (clarification: {settings.scope.allow_clarification})")
    return graph.compile(checkpointer=checkpointer)


__all__ = ["build_research_graph", "build_supervisor_graph"]
