"""Runtime assembly for the research supervisor graph."""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, Tuple

from langchain_core.messages import HumanMessage

from researchAgent.config import Settings, get_settings
from researchAgent.events import EventEmitter
from researchAgent.graph import build_research_graph, build_supervisor_graph
from researchAgent.graph.tasks import ResearchWorker
from researchAgent.persistence import EventLog, build_checkpointer
from researchAgent.workers import GraphResearchWorker, build_researcher_graph
from .model_resolver import build_chat_model
from .tracing import configure_tracing

LOGGER = logging.getLogger(__name__)


def build_research_app(
    worker: Optional[ResearchWorker] = None,
    decision_model: Any = None,
    settings: Optional[Settings] = None,
    checkpointer=None,
    event_log: Optional[EventLog] = None,
    scope_model: Any = None,
    include_scope: Optional[bool] = None,
) -> Tuple[Any, Callable[..., dict], EventEmitter]:
    """Return a compiled research graph.

    Args:
        worker: ResearchWorker for delegated topics (default: the bundled
            researcher graph on the researcher model slot)
        decision_model: Chat model for the supervisor (default: supervisor model slot)
        settings: Application settings (default: get_settings())
        checkpointer: LangGraph checkpointer (default: MemorySaver)
        event_log: Optional EventLog recording every emitted envelope per thread
        scope_model: Chat model for clarification and brief writing (default: decision_model)
        include_scope: Run the scope phase before the supervisor loop
            (default: settings.scope.enabled)

    Returns:
        (app, initial_state_factory, emitter) tuple
    """
    settings = settings or get_settings()
    configure_tracing(settings.observability)

    if event_log is None and settings.observability.event_log_path:
        event_log = EventLog(settings.observability.event_log_path)

    emitter = EventEmitter()
    if event_log is not None:
        emitter.add_sink(event_log.sink())
        LOGGER.info(f"Event log enabled: {event_log.db_path}")

    if decision_model is None:
        decision_model = build_chat_model(settings, "supervisor")

    if worker is None:
        researcher_graph = build_researcher_graph(build_chat_model(settings, "researcher"))
        worker = GraphResearchWorker(researcher_graph, emitter)
        LOGGER.info("Using bundled researcher graph as research worker")

    checkpointer = checkpointer if checkpointer is not None else build_checkpointer()

    if include_scope is None:
        include_scope = settings.scope.enabled

    if include_scope:
        app = build_research_graph(
            scope_model=scope_model or decision_model,
            decision_model=decision_model,
            worker=worker,
            emitter=emitter,
            settings=settings,
            checkpointer=checkpointer,
        )
    else:
        app = build_supervisor_graph(
            decision_model=decision_model,
            worker=worker,
            emitter=emitter,
            settings=settings,
            checkpointer=checkpointer,
        )

    def initial_state(request: str, thread_id: Optional[str] = None) -> dict:
        if include_scope:
            # the brief is written by the scope phase
            return {
                "messages": [HumanMessage(content=request)],
                "need_clarification": False,
                **_loop_state(thread_id),
            }
        return {
            "supervisor_messages": [HumanMessage(content=request)],
            "research_brief": request,
            **_loop_state(thread_id),
        }

    return app, initial_state, emitter


def _loop_state(thread_id: Optional[str]) -> dict:
    return {
        "notes": [],
        "raw_notes": [],
        "dispatched_task_ids": [],
        "research_iterations": 0,
        "research_complete": False,
        "stop_reason": None,
        "limit_notice": None,
        "supervisor_event_id": None,
        "thread_id": thread_id or "",
    }


__all__ = ["build_research_app"]
