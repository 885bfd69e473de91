"""Supervisor node - the decision step of each round.

The supervisor does not research anything itself. It reads the brief and the
responses of earlier rounds and answers with a batch of tool calls:
think_tool (reflect), ConductResearch (delegate) and ResearchComplete (finish).
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from langchain_core.messages import SystemMessage

from researchAgent.config.settings import Settings
from researchAgent.events.emitter import EventEmitter
from researchAgent.graph.state import SupervisorState
from researchAgent.tools.research_tools import SUPERVISOR_TOOLS
from researchAgent.utils.error_handler import ModelInvocationError, handle_model_error
from shared.events import SUPERVISOR_GROUP

LOGGER = logging.getLogger(__name__)


def build_supervisor_node(
    *,
    decision_model: Any,
    settings: Settings,
    emitter: EventEmitter,
) -> Callable:
    """Build the supervisor node.

    Args:
        decision_model: LangChain chat model supporting ``bind_tools``
        settings: Application settings
        emitter: Event emitter shared by all nodes of the graph

    Returns:
        Async function that processes SupervisorState
    """
    model_with_tools = decision_model.bind_tools(SUPERVISOR_TOOLS)
    max_rounds = settings.governance.max_researcher_iterations

    async def supervisor_node(state: SupervisorState) -> dict:
        update: dict = {}

        # The supervisor group node opens on the first round of a run
        event_id = state.get("supervisor_event_id")
        if not event_id or emitter.is_terminal(event_id):
            handle = emitter.open(
                SUPERVISOR_GROUP,
                data=f"Research brief: {state.get('research_brief', '')}\n",
                parent_id=None,
            )
            event_id = handle.event_id
            update["supervisor_event_id"] = event_id

        messages = [
            msg for msg in state.get("supervisor_messages", [])
            if not isinstance(msg, SystemMessage)
        ]
        system_message = _build_system_message(
            max_rounds=max_rounds,
            rounds_completed=state.get("research_iterations", 0),
        )

        LOGGER.info(
            f"[Supervisor] Calling decision model "
            f"(round {state.get('research_iterations', 0) + 1}/{max_rounds}, {len(messages)} messages)"
        )
        try:
            response = await model_with_tools.ainvoke([system_message] + messages)
        except Exception as e:
            LOGGER.error(f"[Supervisor] Decision model failed: {e}")
            emitter.resume(event_id, SUPERVISOR_GROUP).fail(
                f"Decision model failed: {handle_model_error(e)}\n"
            )
            raise ModelInvocationError(str(e), user_message=handle_model_error(e)) from e

        tool_names = [tc["name"] for tc in (getattr(response, "tool_calls", None) or [])]
        LOGGER.info(f"[Supervisor] Decision: {tool_names or 'no tool calls'}")

        update["supervisor_messages"] = [response]
        return update

    return supervisor_node


def _build_system_message(*, max_rounds: int, rounds_completed: int) -> SystemMessage:
    current_date = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    remaining = max(0, max_rounds - rounds_completed)

    prompt = f"""You are a research supervisor. You do not research anything yourself; you
delegate research to sub-agents and decide when the research is complete.

Tools:
- ConductResearch(research_topic): delegate one self-contained topic. Calls issued in the
  same response run in parallel; use several calls to compare independent subjects.
- think_tool(reflection): reflect on the findings so far and plan the next step.
- ResearchComplete(): call when the findings answer the research brief.

Limits: at most {max_rounds} rounds; {remaining} round(s) left. When no rounds are left,
further ConductResearch calls are refused.

<current_date>{current_date}</current_date>
"""
    return SystemMessage(content=prompt)


__all__ = ["build_supervisor_node"]
