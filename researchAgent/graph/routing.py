"""Conditional routing helpers for the supervisor loop."""

from __future__ import annotations

import logging
from typing import Literal

from .state import ResearchState, SupervisorState
from researchAgent.utils.logging_utils import log_routing_decision

LOGGER = logging.getLogger(__name__)


def supervisor_tools_route(state: SupervisorState) -> Literal["supervisor", "end"]:
    """Route after supervisor_tools: next round or end of research.

    Returns:
        "end": research complete (finish signal, iteration limit, or no actions)
        "supervisor": results are in, ask the decision model for the next round
    """
    if state.get("research_complete", False):
        decision = "end"
        reason = f"Stop reason: {state.get('stop_reason') or 'research_complete'}"
    else:
        decision = "supervisor"
        reason = f"Round {state.get('research_iterations', 0)} complete, continuing"

    log_routing_decision(LOGGER, "supervisor_tools", decision, reason)
    return decision


def clarify_route(state: ResearchState) -> Literal["write_research_brief", "end"]:
    """Route after clarify_with_user: wait for the user's answer, or write the brief."""
    if state.get("need_clarification", False):
        decision = "end"
        reason = "Waiting for the user's answer"
    else:
        decision = "write_research_brief"
        reason = "Request is clear"

    log_routing_decision(LOGGER, "clarify_with_user", decision, reason)
    return decision


__all__ = ["clarify_route", "supervisor_tools_route"]
