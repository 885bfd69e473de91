"""Tests for graph routing."""

import logging

from researchAgent.graph.routing import clarify_route, supervisor_tools_route


def test_routes_back_to_supervisor_while_research_continues():
    assert supervisor_tools_route({"research_complete": False, "research_iterations": 2}) == "supervisor"


def test_routes_to_end_when_complete(caplog):
    with caplog.at_level(logging.INFO, logger="researchAgent.graph.routing"):
        decision = supervisor_tools_route({"research_complete": True, "stop_reason": "iteration_limit"})

    assert decision == "end"
    assert "iteration_limit" in caplog.text


def test_missing_flag_continues():
    assert supervisor_tools_route({}) == "supervisor"


def test_clarify_routes_to_end_while_waiting_for_the_user():
    assert clarify_route({"need_clarification": True}) == "end"


def test_clarify_routes_to_brief_when_request_is_clear():
    assert clarify_route({"need_clarification": False}) == "write_research_brief"
    assert clarify_route({}) == "write_research_brief"
