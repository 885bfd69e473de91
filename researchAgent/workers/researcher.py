"""Bundled single-step researcher graph.

A deliberately small LangGraph researcher: one model call per topic that
returns its findings, followed by a compression step that produces the
``compressed_research`` the supervisor receives. Any compiled graph exposing
``compressed_research`` and ``raw_notes`` in its final state can replace it.
"""

from __future__ import annotations

import logging
import operator
from typing import Annotated, Any, List, TypedDict

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langgraph.graph import END, START, StateGraph, add_messages

LOGGER = logging.getLogger(__name__)

RESEARCHER_PROMPT = """You are a research assistant. Research the topic below and report
the relevant facts you find, each with its source when one is known."""

COMPRESS_PROMPT = """Rewrite the findings below as a concise, self-contained summary.
Keep every fact and source; drop repetition."""


class ResearcherState(TypedDict, total=False):
    research_topic: str
    researcher_messages: Annotated[List[BaseMessage], add_messages]
    raw_notes: Annotated[List[str], operator.add]
    compressed_research: str


def _text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, list):
        return "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
    return str(content or "")


def build_researcher_graph(model: Any, checkpointer=False):
    """Compose the researcher graph.

        START → research → compress → END

    Args:
        model: LangChain chat model used for both steps
        checkpointer: LangGraph checkpointer; False keeps each run stateless and
            stops the graph from inheriting the supervisor's checkpointer when
            several delegates run inside the same node
    """

    async def research_node(state: ResearcherState) -> dict:
        topic = state.get("research_topic", "")
        LOGGER.info(f"[Researcher] Researching: {topic[:80]}")
        messages = [SystemMessage(content=RESEARCHER_PROMPT), HumanMessage(content=topic)]
        response = await model.ainvoke(messages)
        findings = _text(response)
        return {
            "researcher_messages": [HumanMessage(content=topic), response],
            "raw_notes": [findings] if findings else [],
        }

    async def compress_node(state: ResearcherState) -> dict:
        raw_notes = state.get("raw_notes", [])
        if not raw_notes:
            LOGGER.warning("[Researcher] No findings to compress")
            return {"compressed_research": ""}

        messages = [SystemMessage(content=COMPRESS_PROMPT), HumanMessage(content="\n".join(raw_notes))]
        response = await model.ainvoke(messages)
        return {"compressed_research": _text(response)}

    graph = StateGraph(ResearcherState)
    graph.add_node("research", research_node)
    graph.add_node("compress", compress_node)
    graph.add_edge(START, "research")
    graph.add_edge("research", "compress")
    graph.add_edge("compress", END)

    return graph.compile(checkpointer=checkpointer)


__all__ = ["ResearcherState", "build_researcher_graph"]
