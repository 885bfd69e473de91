"""Tools bound to the supervisor's decision model.

- think_tool: reflection, no side effect, executed inline
- ConductResearch: delegates a topic to an isolated research worker
- ResearchComplete: signal tool, tells the graph the research is done

ConductResearch and ResearchComplete are schema-only: the graph interprets the
tool calls itself (see researchAgent.graph.action_batch), they are never
executed by a ToolNode.
"""

from __future__ import annotations

from langchain_core.tools import tool
from pydantic import BaseModel, Field


class ConductResearch(BaseModel):
    """Call this tool to conduct research on a specific topic."""

    research_topic: str = Field(
        description=(
            "The topic to research. Should be a single topic, and should be "
            "described in high detail (at least a paragraph)."
        ),
    )


class ResearchComplete(BaseModel):
    """Call this tool to indicate that the research is complete."""


@tool
def think_tool(reflection: str) -> str:
    """Tool for strategic reflection on research progress and decision-making.

    Use after each research round to analyze results and plan next steps:
    what was found, what is missing, whether the evidence is sufficient, and
    whether to delegate more research or call ResearchComplete.

    Args:
        reflection: Detailed reflection on research progress, findings, gaps, and next steps
    """
    return f"Reflection recorded: {reflection}"


SUPERVISOR_TOOLS = [ConductResearch, ResearchComplete, think_tool]

__all__ = ["ConductResearch", "ResearchComplete", "think_tool", "SUPERVISOR_TOOLS"]
