from .research_tools import SUPERVISOR_TOOLS, ConductResearch, ResearchComplete, think_tool

__all__ = ["SUPERVISOR_TOOLS", "ConductResearch", "ResearchComplete", "think_tool"]
