"""Graph assembly exports."""

from .builder import build_research_graph, build_supervisor_graph
from .state import ResearchState, SupervisorState

__all__ = ["build_research_graph", "build_supervisor_graph", "ResearchState", "SupervisorState"]
