"""Research workers executing delegated topics."""

from .graph_worker import GraphResearchWorker
from .researcher import ResearcherState, build_researcher_graph

__all__ = ["GraphResearchWorker", "ResearcherState", "build_researcher_graph"]
