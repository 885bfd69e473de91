"""Research supervisor: a LangGraph loop that delegates research topics to
isolated workers, runs them in parallel and folds their findings back in."""

__version__ = "0.1.0"

from .runtime.app import build_research_app

__all__ = ["build_research_app", "__version__"]
