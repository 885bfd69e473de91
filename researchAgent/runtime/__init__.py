"""Runtime assembly: models, tracing and the research application."""

from .app import build_research_app
from .model_resolver import build_chat_model, resolve_model_configs
from .tracing import configure_tracing

__all__ = ["build_research_app", "build_chat_model", "configure_tracing", "resolve_model_configs"]
