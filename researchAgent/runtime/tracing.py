"""LangSmith tracing setup from ObservabilitySettings."""

from __future__ import annotations

import logging
import os

from researchAgent.config.settings import ObservabilitySettings

LOGGER = logging.getLogger(__name__)


def configure_tracing(settings: ObservabilitySettings) -> bool:
    """Export the LangSmith settings as the LANGCHAIN_* variables LangChain reads.

    Returns:
        Whether tracing is enabled for this process
    """
    exported = {
        "LANGCHAIN_PROJECT": settings.langsmith_project,
        "LANGCHAIN_API_KEY": settings.langsmith_api_key,
        "LANGCHAIN_ENDPOINT": settings.langsmith_endpoint,
    }
    for name, value in exported.items():
        if value:
            os.environ[name] = value

    if not settings.tracing_enabled:
        return False
    if not settings.langsmith_api_key:
        LOGGER.warning("LANGCHAIN_TRACING_V2 is set but no LangSmith API key is configured")
    os.environ["LANGCHAIN_TRACING_V2"] = "true"
    LOGGER.info(f"LangSmith tracing enabled (project: {settings.langsmith_project or 'default'})")
    return True
