"""Unified error types and helpers for the research supervisor."""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

LOGGER = logging.getLogger(__name__)


class ResearchAgentError(Exception):
    """Base exception for research supervisor errors."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or message


class ProtocolViolationError(ResearchAgentError):
    """A correlation contract was broken.

    Raised when a dispatched tool call would never receive its response, when a
    tool call id is reused, or when an event id is emitted after it terminated.
    Never converted to an outcome; aborts the round.
    """
    pass


class LedgerError(ProtocolViolationError):
    """A ledger entry was written twice for the same task id."""
    pass


class WorkerExecutionError(ResearchAgentError):
    """A research worker failed in an unexpected way."""
    pass


class ModelInvocationError(ResearchAgentError):
    """Error during the decision model invocation."""
    pass


def safe_sink(sink_name: str):
    """Decorator for fire-and-forget delivery callables.

    Exceptions raised by the wrapped callable are logged and dropped so a
    broken delivery channel never fails the caller.

    Args:
        sink_name: Name of the sink for logging

    Example:
        @safe_sink("event_log")
        def write(payload: dict) -> None:
            ...
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> None:
            try:
                func(*args, **kwargs)
            except Exception as e:
                LOGGER.warning(f"Event sink {sink_name} failed: {type(e).__name__}: {e}")
        return wrapper
    return decorator


def handle_model_error(error: Exception) -> str:
    """Convert model invocation errors to user-friendly messages.

    Args:
        error: Exception raised during model invocation

    Returns:
        User-friendly error message
    """
    error_str = str(error).lower()

    if "rate_limit" in error_str or "429" in error_str:
        return "Too many requests, please retry later"

    if "timeout" in error_str:
        return "The model timed out, please retry"

    if "context_length" in error_str or "token" in error_str:
        return "The research context is too long"

    if "invalid_api_key" in error_str or "authentication" in error_str:
        return "Invalid API key, please check the model configuration"

    if "quota" in error_str or "insufficient" in error_str:
        return "Model quota exhausted"

    return f"The model is temporarily unavailable: {str(error)}"
