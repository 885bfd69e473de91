"""Utilities for the research supervisor."""

from .logging_utils import (
    log_error,
    log_round_summary,
    log_routing_decision,
    log_tool_call,
    log_tool_result,
    setup_logging,
)
from .error_handler import (
    LedgerError,
    ModelInvocationError,
    ProtocolViolationError,
    ResearchAgentError,
    WorkerExecutionError,
    handle_model_error,
    safe_sink,
)

__all__ = [
    "setup_logging",
    "log_error",
    "log_round_summary",
    "log_routing_decision",
    "log_tool_call",
    "log_tool_result",
    "LedgerError",
    "ModelInvocationError",
    "ProtocolViolationError",
    "ResearchAgentError",
    "WorkerExecutionError",
    "handle_model_error",
    "safe_sink",
]
