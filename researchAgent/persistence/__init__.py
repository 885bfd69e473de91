"""Persistence helpers: LangGraph checkpointer and envelope log."""

from .checkpointer import build_checkpointer
from .event_log import EventLog

__all__ = ["build_checkpointer", "EventLog"]
