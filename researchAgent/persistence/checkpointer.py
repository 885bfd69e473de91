"""Checkpointer for LangGraph state persistence."""

from __future__ import annotations

from langgraph.checkpoint.memory import MemorySaver


def build_checkpointer():
    """Build a LangGraph checkpointer for supervisor state.

    Uses MemorySaver (in-memory, process-scoped). Rounds are committed to the
    checkpoint after each node, so a resumed thread continues from the last
    completed round.
    """
    return MemorySaver()
