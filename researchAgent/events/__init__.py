"""Envelope emission for the research supervisor."""

from .emitter import (
    EnvelopeSink,
    EventEmitter,
    EventHandle,
    current_parent_id,
    langgraph_stream_sink,
    parent_scope,
)

__all__ = [
    "EnvelopeSink",
    "EventEmitter",
    "EventHandle",
    "current_parent_id",
    "langgraph_stream_sink",
    "parent_scope",
]
