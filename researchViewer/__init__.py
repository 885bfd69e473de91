"""Execution viewer: rebuilds a live execution tree from the research event stream."""

from .client import consume_stream, envelope_from_chunk, replay_events
from .stream import BatchingScheduler, ExecutionTree, StreamReconstructor
from .views import ExecutionView, NodeKind, ViewConfig

__all__ = [
    "BatchingScheduler",
    "ExecutionTree",
    "ExecutionView",
    "NodeKind",
    "StreamReconstructor",
    "ViewConfig",
    "consume_stream",
    "envelope_from_chunk",
    "replay_events",
]
