"""Stream reconstruction: envelope state machine, execution tree and batching."""

from .reconstructor import MaterializedEvent, StreamReconstructor, StreamUpdate, merge_data
from .scheduler import DEFAULT_FLUSH_INTERVAL, BatchingScheduler, loop_schedule
from .tree import ROOT_ID, ExecutionNode, ExecutionTree

__all__ = [
    "BatchingScheduler",
    "DEFAULT_FLUSH_INTERVAL",
    "ExecutionNode",
    "ExecutionTree",
    "MaterializedEvent",
    "ROOT_ID",
    "StreamReconstructor",
    "StreamUpdate",
    "loop_schedule",
    "merge_data",
]
