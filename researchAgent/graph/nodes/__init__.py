"""Graph nodes exports - scope phase and supervisor loop."""

from .scope import build_brief_node, build_clarify_node
from .supervisor import build_supervisor_node
from .supervisor_tools import build_supervisor_tools_node

__all__ = [
    "build_brief_node",
    "build_clarify_node",
    "build_supervisor_node",
    "build_supervisor_tools_node",
]
