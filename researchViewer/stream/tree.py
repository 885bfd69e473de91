"""Execution tree built from materialized events.

Placement is decided once, when a node is first inserted: under the node
named by the event's ``attached_to`` if that node exists, otherwise under the
synthesized root. A parent that shows up later does not adopt nodes already
parked at the root.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional, Tuple

if TYPE_CHECKING:
    from .reconstructor import MaterializedEvent

LOGGER = logging.getLogger(__name__)

ROOT_ID = "__root__"


@dataclass
class ExecutionNode:
    id: str
    event: Optional["MaterializedEvent"] = None
    parent: Optional[str] = None
    children: List[str] = field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.id == ROOT_ID


class ExecutionTree:
    """Root plus one node per tree-placed event."""

    def __init__(self):
        self.root = ExecutionNode(ROOT_ID)
        self._nodes: Dict[str, ExecutionNode] = {ROOT_ID: self.root}

    def __len__(self) -> int:
        return len(self._nodes) - 1

    def __contains__(self, event_id: object) -> bool:
        return event_id != ROOT_ID and event_id in self._nodes

    def get(self, event_id: str) -> Optional[ExecutionNode]:
        if event_id == ROOT_ID:
            return None
        return self._nodes.get(event_id)

    def children_of(self, event_id: str = ROOT_ID) -> List[ExecutionNode]:
        node = self._nodes.get(event_id)
        if node is None:
            return []
        return [self._nodes[child] for child in node.children]

    def upsert(
        self,
        event: "MaterializedEvent",
        replaces: Optional[str] = None,
        container: Optional[str] = None,
    ) -> ExecutionNode:
        """Insert or refresh the node of ``event``.

        An existing node only has its event refreshed. When ``replaces`` names
        a node, that node is removed and its children move to the new node.
        A new node goes under ``container`` (default: ``event.attached_to``).
        """
        node = self._nodes.get(event.id)
        if node is not None:
            node.event = event
            return node

        orphans: List[str] = []
        if replaces and replaces in self:
            orphans = self._remove(replaces)

        container = container or event.attached_to
        parent_id = container if container in self._nodes else ROOT_ID
        if container and parent_id == ROOT_ID:
            LOGGER.debug(f"Container {container} of {event.id} not in tree, attaching to root")

        node = ExecutionNode(event.id, event, parent_id)
        self._nodes[event.id] = node
        self._nodes[parent_id].children.append(event.id)

        for child_id in orphans:
            self._nodes[child_id].parent = event.id
            node.children.append(child_id)
        return node

    def _remove(self, event_id: str) -> List[str]:
        node = self._nodes.pop(event_id)
        parent = self._nodes.get(node.parent or ROOT_ID, self.root)
        if event_id in parent.children:
            parent.children.remove(event_id)
        return list(node.children)

    def is_parked(self, event_id: str) -> bool:
        """True for nodes sitting at the root although they name a parent."""
        node = self.get(event_id)
        return bool(
            node is not None
            and node.parent == ROOT_ID
            and node.event is not None
            and node.event.parent_id
        )

    def walk(self) -> Iterator[Tuple[int, ExecutionNode]]:
        """Depth-first (depth, node) pairs, root excluded, children in insertion order."""
        stack = [(0, child) for child in reversed(self.root.children)]
        while stack:
            depth, event_id = stack.pop()
            node = self._nodes[event_id]
            yield depth, node
            stack.extend((depth + 1, child) for child in reversed(node.children))


__all__ = ["ROOT_ID", "ExecutionNode", "ExecutionTree"]
