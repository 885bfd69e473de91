"""Observed execution view and its rendering configuration.

The view is the committed state the user sees: it changes only when the
batching scheduler flushes. Which node kind an event type maps to, and how
each subtype renders, is configured explicitly through ``ViewConfig``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from shared.events import Subtype

from .stream.reconstructor import MaterializedEvent, StreamUpdate
from .stream.tree import ExecutionTree

LOGGER = logging.getLogger(__name__)

Renderer = Callable[[MaterializedEvent], str]
Subscriber = Callable[[Sequence[StreamUpdate]], None]


class NodeKind(str, Enum):
    CLARIFY_WITH_USER = "ClarifyWithUser"
    BRIEF_GENERATION = "BriefGeneration"
    USER = "User"
    SUPERVISOR = "Supervisor"
    TOOL_CALL = "ToolCall"
    RESEARCHER = "Researcher"
    UNKNOWN = "Unknown"


DEFAULT_NODE_KINDS: Dict[str, NodeKind] = {
    "/clarifier/qa": NodeKind.CLARIFY_WITH_USER,
    "/brief_writer/text": NodeKind.BRIEF_GENERATION,
    "/human/text": NodeKind.USER,
    "/supervisor/group": NodeKind.SUPERVISOR,
    "/supervisor/tool_call": NodeKind.TOOL_CALL,
    "/researcher/group": NodeKind.RESEARCHER,
    "/researcher/tool_call": NodeKind.TOOL_CALL,
}


def _preview(value: Any, limit: int = 120) -> str:
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    text = " ".join((text or "").split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


def render_group(event: MaterializedEvent) -> str:
    lines = [line for line in str(event.data or "").splitlines() if line.strip()]
    return f"{event.classification.role.value} [{event.status.value}] {_preview(lines[-1]) if lines else ''}".rstrip()


def render_tool_call(event: MaterializedEvent) -> str:
    data = event.data if isinstance(event.data, Mapping) else {}
    name = data.get("tool_name", "tool")
    detail = data.get("output") or data.get("args") or ""
    return f"{name} [{event.status.value}] {_preview(detail)}".rstrip()


def render_text(event: MaterializedEvent) -> str:
    return f"{event.classification.role.value}: {_preview(event.data)}"


def render_nothing(event: MaterializedEvent) -> str:
    return ""


DEFAULT_RENDERERS: Dict[Subtype, Renderer] = {
    Subtype.GROUP: render_group,
    Subtype.TOOL_CALL: render_tool_call,
    Subtype.TEXT: render_text,
    Subtype.QA: render_text,
    Subtype.UNKNOWN: render_nothing,
}


@dataclass
class ViewConfig:
    """Event-type → node-kind table and subtype → renderer table."""

    node_kinds: Dict[str, NodeKind] = field(default_factory=lambda: dict(DEFAULT_NODE_KINDS))
    renderers: Dict[Subtype, Renderer] = field(default_factory=lambda: dict(DEFAULT_RENDERERS))
    default_renderer: Renderer = render_text

    def node_kind(self, event: MaterializedEvent) -> NodeKind:
        kind = self.node_kinds.get(event.event_type)
        if kind is None:
            kind = self.node_kinds.get(event.classification.event_type, NodeKind.UNKNOWN)
        return kind

    def renderer_for(self, event: MaterializedEvent) -> Renderer:
        if not event.classification.is_known:
            return render_nothing
        return self.renderers.get(event.classification.subtype, self.default_renderer)


class ExecutionView:
    """Committed events and execution tree, plus change subscribers."""

    def __init__(self, config: Optional[ViewConfig] = None):
        self.config = config or ViewConfig()
        self._events: Dict[str, MaterializedEvent] = {}
        self.tree = ExecutionTree()
        self._subscribers: List[Subscriber] = []
        self._completed = False
        self.version = 0

    @property
    def events(self) -> List[MaterializedEvent]:
        return list(self._events.values())

    def get(self, event_id: str) -> Optional[MaterializedEvent]:
        return self._events.get(event_id)

    @property
    def is_completed(self) -> bool:
        return self._completed

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback run once per commit; returns an unsubscribe function."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def apply(self, updates: Sequence[StreamUpdate]) -> None:
        """Commit one batch of updates and notify subscribers once."""
        placed = []
        for update in updates:
            if update.replaces:
                self._events.pop(update.replaces, None)
            event = update.event
            self._events[event.id] = event
            if event.classification.is_known:
                placed.append(update)
        self._place(placed)
        self.version += 1
        self._notify(updates)

    def _place(self, updates: Sequence[StreamUpdate]) -> None:
        """Upsert tree nodes, containers before the children committed with them."""
        waiting = list(updates)
        while waiting:
            deferred = []
            for update in waiting:
                container = update.container or update.event.attached_to
                if container and container not in self.tree and update.event.id not in self.tree:
                    deferred.append(update)
                    continue
                self.tree.upsert(update.event, replaces=update.replaces, container=container)
            if len(deferred) == len(waiting):
                # container never committed: park at the root
                for update in deferred:
                    self.tree.upsert(update.event, replaces=update.replaces)
                return
            waiting = deferred

    def mark_completed(self) -> None:
        self._completed = True
        self._notify([])

    def _notify(self, updates: Sequence[StreamUpdate]) -> None:
        for callback in list(self._subscribers):
            try:
                callback(updates)
            except Exception as e:
                LOGGER.warning(f"View subscriber failed: {type(e).__name__}: {e}")

    def render(self) -> str:
        """Indented text rendering of the execution tree."""
        lines = []
        for depth, node in self.tree.walk():
            event = node.event
            if event is None:
                continue
            text = self.config.renderer_for(event)(event)
            if not text:
                continue
            kind = self.config.node_kind(event).value
            lines.append(f"{'  ' * depth}- {kind}: {text}")
        return "\n".join(lines)


__all__ = [
    "DEFAULT_NODE_KINDS",
    "DEFAULT_RENDERERS",
    "ExecutionView",
    "NodeKind",
    "Renderer",
    "ViewConfig",
    "render_group",
    "render_nothing",
    "render_text",
    "render_tool_call",
]
