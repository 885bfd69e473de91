"""Envelope emission for the supervisor and its workers.

Every unit of work gets one event id and goes through
``pending → running* → finished|error``. Delivery is fire-and-forget: a sink
that raises is logged and skipped. Reusing an id after its terminal envelope
is a programming error and raises ProtocolViolationError. A long-lived
emitter only keeps the most recent ``max_terminal_ids`` terminal ids for that
check; sequence counters are dropped as soon as an id terminates.

The parent of newly opened events defaults to the current *parent scope*, a
ContextVar set per delegate by the fan-out executor. asyncio tasks copy the
context when they are created, so sibling delegates never see each other's
scope.
"""

from __future__ import annotations

import logging
import uuid
from collections import OrderedDict
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

from langgraph.config import get_stream_writer

from researchAgent.utils.error_handler import ProtocolViolationError
from shared.events import (
    Classification,
    EventContent,
    EventEnvelope,
    EventStatus,
    MergeRule,
)

LOGGER = logging.getLogger(__name__)

EnvelopeSink = Callable[[Dict[str, Any]], None]

_parent_scope: ContextVar[Optional[str]] = ContextVar("event_parent_scope", default=None)

_UNSET: Any = object()

# Terminal ids kept for reuse detection in a long-lived emitter
DEFAULT_MAX_TERMINAL_IDS = 10_000


@contextmanager
def parent_scope(parent_id: Optional[str]) -> Iterator[None]:
    """Make ``parent_id`` the default parent of events opened inside the block."""
    token = _parent_scope.set(parent_id)
    try:
        yield
    finally:
        _parent_scope.reset(token)


def current_parent_id() -> Optional[str]:
    return _parent_scope.get()


def langgraph_stream_sink(payload: Dict[str, Any]) -> None:
    """Forward an envelope to the LangGraph ``custom`` stream of the current run.

    Outside of a graph run there is no writer; the envelope is dropped.
    """
    try:
        writer = get_stream_writer()
    except RuntimeError:
        return
    writer(payload)


class EventHandle:
    """Emission handle bound to one event id."""

    def __init__(
        self,
        emitter: "EventEmitter",
        event_id: str,
        classification: Classification,
        parent_id: Optional[str],
        secondary_key: Optional[str] = None,
    ):
        self.emitter = emitter
        self.event_id = event_id
        self.classification = classification
        self.parent_id = parent_id
        self.secondary_key = secondary_key

    def _emit(self, status: EventStatus, data: Any, merge_rule: MergeRule) -> EventEnvelope:
        return self.emitter.emit(
            self.event_id,
            self.classification,
            status,
            data,
            parent_id=self.parent_id,
            merge_rule=merge_rule,
            secondary_key=self.secondary_key,
        )

    def update(self, data: Any) -> EventEnvelope:
        """Running envelope that replaces the payload."""
        return self._emit(EventStatus.RUNNING, data, MergeRule.REPLACE)

    def progress(self, text: str) -> EventEnvelope:
        """Running envelope whose text is appended to the payload."""
        return self._emit(EventStatus.RUNNING, text, MergeRule.CONCAT)

    def finish(self, data: Any = None, merge_rule: MergeRule = MergeRule.REPLACE) -> EventEnvelope:
        return self._emit(EventStatus.FINISHED, data, merge_rule)

    def fail(self, data: Any = None, merge_rule: MergeRule = MergeRule.REPLACE) -> EventEnvelope:
        return self._emit(EventStatus.ERROR, data, merge_rule)

    @property
    def is_closed(self) -> bool:
        return self.emitter.is_terminal(self.event_id)


class EventEmitter:
    """Builds envelopes, numbers them per id and hands them to the sinks."""

    def __init__(
        self,
        sinks: Optional[Iterable[EnvelopeSink]] = None,
        use_stream_writer: bool = True,
        max_terminal_ids: int = DEFAULT_MAX_TERMINAL_IDS,
    ):
        self._sinks: List[EnvelopeSink] = []
        if use_stream_writer:
            self._sinks.append(langgraph_stream_sink)
        self._sinks.extend(sinks or [])

        # seq counters only for live ids; terminal ids are remembered up to
        # max_terminal_ids, oldest forgotten first
        self._next_seq: Dict[str, int] = {}
        self._terminal: "OrderedDict[str, None]" = OrderedDict()
        self.max_terminal_ids = max_terminal_ids

    def add_sink(self, sink: EnvelopeSink) -> None:
        self._sinks.append(sink)

    def is_terminal(self, event_id: str) -> bool:
        return event_id in self._terminal

    def open(
        self,
        classification: Classification,
        data: Any = None,
        *,
        event_id: Optional[str] = None,
        parent_id: Optional[str] = _UNSET,
        secondary_key: Optional[str] = None,
    ) -> EventHandle:
        """Emit the pending envelope of a new unit of work and return its handle."""
        if parent_id is _UNSET:
            parent_id = current_parent_id()
        event_id = event_id or f"{classification.role.value}-{uuid.uuid4().hex}"

        handle = EventHandle(self, event_id, classification, parent_id, secondary_key)
        self.emit(
            event_id,
            classification,
            EventStatus.PENDING,
            data,
            parent_id=parent_id,
            secondary_key=secondary_key,
        )
        return handle

    def resume(
        self,
        event_id: str,
        classification: Classification,
        parent_id: Optional[str] = None,
        secondary_key: Optional[str] = None,
    ) -> EventHandle:
        """Rebind a handle to an event opened earlier (e.g. by another graph node)."""
        return EventHandle(self, event_id, classification, parent_id, secondary_key)

    def emit(
        self,
        event_id: str,
        classification: Classification,
        status: EventStatus,
        data: Any = None,
        *,
        parent_id: Optional[str] = None,
        merge_rule: MergeRule = MergeRule.REPLACE,
        secondary_key: Optional[str] = None,
    ) -> EventEnvelope:
        if event_id in self._terminal:
            raise ProtocolViolationError(
                f"Event {event_id} already reached a terminal state; refusing {status.value} envelope"
            )

        if status.is_terminal:
            seq = self._next_seq.pop(event_id, 0)
            self._remember_terminal(event_id)
        else:
            seq = self._next_seq.get(event_id, 0)
            self._next_seq[event_id] = seq + 1

        envelope = EventEnvelope(
            id=event_id,
            event_type=classification.event_type,
            status=status,
            parent_id=parent_id,
            seq=seq,
            secondary_key=secondary_key,
            content=EventContent(data=data, merge_rule=merge_rule),
        )
        self._deliver(envelope)
        return envelope

    @property
    def tracked_ids(self) -> int:
        """Ids the emitter currently holds state for (live plus remembered terminal)."""
        return len(self._next_seq) + len(self._terminal)

    def _remember_terminal(self, event_id: str) -> None:
        self._terminal[event_id] = None
        while len(self._terminal) > self.max_terminal_ids:
            self._terminal.popitem(last=False)

    def _deliver(self, envelope: EventEnvelope) -> None:
        payload = envelope.to_wire()
        for sink in self._sinks:
            try:
                sink(payload)
            except Exception as e:
                LOGGER.warning(
                    f"Envelope delivery failed for {envelope.id} ({envelope.status.value}): "
                    f"{type(e).__name__}: {e}"
                )


__all__ = [
    "EnvelopeSink",
    "EventEmitter",
    "EventHandle",
    "current_parent_id",
    "langgraph_stream_sink",
    "parent_scope",
]
