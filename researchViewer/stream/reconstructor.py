"""Client-side state machine folding envelopes into materialized events.

Per event id: ``unseen → pending → running* → finished|error``. The stream is
at-least-once and unordered, so ingestion has to tolerate:

- duplicates: an envelope whose ``seq`` was already applied, or anything
  arriving after the terminal envelope, is ignored
- reordering: envelopes carrying ``seq`` are applied in ``seq`` order per id,
  future ones wait in a buffer until the gap closes
- retries under a new id: a new id carrying the ``secondary_key`` of a live
  node evicts that node; its children move to the replacement

``concat`` appends string data, ``replace`` overwrites it.

Envelopes without ``seq`` (legacy producers) are applied in arrival order and
cannot be told apart from a redelivery: a repeated unsequenced ``concat``
envelope is appended again. Idempotent replay therefore holds for sequenced
envelopes, which ``EventEmitter`` always produces, and for unsequenced
``replace`` envelopes, not for unsequenced ``concat`` ones.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Union

from pydantic import ValidationError

from shared.events import (
    Classification,
    EventEnvelope,
    EventStatus,
    MergeRule,
)

from .tree import ROOT_ID, ExecutionTree

LOGGER = logging.getLogger(__name__)

EnvelopeLike = Union[EventEnvelope, Mapping[str, Any]]


@dataclass(frozen=True)
class MaterializedEvent:
    """Current state of one logical event."""

    id: str
    event_type: str
    classification: Classification
    status: EventStatus
    data: Any = None
    parent_id: Optional[str] = None
    attached_to: Optional[str] = None
    """Tree container chosen at first sighting (None = root)."""
    secondary_key: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


@dataclass(frozen=True)
class StreamUpdate:
    event: MaterializedEvent
    replaces: Optional[str] = None
    """Id of the node this event evicted, if any."""
    container: Optional[str] = None
    """Tree parent of the node when the update is committed (None = root or unplaced)."""


def merge_data(current: Any, incoming: Any, rule: MergeRule) -> Any:
    if rule is MergeRule.CONCAT:
        if isinstance(incoming, str) and isinstance(current, str):
            return current + incoming
        if isinstance(incoming, str) and current is None:
            return incoming
        LOGGER.debug("concat on non-string data, falling back to replace")
    return incoming


class StreamReconstructor:
    """Folds an envelope stream into ordered events and an execution tree."""

    def __init__(self):
        self._events: Dict[str, MaterializedEvent] = {}
        self._next_seq: Dict[str, int] = {}
        self._buffers: Dict[str, Dict[int, EventEnvelope]] = {}
        self._by_secondary_key: Dict[str, str] = {}
        self._replaced_by: Dict[str, str] = {}
        self._evicted: Set[str] = set()
        self.tree = ExecutionTree()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    @property
    def events(self) -> List[MaterializedEvent]:
        """Materialized events in first-arrival order, evicted ones removed."""
        return list(self._events.values())

    def get(self, event_id: str) -> Optional[MaterializedEvent]:
        return self._events.get(event_id)

    def is_evicted(self, event_id: str) -> bool:
        return event_id in self._evicted

    def placement(self, event_id: str) -> Optional[str]:
        """Current tree parent of a placed node; None for root-level or unplaced nodes.

        Eviction moves children to the replacement, so this can differ from
        the ``attached_to`` chosen at first sighting.
        """
        node = self.tree.get(event_id)
        if node is None or node.parent == ROOT_ID:
            return None
        return node.parent

    @property
    def buffered(self) -> int:
        return sum(len(buffer) for buffer in self._buffers.values())

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def ingest(self, envelope: EnvelopeLike) -> List[StreamUpdate]:
        """Apply one envelope; returns the updates it produced (possibly none)."""
        if not isinstance(envelope, EventEnvelope):
            try:
                envelope = EventEnvelope.from_wire(dict(envelope))
            except (ValidationError, TypeError, ValueError) as e:
                LOGGER.debug(f"Dropping malformed envelope: {e}")
                return []

        event_id = envelope.id
        if event_id in self._evicted:
            LOGGER.debug(f"Ignoring envelope for evicted event {event_id}")
            return []

        current = self._events.get(event_id)
        if current is not None and current.is_terminal:
            return []

        if envelope.seq is None:
            return self._apply_all([envelope])

        expected = self._next_seq.get(event_id, 0)
        buffer = self._buffers.setdefault(event_id, {})
        if envelope.seq < expected or envelope.seq in buffer:
            LOGGER.debug(f"Duplicate envelope {event_id}#{envelope.seq}")
            return []

        if envelope.status.is_terminal:
            return self._apply_all(self._release(event_id, below=envelope.seq) + [envelope])

        if envelope.seq != expected:
            buffer[envelope.seq] = envelope
            return []

        ready = [envelope]
        next_seq = envelope.seq + 1
        while next_seq in buffer:
            ready.append(buffer.pop(next_seq))
            next_seq += 1
        return self._apply_all(ready)

    def drain(self) -> List[StreamUpdate]:
        """Apply every buffered envelope, gaps or not. Used when the stream ends."""
        updates: List[StreamUpdate] = []
        for event_id in list(self._buffers):
            released = self._release(event_id)
            if released:
                LOGGER.debug(f"Draining {len(released)} buffered envelope(s) of {event_id}")
            updates.extend(self._apply_all(released))
        return updates

    def replay(self, envelopes: Iterable[EnvelopeLike]) -> List[StreamUpdate]:
        """Feed a persisted envelope list through the live ingestion path."""
        updates: List[StreamUpdate] = []
        for envelope in envelopes:
            updates.extend(self.ingest(envelope))
        updates.extend(self.drain())
        return updates

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release(self, event_id: str, below: Optional[int] = None) -> List[EventEnvelope]:
        buffer = self._buffers.pop(event_id, {})
        released = [buffer[seq] for seq in sorted(buffer) if below is None or seq < below]
        dropped = len(buffer) - len(released)
        if dropped:
            LOGGER.debug(f"Dropping {dropped} envelope(s) of {event_id} sequenced after its terminal envelope")
        return released

    def _apply_all(self, envelopes: Iterable[EventEnvelope]) -> List[StreamUpdate]:
        updates = []
        for envelope in envelopes:
            update = self._apply(envelope)
            if update is not None:
                updates.append(update)
        return updates

    def _apply(self, envelope: EventEnvelope) -> Optional[StreamUpdate]:
        if envelope.seq is not None:
            self._next_seq[envelope.id] = max(self._next_seq.get(envelope.id, 0), envelope.seq + 1)

        current = self._events.get(envelope.id)
        if current is None:
            return self._first_sighting(envelope)

        if current.is_terminal:
            return None
        if envelope.status.rank < current.status.rank:
            LOGGER.debug(
                f"Ignoring status regression of {envelope.id}: "
                f"{current.status.value} → {envelope.status.value}"
            )
            return None

        event = replace(
            current,
            status=envelope.status,
            data=merge_data(current.data, envelope.data, envelope.merge_rule),
        )
        self._events[event.id] = event
        if event.classification.is_known:
            self.tree.upsert(event)
        return StreamUpdate(event)

    def _first_sighting(self, envelope: EventEnvelope) -> StreamUpdate:
        classification = envelope.classification
        replaces = self._evict_for(envelope)

        event = MaterializedEvent(
            id=envelope.id,
            event_type=envelope.event_type,
            classification=classification,
            status=envelope.status,
            data=merge_data(None, envelope.data, envelope.merge_rule),
            parent_id=envelope.parent_id,
            attached_to=self._container_of(envelope.parent_id),
            secondary_key=envelope.secondary_key,
        )
        self._events[event.id] = event
        if envelope.secondary_key:
            self._by_secondary_key[envelope.secondary_key] = event.id

        if classification.is_known:
            self.tree.upsert(event, replaces=replaces)
        else:
            LOGGER.debug(f"Unknown event type {envelope.event_type!r} for {event.id}, not placed in tree")
        return StreamUpdate(event, replaces=replaces)

    def _evict_for(self, envelope: EventEnvelope) -> Optional[str]:
        key = envelope.secondary_key
        if not key:
            return None
        previous_id = self._by_secondary_key.get(key)
        if previous_id is None or previous_id == envelope.id:
            return None
        previous = self._events.get(previous_id)
        if previous is None or previous.is_terminal:
            return None

        LOGGER.debug(f"Event {envelope.id} replaces {previous_id} (secondary key {key})")
        del self._events[previous_id]
        self._buffers.pop(previous_id, None)
        self._evicted.add(previous_id)
        self._replaced_by[previous_id] = envelope.id
        return previous_id

    def _container_of(self, parent_id: Optional[str]) -> Optional[str]:
        """Tree container for a new node: its parent if already placed, else the root."""
        while parent_id in self._replaced_by:
            parent_id = self._replaced_by[parent_id]
        if parent_id and parent_id in self.tree:
            return parent_id
        return None


__all__ = ["MaterializedEvent", "StreamReconstructor", "StreamUpdate", "merge_data"]
