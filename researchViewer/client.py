"""Stream consumption: LangGraph chunks in, view updates out."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterable, Iterable, Mapping, Optional

from .stream.reconstructor import StreamReconstructor
from .stream.scheduler import BatchingScheduler
from .views import ExecutionView, ViewConfig

LOGGER = logging.getLogger(__name__)


def envelope_from_chunk(chunk: Any) -> Optional[Mapping[str, Any]]:
    """Extract the wire envelope carried by a stream chunk, if any.

    Accepted shapes:
    - a wire envelope dict (``{"id", "eventType", ...}``)
    - ``(mode, payload)`` from ``astream(stream_mode=[...])``
    - ``(namespace, mode, payload)`` from ``astream(..., subgraphs=True)``
    - SDK stream parts exposing ``.event`` and ``.data``

    Only ``custom`` chunks carry envelopes; everything else returns None.
    """
    if isinstance(chunk, tuple):
        if len(chunk) == 3:
            _, mode, payload = chunk
        elif len(chunk) == 2:
            mode, payload = chunk
        else:
            return None
        return _envelope_payload(payload) if mode == "custom" else None

    if isinstance(chunk, Mapping):
        return _envelope_payload(chunk)

    mode = getattr(chunk, "event", None)
    if mode is not None:
        return _envelope_payload(getattr(chunk, "data", None)) if mode == "custom" else None
    return None


def _envelope_payload(payload: Any) -> Optional[Mapping[str, Any]]:
    if isinstance(payload, Mapping) and payload.get("id") and payload.get("eventType"):
        return payload
    return None


async def consume_stream(
    stream: AsyncIterable[Any],
    scheduler: BatchingScheduler,
    complete: bool = True,
) -> int:
    """Feed every envelope of ``stream`` to ``scheduler``.

    Args:
        stream: Async iterable of stream chunks (e.g. ``graph.astream(...)``)
        scheduler: Batching scheduler committing to the view
        complete: Call ``scheduler.mark_completed()`` when the stream ends

    Returns:
        Number of envelopes submitted
    """
    submitted = 0
    try:
        async for chunk in stream:
            payload = envelope_from_chunk(chunk)
            if payload is None:
                continue
            scheduler.submit(payload)
            submitted += 1
    finally:
        if complete:
            scheduler.mark_completed()
    LOGGER.debug(f"Stream consumed: {submitted} envelope(s)")
    return submitted


def replay_events(
    wire_events: Iterable[Mapping[str, Any]],
    config: Optional[ViewConfig] = None,
) -> ExecutionView:
    """Rebuild a completed view from persisted envelopes (e.g. ``EventLog.events_for_thread``).

    The envelopes go through the live path (reconstructor + scheduler), so the
    replayed view matches the one the live stream produced.
    """
    view = ExecutionView(config)
    scheduler = BatchingScheduler(StreamReconstructor(), view, schedule=_no_tick)
    for event in wire_events:
        scheduler.submit(event)
    scheduler.mark_completed()
    return view


def _no_tick(delay, callback):
    return None


__all__ = ["consume_stream", "envelope_from_chunk", "replay_events"]
