"""Batching scheduler: coalesces stream updates into one view commit per tick.

Ingestion happens on ``submit`` so ``concat`` text accumulates in the
reconstructor as envelopes arrive; the view only sees the latest state of
each event, once per tick.

Tree placement travels with each committed update, so the view tree matches
the reconstructor tree however envelopes were grouped into ticks.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Optional

from .reconstructor import EnvelopeLike, StreamReconstructor, StreamUpdate

LOGGER = logging.getLogger(__name__)

DEFAULT_FLUSH_INTERVAL = 0.016

# schedule(delay_seconds, callback) -> handle with .cancel(), or None if nothing was scheduled
ScheduleFn = Callable[[float, Callable[[], None]], Any]


def loop_schedule(delay: float, callback: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
    """Schedule on the running event loop; without one, updates wait for an explicit flush."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None
    return loop.call_later(delay, callback)


class BatchingScheduler:
    """Feeds envelopes to a reconstructor and commits coalesced updates to a view.

    Args:
        reconstructor: Stream reconstructor owning the event state
        view: ExecutionView receiving ``apply(updates)`` and ``mark_completed()``
        interval: Flush tick in seconds (default: one frame at 60 fps)
        schedule: Tick scheduler, defaults to ``loop.call_later`` on the running loop
    """

    def __init__(
        self,
        reconstructor: StreamReconstructor,
        view: Any,
        interval: float = DEFAULT_FLUSH_INTERVAL,
        schedule: Optional[ScheduleFn] = None,
    ):
        self.reconstructor = reconstructor
        self.view = view
        self.interval = interval
        self._schedule = schedule or loop_schedule

        self._pending: Dict[str, StreamUpdate] = {}
        self._handle: Any = None
        self._flushing = False
        self._disposed = False
        self.flush_count = 0

    @property
    def pending(self) -> int:
        return len(self._pending)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def submit(self, envelope: EnvelopeLike) -> None:
        """Ingest one envelope now; commit it to the view on the next tick."""
        if self._disposed:
            LOGGER.debug("Scheduler disposed, dropping envelope")
            return
        for update in self.reconstructor.ingest(envelope):
            self._stage(update)
        if self._pending:
            self._ensure_scheduled()

    def flush(self) -> int:
        """Commit pending updates to the view.

        Returns:
            Number of updates committed (0 when nothing was pending or a flush
            is already running; in the latter case the work moves to the next tick)
        """
        if self._flushing:
            self._ensure_scheduled()
            return 0

        self._cancel_tick()
        if not self._pending:
            return 0

        # placement is read at commit time: evictions inside the tick may have
        # moved a node since it was staged
        batch = [
            replace(update, container=self.reconstructor.placement(update.event.id))
            for update in self._pending.values()
        ]
        self._pending = {}
        self._flushing = True
        try:
            self.view.apply(batch)
            self.flush_count += 1
        finally:
            self._flushing = False

        if self._pending and not self._disposed:
            self._ensure_scheduled()
        return len(batch)

    def mark_completed(self) -> None:
        """End of stream: release buffered envelopes, flush synchronously, mark the view complete."""
        if self._disposed:
            return
        self._cancel_tick()
        for update in self.reconstructor.drain():
            self._stage(update)
        self.flush()
        self.view.mark_completed()

    def dispose(self) -> None:
        """Cancel any pending tick without flushing."""
        self._cancel_tick()
        self._pending = {}
        self._disposed = True

    def _stage(self, update: StreamUpdate) -> None:
        event_id = update.event.id
        previous = self._pending.get(event_id)
        replaces = update.replaces or (previous.replaces if previous else None)
        if update.replaces:
            evicted = self._pending.pop(update.replaces, None)
            # evicted before its first commit: the view still holds what it replaced
            if evicted is not None and evicted.replaces:
                replaces = evicted.replaces
        self._pending[event_id] = StreamUpdate(update.event, replaces)

    def _ensure_scheduled(self) -> None:
        if self._handle is None and not self._disposed:
            self._handle = self._schedule(self.interval, self._on_tick)

    def _on_tick(self) -> None:
        self._handle = None
        self.flush()

    def _cancel_tick(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


__all__ = ["BatchingScheduler", "DEFAULT_FLUSH_INTERVAL", "ScheduleFn", "loop_schedule"]
