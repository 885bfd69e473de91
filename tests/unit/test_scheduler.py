"""Tests for the batching scheduler."""

import asyncio

import pytest

from researchViewer.stream import BatchingScheduler, StreamReconstructor
from researchViewer.views import ExecutionView
from shared.events import EventStatus


class ManualTicks:
    """Injectable schedule: ticks only run when the test fires them."""

    class Handle:
        def __init__(self, callback):
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = self.Handle(callback)
        self.handles.append(handle)
        return handle

    @property
    def live(self):
        return [h for h in self.handles if not h.cancelled]

    def fire(self):
        for handle in self.live:
            handle.cancelled = True
            handle.callback()


def env(event_id, status, data, rule="replace", seq=None, key=None, event_type="/supervisor/group", parent=None):
    payload = {
        "id": event_id,
        "eventType": event_type,
        "status": status,
        "content": {"contentType": "text", "data": data, "aggregateRule": rule},
    }
    if parent is not None:
        payload["parentId"] = parent
    if seq is not None:
        payload["seq"] = seq
    if key is not None:
        payload["secondaryKey"] = key
    return payload


@pytest.fixture
def ticks():
    return ManualTicks()


@pytest.fixture
def view():
    return ExecutionView()


@pytest.fixture
def scheduler(view, ticks):
    return BatchingScheduler(StreamReconstructor(), view, interval=0.016, schedule=ticks)


class TestBatchingScheduler:
    def test_updates_coalesce_into_one_commit(self, scheduler, view, ticks):
        commits = []
        view.subscribe(commits.append)

        scheduler.submit(env("a", "pending", "Hel"))
        scheduler.submit(env("a", "running", "lo", "concat"))
        scheduler.submit(env("a", "running", "!", "concat"))

        assert len(ticks.handles) == 1
        assert view.events == []

        ticks.fire()

        assert len(commits) == 1
        assert len(commits[0]) == 1
        assert view.get("a").data == "Hello!"
        assert scheduler.pending == 0

    def test_each_tick_commits_latest_state(self, scheduler, view, ticks):
        scheduler.submit(env("a", "pending", "x"))
        ticks.fire()
        scheduler.submit(env("a", "running", "y"))
        ticks.fire()

        assert view.get("a").data == "y"
        assert scheduler.flush_count == 2

    def test_mark_completed_flushes_synchronously(self, scheduler, view, ticks):
        scheduler.submit(env("a", "pending", "Hel"))
        scheduler.submit(env("a", "finished", "Hello", seq=None))

        scheduler.mark_completed()

        assert all(h.cancelled for h in ticks.handles)
        assert view.get("a").status is EventStatus.FINISHED
        assert view.is_completed

    def test_mark_completed_drains_reorder_buffers(self, scheduler, view):
        scheduler.submit(env("a", "running", "lo", "concat", seq=1))
        assert scheduler.pending == 0

        scheduler.mark_completed()

        assert view.get("a").data == "lo"

    def test_flush_is_single_flight(self, scheduler, view, ticks):
        reentrant = []

        def subscriber(updates):
            if updates and not reentrant:
                scheduler.submit(env("b", "pending", "second"))
                reentrant.append(scheduler.flush())

        view.subscribe(subscriber)
        scheduler.submit(env("a", "pending", "first"))
        ticks.fire()

        assert reentrant == [0]
        assert view.get("b") is None
        assert len(ticks.live) == 1

        ticks.fire()
        assert view.get("b").data == "second"

    def test_dispose_cancels_without_flushing(self, scheduler, view, ticks):
        scheduler.submit(env("a", "pending", "x"))
        scheduler.dispose()

        assert all(h.cancelled for h in ticks.handles)
        assert view.events == []
        scheduler.submit(env("b", "pending", "y"))
        assert scheduler.pending == 0

    def test_eviction_reaches_the_view(self, scheduler, view, ticks):
        scheduler.submit(env("t-old", "running", "1", key="call_1", event_type="/supervisor/tool_call"))
        ticks.fire()
        scheduler.submit(env("t-new", "pending", "2", key="call_1", event_type="/supervisor/tool_call"))
        ticks.fire()

        assert [e.id for e in view.events] == ["t-new"]
        assert "t-old" not in view.tree

    def test_eviction_chain_within_one_tick(self, scheduler, view, ticks):
        scheduler.submit(env("t1", "running", "1", key="k", event_type="/supervisor/tool_call"))
        ticks.fire()
        scheduler.submit(env("t2", "running", "2", key="k", event_type="/supervisor/tool_call"))
        scheduler.submit(env("t3", "pending", "3", key="k", event_type="/supervisor/tool_call"))
        ticks.fire()

        assert [e.id for e in view.events] == ["t3"]

    @pytest.mark.asyncio
    async def test_default_schedule_uses_running_loop(self, view):
        scheduler = BatchingScheduler(StreamReconstructor(), view, interval=0.001)

        scheduler.submit(env("a", "pending", "x"))
        await asyncio.sleep(0.05)

        assert view.get("a").data == "x"

    def test_without_loop_updates_wait_for_explicit_flush(self, view):
        scheduler = BatchingScheduler(StreamReconstructor(), view)

        scheduler.submit(env("a", "pending", "x"))
        assert view.events == []

        assert scheduler.flush() == 1
        assert view.get("a").data == "x"


def shape(tree):
    return [(depth, node.id, node.parent) for depth, node in tree.walk()]


# A child attaches to a keyed call that is then replaced by a newer call.
REPLACED_PARENT_STREAM = [
    env("g", "running", "round 1\n", seq=0),
    env("p-old", "running", {"tool_name": "a"}, seq=0, key="k", event_type="/supervisor/tool_call", parent="g"),
    env("c", "pending", "", seq=0, event_type="/researcher/group", parent="p-old"),
    env("p-new", "running", {"tool_name": "a"}, seq=0, key="k", event_type="/supervisor/tool_call", parent="g"),
    env("c", "finished", "notes", seq=1, event_type="/researcher/group", parent="p-old"),
    env("g", "finished", "round 1\n", seq=1),
]

EXPECTED_SHAPE = [
    (0, "g", "__root__"),
    (1, "p-new", "g"),
    (2, "c", "p-new"),
]


class TestTickGrouping:
    def run(self, ticks, flush_after):
        view = ExecutionView()
        scheduler = BatchingScheduler(StreamReconstructor(), view, schedule=ticks)
        for index, envelope in enumerate(REPLACED_PARENT_STREAM):
            scheduler.submit(envelope)
            if index in flush_after:
                scheduler.flush()
        scheduler.flush()
        return view, scheduler

    @pytest.mark.parametrize(
        "flush_after",
        [
            pytest.param(range(len(REPLACED_PARENT_STREAM)), id="every-envelope"),
            pytest.param((), id="single-tick"),
            pytest.param((1,), id="old-parent-committed-first"),
            pytest.param((2,), id="child-committed-before-replacement"),
        ],
    )
    def test_tree_does_not_depend_on_flush_boundaries(self, ticks, flush_after):
        view, scheduler = self.run(ticks, set(flush_after))

        assert shape(view.tree) == EXPECTED_SHAPE
        assert shape(view.tree) == shape(scheduler.reconstructor.tree)
        assert "p-old" not in view.tree
        assert view.get("c").data == "notes"

    def test_replay_matches_live(self, ticks):
        from researchViewer.client import replay_events

        live, _ = self.run(ticks, set(range(len(REPLACED_PARENT_STREAM))))
        replayed = replay_events(REPLACED_PARENT_STREAM)

        assert shape(replayed.tree) == shape(live.tree) == EXPECTED_SHAPE
        assert replayed.render() == live.render()
