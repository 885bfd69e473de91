"""Tests for envelope emission."""

import asyncio
import logging

import pytest

from researchAgent.events.emitter import EventEmitter, current_parent_id, parent_scope
from researchAgent.utils.error_handler import ProtocolViolationError
from shared.events import RESEARCHER_GROUP, SUPERVISOR_GROUP, SUPERVISOR_TOOL_CALL


@pytest.fixture
def captured():
    return []


@pytest.fixture
def emitter(captured):
    return EventEmitter(sinks=[captured.append], use_stream_writer=False)


class TestEventEmitter:
    def test_lifecycle_and_sequence_numbers(self, emitter, captured):
        handle = emitter.open(SUPERVISOR_GROUP, "Hel", event_id="g1")
        handle.progress("lo")
        handle.progress("!")
        handle.finish()

        assert [e["status"] for e in captured] == ["pending", "running", "running", "finished"]
        assert [e["seq"] for e in captured] == [0, 1, 2, 3]
        assert [e["content"]["aggregateRule"] for e in captured] == ["replace", "concat", "concat", "replace"]
        assert all(e["eventType"] == "/supervisor/group" for e in captured)
        assert handle.is_closed

    def test_sequence_is_per_id(self, emitter, captured):
        first = emitter.open(SUPERVISOR_TOOL_CALL, event_id="a")
        second = emitter.open(SUPERVISOR_TOOL_CALL, event_id="b")
        first.update({"status": "running"})
        second.finish()

        assert [(e["id"], e["seq"]) for e in captured] == [("a", 0), ("b", 0), ("a", 1), ("b", 1)]

    def test_emit_after_terminal_raises(self, emitter):
        handle = emitter.open(SUPERVISOR_TOOL_CALL, event_id="a")
        handle.fail("boom")

        with pytest.raises(ProtocolViolationError):
            handle.update("late")
        with pytest.raises(ProtocolViolationError):
            emitter.open(SUPERVISOR_TOOL_CALL, event_id="a")

    def test_terminated_ids_release_their_sequence_counter(self, captured):
        emitter = EventEmitter(sinks=[captured.append], use_stream_writer=False)
        for index in range(50):
            emitter.open(SUPERVISOR_TOOL_CALL, event_id=f"t{index}").finish("done")
        live = emitter.open(SUPERVISOR_TOOL_CALL, event_id="live")

        assert emitter.tracked_ids == 51
        assert emitter._next_seq == {"live": 1}
        live.finish()
        assert captured[-1]["seq"] == 1

    def test_terminal_memory_is_bounded(self, captured):
        emitter = EventEmitter(sinks=[captured.append], use_stream_writer=False, max_terminal_ids=3)
        for event_id in ("a", "b", "c", "d"):
            emitter.open(SUPERVISOR_TOOL_CALL, event_id=event_id).finish()

        assert emitter.tracked_ids == 3
        assert not emitter.is_terminal("a")
        assert emitter.is_terminal("d")
        with pytest.raises(ProtocolViolationError):
            emitter.open(SUPERVISOR_TOOL_CALL, event_id="d")

    def test_generated_ids_are_unique_and_prefixed(self, emitter):
        first = emitter.open(RESEARCHER_GROUP)
        second = emitter.open(RESEARCHER_GROUP)

        assert first.event_id != second.event_id
        assert first.event_id.startswith("researcher-")

    def test_secondary_key_and_parent_on_every_envelope(self, emitter, captured):
        handle = emitter.open(SUPERVISOR_TOOL_CALL, parent_id="g1", secondary_key="call_1")
        handle.finish({"output": "ok"})

        assert all(e["parentId"] == "g1" for e in captured)
        assert all(e["secondaryKey"] == "call_1" for e in captured)
        assert captured[-1]["content"]["data"] == {"output": "ok"}

    def test_failing_sink_is_swallowed(self, captured, caplog):
        def broken(payload):
            raise IOError("disk full")

        emitter = EventEmitter(sinks=[broken, captured.append], use_stream_writer=False)

        with caplog.at_level(logging.WARNING):
            emitter.open(SUPERVISOR_GROUP, event_id="g1").finish()

        assert len(captured) == 2
        assert "disk full" in caplog.text

    def test_stream_writer_outside_run_is_noop(self, captured):
        emitter = EventEmitter(sinks=[captured.append])
        emitter.open(SUPERVISOR_GROUP, event_id="g1")
        assert len(captured) == 1

    def test_resume_continues_sequence(self, emitter, captured):
        emitter.open(SUPERVISOR_GROUP, event_id="g1")
        emitter.resume("g1", SUPERVISOR_GROUP).progress("round 1\n")

        assert [e["seq"] for e in captured] == [0, 1]


class TestParentScope:
    def test_open_defaults_to_current_scope(self, emitter, captured):
        with parent_scope("tool-1"):
            emitter.open(RESEARCHER_GROUP, event_id="r1")
        emitter.open(RESEARCHER_GROUP, event_id="r2")

        assert captured[0]["parentId"] == "tool-1"
        assert "parentId" not in captured[1]

    def test_explicit_parent_wins(self, emitter, captured):
        with parent_scope("tool-1"):
            emitter.open(SUPERVISOR_GROUP, event_id="g1", parent_id=None)
        assert "parentId" not in captured[0]

    @pytest.mark.asyncio
    async def test_sibling_tasks_do_not_share_scope(self):
        async def scoped(name):
            with parent_scope(name):
                await asyncio.sleep(0)
                return current_parent_id()

        assert await asyncio.gather(scoped("a"), scoped("b")) == ["a", "b"]
        assert current_parent_id() is None
