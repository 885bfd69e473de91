"""Tests for the SQLite envelope log."""

from unittest.mock import patch

from researchAgent.events.emitter import EventEmitter
from researchAgent.persistence import EventLog
from researchViewer import replay_events
from shared.events import SUPERVISOR_GROUP, SUPERVISOR_TOOL_CALL


def test_events_are_returned_in_emission_order_per_thread(tmp_path):
    log = EventLog(str(tmp_path / "events.db"))
    log.append("t1", {"id": "a", "seq": 0})
    log.append("t2", {"id": "x", "seq": 0})
    log.append("t1", {"id": "a", "seq": 1})

    assert log.events_for_thread("t1") == [{"id": "a", "seq": 0}, {"id": "a", "seq": 1}]
    assert log.events_for_thread("t2") == [{"id": "x", "seq": 0}]
    assert log.events_for_thread("missing") == []


def test_delete_thread(tmp_path):
    log = EventLog(str(tmp_path / "nested" / "events.db"))
    log.append("t1", {"id": "a"})
    log.append("t1", {"id": "b"})

    assert log.delete_thread("t1") == 2
    assert log.events_for_thread("t1") == []


def test_emitter_sink_records_and_replays(tmp_path):
    log = EventLog(str(tmp_path / "events.db"))
    emitter = EventEmitter(sinks=[log.sink_for("thread-1")], use_stream_writer=False)

    group = emitter.open(SUPERVISOR_GROUP, "brief\n", event_id="g1", parent_id=None)
    tool = emitter.open(SUPERVISOR_TOOL_CALL, {"tool_name": "ConductResearch"}, parent_id="g1", secondary_key="c1")
    tool.finish({"tool_name": "ConductResearch", "output": "findings"})
    group.progress("Round 1/6\n")
    group.finish()

    events = log.events_for_thread("thread-1")
    view = replay_events(events)

    assert len(events) == 5
    assert [node.id for _, node in view.tree.walk()] == ["g1", tool.event_id]
    assert view.get(tool.event_id).data["output"] == "findings"


def test_sink_outside_run_uses_default_thread(tmp_path):
    log = EventLog(str(tmp_path / "events.db"))
    log.sink(default_thread_id="offline")({"id": "a"})

    assert log.events_for_thread("offline") == [{"id": "a"}]


def test_sink_failure_is_swallowed(tmp_path):
    log = EventLog(str(tmp_path / "events.db"))
    sink = log.sink_for("t1")

    with patch.object(log, "append", side_effect=OSError("read-only")):
        sink({"id": "a"})

    assert log.events_for_thread("t1") == []
