"""Tests for the stream reconstructor state machine and execution tree."""

import pytest

from researchViewer.stream import ROOT_ID, StreamReconstructor
from shared.events import EventStatus


def env(event_id, status="running", data=None, *, rule="replace", event_type="/supervisor/tool_call",
        parent=None, seq=None, key=None):
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
def reconstructor():
    return StreamReconstructor()


class TestMerging:
    def test_concat_in_arrival_order(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "Hel"))
        reconstructor.ingest(env("a", "running", "lo", rule="concat"))
        reconstructor.ingest(env("a", "running", "!", rule="concat"))

        assert reconstructor.get("a").data == "Hello!"

    def test_replace_overwrites(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "draft"))
        reconstructor.ingest(env("a", "running", {"status": "running"}))

        assert reconstructor.get("a").data == {"status": "running"}

    def test_concat_on_non_string_falls_back_to_replace(self, reconstructor):
        reconstructor.ingest(env("a", "pending", {"k": 1}))
        reconstructor.ingest(env("a", "running", "text", rule="concat"))

        assert reconstructor.get("a").data == "text"

    def test_status_regression_is_ignored(self, reconstructor):
        reconstructor.ingest(env("a", "running", "progress"))
        updates = reconstructor.ingest(env("a", "pending", "initial"))

        assert updates == []
        assert reconstructor.get("a").status is EventStatus.RUNNING
        assert reconstructor.get("a").data == "progress"


class TestTerminalAbsorption:
    def test_nothing_changes_after_terminal(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "x"))
        reconstructor.ingest(env("a", "finished", "final"))

        assert reconstructor.ingest(env("a", "running", "late")) == []
        assert reconstructor.ingest(env("a", "error", "late")) == []
        assert reconstructor.get("a").status is EventStatus.FINISHED
        assert reconstructor.get("a").data == "final"

    def test_idempotent_replay(self, reconstructor):
        stream = [
            env("g", "pending", "brief\n", event_type="/supervisor/group", seq=0),
            env("t1", "pending", {"tool_name": "ConductResearch"}, parent="g", seq=0, key="c1"),
            env("t1", "finished", {"output": "ok"}, parent="g", seq=1, key="c1"),
            env("g", "running", "round 1\n", rule="concat", event_type="/supervisor/group", seq=1),
            env("g", "finished", "done\n", rule="concat", event_type="/supervisor/group", seq=2),
        ]
        reconstructor.replay(stream)
        events_before = reconstructor.events
        tree_before = [(depth, node.id) for depth, node in reconstructor.tree.walk()]

        assert reconstructor.replay(stream) == []
        assert reconstructor.events == events_before
        assert [(depth, node.id) for depth, node in reconstructor.tree.walk()] == tree_before
        assert reconstructor.get("g").data == "brief\nround 1\ndone\n"


class TestOrdering:
    def test_out_of_order_seq_is_buffered(self, reconstructor):
        assert reconstructor.ingest(env("a", "running", "lo", rule="concat", seq=1)) == []
        assert reconstructor.buffered == 1

        updates = reconstructor.ingest(env("a", "pending", "Hel", seq=0))

        assert len(updates) == 2
        assert reconstructor.get("a").data == "Hello"
        assert reconstructor.buffered == 0

    def test_duplicate_seq_is_ignored(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "Hel", seq=0))
        reconstructor.ingest(env("a", "running", "lo", rule="concat", seq=1))

        assert reconstructor.ingest(env("a", "running", "lo", rule="concat", seq=1)) == []
        assert reconstructor.get("a").data == "Hello"

    def test_terminal_releases_lower_seqs_first(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "Hel", seq=0))
        reconstructor.ingest(env("a", "running", "!", rule="concat", seq=3))
        reconstructor.ingest(env("a", "running", "lo", rule="concat", seq=2))

        reconstructor.ingest(env("a", "finished", " done", rule="concat", seq=4))

        assert reconstructor.get("a").data == "Hello! done"
        assert reconstructor.get("a").status is EventStatus.FINISHED

    def test_terminal_drops_higher_seqs(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "x", seq=0))
        reconstructor.ingest(env("a", "running", "late", seq=5))
        reconstructor.ingest(env("a", "finished", "final", seq=2))

        assert reconstructor.get("a").data == "final"
        assert reconstructor.buffered == 0

    def test_drain_releases_gaps(self, reconstructor):
        reconstructor.ingest(env("a", "running", "lo", rule="concat", seq=2))
        assert reconstructor.get("a") is None

        reconstructor.drain()

        assert reconstructor.get("a").data == "lo"

    def test_envelopes_without_seq_apply_in_arrival_order(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "a"))
        reconstructor.ingest(env("a", "running", "b", rule="concat"))

        assert reconstructor.get("a").data == "ab"

    def test_repeated_unsequenced_replace_is_idempotent(self, reconstructor):
        reconstructor.ingest(env("a", "pending", "x"))
        reconstructor.ingest(env("a", "running", {"step": 2}))
        reconstructor.ingest(env("a", "running", {"step": 2}))

        assert reconstructor.get("a").data == {"step": 2}

    def test_repeated_unsequenced_concat_is_appended_again(self, reconstructor):
        # without seq there is nothing to tell a redelivery from a new chunk
        reconstructor.ingest(env("a", "pending", "Hel"))
        reconstructor.ingest(env("a", "running", "lo", rule="concat"))
        reconstructor.ingest(env("a", "running", "lo", rule="concat"))

        assert reconstructor.get("a").data == "Hellolo"

    def test_sequenced_concat_redelivery_applies_once(self, reconstructor):
        stream = [
            env("a", "pending", "Hel", seq=0),
            env("a", "running", "lo", rule="concat", seq=1),
        ]
        for envelope in stream + stream:
            reconstructor.ingest(envelope)

        assert reconstructor.get("a").data == "Hello"


class TestTree:
    def test_children_attach_under_known_parent(self, reconstructor):
        reconstructor.ingest(env("g", "pending", event_type="/supervisor/group"))
        reconstructor.ingest(env("t1", "pending", parent="g"))
        reconstructor.ingest(env("r1", "pending", parent="t1", event_type="/researcher/group"))

        assert [(d, n.id) for d, n in reconstructor.tree.walk()] == [(0, "g"), (1, "t1"), (2, "r1")]
        assert reconstructor.get("r1").attached_to == "t1"

    def test_dangling_parent_parks_at_root_without_retroactive_move(self, reconstructor):
        reconstructor.ingest(env("child", "pending", parent="late-parent"))
        assert reconstructor.tree.get("child").parent == ROOT_ID
        assert reconstructor.tree.is_parked("child")

        reconstructor.ingest(env("late-parent", "pending", event_type="/supervisor/group"))
        reconstructor.ingest(env("child", "running", "more"))

        assert reconstructor.tree.get("child").parent == ROOT_ID
        assert [n.id for n in reconstructor.tree.children_of(ROOT_ID)] == ["child", "late-parent"]
        assert reconstructor.tree.children_of("late-parent") == []

    def test_unknown_classification_is_kept_but_not_placed(self, reconstructor):
        updates = reconstructor.ingest(env("x", "pending", "?", event_type="/robot/dance"))

        assert len(updates) == 1
        assert reconstructor.get("x") is not None
        assert "x" not in reconstructor.tree
        assert len(reconstructor.tree) == 0

    def test_legacy_event_type_is_placed(self, reconstructor):
        reconstructor.ingest(env("q", "pending", "Which region?", event_type="/ai/clarify"))
        assert "q" in reconstructor.tree

    def test_malformed_envelope_is_dropped(self, reconstructor):
        assert reconstructor.ingest({"eventType": "/supervisor/group"}) == []
        assert reconstructor.ingest({"id": "a", "eventType": "/supervisor/group", "status": "??"}) == []
        assert reconstructor.events == []


class TestSecondaryKey:
    def test_new_id_with_same_key_evicts_live_node(self, reconstructor):
        reconstructor.ingest(env("g", "pending", event_type="/supervisor/group"))
        reconstructor.ingest(env("t-old", "running", "attempt 1", parent="g", key="call_1"))
        reconstructor.ingest(env("r1", "pending", parent="t-old", event_type="/researcher/group"))

        updates = reconstructor.ingest(env("t-new", "pending", "attempt 2", parent="g", key="call_1"))

        assert updates[0].replaces == "t-old"
        assert reconstructor.get("t-old") is None
        assert reconstructor.is_evicted("t-old")
        assert [e.id for e in reconstructor.events] == ["g", "r1", "t-new"]
        assert [n.id for n in reconstructor.tree.children_of("t-new")] == ["r1"]
        assert [n.id for n in reconstructor.tree.children_of("g")] == ["t-new"]

    def test_late_envelopes_for_evicted_id_are_ignored(self, reconstructor):
        reconstructor.ingest(env("t-old", "running", "attempt 1", key="call_1"))
        reconstructor.ingest(env("t-new", "pending", "attempt 2", key="call_1"))

        assert reconstructor.ingest(env("t-old", "finished", "stale", key="call_1")) == []
        assert reconstructor.get("t-old") is None

    def test_children_of_evicted_parent_follow_replacement(self, reconstructor):
        reconstructor.ingest(env("t-old", "running", key="call_1"))
        reconstructor.ingest(env("t-new", "pending", key="call_1"))
        reconstructor.ingest(env("r2", "pending", parent="t-old", event_type="/researcher/group"))

        assert reconstructor.tree.get("r2").parent == "t-new"

    def test_terminal_node_is_not_evicted(self, reconstructor):
        reconstructor.ingest(env("t1", "finished", "done", key="call_1"))
        updates = reconstructor.ingest(env("t2", "pending", "again", key="call_1"))

        assert updates[0].replaces is None
        assert reconstructor.get("t1") is not None
        assert reconstructor.get("t2") is not None
