"""Tests for the response ledger."""

import logging

import pytest

from researchAgent.graph.ledger import ResponseLedger
from researchAgent.graph.tasks import OutcomeKind, Task, TaskKind, TaskOutcome
from researchAgent.utils.error_handler import LedgerError, ProtocolViolationError


def _task(task_id, kind=TaskKind.DELEGATE, name="ConductResearch"):
    return Task(id=task_id, kind=kind, name=name)


class TestResponseLedger:
    def test_record_is_write_once_in_strict_mode(self):
        ledger = ResponseLedger(strict=True)
        ledger.record("c1", TaskOutcome.success("ok"))

        with pytest.raises(LedgerError):
            ledger.record("c1", TaskOutcome.failure("again"))
        assert ledger.get("c1").content == "ok"

    def test_duplicate_is_logged_and_ignored_in_lenient_mode(self, caplog):
        ledger = ResponseLedger(strict=False)
        assert ledger.record("c1", TaskOutcome.success("first"))

        with caplog.at_level(logging.ERROR):
            assert ledger.record("c1", TaskOutcome.success("second")) is False

        assert ledger.get("c1").content == "first"
        assert len(ledger) == 1
        assert "already recorded" in caplog.text

    def test_ledger_error_is_a_protocol_violation(self):
        assert issubclass(LedgerError, ProtocolViolationError)

    def test_assert_complete(self):
        ledger = ResponseLedger()
        ledger.record("c1", TaskOutcome.success("ok"))

        ledger.assert_complete(["c1"])
        with pytest.raises(ProtocolViolationError, match="c2"):
            ledger.assert_complete(["c1", "c2"])
        assert ledger.missing(["c1", "c2", "c3"]) == ["c2", "c3"]

    def test_counts(self):
        ledger = ResponseLedger()
        ledger.record_all([
            ("c1", TaskOutcome.success("a")),
            ("c2", TaskOutcome.failure("b")),
            ("c3", TaskOutcome.refused()),
            ("c4", TaskOutcome.refused()),
        ])

        assert ledger.count(OutcomeKind.SUCCESS) == 1
        assert ledger.count(OutcomeKind.FAILURE) == 1
        assert ledger.count(OutcomeKind.REFUSED) == 2
        assert "c3" in ledger

    def test_tool_messages_follow_dispatch_order(self):
        ledger = ResponseLedger()
        tasks = [_task("c1"), _task("c2", TaskKind.REFLECT, "think_tool"), _task("c3")]
        # completion order differs from dispatch order
        ledger.record("c3", TaskOutcome.failure("Research failed: boom"))
        ledger.record("c1", TaskOutcome.success("findings"))
        ledger.record("c2", TaskOutcome.success("Reflection recorded: r"))

        messages = ledger.to_tool_messages(tasks)

        assert [m.tool_call_id for m in messages] == ["c1", "c2", "c3"]
        assert [m.name for m in messages] == ["ConductResearch", "think_tool", "ConductResearch"]
        assert messages[0].content == "findings"
        assert messages[0].status == "success"
        assert messages[2].status == "error"

    def test_refusal_is_not_an_error_message(self):
        ledger = ResponseLedger()
        ledger.record("c1", TaskOutcome.refused())

        (message,) = ledger.to_tool_messages([_task("c1")])

        assert message.status == "success"

    def test_tool_messages_require_complete_ledger(self):
        with pytest.raises(ProtocolViolationError):
            ResponseLedger().to_tool_messages([_task("c1")])
