"""Tests for the action ledger — proves capture is ordered, bracketed and validated."""

import pytest

from propkit.encoding.abi import ZERO_ADDRESS, make_address
from propkit.errors import AlreadyRecording, InvalidAction, InvalidTarget, NotRecording
from propkit.models.action import Action
from propkit.recording.ledger import ActionLedger


CALLER = make_address("caller")
TARGET = make_address("target")


def _make_payload(n: int = 1) -> bytes:
    return bytes.fromhex("a9059cbb") + n.to_bytes(32, "big")


class TestAction:
    def test_normalises_target_to_checksum(self) -> None:
        action = Action(TARGET.lower(), 0, _make_payload(), "call")
        assert action.target == TARGET

    def test_zero_target_rejected(self) -> None:
        with pytest.raises(InvalidTarget):
            Action(ZERO_ADDRESS, 0, _make_payload(), "call")

    def test_malformed_target_rejected(self) -> None:
        with pytest.raises(InvalidTarget):
            Action("0x1234", 0, _make_payload(), "call")

    def test_negative_value_rejected(self) -> None:
        with pytest.raises(InvalidAction):
            Action(TARGET, -1, _make_payload(), "call")

    def test_empty_payload_and_zero_value_rejected(self) -> None:
        with pytest.raises(InvalidAction):
            Action(TARGET, 0, b"", "nothing")

    def test_value_only_transfer_allowed(self) -> None:
        action = Action(TARGET, 10**18, b"", "transfer")
        assert action.selector == b""

    def test_empty_description_rejected(self) -> None:
        with pytest.raises(InvalidAction):
            Action(TARGET, 0, _make_payload(), "")

    def test_selector_is_first_four_bytes(self) -> None:
        assert Action(TARGET, 0, _make_payload(), "call").selector == bytes.fromhex("a9059cbb")


class TestActionLedger:
    def test_records_in_call_order(self) -> None:
        ledger = ActionLedger()
        ledger.begin_recording(CALLER)
        for i in range(5):
            ledger.record(TARGET, 0, _make_payload(i), f"call {i}")
        actions = ledger.end_recording()
        assert [a.description for a in actions] == [f"call {i}" for i in range(5)]
        assert [a.payload for a in actions] == [_make_payload(i) for i in range(5)]

    def test_caller_visible_while_recording(self) -> None:
        ledger = ActionLedger()
        assert ledger.caller is None
        ledger.begin_recording(CALLER.lower())
        assert ledger.is_recording
        assert ledger.caller == CALLER
        ledger.end_recording()
        assert ledger.caller is None
        assert not ledger.is_recording

    def test_double_begin_rejected(self) -> None:
        ledger = ActionLedger()
        ledger.begin_recording(CALLER)
        with pytest.raises(AlreadyRecording):
            ledger.begin_recording(CALLER)

    def test_record_outside_capture_rejected(self) -> None:
        with pytest.raises(NotRecording):
            ActionLedger().record(TARGET, 0, _make_payload(), "call")

    def test_end_without_begin_rejected(self) -> None:
        with pytest.raises(NotRecording):
            ActionLedger().end_recording()

    def test_invalid_action_not_recorded(self) -> None:
        ledger = ActionLedger()
        ledger.begin_recording(CALLER)
        ledger.record(TARGET, 0, _make_payload(), "ok")
        with pytest.raises(InvalidTarget):
            ledger.record(ZERO_ADDRESS, 0, _make_payload(), "bad")
        assert len(ledger.end_recording()) == 1

    def test_default_description(self) -> None:
        ledger = ActionLedger()
        ledger.begin_recording(CALLER)
        call = ledger.record(TARGET, 0, _make_payload())
        transfer = ledger.record(TARGET, 5, b"")
        assert call.description == "call 0xa9059cbb"
        assert transfer.description == "transfer 5 wei"

    def test_new_capture_starts_empty(self) -> None:
        ledger = ActionLedger()
        ledger.begin_recording(CALLER)
        ledger.record(TARGET, 0, _make_payload(), "first")
        ledger.end_recording()
        ledger.begin_recording(CALLER)
        assert ledger.end_recording() == ()
