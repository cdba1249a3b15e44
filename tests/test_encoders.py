"""Tests for backend encoders — proves payloads decode back to the recorded actions."""

import pytest
from eth_utils import function_signature_to_4byte_selector, keccak

from propkit.encoding.abi import ZERO_BYTES32, decode_args, encode_call, make_address, parse_signature
from propkit.encoding.batch import flatten
from propkit.encoding.governor import PROPOSE, decode_propose, propose_calldata
from propkit.encoding.multisig import AGGREGATE3_VALUE, decode_aggregate, encode_aggregate, total_value
from propkit.encoding.relay import (
    as_action,
    decode_publish_message,
    decode_remote_payload,
    encode_relay,
    encode_remote_payload,
)
from propkit.encoding.timelock import (
    decode_execute_batch,
    decode_schedule_batch,
    encode_timelock_pair,
    hash_operation_batch,
    timelock_salt,
)
from propkit.errors import EnvelopeSealed
from propkit.models.action import Action
from propkit.models.backend import CrossChainEnvelope, FINALIZED, INSTANT_FINALITY


VAULT = make_address("vault")
TOKEN = make_address("token")
REMOTE = make_address("remote-timelock")
RELAY = make_address("relay")


def _make_actions() -> list[Action]:
    return [
        Action(VAULT, 0, encode_call("setFeeBps(uint256)", 5), "set fee"),
        Action(TOKEN, 3, encode_call("approve(address,uint256)", VAULT, 2**255), "approve"),
        Action(make_address("treasury"), 10**18, b"", "fund treasury"),
    ]


def _word(n: int) -> str:
    return n.to_bytes(32, "big").hex()


class TestAbiHelpers:
    def test_parse_signature_nested_tuple(self) -> None:
        name, types = parse_signature(AGGREGATE3_VALUE)
        assert name == "aggregate3Value"
        assert types == ["(address,bool,uint256,bytes)[]"]

    def test_make_address_is_deterministic(self) -> None:
        assert make_address("x") == make_address("x")
        assert make_address("x") != make_address("y")

    def test_encode_call_argument_count_checked(self) -> None:
        with pytest.raises(ValueError):
            encode_call("setFeeBps(uint256)")

    def test_flatten_preserves_order(self) -> None:
        targets, values, payloads = flatten(_make_actions())
        assert targets == [VAULT, TOKEN, make_address("treasury")]
        assert values == [0, 3, 10**18]
        assert payloads[2] == b""


class TestEmptyBatch:
    def test_every_encoder_accepts_empty_batch(self) -> None:
        assert decode_aggregate(encode_aggregate([])) == ([], [], [])
        pair = encode_timelock_pair([], delay=1, description="noop")
        assert decode_execute_batch(pair.execute)["targets"] == []
        assert decode_propose(propose_calldata([], "noop"))["targets"] == []
        assert decode_remote_payload(encode_remote_payload([], REMOTE)) == (REMOTE, [], [], [])


class TestMultisigEncoder:
    def test_fixed_vector_single_call(self) -> None:
        target = "0x" + "0" * 37 + "aaa"
        payload = bytes.fromhex("0ffb1d8b") + (1).to_bytes(32, "big")
        action = Action(target, 0, payload, "poke")
        expected = (
            function_signature_to_4byte_selector(AGGREGATE3_VALUE).hex()
            + _word(0x20)           # offset of the calls array
            + _word(1)              # array length
            + _word(0x20)           # offset of element 0
            + "00" * 30 + "0aaa"    # target
            + _word(0)              # allowFailure = false
            + _word(0)              # value
            + _word(0x80)           # offset of callData within the tuple
            + _word(36)             # callData length
            + "0ffb1d8b" + _word(1) + "00" * 28
        )
        assert encode_aggregate([action]).hex() == expected

    def test_round_trip(self) -> None:
        actions = _make_actions()
        assert decode_aggregate(encode_aggregate(actions)) == flatten(actions)

    def test_failures_never_allowed(self) -> None:
        data = encode_aggregate(_make_actions())
        (calls,) = decode_args(["(address,bool,uint256,bytes)[]"], data[4:])
        assert all(allow_failure is False for _, allow_failure, _, _ in calls)

    def test_deterministic(self) -> None:
        assert encode_aggregate(_make_actions()) == encode_aggregate(_make_actions())

    def test_total_value(self) -> None:
        assert total_value(_make_actions()) == 10**18 + 3


class TestTimelockEncoder:
    def test_schedule_and_execute_share_salt_and_predecessor(self) -> None:
        predecessor = keccak(text="earlier batch")
        pair = encode_timelock_pair(_make_actions(), delay=86400, description="batch", predecessor=predecessor)
        schedule = decode_schedule_batch(pair.schedule)
        execute = decode_execute_batch(pair.execute)
        assert schedule["salt"] == execute["salt"] == timelock_salt("batch")
        assert schedule["predecessor"] == execute["predecessor"] == predecessor
        assert schedule["delay"] == 86400

    def test_round_trip(self) -> None:
        actions = _make_actions()
        pair = encode_timelock_pair(actions, delay=60, description="d")
        schedule = decode_schedule_batch(pair.schedule)
        assert (schedule["targets"], schedule["values"], schedule["payloads"]) == flatten(actions)

    def test_salt_is_hash_of_encoded_description(self) -> None:
        from eth_abi import encode
        assert timelock_salt("hello") == keccak(encode(["string"], ["hello"]))

    def test_explicit_salt_wins(self) -> None:
        salt = b"\x07" * 32
        pair = encode_timelock_pair(_make_actions(), delay=1, description="ignored", salt=salt)
        assert pair.salt == salt
        assert decode_execute_batch(pair.execute)["salt"] == salt

    def test_default_predecessor_is_zero(self) -> None:
        pair = encode_timelock_pair(_make_actions(), delay=1, description="d")
        assert pair.predecessor == ZERO_BYTES32

    def test_operation_id_matches_hash(self) -> None:
        actions = _make_actions()
        pair = encode_timelock_pair(actions, delay=1, description="d")
        assert pair.operation_id == hash_operation_batch(actions, ZERO_BYTES32, timelock_salt("d"))

    def test_different_description_different_operation(self) -> None:
        a = encode_timelock_pair(_make_actions(), delay=1, description="a")
        b = encode_timelock_pair(_make_actions(), delay=1, description="b")
        assert a.operation_id != b.operation_id

    def test_bad_salt_rejected(self) -> None:
        with pytest.raises(ValueError):
            encode_timelock_pair(_make_actions(), delay=1, salt=b"short")


class TestGovernorEncoder:
    def test_signatures_are_empty(self) -> None:
        decoded = decode_propose(propose_calldata(_make_actions(), "desc"))
        assert decoded["signatures"] == ["", "", ""]

    def test_round_trip(self) -> None:
        actions = _make_actions()
        decoded = decode_propose(propose_calldata(actions, "# Title\n\nBody"))
        assert (decoded["targets"], decoded["values"], decoded["payloads"]) == flatten(actions)
        assert decoded["description"] == "# Title\n\nBody"

    def test_selector(self) -> None:
        assert propose_calldata(_make_actions(), "d")[:4] == function_signature_to_4byte_selector(PROPOSE)

    def test_selector_mismatch_rejected(self) -> None:
        with pytest.raises(ValueError, match="Selector mismatch"):
            decode_propose(encode_aggregate(_make_actions()))


class TestRelayEncoder:
    def test_inner_payload_round_trip(self) -> None:
        actions = _make_actions()
        timelock, targets, values, payloads = decode_remote_payload(
            encode_remote_payload(actions, REMOTE)
        )
        assert timelock == REMOTE
        assert (targets, values, payloads) == flatten(actions)

    def test_publish_carries_envelope(self) -> None:
        envelope = CrossChainEnvelope(nonce=7, consistency_level=FINALIZED)
        decoded = decode_publish_message(encode_relay(_make_actions(), REMOTE, envelope))
        assert decoded["nonce"] == 7
        assert decoded["consistency_level"] == FINALIZED
        assert decoded["payload"] == encode_remote_payload(_make_actions(), REMOTE)

    def test_nonce_change_touches_only_nonce(self) -> None:
        first = decode_publish_message(encode_relay(_make_actions(), REMOTE, CrossChainEnvelope(nonce=1)))
        second = decode_publish_message(encode_relay(_make_actions(), REMOTE, CrossChainEnvelope(nonce=2)))
        assert first["payload"] == second["payload"]
        assert first["consistency_level"] == second["consistency_level"]
        assert first["nonce"] != second["nonce"]

    def test_consistency_change_touches_only_consistency(self) -> None:
        fast = decode_publish_message(encode_relay(_make_actions(), REMOTE, CrossChainEnvelope()))
        slow = decode_publish_message(
            encode_relay(_make_actions(), REMOTE, CrossChainEnvelope(consistency_level=FINALIZED))
        )
        assert fast["payload"] == slow["payload"]
        assert fast["nonce"] == slow["nonce"]
        assert fast["consistency_level"] == INSTANT_FINALITY
        assert slow["consistency_level"] == FINALIZED

    def test_encoding_does_not_advance_nonce(self) -> None:
        envelope = CrossChainEnvelope(nonce=3)
        first = encode_relay(_make_actions(), REMOTE, envelope)
        second = encode_relay(_make_actions(), REMOTE, envelope)
        assert first == second
        assert envelope.nonce == 3

    def test_as_action_wraps_publication(self) -> None:
        data = encode_relay(_make_actions(), REMOTE, CrossChainEnvelope())
        action = as_action(RELAY, data, "publish")
        assert action.target == RELAY
        assert action.payload == data
        assert action.value == 0


class TestCrossChainEnvelope:
    def test_setters_before_seal(self) -> None:
        envelope = CrossChainEnvelope()
        envelope.set_nonce(9)
        envelope.set_consistency_level(FINALIZED)
        assert (envelope.nonce, envelope.consistency_level) == (9, FINALIZED)

    def test_sealed_envelope_rejects_changes(self) -> None:
        envelope = CrossChainEnvelope()
        envelope.seal()
        with pytest.raises(EnvelopeSealed):
            envelope.set_nonce(1)
        with pytest.raises(EnvelopeSealed):
            envelope.set_consistency_level(FINALIZED)

    def test_ranges_checked(self) -> None:
        with pytest.raises(ValueError):
            CrossChainEnvelope(nonce=2**32)
        with pytest.raises(ValueError):
            CrossChainEnvelope(consistency_level=2**16)
        with pytest.raises(ValueError):
            CrossChainEnvelope(nonce=-1)

    def test_consistency_level_is_sixteen_bits(self) -> None:
        envelope = CrossChainEnvelope(consistency_level=1000)
        envelope.set_consistency_level(2**16 - 1)
        decoded = decode_publish_message(encode_relay(_make_actions(), REMOTE, envelope))
        assert decoded["consistency_level"] == 2**16 - 1
