"""Tests for phase contexts — proves build calls are executed and recorded, reads are not."""

import pytest

from propkit.addresses import Addresses
from propkit.encoding.abi import ZERO_ADDRESS, encode_call, make_address
from propkit.errors import InvalidTarget, NotRecording, UnknownAddress, ValidationFailed
from propkit.examples.store import ParameterStore
from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.recording.ledger import ActionLedger
from propkit.sim.chain import SimulatedChain
from propkit.sim.contract import Revert


OWNER = make_address("owner")


@pytest.fixture
def chains() -> dict:
    return {1: SimulatedChain(chain_id=1)}


@pytest.fixture
def addresses() -> Addresses:
    return Addresses(chain_id=1)


def _make_store(chains: dict, addresses: Addresses) -> str:
    ctx = DeployContext(chains, addresses, 1)
    return ctx.deploy("STORE", lambda: ParameterStore(OWNER))


def _make_build(chains: dict, addresses: Addresses, caller: str = OWNER) -> tuple:
    ledger = ActionLedger()
    ledger.begin_recording(caller)
    return BuildContext(chains, addresses, 1, ledger), ledger


class TestBuildContext:
    def test_call_executes_and_records(self, chains, addresses) -> None:
        store = _make_store(chains, addresses)
        ctx, ledger = _make_build(chains, addresses)
        ctx.call("STORE", "setFeeBps(uint256)", 42, description="set fee")
        actions = ledger.end_recording()

        assert len(actions) == 1
        assert actions[0].target == store
        assert actions[0].payload == encode_call("setFeeBps(uint256)", 42)
        assert actions[0].description == "set fee"
        assert chains[1].contract_at(store).fee_bps == 42

    def test_calls_run_as_build_caller(self, chains, addresses) -> None:
        _make_store(chains, addresses)
        ctx, ledger = _make_build(chains, addresses, caller=make_address("stranger"))
        with pytest.raises(Revert, match="not the owner"):
            ctx.call("STORE", "setFeeBps(uint256)", 1)
        assert len(ledger) == 0

    def test_view_is_not_recorded(self, chains, addresses) -> None:
        _make_store(chains, addresses)
        ctx, ledger = _make_build(chains, addresses)
        (fee,) = ctx.view("STORE", "feeBps()")
        assert fee == 0
        assert ledger.end_recording() == ()

    def test_later_calls_see_earlier_effects(self, chains, addresses) -> None:
        _make_store(chains, addresses)
        ctx, ledger = _make_build(chains, addresses)
        ctx.call("STORE", "setFeeBps(uint256)", 7)
        (fee,) = ctx.view("STORE", "feeBps()")
        ctx.call("STORE", "setFeeBps(uint256)", fee * 2)
        actions = ledger.end_recording()
        assert [a.payload for a in actions] == [
            encode_call("setFeeBps(uint256)", 7),
            encode_call("setFeeBps(uint256)", 14),
        ]

    def test_zero_target_rejected_before_execution(self, chains, addresses) -> None:
        ctx, ledger = _make_build(chains, addresses)
        with pytest.raises(InvalidTarget):
            ctx.call_raw(ZERO_ADDRESS, b"\x01\x02\x03\x04")
        assert len(ledger) == 0

    def test_unknown_name_is_configuration_error(self, chains, addresses) -> None:
        ctx, _ = _make_build(chains, addresses)
        with pytest.raises(UnknownAddress):
            ctx.call("MISSING", "setFeeBps(uint256)", 1)

    def test_value_transfer_recorded(self, chains, addresses) -> None:
        chains[1].fund(OWNER, 100)
        recipient = make_address("recipient")
        ctx, ledger = _make_build(chains, addresses)
        ctx.call_raw(recipient, b"", value=60)
        (action,) = ledger.end_recording()
        assert action.value == 60
        assert action.description == "transfer 60 wei"
        assert chains[1].balance_of(recipient) == 60

    def test_use_after_capture_closed(self, chains, addresses) -> None:
        _make_store(chains, addresses)
        ctx, ledger = _make_build(chains, addresses)
        ledger.end_recording()
        with pytest.raises(NotRecording):
            ctx.call("STORE", "setFeeBps(uint256)", 1)


class TestDeployContext:
    def test_deploy_is_idempotent(self, chains, addresses) -> None:
        ctx = DeployContext(chains, addresses, 1)
        first = ctx.deploy("STORE", lambda: ParameterStore(OWNER))
        second = ctx.deploy("STORE", lambda: ParameterStore(OWNER))
        assert first == second
        assert len(addresses) == 1
        assert [r.name for r in addresses.recorded()] == ["STORE"]

    def test_restores_code_at_registered_address(self, addresses) -> None:
        first_chains = {1: SimulatedChain(chain_id=1)}
        address = DeployContext(first_chains, addresses, 1).deploy(
            "STORE", lambda: ParameterStore(OWNER)
        )
        fresh = {1: SimulatedChain(chain_id=1)}
        assert not fresh[1].has_code(address)
        again = DeployContext(fresh, addresses, 1).deploy("STORE", lambda: ParameterStore(OWNER))
        assert again == address
        assert fresh[1].has_code(address)
        assert len(addresses) == 1

    def test_account_registered_once(self, chains, addresses) -> None:
        ctx = DeployContext(chains, addresses, 1)
        assert ctx.account("ALICE") == ctx.account("ALICE") == make_address("ALICE")
        assert not addresses.is_contract("ALICE")


class TestValidateContext:
    def test_expect_raises_validation_failed(self, chains, addresses) -> None:
        ctx = ValidateContext(chains, addresses, 1, ())
        ctx.expect(True, "fine")
        with pytest.raises(ValidationFailed, match="fee unchanged"):
            ctx.expect(False, "fee unchanged", "fee is 0")
