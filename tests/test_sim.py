"""Tests for the simulated chain — proves calls are atomic and contracts see real calldata."""

import pytest

from propkit.encoding.abi import ZERO_ADDRESS, ZERO_BYTES32, decode_args, encode_call, make_address
from propkit.encoding.timelock import operation_id, timelock_salt
from propkit.examples.store import ParameterStore
from propkit.sim.chain import SimulatedChain
from propkit.sim.contract import Revert
from propkit.sim.contracts import CompoundTimelock, Multicall3, TimelockController


OWNER = make_address("owner")
PROPOSER = make_address("proposer")
EXECUTOR = make_address("executor")


def _make_chain() -> tuple[SimulatedChain, str]:
    chain = SimulatedChain(chain_id=1)
    store = chain.deploy(ParameterStore(OWNER))
    return chain, store


def _fee(chain: SimulatedChain, store: str) -> int:
    (fee,) = decode_args(("uint256",), chain.static_call(OWNER, store, encode_call("feeBps()")))
    return fee


class TestSimulatedChain:
    def test_call_changes_state(self) -> None:
        chain, store = _make_chain()
        chain.call(OWNER, store, encode_call("setFeeBps(uint256)", 9))
        assert _fee(chain, store) == 9

    def test_revert_restores_state_and_balances(self) -> None:
        chain, store = _make_chain()
        chain.fund(OWNER, 100)
        with pytest.raises(Revert, match="fee too high"):
            chain.call(OWNER, store, encode_call("setFeeBps(uint256)", 10_000), value=0)
        assert _fee(chain, store) == 0
        assert chain.balance_of(OWNER) == 100

    def test_static_call_rejects_writes(self) -> None:
        chain, store = _make_chain()
        with pytest.raises(Revert, match="static"):
            chain.static_call(OWNER, store, encode_call("setFeeBps(uint256)", 1))

    def test_unknown_selector_reverts(self) -> None:
        chain, store = _make_chain()
        with pytest.raises(Revert, match="unknown selector"):
            chain.call(OWNER, store, encode_call("doesNotExist()"))

    def test_malformed_calldata_reverts(self) -> None:
        chain, store = _make_chain()
        with pytest.raises(Revert, match="malformed"):
            chain.call(OWNER, store, encode_call("setFeeBps(uint256)", 1)[:10])

    def test_value_to_non_payable_reverts(self) -> None:
        chain, store = _make_chain()
        chain.fund(OWNER, 10)
        with pytest.raises(Revert, match="non-payable"):
            chain.call(OWNER, store, encode_call("setFeeBps(uint256)", 1), value=1)

    def test_insufficient_balance_reverts(self) -> None:
        chain, _ = _make_chain()
        with pytest.raises(Revert, match="insufficient balance"):
            chain.call(OWNER, make_address("someone"), b"", value=1)

    def test_snapshot_and_revert(self) -> None:
        chain, store = _make_chain()
        snapshot = chain.snapshot()
        start = chain.timestamp
        chain.call(OWNER, store, encode_call("setFeeBps(uint256)", 3))
        chain.skip(1000)
        chain.revert_to(snapshot)
        assert _fee(chain, store) == 0
        assert chain.timestamp == start

    def test_snapshot_consumed(self) -> None:
        chain, _ = _make_chain()
        snapshot = chain.snapshot()
        chain.revert_to(snapshot)
        with pytest.raises(KeyError):
            chain.revert_to(snapshot)

    def test_warp_backwards_rejected(self) -> None:
        chain, _ = _make_chain()
        with pytest.raises(ValueError):
            chain.warp(chain.timestamp - 1)

    def test_mine_advances_blocks_and_time(self) -> None:
        chain, _ = _make_chain()
        block, timestamp = chain.block_number, chain.timestamp
        chain.mine(10)
        assert chain.block_number == block + 10
        assert chain.timestamp == timestamp + 120

    def test_deploy_addresses_deterministic(self) -> None:
        assert SimulatedChain(chain_id=5).next_address() == SimulatedChain(chain_id=5).next_address()
        assert SimulatedChain(chain_id=5).next_address() != SimulatedChain(chain_id=6).next_address()

    def test_delegate_call_runs_as_sender(self) -> None:
        chain, store = _make_chain()
        multicall = chain.deploy(Multicall3())
        data = encode_call(
            "aggregate3Value((address,bool,uint256,bytes)[])",
            [(store, False, 0, encode_call("setFeeBps(uint256)", 4))],
        )
        chain.delegate_call(OWNER, multicall, data)
        assert _fee(chain, store) == 4

    def test_delegate_call_without_code_reverts(self) -> None:
        chain, _ = _make_chain()
        with pytest.raises(Revert, match="no code"):
            chain.delegate_call(OWNER, make_address("empty"), encode_call("feeBps()"))


class TestTimelockController:
    def _make_timelock(self) -> tuple[SimulatedChain, str, str]:
        chain, store = _make_chain()
        timelock = chain.deploy(TimelockController(3600, [PROPOSER], [EXECUTOR]))
        chain.call(OWNER, store, encode_call("transferOwnership(address)", timelock))
        return chain, timelock, store

    def _batch(self, store: str) -> tuple:
        return ([store], [0], [encode_call("setFeeBps(uint256)", 8)], ZERO_BYTES32, timelock_salt("x"))

    def test_hash_matches_encoder(self) -> None:
        chain, timelock, store = self._make_timelock()
        batch = self._batch(store)
        output = chain.static_call(
            OWNER,
            timelock,
            encode_call("hashOperationBatch(address[],uint256[],bytes[],bytes32,bytes32)", *batch),
        )
        assert decode_args(("bytes32",), output)[0] == operation_id(*batch)

    def test_schedule_wait_execute(self) -> None:
        chain, timelock, store = self._make_timelock()
        batch = self._batch(store)
        chain.call(PROPOSER, timelock, encode_call(
            "scheduleBatch(address[],uint256[],bytes[],bytes32,bytes32,uint256)", *batch, 3600
        ))
        execute = encode_call("executeBatch(address[],uint256[],bytes[],bytes32,bytes32)", *batch)
        with pytest.raises(Revert, match="not ready"):
            chain.call(EXECUTOR, timelock, execute)
        chain.skip(3600)
        chain.call(EXECUTOR, timelock, execute)
        assert _fee(chain, store) == 8

    def test_only_proposer_schedules(self) -> None:
        chain, timelock, store = self._make_timelock()
        with pytest.raises(Revert, match="missing role"):
            chain.call(EXECUTOR, timelock, encode_call(
                "scheduleBatch(address[],uint256[],bytes[],bytes32,bytes32,uint256)",
                *self._batch(store),
                3600,
            ))

    def test_delay_below_minimum_rejected(self) -> None:
        chain, timelock, store = self._make_timelock()
        with pytest.raises(Revert, match="insufficient delay"):
            chain.call(PROPOSER, timelock, encode_call(
                "scheduleBatch(address[],uint256[],bytes[],bytes32,bytes32,uint256)",
                *self._batch(store),
                60,
            ))

    def test_open_executor_role(self) -> None:
        chain, store = _make_chain()
        timelock = chain.deploy(TimelockController(0, [PROPOSER], [ZERO_ADDRESS]))
        chain.call(OWNER, store, encode_call("transferOwnership(address)", timelock))
        batch = ([store], [0], [encode_call("setFeeBps(uint256)", 2)], ZERO_BYTES32, ZERO_BYTES32)
        chain.call(PROPOSER, timelock, encode_call(
            "scheduleBatch(address[],uint256[],bytes[],bytes32,bytes32,uint256)", *batch, 0
        ))
        chain.call(make_address("anyone"), timelock, encode_call(
            "executeBatch(address[],uint256[],bytes[],bytes32,bytes32)", *batch
        ))
        assert _fee(chain, store) == 2


class TestCompoundTimelock:
    def test_delay_bounds(self) -> None:
        with pytest.raises(ValueError):
            CompoundTimelock(admin=OWNER, delay=60)
