"""Simulated chain — the in-process, deterministic execution context.

Every call frame is atomic: when a frame raises Revert, all balance
and storage changes made inside it are rolled back before the Revert
propagates. Time and block height only move when told to.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

from eth_utils import keccak, to_checksum_address

from propkit.encoding.abi import ZERO_ADDRESS, normalize_address
from propkit.sim.contract import CallContext, Contract, Revert, require


DEFAULT_TIMESTAMP = 1_700_000_000
DEFAULT_BLOCK = 18_000_000


class SimulatedChain:
    """An EVM-shaped state machine with balances and Python contracts.

    Usage:
        chain = SimulatedChain(chain_id=1)
        addr = chain.deploy(SomeContract(...))
        chain.call(sender, addr, calldata)
        chain.warp(chain.timestamp + 3600)
    """

    def __init__(
        self,
        chain_id: int = 1,
        timestamp: int = DEFAULT_TIMESTAMP,
        block_number: int = DEFAULT_BLOCK,
    ) -> None:
        self.chain_id = chain_id
        self.timestamp = timestamp
        self.block_number = block_number
        self._balances: dict[str, int] = {}
        self._contracts: dict[str, Contract] = {}
        self._deploy_nonce = 0
        self._snapshots: dict[int, dict[str, Any]] = {}
        self._next_snapshot = 0

    # ------------------------------------------------------------------ #
    # Accounts and code                                                   #
    # ------------------------------------------------------------------ #

    def next_address(self) -> str:
        """Address the next ``deploy`` without an explicit address will use."""
        seed = f"propkit:{self.chain_id}:{self._deploy_nonce}".encode("utf-8")
        return to_checksum_address(keccak(seed)[-20:])

    def deploy(self, contract: Contract, address: Optional[str] = None) -> str:
        if address is None:
            address = self.next_address()
            self._deploy_nonce += 1
        address = normalize_address(address)
        if address == ZERO_ADDRESS:
            raise ValueError("Cannot deploy to the zero address")
        if address in self._contracts:
            raise ValueError(f"Code already deployed at {address}")
        contract.address = address
        self._contracts[address] = contract
        return address

    def has_code(self, address: str) -> bool:
        return normalize_address(address) in self._contracts

    def contract_at(self, address: str) -> Contract:
        address = normalize_address(address)
        contract = self._contracts.get(address)
        if contract is None:
            raise KeyError(f"No contract at {address}")
        return contract

    def balance_of(self, address: str) -> int:
        return self._balances.get(normalize_address(address), 0)

    def fund(self, address: str, amount: int) -> None:
        """Credit native currency out of thin air (test setup only)."""
        if amount < 0:
            raise ValueError("Cannot fund a negative amount")
        address = normalize_address(address)
        self._balances[address] = self._balances.get(address, 0) + amount

    # ------------------------------------------------------------------ #
    # Time                                                                #
    # ------------------------------------------------------------------ #

    def warp(self, timestamp: int) -> None:
        if timestamp < self.timestamp:
            raise ValueError(f"Cannot warp backwards: {timestamp} < {self.timestamp}")
        self.timestamp = timestamp

    def skip(self, seconds: int) -> None:
        self.warp(self.timestamp + seconds)

    def roll(self, block_number: int) -> None:
        if block_number < self.block_number:
            raise ValueError(
                f"Cannot roll backwards: {block_number} < {self.block_number}"
            )
        self.block_number = block_number

    def mine(self, blocks: int = 1, seconds_per_block: int = 12) -> None:
        self.roll(self.block_number + blocks)
        self.skip(blocks * seconds_per_block)

    # ------------------------------------------------------------------ #
    # Calls                                                               #
    # ------------------------------------------------------------------ #

    def call(self, sender: str, target: str, data: bytes = b"", value: int = 0) -> bytes:
        """Top-level state-changing call. Raises Revert on failure."""
        return self.execute(normalize_address(sender), normalize_address(target), bytes(data), value)

    def static_call(self, sender: str, target: str, data: bytes) -> bytes:
        """Read-only call. Any attempted state change reverts."""
        return self.execute(
            normalize_address(sender), normalize_address(target), bytes(data), 0, static=True
        )

    def delegate_call(
        self,
        sender: str,
        implementation: str,
        data: bytes,
        value: int = 0,
    ) -> bytes:
        """Run ``implementation``'s code in the context of ``sender``.

        Sub-calls made by the code originate from ``sender``. ``value`` is
        reported as msg.value but not transferred. Reverts when
        ``implementation`` has no code.
        """
        sender = normalize_address(sender)
        implementation = normalize_address(implementation)
        require(implementation in self._contracts, f"no code at {implementation}")
        code = self._contracts[implementation]
        saved = self._capture()
        try:
            ctx = CallContext(chain=self, sender=sender, value=value, this=sender)
            return code.dispatch(ctx, bytes(data))
        except Revert:
            self._restore(saved)
            raise

    def execute(
        self,
        sender: str,
        target: str,
        data: bytes,
        value: int = 0,
        static: bool = False,
    ) -> bytes:
        """Execute one call frame atomically."""
        saved = self._capture()
        try:
            if value:
                require(not static, "value transfer in static call")
                require(value > 0, "negative value")
                balance = self._balances.get(sender, 0)
                require(balance >= value, f"insufficient balance in {sender}")
                self._balances[sender] = balance - value
                self._balances[target] = self._balances.get(target, 0) + value

            contract = self._contracts.get(target)
            if contract is None:
                return b""
            ctx = CallContext(chain=self, sender=sender, value=value, this=target, static=static)
            return contract.dispatch(ctx, data)
        except Revert:
            self._restore(saved)
            raise

    # ------------------------------------------------------------------ #
    # Snapshots                                                           #
    # ------------------------------------------------------------------ #

    def snapshot(self) -> int:
        snapshot_id = self._next_snapshot
        self._next_snapshot += 1
        self._snapshots[snapshot_id] = self._capture(with_time=True)
        return snapshot_id

    def revert_to(self, snapshot_id: int) -> None:
        """Restore the state captured by ``snapshot``. Consumes the snapshot."""
        saved = self._snapshots.pop(snapshot_id, None)
        if saved is None:
            raise KeyError(f"Unknown snapshot: {snapshot_id}")
        self._restore(saved)

    def _capture(self, with_time: bool = False) -> dict[str, Any]:
        saved: dict[str, Any] = {
            "balances": dict(self._balances),
            "contracts": dict(self._contracts),
            "storage": {
                address: copy.deepcopy(contract.__dict__)
                for address, contract in self._contracts.items()
            },
            "deploy_nonce": self._deploy_nonce,
        }
        if with_time:
            saved["timestamp"] = self.timestamp
            saved["block_number"] = self.block_number
        return saved

    def _restore(self, saved: dict[str, Any]) -> None:
        self._balances = saved["balances"]
        self._contracts = saved["contracts"]
        for address, state in saved["storage"].items():
            contract = self._contracts[address]
            contract.__dict__.clear()
            contract.__dict__.update(state)
        self._deploy_nonce = saved["deploy_nonce"]
        if "timestamp" in saved:
            self.timestamp = saved["timestamp"]
            self.block_number = saved["block_number"]
