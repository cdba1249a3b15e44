"""TimelockController — OpenZeppelin batch timelock with role checks.

Operation states derive from a single timestamp per operation id:
0 = unset, 1 = done, otherwise the time it becomes ready.
"""

from __future__ import annotations

from typing import Iterable

from eth_utils import keccak

from propkit.encoding.abi import ZERO_ADDRESS, ZERO_BYTES32, normalize_address
from propkit.encoding.timelock import EXECUTE_BATCH, SCHEDULE_BATCH, operation_id
from propkit.sim.contract import CallContext, Contract, Revert, external, require


PROPOSER_ROLE = keccak(text="PROPOSER_ROLE")
EXECUTOR_ROLE = keccak(text="EXECUTOR_ROLE")
CANCELLER_ROLE = keccak(text="CANCELLER_ROLE")

_DONE_TIMESTAMP = 1


class TimelockController(Contract):
    """Executes batches after a minimum delay.

    Granting EXECUTOR_ROLE to the zero address opens execution to anyone.
    Proposers are also cancellers.
    """

    accepts_value = True

    def __init__(
        self,
        min_delay: int,
        proposers: Iterable[str],
        executors: Iterable[str],
    ) -> None:
        self.min_delay = min_delay
        proposers = [normalize_address(p) for p in proposers]
        self.roles: dict[bytes, set[str]] = {
            PROPOSER_ROLE: set(proposers),
            CANCELLER_ROLE: set(proposers),
            EXECUTOR_ROLE: {normalize_address(e) for e in executors},
        }
        self.timestamps: dict[bytes, int] = {}

    # ------------------------------------------------------------------ #
    # Views                                                               #
    # ------------------------------------------------------------------ #

    @external("getMinDelay()", returns=("uint256",), view=True)
    def get_min_delay(self, ctx: CallContext) -> int:
        return self.min_delay

    @external("hasRole(bytes32,address)", returns=("bool",), view=True)
    def has_role(self, ctx: CallContext, role: bytes, account: str) -> bool:
        return account in self.roles.get(role, set())

    @external("getTimestamp(bytes32)", returns=("uint256",), view=True)
    def get_timestamp(self, ctx: CallContext, op_id: bytes) -> int:
        return self.timestamps.get(op_id, 0)

    @external("isOperation(bytes32)", returns=("bool",), view=True)
    def is_operation(self, ctx: CallContext, op_id: bytes) -> bool:
        return self.timestamps.get(op_id, 0) > 0

    @external("isOperationPending(bytes32)", returns=("bool",), view=True)
    def is_operation_pending(self, ctx: CallContext, op_id: bytes) -> bool:
        return self.timestamps.get(op_id, 0) > _DONE_TIMESTAMP

    @external("isOperationReady(bytes32)", returns=("bool",), view=True)
    def is_operation_ready(self, ctx: CallContext, op_id: bytes) -> bool:
        timestamp = self.timestamps.get(op_id, 0)
        return _DONE_TIMESTAMP < timestamp <= ctx.chain.timestamp

    @external("isOperationDone(bytes32)", returns=("bool",), view=True)
    def is_operation_done(self, ctx: CallContext, op_id: bytes) -> bool:
        return self.timestamps.get(op_id, 0) == _DONE_TIMESTAMP

    @external(
        "hashOperationBatch(address[],uint256[],bytes[],bytes32,bytes32)",
        returns=("bytes32",),
        view=True,
    )
    def hash_operation_batch(
        self,
        ctx: CallContext,
        targets: tuple,
        values: tuple,
        payloads: tuple,
        predecessor: bytes,
        salt: bytes,
    ) -> bytes:
        return operation_id(targets, values, payloads, predecessor, salt)

    # ------------------------------------------------------------------ #
    # Mutations                                                           #
    # ------------------------------------------------------------------ #

    @external(SCHEDULE_BATCH)
    def schedule_batch(
        self,
        ctx: CallContext,
        targets: tuple,
        values: tuple,
        payloads: tuple,
        predecessor: bytes,
        salt: bytes,
        delay: int,
    ) -> None:
        self._check_role(PROPOSER_ROLE, ctx.sender)
        require(
            len(targets) == len(values) == len(payloads),
            "TimelockController: length mismatch",
        )
        op_id = operation_id(targets, values, payloads, predecessor, salt)
        require(
            self.timestamps.get(op_id, 0) == 0,
            "TimelockController: operation already scheduled",
        )
        require(delay >= self.min_delay, "TimelockController: insufficient delay")
        self.timestamps[op_id] = ctx.chain.timestamp + delay

    @external(EXECUTE_BATCH, payable=True)
    def execute_batch(
        self,
        ctx: CallContext,
        targets: tuple,
        values: tuple,
        payloads: tuple,
        predecessor: bytes,
        salt: bytes,
    ) -> None:
        if ZERO_ADDRESS not in self.roles[EXECUTOR_ROLE]:
            self._check_role(EXECUTOR_ROLE, ctx.sender)
        require(
            len(targets) == len(values) == len(payloads),
            "TimelockController: length mismatch",
        )
        op_id = operation_id(targets, values, payloads, predecessor, salt)
        require(
            self.is_operation_ready(ctx, op_id),
            "TimelockController: operation is not ready",
        )
        require(
            predecessor == ZERO_BYTES32
            or self.timestamps.get(predecessor, 0) == _DONE_TIMESTAMP,
            "TimelockController: missing dependency",
        )
        for target, value, payload in zip(targets, values, payloads):
            try:
                ctx.call(target, payload, value)
            except Revert as exc:
                raise Revert(
                    f"TimelockController: underlying transaction reverted ({exc.reason})"
                ) from exc
        self.timestamps[op_id] = _DONE_TIMESTAMP

    @external("cancel(bytes32)")
    def cancel(self, ctx: CallContext, op_id: bytes) -> None:
        self._check_role(CANCELLER_ROLE, ctx.sender)
        require(
            self.timestamps.get(op_id, 0) > _DONE_TIMESTAMP,
            "TimelockController: operation cannot be cancelled",
        )
        del self.timestamps[op_id]

    @external("updateDelay(uint256)")
    def update_delay(self, ctx: CallContext, new_delay: int) -> None:
        require(ctx.sender == ctx.this, "TimelockController: caller must be timelock")
        self.min_delay = new_delay

    def _check_role(self, role: bytes, account: str) -> None:
        require(
            account in self.roles.get(role, set()),
            f"AccessControl: account {account} is missing role 0x{role.hex()}",
        )
