"""Timelock backend — schedule, wait out the delay, execute.

If the batch is already pending on chain (scheduled earlier by the
proposers), simulation skips scheduling and continues from the delay.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Mapping, Sequence

from propkit.addresses import Addresses
from propkit.backends.base import Backend, chain_for
from propkit.encoding.timelock import (
    TimelockCalldata,
    encode_timelock_pair,
    hash_operation_batch,
    timelock_salt,
)
from propkit.models.action import Action
from propkit.models.backend import BackendKind, EncodedCall, TimelockConfig
from propkit.sim.chain import SimulatedChain


logger = logging.getLogger(__name__)


class TimelockBackend(Backend):
    kind = BackendKind.TIMELOCK

    def bind(
        self,
        config: TimelockConfig,
        addresses: Addresses,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
        description: str,
    ) -> TimelockConfig:
        timelock = addresses.ref(config.timelock, chain_id)
        delay = config.delay
        if delay is None:
            chain = chain_for(chains, chain_id, self.kind.value)
            delay = self.read_config(chain, timelock, "getMinDelay()")
        return dataclasses.replace(
            config,
            timelock=timelock,
            proposer=addresses.ref(config.proposer, chain_id),
            executor=addresses.ref(config.executor, chain_id),
            salt=config.salt if config.salt is not None else timelock_salt(description),
            delay=delay,
        )

    def build_caller(self, config: TimelockConfig) -> str:
        return config.timelock

    def pair(self, actions: Sequence[Action], config: TimelockConfig) -> TimelockCalldata:
        return encode_timelock_pair(
            actions,
            delay=config.delay,
            salt=config.salt,
            predecessor=config.predecessor,
        )

    def encode(self, actions: Sequence[Action], config: TimelockConfig) -> bytes:
        return self.pair(actions, config).schedule

    def calldata(self, actions: Sequence[Action], config: TimelockConfig) -> list[EncodedCall]:
        pair = self.pair(actions, config)
        return [
            EncodedCall(label="scheduleBatch", target=config.timelock, value=0, data=pair.schedule),
            EncodedCall(label="executeBatch", target=config.timelock, value=0, data=pair.execute),
        ]

    def simulate(
        self,
        actions: Sequence[Action],
        config: TimelockConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> list[str]:
        chain = chain_for(chains, chain_id, self.kind.value)
        pair = self.pair(actions, config)
        op_id = pair.operation_id

        with self.step("schedule"):
            if self.read(chain, config.timelock, "isOperationDone(bytes32)", op_id, returns=("bool",)):
                self.expect(False, "schedule", f"operation 0x{op_id.hex()} already executed")
            if self.read(chain, config.timelock, "isOperation(bytes32)", op_id, returns=("bool",)):
                logger.info("Operation 0x%s already scheduled, skipping schedule", op_id.hex())
            else:
                chain.call(config.proposer, config.timelock, pair.schedule)
            self.expect(
                self.read(chain, config.timelock, "isOperationPending(bytes32)", op_id, returns=("bool",)),
                "schedule",
                "operation is not pending after scheduling",
            )

        with self.step("delay"):
            ready_at = self.read(chain, config.timelock, "getTimestamp(bytes32)", op_id)
            if chain.timestamp < ready_at:
                chain.warp(ready_at)
            self.expect(
                self.read(chain, config.timelock, "isOperationReady(bytes32)", op_id, returns=("bool",)),
                "delay",
                "operation is not ready after the delay",
            )

        with self.step("execute"):
            chain.call(config.executor, config.timelock, pair.execute)
            self.expect(
                self.read(chain, config.timelock, "isOperationDone(bytes32)", op_id, returns=("bool",)),
                "execute",
                "operation is not done after execution",
            )
        return ["schedule", "delay", "execute"]

    def check_on_chain(
        self,
        actions: Sequence[Action],
        config: TimelockConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> bool:
        chain = chain_for(chains, chain_id, self.kind.value)
        if not chain.has_code(config.timelock):
            return False
        op_id = hash_operation_batch(actions, config.predecessor, config.salt)
        return self.read(chain, config.timelock, "isOperation(bytes32)", op_id, returns=("bool",))
