"""Direct-multisig backend — the multisig delegate-calls Multicall3.

No signatures and no scheduling: the payload is meant for immediate
execution by an address that already holds the privileged rights.
"""

from __future__ import annotations

import dataclasses
from typing import Mapping, Sequence

from propkit.addresses import Addresses
from propkit.backends.base import Backend, chain_for
from propkit.encoding.multisig import encode_aggregate, total_value
from propkit.models.action import Action
from propkit.models.backend import BackendKind, EncodedCall, MultisigConfig
from propkit.sim.chain import SimulatedChain


class MultisigBackend(Backend):
    kind = BackendKind.MULTISIG

    def bind(
        self,
        config: MultisigConfig,
        addresses: Addresses,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
        description: str,
    ) -> MultisigConfig:
        return dataclasses.replace(
            config,
            multisig=addresses.ref(config.multisig, chain_id),
            multicall=addresses.ref(config.multicall, chain_id),
        )

    def build_caller(self, config: MultisigConfig) -> str:
        return config.multisig

    def encode(self, actions: Sequence[Action], config: MultisigConfig) -> bytes:
        return encode_aggregate(actions)

    def calldata(self, actions: Sequence[Action], config: MultisigConfig) -> list[EncodedCall]:
        return [
            EncodedCall(
                label="aggregate3Value (delegatecall from multisig)",
                target=config.multicall,
                value=total_value(actions),
                data=encode_aggregate(actions),
            )
        ]

    def simulate(
        self,
        actions: Sequence[Action],
        config: MultisigConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> list[str]:
        chain = chain_for(chains, chain_id, self.kind.value)
        value = total_value(actions)
        self.expect(
            chain.balance_of(config.multisig) >= value,
            "aggregate",
            f"multisig holds {chain.balance_of(config.multisig)} wei, batch needs {value}",
        )
        with self.step("aggregate"):
            chain.delegate_call(
                config.multisig, config.multicall, encode_aggregate(actions), value=value
            )
        return ["aggregate"]
