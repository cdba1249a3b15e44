"""Cross-chain relay backend.

The recorded actions execute on the remote chain as the remote
timelock. Locally, the publishMessage call is wrapped as a single
action and authorized through the configured multisig or governor
backend; the published message is then delivered to the remote
timelock, queued, and executed after its delay.
"""

from __future__ import annotations

import dataclasses
from typing import Mapping, Sequence

from eth_utils import keccak

from propkit.addresses import Addresses
from propkit.backends.base import Backend, chain_for
from propkit.backends.governor import GovernorBravoBackend
from propkit.backends.multisig import MultisigBackend
from propkit.encoding.abi import encode_call, make_address
from propkit.encoding.relay import as_action, encode_relay, encode_remote_payload
from propkit.errors import ConfigurationError, SimulationFailed
from propkit.models.action import Action
from propkit.models.backend import (
    BackendKind,
    EncodedCall,
    GovernorConfig,
    MultisigConfig,
    RelayConfig,
)
from propkit.sim.chain import SimulatedChain
from propkit.sim.contracts.relay import PublishedMessage, RelayCore, encode_vaa

RELAYER = make_address("propkit.relayer")

_AUTHORIZERS: dict[BackendKind, Backend] = {
    BackendKind.MULTISIG: MultisigBackend(),
    BackendKind.GOVERNOR_BRAVO: GovernorBravoBackend(),
}


class CrossChainRelayBackend(Backend):
    kind = BackendKind.CROSS_CHAIN_RELAY

    def bind(
        self,
        config: RelayConfig,
        addresses: Addresses,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
        description: str,
    ) -> RelayConfig:
        if not isinstance(config.authorizer, (MultisigConfig, GovernorConfig)):
            raise ConfigurationError(
                "Relay publication must be authorized by a multisig or governor, "
                f"got {type(config.authorizer).__name__}"
            )
        authorizer = self._authorizer(config).bind(
            config.authorizer, addresses, chains, chain_id, description
        )
        return dataclasses.replace(
            config,
            relay=addresses.ref(config.relay, chain_id),
            remote_timelock=addresses.ref(config.remote_timelock, config.remote_chain_id),
            authorizer=authorizer,
        )

    def build_caller(self, config: RelayConfig) -> str:
        return config.remote_timelock

    def build_chain_id(self, config: RelayConfig, chain_id: int) -> int:
        return config.remote_chain_id

    def encode(self, actions: Sequence[Action], config: RelayConfig) -> bytes:
        return encode_relay(actions, config.remote_timelock, config.envelope)

    def publication(self, actions: Sequence[Action], config: RelayConfig) -> Action:
        """The publishMessage call as one action for the local authorizer."""
        return as_action(
            config.relay,
            self.encode(actions, config),
            description=(
                f"publish {len(actions)} action(s) for {config.remote_timelock} "
                f"on chain {config.remote_chain_id}"
            ),
        )

    def calldata(self, actions: Sequence[Action], config: RelayConfig) -> list[EncodedCall]:
        publication = self.publication(actions, config)
        wrapped = self._authorizer(config).calldata([publication], config.authorizer)
        return [
            EncodedCall(
                label="publishMessage",
                target=config.relay,
                value=0,
                data=publication.payload,
            ),
            *wrapped,
        ]

    def simulate(
        self,
        actions: Sequence[Action],
        config: RelayConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> list[str]:
        local = chain_for(chains, chain_id, self.kind.value)
        remote = chain_for(chains, config.remote_chain_id, self.kind.value)
        authorizer = self._authorizer(config)
        emitter = authorizer.executing_address(config.authorizer)
        inner = encode_remote_payload(actions, config.remote_timelock)

        try:
            authorized = authorizer.simulate(
                [self.publication(actions, config)], config.authorizer, chains, chain_id
            )
        except SimulationFailed as exc:
            raise SimulationFailed(
                self.kind.value, f"authorize/{exc.step}", exc.reason
            ) from exc
        steps = [f"authorize/{step}" for step in authorized]

        with self.step("relay"):
            message = self._latest_message(local, config.relay, emitter)
            self.expect(message is not None, "relay", f"no message published by {emitter}")
            self.expect(message.payload == inner, "relay", "published payload differs from proposal")
            self.expect(message.nonce == config.envelope.nonce, "relay", "published nonce differs")
            self.expect(
                message.consistency_level == config.envelope.consistency_level,
                "relay",
                "published consistency level differs",
            )
            vaa = encode_vaa(message)
        steps.append("relay")

        vaa_hash = keccak(vaa)
        with self.step("queue"):
            remote.call(RELAYER, config.remote_timelock, encode_call("queueProposal(bytes)", vaa))
        steps.append("queue")

        with self.step("delay"):
            queued_at = self.read(remote, config.remote_timelock, "queuedTime(bytes32)", vaa_hash)
            delay = self.read(remote, config.remote_timelock, "proposalDelay()")
            if remote.timestamp < queued_at + delay:
                remote.warp(queued_at + delay)
        steps.append("delay")

        with self.step("execute"):
            remote.call(RELAYER, config.remote_timelock, encode_call("executeProposal(bytes)", vaa))
            self.expect(
                self.read(remote, config.remote_timelock, "isExecuted(bytes32)", vaa_hash, returns=("bool",)),
                "execute",
                "remote timelock did not execute the message",
            )
        steps.append("execute")
        return steps

    def check_on_chain(
        self,
        actions: Sequence[Action],
        config: RelayConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> bool:
        local = chain_for(chains, chain_id, self.kind.value)
        emitter = self._authorizer(config).executing_address(config.authorizer)
        inner = encode_remote_payload(actions, config.remote_timelock)
        core = local.contract_at(config.relay) if local.has_code(config.relay) else None
        if not isinstance(core, RelayCore):
            return False
        return any(
            m.payload == inner and m.nonce == config.envelope.nonce
            for m in core.published_by(emitter)
        )

    @staticmethod
    def _authorizer(config: RelayConfig) -> Backend:
        return _AUTHORIZERS[config.authorizer.kind]

    @staticmethod
    def _latest_message(
        chain: SimulatedChain, relay: str, emitter: str
    ) -> PublishedMessage | None:
        core = chain.contract_at(relay) if chain.has_code(relay) else None
        if not isinstance(core, RelayCore):
            return None
        messages = core.published_by(emitter)
        return messages[-1] if messages else None
