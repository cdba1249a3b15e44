"""Cross-chain relay: a message-publishing core and a remote-chain timelock.

RelayCore has the Wormhole core publishMessage shape. A published
message is delivered to the destination chain as a VAA; here a VAA is
the ABI tuple

    (uint256 emitterChainId, address emitter, uint64 sequence,
     uint32 nonce, uint16 consistencyLevel, bytes payload)

without guardian signatures. RemoteTimelock accepts VAAs only from
trusted emitters, queues them and executes the decoded actions after
its proposal delay.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from eth_abi import encode
from eth_abi.exceptions import DecodingError
from eth_utils import keccak

from propkit.encoding.abi import decode_args, normalize_address
from propkit.encoding.relay import PUBLISH_MESSAGE, decode_remote_payload
from propkit.sim.contract import CallContext, Contract, Revert, external, require


VAA_TYPES = ("uint256", "address", "uint64", "uint32", "uint16", "bytes")


@dataclass(frozen=True)
class PublishedMessage:
    """A message emitted by RelayCore.publishMessage."""
    emitter_chain_id: int
    emitter: str
    sequence: int
    nonce: int
    consistency_level: int
    payload: bytes


def encode_vaa(message: PublishedMessage) -> bytes:
    return encode(
        list(VAA_TYPES),
        [
            message.emitter_chain_id,
            message.emitter,
            message.sequence,
            message.nonce,
            message.consistency_level,
            message.payload,
        ],
    )


def decode_vaa(vaa: bytes) -> PublishedMessage:
    return PublishedMessage(*decode_args(VAA_TYPES, vaa))


class RelayCore(Contract):
    """Publishes messages with a per-emitter sequence number."""

    def __init__(self, message_fee: int = 0) -> None:
        self.message_fee = message_fee
        self.sequences: dict[str, int] = {}
        self.messages: list[PublishedMessage] = []

    @external("messageFee()", returns=("uint256",), view=True)
    def get_message_fee(self, ctx: CallContext) -> int:
        return self.message_fee

    @external("nextSequence(address)", returns=("uint64",), view=True)
    def next_sequence(self, ctx: CallContext, emitter: str) -> int:
        return self.sequences.get(emitter, 0)

    @external(PUBLISH_MESSAGE, returns=("uint64",), payable=True)
    def publish_message(
        self,
        ctx: CallContext,
        nonce: int,
        payload: bytes,
        consistency_level: int,
    ) -> int:
        require(ctx.value == self.message_fee, "RelayCore: invalid fee")
        sequence = self.sequences.get(ctx.sender, 0)
        self.sequences[ctx.sender] = sequence + 1
        self.messages.append(
            PublishedMessage(
                emitter_chain_id=ctx.chain.chain_id,
                emitter=ctx.sender,
                sequence=sequence,
                nonce=nonce,
                consistency_level=consistency_level,
                payload=payload,
            )
        )
        return sequence

    def published_by(self, emitter: str) -> list[PublishedMessage]:
        """Messages from one emitter, oldest first (the event log)."""
        emitter = normalize_address(emitter)
        return [m for m in self.messages if m.emitter == emitter]


class RemoteTimelock(Contract):
    """Executes relayed action batches after a delay (TemporalGovernor shape)."""

    accepts_value = True

    def __init__(
        self,
        trusted_emitters: Iterable[tuple[int, str]],
        proposal_delay: int,
    ) -> None:
        self.trusted = {(chain_id, normalize_address(e)) for chain_id, e in trusted_emitters}
        self.proposal_delay = proposal_delay
        self.queued_at: dict[bytes, int] = {}
        self.executed: set[bytes] = set()

    @external("proposalDelay()", returns=("uint256",), view=True)
    def get_proposal_delay(self, ctx: CallContext) -> int:
        return self.proposal_delay

    @external("isTrustedSender(uint256,address)", returns=("bool",), view=True)
    def is_trusted_sender(self, ctx: CallContext, chain_id: int, emitter: str) -> bool:
        return (chain_id, emitter) in self.trusted

    @external("queuedTime(bytes32)", returns=("uint256",), view=True)
    def queued_time(self, ctx: CallContext, vaa_hash: bytes) -> int:
        return self.queued_at.get(vaa_hash, 0)

    @external("isExecuted(bytes32)", returns=("bool",), view=True)
    def is_executed(self, ctx: CallContext, vaa_hash: bytes) -> bool:
        return vaa_hash in self.executed

    @external("queueProposal(bytes)")
    def queue_proposal(self, ctx: CallContext, vaa: bytes) -> None:
        self._parse(ctx, vaa)
        vaa_hash = keccak(vaa)
        require(vaa_hash not in self.queued_at, "RemoteTimelock: message already queued")
        self.queued_at[vaa_hash] = ctx.chain.timestamp

    @external("executeProposal(bytes)", payable=True)
    def execute_proposal(self, ctx: CallContext, vaa: bytes) -> None:
        _, actions = self._parse(ctx, vaa)
        vaa_hash = keccak(vaa)
        queued_at = self.queued_at.get(vaa_hash, 0)
        require(queued_at != 0, "RemoteTimelock: message not queued")
        require(vaa_hash not in self.executed, "RemoteTimelock: message already executed")
        require(
            ctx.chain.timestamp >= queued_at + self.proposal_delay,
            "RemoteTimelock: timelock not finished",
        )
        self.executed.add(vaa_hash)
        for target, value, payload in actions:
            try:
                ctx.call(target, payload, value)
            except Revert as exc:
                raise Revert(f"RemoteTimelock: call reverted ({exc.reason})") from exc

    @external("setTrustedSender(uint256,address)")
    def set_trusted_sender(self, ctx: CallContext, chain_id: int, emitter: str) -> None:
        require(ctx.sender == ctx.this, "RemoteTimelock: only self")
        self.trusted.add((chain_id, emitter))

    def _parse(self, ctx: CallContext, vaa: bytes) -> tuple[PublishedMessage, list]:
        try:
            message = decode_vaa(vaa)
            timelock, targets, values, payloads = decode_remote_payload(message.payload)
        except (DecodingError, ValueError) as exc:
            raise Revert("RemoteTimelock: malformed message") from exc
        require(
            (message.emitter_chain_id, message.emitter) in self.trusted,
            "RemoteTimelock: invalid emitter",
        )
        require(timelock == ctx.this, "RemoteTimelock: incorrect destination")
        require(
            len(targets) == len(values) == len(payloads),
            "RemoteTimelock: invalid target/value/calldata lengths",
        )
        return message, list(zip(targets, values, payloads))
