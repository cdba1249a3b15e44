"""Cross-chain relay encoder — two-stage envelope.

Stage 1 nests the flattened arrays and the destination timelock into
the inner payload the remote timelock decodes:

    abi.encode(address remoteTimelock, address[] targets,
               uint256[] values, bytes[] payloads)

Stage 2 wraps the inner payload, the envelope nonce and consistency
level into a publishMessage call addressed to the local relay core.

The stage 2 output is an ordinary payload: ``as_action`` turns it into
a one-element action list for the multisig or governor encoder when
the publication itself needs local authorization.
"""

from __future__ import annotations

from typing import Sequence

from eth_abi import encode

from propkit.encoding.abi import decode_args, decode_call, encode_call
from propkit.encoding.batch import flatten
from propkit.models.action import Action
from propkit.models.backend import CrossChainEnvelope


PUBLISH_MESSAGE = "publishMessage(uint32,bytes,uint16)"
REMOTE_PAYLOAD_TYPES = ("address", "address[]", "uint256[]", "bytes[]")


def encode_remote_payload(actions: Sequence[Action], remote_timelock: str) -> bytes:
    """Stage 1: the payload the remote timelock will decode and execute."""
    targets, values, payloads = flatten(actions)
    return encode(list(REMOTE_PAYLOAD_TYPES), [remote_timelock, targets, values, payloads])


def decode_remote_payload(payload: bytes) -> tuple[str, list[str], list[int], list[bytes]]:
    remote_timelock, targets, values, payloads = decode_args(REMOTE_PAYLOAD_TYPES, payload)
    return remote_timelock, list(targets), list(values), list(payloads)


def publish_message_calldata(inner: bytes, envelope: CrossChainEnvelope) -> bytes:
    """Stage 2: the publishMessage call to the local relay core."""
    return encode_call(PUBLISH_MESSAGE, envelope.nonce, inner, envelope.consistency_level)


def decode_publish_message(data: bytes) -> dict:
    nonce, payload, consistency_level = decode_call(PUBLISH_MESSAGE, data)
    return {
        "nonce": nonce,
        "payload": payload,
        "consistency_level": consistency_level,
    }


def encode_relay(
    actions: Sequence[Action],
    remote_timelock: str,
    envelope: CrossChainEnvelope,
) -> bytes:
    return publish_message_calldata(
        encode_remote_payload(actions, remote_timelock), envelope
    )


def as_action(relay: str, publish_calldata: bytes, description: str, value: int = 0) -> Action:
    """Wrap a publishMessage payload as an action for another encoder.

    ``value`` covers the relay message fee, if any.
    """
    return Action(
        target=relay,
        value=value,
        payload=publish_calldata,
        description=description,
    )
