"""Direct-multisig encoder — one Multicall3 aggregate call.

The multisig delegate-calls Multicall3, so every sub-call runs with the
multisig as msg.sender. Each action becomes a Call3Value struct with
allowFailure = false: one failing action reverts the whole batch.
"""

from __future__ import annotations

from typing import Sequence

from propkit.encoding.abi import decode_call, encode_call
from propkit.models.action import Action


AGGREGATE3_VALUE = "aggregate3Value((address,bool,uint256,bytes)[])"


def encode_aggregate(actions: Sequence[Action]) -> bytes:
    calls = [(a.target, False, a.value, a.payload) for a in actions]
    return encode_call(AGGREGATE3_VALUE, calls)


def decode_aggregate(data: bytes) -> tuple[list[str], list[int], list[bytes]]:
    """Reconstruct (targets, values, payloads) from aggregate calldata."""
    (calls,) = decode_call(AGGREGATE3_VALUE, data)
    return (
        [c[0] for c in calls],
        [c[2] for c in calls],
        [c[3] for c in calls],
    )


def total_value(actions: Sequence[Action]) -> int:
    """Native value the multisig must attach to the aggregate call."""
    return sum(a.value for a in actions)
