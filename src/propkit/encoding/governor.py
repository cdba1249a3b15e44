"""Governor encoder — GovernorBravo propose calldata.

The receiving contract decodes positionally: targets, values,
signatures, calldatas, description. Signatures are empty strings
because each calldata already carries its own selector.
"""

from __future__ import annotations

from typing import Sequence

from propkit.encoding.abi import decode_call, encode_call
from propkit.encoding.batch import flatten
from propkit.models.action import Action


PROPOSE = "propose(address[],uint256[],string[],bytes[],string)"


def propose_calldata(actions: Sequence[Action], description: str) -> bytes:
    targets, values, payloads = flatten(actions)
    signatures = [""] * len(actions)
    return encode_call(PROPOSE, targets, values, signatures, payloads, description)


def decode_propose(data: bytes) -> dict:
    targets, values, signatures, payloads, description = decode_call(PROPOSE, data)
    return {
        "targets": list(targets),
        "values": list(values),
        "signatures": list(signatures),
        "payloads": list(payloads),
        "description": description,
    }
