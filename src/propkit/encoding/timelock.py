"""Timelock encoder — paired scheduleBatch / executeBatch calldata.

Both payloads are built from the same flattened arrays and carry the
same predecessor and salt, so the scheduled operation id and the later
execution are provably linked. The pair is the deliverable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from eth_abi import encode
from eth_utils import keccak

from propkit.encoding.abi import ZERO_BYTES32, decode_call, encode_call
from propkit.encoding.batch import flatten
from propkit.models.action import Action


SCHEDULE_BATCH = "scheduleBatch(address[],uint256[],bytes[],bytes32,bytes32,uint256)"
EXECUTE_BATCH = "executeBatch(address[],uint256[],bytes[],bytes32,bytes32)"


@dataclass(frozen=True)
class TimelockCalldata:
    """The schedule and execute payloads for one batch."""
    schedule: bytes
    execute: bytes
    operation_id: bytes
    salt: bytes
    predecessor: bytes


def timelock_salt(description: str) -> bytes:
    """Deterministic salt: keccak256(abi.encode(description))."""
    return keccak(encode(["string"], [description]))


def operation_id(
    targets: Sequence[str],
    values: Sequence[int],
    payloads: Sequence[bytes],
    predecessor: bytes,
    salt: bytes,
) -> bytes:
    """Operation id exactly as TimelockController.hashOperationBatch computes it."""
    return keccak(
        encode(
            ["address[]", "uint256[]", "bytes[]", "bytes32", "bytes32"],
            [targets, values, payloads, predecessor, salt],
        )
    )


def hash_operation_batch(
    actions: Sequence[Action],
    predecessor: bytes,
    salt: bytes,
) -> bytes:
    targets, values, payloads = flatten(actions)
    return operation_id(targets, values, payloads, predecessor, salt)


def schedule_batch_calldata(
    actions: Sequence[Action],
    delay: int,
    salt: bytes,
    predecessor: bytes = ZERO_BYTES32,
) -> bytes:
    targets, values, payloads = flatten(actions)
    return encode_call(SCHEDULE_BATCH, targets, values, payloads, predecessor, salt, delay)


def execute_batch_calldata(
    actions: Sequence[Action],
    salt: bytes,
    predecessor: bytes = ZERO_BYTES32,
) -> bytes:
    targets, values, payloads = flatten(actions)
    return encode_call(EXECUTE_BATCH, targets, values, payloads, predecessor, salt)


def encode_timelock_pair(
    actions: Sequence[Action],
    delay: int,
    description: str = "",
    salt: Optional[bytes] = None,
    predecessor: bytes = ZERO_BYTES32,
) -> TimelockCalldata:
    """Encode the schedule/execute pair for one batch.

    An explicit salt wins over the description-derived one.
    """
    if salt is None:
        salt = timelock_salt(description)
    _check_bytes32("salt", salt)
    _check_bytes32("predecessor", predecessor)
    return TimelockCalldata(
        schedule=schedule_batch_calldata(actions, delay, salt, predecessor),
        execute=execute_batch_calldata(actions, salt, predecessor),
        operation_id=hash_operation_batch(actions, predecessor, salt),
        salt=salt,
        predecessor=predecessor,
    )


def decode_schedule_batch(data: bytes) -> dict:
    targets, values, payloads, predecessor, salt, delay = decode_call(SCHEDULE_BATCH, data)
    return {
        "targets": list(targets),
        "values": list(values),
        "payloads": list(payloads),
        "predecessor": predecessor,
        "salt": salt,
        "delay": delay,
    }


def decode_execute_batch(data: bytes) -> dict:
    targets, values, payloads, predecessor, salt = decode_call(EXECUTE_BATCH, data)
    return {
        "targets": list(targets),
        "values": list(values),
        "payloads": list(payloads),
        "predecessor": predecessor,
        "salt": salt,
    }


def _check_bytes32(field_name: str, value: bytes) -> None:
    if not isinstance(value, (bytes, bytearray)) or len(value) != 32:
        raise ValueError(f"{field_name} must be 32 bytes, got {value!r}")
