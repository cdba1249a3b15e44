"""Read-only checks against a live node.

This is the only place propkit talks to a real network, and it never
sends a transaction: a single eth_call asks a deployed
TimelockController whether an operation id is already known.
"""

from __future__ import annotations

from propkit.encoding.abi import decode_args, encode_call, normalize_address
from propkit.errors import ConfigurationError


def is_operation_on_chain(rpc_url: str, timelock: str, operation_id: bytes) -> bool:
    """Query ``isOperation(operation_id)`` on a live timelock.

    Args:
        rpc_url: JSON-RPC endpoint of the chain the timelock lives on.
        timelock: Timelock address.
        operation_id: 32-byte batch operation id.
    """
    if not rpc_url:
        raise ConfigurationError("An RPC URL is required for the on-chain check")
    if len(operation_id) != 32:
        raise ValueError(f"operation id must be 32 bytes, got {len(operation_id)}")

    from web3 import Web3, HTTPProvider

    w3 = Web3(HTTPProvider(rpc_url))
    result = w3.eth.call(
        {
            "to": normalize_address(timelock),
            "data": "0x" + encode_call("isOperation(bytes32)", operation_id).hex(),
        }
    )
    (known,) = decode_args(("bool",), bytes(result))
    return known
