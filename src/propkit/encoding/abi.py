"""ABI helpers shared by the encoders and the simulator.

Calldata is the 4-byte selector (first bytes of keccak256 of the
canonical signature) followed by the positionally encoded arguments.
Signatures must be canonical: no spaces, no argument names.
"""

from __future__ import annotations

from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import function_signature_to_4byte_selector, is_address, keccak, to_checksum_address


ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = b"\x00" * 32


def split_types(inner: str) -> list[str]:
    """Split a comma-separated type list at the top level only.

    ``"(address,bool),uint256[]"`` -> ``["(address,bool)", "uint256[]"]``
    """
    types: list[str] = []
    depth = 0
    current = ""
    for char in inner:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            types.append(current)
            current = ""
            continue
        current += char
    if current:
        types.append(current)
    return types


def parse_signature(signature: str) -> tuple[str, list[str]]:
    """Return (function name, argument types) for a canonical signature."""
    if " " in signature or "(" not in signature or not signature.endswith(")"):
        raise ValueError(f"Not a canonical function signature: {signature!r}")
    name, _, rest = signature.partition("(")
    return name, split_types(rest[:-1])


def selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


def encode_call(signature: str, *args: Any) -> bytes:
    """Encode a call: selector followed by the ABI-encoded arguments."""
    _, types = parse_signature(signature)
    if len(types) != len(args):
        raise ValueError(
            f"{signature}: expected {len(types)} arguments, got {len(args)}"
        )
    return selector(signature) + encode(types, list(args))


def decode_args(types: Sequence[str], data: bytes) -> tuple:
    """Decode ABI data, normalising every address to checksum form."""
    values = decode(list(types), data)
    return tuple(normalize_value(t, v) for t, v in zip(types, values))


def decode_call(signature: str, data: bytes) -> tuple:
    """Decode calldata produced for ``signature``.

    Raises ValueError when the selector does not match.
    """
    expected = selector(signature)
    if bytes(data[:4]) != expected:
        raise ValueError(
            f"Selector mismatch for {signature}: "
            f"expected 0x{expected.hex()}, got 0x{bytes(data[:4]).hex()}"
        )
    _, types = parse_signature(signature)
    return decode_args(types, bytes(data[4:]))


def normalize_value(abi_type: str, value: Any) -> Any:
    if abi_type.endswith("]"):
        element_type = abi_type[: abi_type.rindex("[")]
        return tuple(normalize_value(element_type, v) for v in value)
    if abi_type.startswith("("):
        component_types = split_types(abi_type[1:-1])
        return tuple(normalize_value(t, v) for t, v in zip(component_types, value))
    if abi_type == "address":
        return to_checksum_address(value)
    return value


def normalize_address(value: Any) -> str:
    """Return the checksum form of an address. Raises ValueError if malformed."""
    if isinstance(value, (bytes, bytearray)) and len(value) == 20:
        return to_checksum_address(bytes(value))
    if not isinstance(value, str) or not is_address(value):
        raise ValueError(f"Not an address: {value!r}")
    return to_checksum_address(value)


def make_address(label: str) -> str:
    """Deterministic address for a human label (last 20 bytes of its hash)."""
    return to_checksum_address(keccak(text=label)[-20:])
