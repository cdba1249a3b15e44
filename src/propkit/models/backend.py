"""Backend configuration models.

A proposal targets exactly one backend, modelled as a closed tagged
variant over BackendKind. Config fields that name contracts or
accounts accept either a literal address or a symbolic name; the
backend binds them to addresses through the resolver before encoding.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Union

from propkit.encoding.abi import ZERO_BYTES32
from propkit.errors import EnvelopeSealed


class BackendKind(str, enum.Enum):
    """The four authorization backends a proposal can target."""
    MULTISIG = "multisig"
    TIMELOCK = "timelock"
    GOVERNOR_BRAVO = "governor_bravo"
    CROSS_CHAIN_RELAY = "cross_chain_relay"


# Relay finality tiers (Wormhole consistency levels).
INSTANT_FINALITY = 200
SAFE_FINALITY = 201
FINALIZED = 1

_UINT32_MAX = 2**32 - 1
_UINT16_MAX = 2**16 - 1


class CrossChainEnvelope:
    """Nonce and consistency level wrapped around a relay publication.

    Both fields change only through the explicit setters, and only
    until the envelope is sealed for encoding. Encoding reads the
    fields; it never increments the nonce.
    """

    def __init__(
        self,
        nonce: int = 0,
        consistency_level: int = INSTANT_FINALITY,
    ) -> None:
        self._nonce = _check_range("nonce", nonce, _UINT32_MAX)
        self._consistency_level = _check_range(
            "consistency_level", consistency_level, _UINT16_MAX
        )
        self._sealed = False

    @property
    def nonce(self) -> int:
        return self._nonce

    @property
    def consistency_level(self) -> int:
        return self._consistency_level

    @property
    def sealed(self) -> bool:
        return self._sealed

    def set_nonce(self, nonce: int) -> None:
        if self._sealed:
            raise EnvelopeSealed("Relay nonce cannot change after encoding started")
        self._nonce = _check_range("nonce", nonce, _UINT32_MAX)

    def set_consistency_level(self, level: int) -> None:
        if self._sealed:
            raise EnvelopeSealed(
                "Relay consistency level cannot change after encoding started"
            )
        self._consistency_level = _check_range("consistency_level", level, _UINT16_MAX)

    def seal(self) -> None:
        self._sealed = True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CrossChainEnvelope):
            return NotImplemented
        return (self._nonce, self._consistency_level) == (
            other._nonce,
            other._consistency_level,
        )

    def __hash__(self) -> int:
        return hash((self._nonce, self._consistency_level))

    def __repr__(self) -> str:
        return (
            f"CrossChainEnvelope(nonce={self._nonce}, "
            f"consistency_level={self._consistency_level})"
        )


def _check_range(field_name: str, value: int, maximum: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    if value < 0 or value > maximum:
        raise ValueError(f"{field_name} out of range [0, {maximum}]: {value}")
    return value


@dataclass(frozen=True)
class MultisigConfig:
    """Direct execution by a multisig that delegate-calls Multicall3."""
    multisig: str
    multicall: str = "MULTICALL3"
    kind: BackendKind = BackendKind.MULTISIG


@dataclass(frozen=True)
class TimelockConfig:
    """Batch scheduled and executed through a TimelockController.

    salt defaults to keccak256(abi.encode(description)); delay defaults
    to the timelock's on-chain minimum delay.
    """
    timelock: str
    proposer: str
    executor: str
    predecessor: bytes = ZERO_BYTES32
    salt: Optional[bytes] = None
    delay: Optional[int] = None
    kind: BackendKind = BackendKind.TIMELOCK


@dataclass(frozen=True)
class GovernorConfig:
    """Proposal submitted to a GovernorBravo and run through its timelock.

    timelock is read from the governor when left empty.
    """
    governor: str
    proposer: str
    description: str = ""
    timelock: str = ""
    kind: BackendKind = BackendKind.GOVERNOR_BRAVO


@dataclass(frozen=True)
class RelayConfig:
    """Actions forwarded to a remote-chain timelock through a relay core.

    The local publication is itself authorized by ``authorizer``.
    """
    relay: str
    remote_timelock: str
    remote_chain_id: int
    authorizer: Union[MultisigConfig, GovernorConfig]
    envelope: CrossChainEnvelope
    kind: BackendKind = BackendKind.CROSS_CHAIN_RELAY


BackendConfig = Union[MultisigConfig, TimelockConfig, GovernorConfig, RelayConfig]


@dataclass(frozen=True)
class EncodedCall:
    """One payload an operator submits: destination, value and calldata."""
    label: str
    target: str
    value: int
    data: bytes

    def to_dict(self) -> dict:
        return {
            "label": self.label,
            "target": self.target,
            "value": self.value,
            "data": "0x" + self.data.hex(),
        }
