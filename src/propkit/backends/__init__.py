"""Authorization backends — one implementation per BackendKind."""

from propkit.backends.base import Backend
from propkit.backends.governor import GovernorBravoBackend
from propkit.backends.multisig import MultisigBackend
from propkit.backends.relay import CrossChainRelayBackend
from propkit.backends.timelock import TimelockBackend
from propkit.models.backend import BackendKind


BACKENDS: dict[BackendKind, Backend] = {
    BackendKind.MULTISIG: MultisigBackend(),
    BackendKind.TIMELOCK: TimelockBackend(),
    BackendKind.GOVERNOR_BRAVO: GovernorBravoBackend(),
    BackendKind.CROSS_CHAIN_RELAY: CrossChainRelayBackend(),
}


def backend_for(kind: BackendKind) -> Backend:
    return BACKENDS[kind]


__all__ = [
    "BACKENDS",
    "Backend",
    "CrossChainRelayBackend",
    "GovernorBravoBackend",
    "MultisigBackend",
    "TimelockBackend",
    "backend_for",
]
