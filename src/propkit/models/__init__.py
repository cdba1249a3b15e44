"""Core data models for propkit."""

from propkit.models.action import Action
from propkit.models.backend import (
    BackendConfig,
    BackendKind,
    CrossChainEnvelope,
    EncodedCall,
    GovernorConfig,
    MultisigConfig,
    RelayConfig,
    TimelockConfig,
)

__all__ = [
    "Action",
    "BackendConfig",
    "BackendKind",
    "CrossChainEnvelope",
    "EncodedCall",
    "GovernorConfig",
    "MultisigConfig",
    "RelayConfig",
    "TimelockConfig",
]
