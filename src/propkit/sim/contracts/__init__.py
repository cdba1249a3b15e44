"""Simulated backend contracts."""

from propkit.sim.contracts.governor import (
    CompoundTimelock,
    GovernorBravo,
    ProposalState,
    VotesToken,
)
from propkit.sim.contracts.multicall import Multicall3
from propkit.sim.contracts.relay import PublishedMessage, RelayCore, RemoteTimelock
from propkit.sim.contracts.timelock import TimelockController

__all__ = [
    "CompoundTimelock",
    "GovernorBravo",
    "Multicall3",
    "ProposalState",
    "PublishedMessage",
    "RelayCore",
    "RemoteTimelock",
    "TimelockController",
    "VotesToken",
]
