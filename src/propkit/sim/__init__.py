"""Simulated environment — deterministic in-process chain and contracts."""

from propkit.sim.chain import SimulatedChain
from propkit.sim.contract import CallContext, Contract, Revert, external, require

__all__ = ["CallContext", "Contract", "Revert", "SimulatedChain", "external", "require"]
