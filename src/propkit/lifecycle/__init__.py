"""Proposal lifecycle: phases, the Proposal base class and the runner."""

from propkit.lifecycle.phases import ProposalPhase
from propkit.lifecycle.proposal import Proposal
from propkit.lifecycle.runner import ProposalRunner, run_proposal

__all__ = ["Proposal", "ProposalPhase", "ProposalRunner", "run_proposal"]
