"""Proposal lifecycle phases and the legal transitions between them.

Transitions are fail-closed and strictly forward: a phase can only be
entered from the one immediately before it. There is no way back.
"""

from __future__ import annotations

import enum

from propkit.errors import PhaseTransitionError


class ProposalPhase(str, enum.Enum):
    CREATED = "created"
    DEPLOYED = "deployed"
    BUILT = "built"
    SIMULATED = "simulated"
    VALIDATED = "validated"


# Legal transitions: (from_phase, to_phase)
_TRANSITIONS: set[tuple[ProposalPhase, ProposalPhase]] = {
    (ProposalPhase.CREATED, ProposalPhase.DEPLOYED),
    (ProposalPhase.DEPLOYED, ProposalPhase.BUILT),
    (ProposalPhase.BUILT, ProposalPhase.SIMULATED),
    (ProposalPhase.SIMULATED, ProposalPhase.VALIDATED),
}


def check_transition(current: ProposalPhase, target: ProposalPhase) -> None:
    if (current, target) not in _TRANSITIONS:
        raise PhaseTransitionError(
            f"Illegal transition: {current.value} → {target.value}"
        )
