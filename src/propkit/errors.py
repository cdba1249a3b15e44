"""Failure taxonomy for proposal runs.

Every category is fatal. Nothing here is retried or auto-corrected:
an incorrectly "fixed" governance action is worse than a loud failure.

- Configuration errors: unknown address, empty identity, frozen registry.
- Recording errors: invalid target, invalid action, double recording.
- Simulation errors: a backend flow did not reach its expected state.
- Validation errors: author post-conditions failed.
"""

from __future__ import annotations

from typing import Optional


class ProposalError(Exception):
    """Base class for every proposal-run failure."""


# ------------------------------------------------------------------ #
# Configuration                                                       #
# ------------------------------------------------------------------ #

class ConfigurationError(ProposalError):
    """Raised for bad configuration. Reported immediately, never retried."""


class UnknownAddress(ConfigurationError):
    """Raised when a symbolic name has no registered address."""

    def __init__(self, name: str, chain_id: int) -> None:
        super().__init__(f"Unknown address: {name} (chain {chain_id})")
        self.name = name
        self.chain_id = chain_id


class AddressesFrozen(ConfigurationError):
    """Raised when the registry is mutated outside the Deploy phase."""


class EnvelopeSealed(ConfigurationError):
    """Raised when a relay envelope is changed after encoding started."""


# ------------------------------------------------------------------ #
# Recording                                                           #
# ------------------------------------------------------------------ #

class RecordingError(ProposalError):
    """Raised when the action ledger rejects an operation."""


class AlreadyRecording(RecordingError):
    """Raised when recording is started while a capture is active."""


class NotRecording(RecordingError):
    """Raised when recording is used without an active capture."""


class InvalidTarget(RecordingError):
    """Raised when an action targets the zero address or a malformed one."""


class InvalidAction(RecordingError):
    """Raised when an action carries neither payload nor value."""


class EmptyProposal(ProposalError):
    """Raised when a backend that needs actions receives none."""

    def __init__(self, backend: str) -> None:
        super().__init__(f"{backend}: proposal recorded zero actions")
        self.backend = backend


# ------------------------------------------------------------------ #
# Simulation and validation                                           #
# ------------------------------------------------------------------ #

class SimulationFailed(ProposalError):
    """Raised when a backend flow does not reach its expected state.

    Carries the failing step and the backend identity for diagnosis.
    """

    def __init__(self, backend: str, step: str, reason: str = "") -> None:
        message = f"{backend}: simulation failed at step '{step}'"
        if reason:
            message += f": {reason}"
        super().__init__(message)
        self.backend = backend
        self.step = step
        self.reason = reason


class ValidationFailed(ProposalError):
    """Raised when a post-condition check fails after simulation."""

    def __init__(self, check: str, detail: Optional[str] = None) -> None:
        message = f"Validation failed: {check}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.check = check
        self.detail = detail


class PhaseTransitionError(ProposalError):
    """Raised when a lifecycle phase is entered out of order."""
