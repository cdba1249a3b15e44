"""Proposal base class — what a proposal author subclasses.

An author declares the proposal's identity, the backend it targets,
and three hooks. Identity (name and description) is captured once at
construction and cannot change afterwards; the runner and every
encoder read the captured values.

Usage:
    class RaiseFee(Proposal):
        NAME = "raise-fee"
        DESCRIPTION = "Raise the vault fee to 5 bps"

        def backend(self):
            return TimelockConfig(timelock="TIMELOCK", proposer="PROPOSER", executor="EXECUTOR")

        def build(self, ctx):
            ctx.call("VAULT", "setFee(uint256)", 5)
"""

from __future__ import annotations

from propkit.errors import ConfigurationError
from propkit.models.backend import BackendConfig
from propkit.recording.context import BuildContext, DeployContext, ValidateContext


class Proposal:
    """Base class for proposals. Subclasses set NAME and DESCRIPTION
    (or override the class-level hooks) and implement ``backend``."""

    NAME: str = ""
    DESCRIPTION: str = ""

    def __init__(self) -> None:
        name = self.proposal_name()
        description = self.proposal_description()
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError(f"{type(self).__name__}: proposal name is empty")
        if not isinstance(description, str) or not description.strip():
            raise ConfigurationError(f"{type(self).__name__}: proposal description is empty")
        self.__name = name
        self.__description = description

    # Identity hooks; read exactly once, in __init__.
    def proposal_name(self) -> str:
        return self.NAME

    def proposal_description(self) -> str:
        return self.DESCRIPTION

    def name(self) -> str:
        return self.__name

    def description(self) -> str:
        return self.__description

    def backend(self) -> BackendConfig:
        raise NotImplementedError(f"{type(self).__name__} must declare a backend")

    def deploy(self, ctx: DeployContext) -> None:
        """Deploy or locate the contracts the proposal needs."""

    def build(self, ctx: BuildContext) -> None:
        """Make the privileged calls; each one is recorded as an action."""

    def validate(self, ctx: ValidateContext) -> None:
        """Assert post-conditions on the simulated state."""
