"""Governor proposal: raise the store fee through a GovernorBravo vote."""

from __future__ import annotations

from propkit.examples.store import ParameterStore
from propkit.lifecycle.proposal import Proposal
from propkit.models.backend import GovernorConfig
from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.sim.bootstrap import deploy_governor_stack


class GovernorFeeIncrease(Proposal):
    NAME = "governor-fee-increase"
    DESCRIPTION = "# Raise the ParameterStore fee\n\nSet the fee to 50 bps."

    def backend(self) -> GovernorConfig:
        return GovernorConfig(governor="GOVERNOR", proposer="GOVERNOR_PROPOSER")

    def deploy(self, ctx: DeployContext) -> None:
        stack = deploy_governor_stack(ctx)
        ctx.deploy("PARAMETER_STORE", lambda: ParameterStore(stack["GOVERNOR_TIMELOCK"]))

    def build(self, ctx: BuildContext) -> None:
        ctx.call("PARAMETER_STORE", "setFeeBps(uint256)", 50)

    def validate(self, ctx: ValidateContext) -> None:
        (fee,) = ctx.view("PARAMETER_STORE", "feeBps()")
        assert fee == 50
