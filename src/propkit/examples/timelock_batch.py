"""Timelock proposal: a batch that changes the fee, pauses the store
and pays the treasury out of the timelock's balance."""

from __future__ import annotations

from propkit.examples.store import ParameterStore
from propkit.lifecycle.proposal import Proposal
from propkit.models.backend import TimelockConfig
from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.sim.bootstrap import deploy_timelock_stack, fund


TREASURY_GRANT = 10**18


class TimelockMaintenance(Proposal):
    NAME = "timelock-maintenance"
    DESCRIPTION = "Pause the ParameterStore, set the fee to 10 bps and fund the treasury"

    def backend(self) -> TimelockConfig:
        return TimelockConfig(
            timelock="PROTOCOL_TIMELOCK",
            proposer="TIMELOCK_PROPOSER",
            executor="TIMELOCK_EXECUTOR",
        )

    def deploy(self, ctx: DeployContext) -> None:
        stack = deploy_timelock_stack(ctx)
        ctx.deploy("PARAMETER_STORE", lambda: ParameterStore(stack["PROTOCOL_TIMELOCK"]))
        ctx.account("TREASURY")
        fund(ctx, "PROTOCOL_TIMELOCK", TREASURY_GRANT)

    def build(self, ctx: BuildContext) -> None:
        ctx.call("PARAMETER_STORE", "setFeeBps(uint256)", 10)
        ctx.call("PARAMETER_STORE", "setPaused(bool)", True)
        ctx.call_raw("TREASURY", b"", value=TREASURY_GRANT, description="fund the treasury")

    def validate(self, ctx: ValidateContext) -> None:
        (fee,) = ctx.view("PARAMETER_STORE", "feeBps()")
        (paused,) = ctx.view("PARAMETER_STORE", "paused()", returns=("bool",))
        assert fee == 10
        assert paused
        ctx.expect(
            ctx.chain().balance_of(ctx.address("TREASURY")) == TREASURY_GRANT,
            "treasury funded",
        )
