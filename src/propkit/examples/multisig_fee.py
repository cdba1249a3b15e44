"""Multisig proposal: lower the store fee in one batched transaction."""

from __future__ import annotations

from propkit.examples.store import ParameterStore
from propkit.lifecycle.proposal import Proposal
from propkit.models.backend import MultisigConfig
from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.sim.bootstrap import deploy_multisig_stack


class MultisigFeeChange(Proposal):
    NAME = "multisig-fee-change"
    DESCRIPTION = "Lower the ParameterStore fee to 25 bps"

    NEW_FEE = 25

    def backend(self) -> MultisigConfig:
        return MultisigConfig(multisig="DEV_MULTISIG")

    def deploy(self, ctx: DeployContext) -> None:
        stack = deploy_multisig_stack(ctx)
        ctx.deploy("PARAMETER_STORE", lambda: ParameterStore(stack["DEV_MULTISIG"], fee_bps=30))

    def build(self, ctx: BuildContext) -> None:
        ctx.call("PARAMETER_STORE", "setFeeBps(uint256)", self.NEW_FEE)

    def validate(self, ctx: ValidateContext) -> None:
        (fee,) = ctx.view("PARAMETER_STORE", "feeBps()")
        assert fee == self.NEW_FEE, f"fee is {fee}, expected {self.NEW_FEE}"
