"""Cross-chain proposal: a multisig on chain 1 changes a store on chain 10."""

from __future__ import annotations

from propkit.examples.store import ParameterStore
from propkit.lifecycle.proposal import Proposal
from propkit.models.backend import CrossChainEnvelope, MultisigConfig, RelayConfig
from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.sim.bootstrap import deploy_multisig_stack, deploy_relay_stack


REMOTE_CHAIN_ID = 10


class RemoteFeeChange(Proposal):
    NAME = "remote-fee-change"
    DESCRIPTION = "Set the remote ParameterStore fee to 5 bps via the relay"

    def __init__(self, nonce: int = 0) -> None:
        super().__init__()
        self.envelope = CrossChainEnvelope(nonce=nonce)

    def backend(self) -> RelayConfig:
        return RelayConfig(
            relay="RELAY_CORE",
            remote_timelock="REMOTE_TIMELOCK",
            remote_chain_id=REMOTE_CHAIN_ID,
            authorizer=MultisigConfig(multisig="DEV_MULTISIG"),
            envelope=self.envelope,
        )

    def deploy(self, ctx: DeployContext) -> None:
        deploy_multisig_stack(ctx)
        stack = deploy_relay_stack(ctx, emitter="DEV_MULTISIG", remote_chain_id=REMOTE_CHAIN_ID)
        ctx.deploy(
            "PARAMETER_STORE",
            lambda: ParameterStore(stack["REMOTE_TIMELOCK"]),
            chain_id=REMOTE_CHAIN_ID,
        )

    def build(self, ctx: BuildContext) -> None:
        ctx.call("PARAMETER_STORE", "setFeeBps(uint256)", 5)

    def validate(self, ctx: ValidateContext) -> None:
        (fee,) = ctx.view("PARAMETER_STORE", "feeBps()")
        assert fee == 5
