"""ParameterStore — a small owned contract the example proposals govern."""

from __future__ import annotations

from propkit.encoding.abi import normalize_address
from propkit.sim.contract import CallContext, Contract, external, require


MAX_FEE_BPS = 1_000


class ParameterStore(Contract):
    """Owner-controlled fee, pause flag and ownership."""

    accepts_value = True

    def __init__(self, owner: str, fee_bps: int = 0) -> None:
        self.owner = normalize_address(owner)
        self.fee_bps = fee_bps
        self.paused = False

    @external("owner()", returns=("address",), view=True)
    def get_owner(self, ctx: CallContext) -> str:
        return self.owner

    @external("feeBps()", returns=("uint256",), view=True)
    def get_fee(self, ctx: CallContext) -> int:
        return self.fee_bps

    @external("paused()", returns=("bool",), view=True)
    def is_paused(self, ctx: CallContext) -> bool:
        return self.paused

    @external("setFeeBps(uint256)")
    def set_fee(self, ctx: CallContext, fee_bps: int) -> None:
        require(ctx.sender == self.owner, "ParameterStore: caller is not the owner")
        require(fee_bps <= MAX_FEE_BPS, "ParameterStore: fee too high")
        self.fee_bps = fee_bps

    @external("setPaused(bool)")
    def set_paused(self, ctx: CallContext, paused: bool) -> None:
        require(ctx.sender == self.owner, "ParameterStore: caller is not the owner")
        self.paused = paused

    @external("transferOwnership(address)")
    def transfer_ownership(self, ctx: CallContext, new_owner: str) -> None:
        require(ctx.sender == self.owner, "ParameterStore: caller is not the owner")
        require(int(new_owner, 16) != 0, "ParameterStore: new owner is the zero address")
        self.owner = new_owner
