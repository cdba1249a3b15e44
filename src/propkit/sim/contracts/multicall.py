"""Multicall3 — batched calls with per-call value and failure policy."""

from __future__ import annotations

from propkit.encoding.multisig import AGGREGATE3_VALUE
from propkit.sim.contract import CallContext, Contract, Revert, external, require


class Multicall3(Contract):
    """Stateless aggregator. Under delegate_call every sub-call is sent
    from the delegating account."""

    @external(AGGREGATE3_VALUE, returns=("(bool,bytes)[]",), payable=True)
    def aggregate3_value(self, ctx: CallContext, calls: tuple) -> list:
        accumulated = 0
        results = []
        for target, allow_failure, value, call_data in calls:
            accumulated += value
            try:
                results.append((True, ctx.call(target, call_data, value)))
            except Revert as exc:
                if not allow_failure:
                    raise Revert(f"Multicall3: call failed ({exc.reason})") from exc
                results.append((False, b""))
        require(ctx.value == accumulated, "Multicall3: value mismatch")
        return results
