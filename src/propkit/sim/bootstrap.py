"""Deploy the contract stack each backend authorizes through.

Every helper goes through DeployContext, so running one twice (or
against a registry loaded from disk) deploys nothing new and leaves
exactly one registry entry per name. Helpers return the resolved
addresses keyed by registry name.

Usage (inside Proposal.deploy):
    stack = deploy_timelock_stack(ctx)
    ctx.deploy("VAULT", lambda: ParameterStore(owner=stack["PROTOCOL_TIMELOCK"]))
"""

from __future__ import annotations

import logging
from typing import Optional

from propkit.recording.context import DeployContext
from propkit.sim.contracts import (
    CompoundTimelock,
    GovernorBravo,
    Multicall3,
    RelayCore,
    RemoteTimelock,
    TimelockController,
    VotesToken,
)


logger = logging.getLogger(__name__)

DAY = 24 * 60 * 60


def deploy_multisig_stack(
    ctx: DeployContext,
    multisig: str = "DEV_MULTISIG",
    multicall: str = "MULTICALL3",
    chain_id: Optional[int] = None,
) -> dict[str, str]:
    return {
        multisig: ctx.account(multisig, chain_id),
        multicall: ctx.deploy(multicall, Multicall3, chain_id),
    }


def deploy_timelock_stack(
    ctx: DeployContext,
    timelock: str = "PROTOCOL_TIMELOCK",
    proposer: str = "TIMELOCK_PROPOSER",
    executor: str = "TIMELOCK_EXECUTOR",
    min_delay: int = 2 * DAY,
    chain_id: Optional[int] = None,
) -> dict[str, str]:
    proposer_address = ctx.account(proposer, chain_id)
    executor_address = ctx.account(executor, chain_id)
    timelock_address = ctx.deploy(
        timelock,
        lambda: TimelockController(min_delay, [proposer_address], [executor_address]),
        chain_id,
    )
    return {
        timelock: timelock_address,
        proposer: proposer_address,
        executor: executor_address,
    }


def deploy_governor_stack(
    ctx: DeployContext,
    governor: str = "GOVERNOR",
    timelock: str = "GOVERNOR_TIMELOCK",
    token: str = "GOVERNANCE_TOKEN",
    proposer: str = "GOVERNOR_PROPOSER",
    delay: int = 2 * DAY,
    voting_delay: int = 1,
    voting_period: int = 5760,
    quorum_votes: int = 400_000 * 10**18,
    chain_id: Optional[int] = None,
) -> dict[str, str]:
    """Token, Compound-style timelock and GovernorBravo, wired together.

    The deployer mints the token and hands timelock admin to the
    governor (setPendingAdmin + _acceptAdmin), once.
    """
    deployer = ctx.deployer
    proposer_address = ctx.account(proposer, chain_id)
    token_address = ctx.deploy(token, lambda: VotesToken(minter=deployer), chain_id)
    timelock_address = ctx.deploy(
        timelock, lambda: CompoundTimelock(admin=deployer, delay=delay), chain_id
    )
    governor_address = ctx.deploy(
        governor,
        lambda: GovernorBravo(
            timelock_address,
            token_address,
            voting_delay=voting_delay,
            voting_period=voting_period,
            quorum_votes=quorum_votes,
        ),
        chain_id,
    )

    (admin,) = ctx.view(timelock_address, "admin()", returns=("address",), chain_id=chain_id)
    if admin != governor_address:
        ctx.call(deployer, timelock_address, "setPendingAdmin(address)", governor_address, chain_id=chain_id)
        ctx.call(deployer, governor_address, "_acceptAdmin()", chain_id=chain_id)
        logger.info("Timelock %s now administered by governor %s", timelock_address, governor_address)

    return {
        governor: governor_address,
        timelock: timelock_address,
        token: token_address,
        proposer: proposer_address,
    }


def deploy_relay_stack(
    ctx: DeployContext,
    emitter: str,
    remote_chain_id: int,
    relay: str = "RELAY_CORE",
    remote_timelock: str = "REMOTE_TIMELOCK",
    proposal_delay: int = DAY,
    chain_id: Optional[int] = None,
) -> dict[str, str]:
    """Relay core on the local chain; remote timelock trusting ``emitter``."""
    local_chain_id = ctx.chain_id if chain_id is None else chain_id
    emitter_address = ctx.address(emitter, local_chain_id)
    relay_address = ctx.deploy(relay, RelayCore, local_chain_id)
    remote_address = ctx.deploy(
        remote_timelock,
        lambda: RemoteTimelock([(local_chain_id, emitter_address)], proposal_delay),
        remote_chain_id,
    )
    (trusted,) = ctx.view(
        remote_address,
        "isTrustedSender(uint256,address)",
        local_chain_id,
        emitter_address,
        returns=("bool",),
        chain_id=remote_chain_id,
    )
    if not trusted:
        logger.warning(
            "%s does not trust emitter %s on chain %d", remote_timelock, emitter_address, local_chain_id
        )
    return {relay: relay_address, remote_timelock: remote_address}


def fund(ctx: DeployContext, name_or_address: str, amount: int, chain_id: Optional[int] = None) -> None:
    """Top up an account's native balance to at least ``amount``."""
    chain = ctx.chain(chain_id)
    address = ctx.address(name_or_address, chain.chain_id)
    missing = amount - chain.balance_of(address)
    if missing > 0:
        chain.fund(address, missing)
