"""GovernorBravo, its Compound timelock, and a checkpointed votes token.

Proposal lifecycle:
    Pending → Active → Succeeded → Queued → Executed
    (Canceled, Defeated and Expired are the failure exits)

The governor is the timelock's admin; queued actions execute from the
timelock's address.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from eth_abi import encode
from eth_utils import keccak

from propkit.encoding.abi import decode_args, encode_call, normalize_address, selector
from propkit.encoding.governor import PROPOSE
from propkit.sim.contract import CallContext, Contract, Revert, external, require


GRACE_PERIOD = 14 * 24 * 3600
MINIMUM_DELAY = 2 * 24 * 3600
MAXIMUM_DELAY = 30 * 24 * 3600
PROPOSAL_MAX_OPERATIONS = 10

QUEUE_TRANSACTION = "queueTransaction(address,uint256,string,bytes,uint256)"
EXECUTE_TRANSACTION = "executeTransaction(address,uint256,string,bytes,uint256)"
GET_PRIOR_VOTES = "getPriorVotes(address,uint256)"


class ProposalState(enum.IntEnum):
    """GovernorBravo proposal states, in on-chain enum order."""
    PENDING = 0
    ACTIVE = 1
    CANCELED = 2
    DEFEATED = 3
    SUCCEEDED = 4
    QUEUED = 5
    EXPIRED = 6
    EXECUTED = 7


class VoteSupport(enum.IntEnum):
    AGAINST = 0
    FOR = 1
    ABSTAIN = 2


class VotesToken(Contract):
    """Governance token whose balance is the holder's voting weight.

    Votes are checkpointed per block so a proposal counts weight as of
    its start block.
    """

    def __init__(self, minter: str) -> None:
        self.minter = normalize_address(minter)
        self.balances: dict[str, int] = {}
        self.checkpoints: dict[str, list[tuple[int, int]]] = {}
        self.total_supply = 0

    @external("minter()", returns=("address",), view=True)
    def get_minter(self, ctx: CallContext) -> str:
        return self.minter

    @external("balanceOf(address)", returns=("uint256",), view=True)
    def balance_of(self, ctx: CallContext, account: str) -> int:
        return self.balances.get(account, 0)

    @external("mint(address,uint256)")
    def mint(self, ctx: CallContext, account: str, amount: int) -> None:
        require(ctx.sender == self.minter, "VotesToken: only minter")
        self.balances[account] = self.balances.get(account, 0) + amount
        self.total_supply += amount
        self._write_checkpoint(ctx.chain.block_number, account, self.balances[account])

    @external(GET_PRIOR_VOTES, returns=("uint256",), view=True)
    def get_prior_votes(self, ctx: CallContext, account: str, block_number: int) -> int:
        require(block_number < ctx.chain.block_number, "VotesToken: not yet determined")
        votes = 0
        for checkpoint_block, checkpoint_votes in self.checkpoints.get(account, []):
            if checkpoint_block > block_number:
                break
            votes = checkpoint_votes
        return votes

    def _write_checkpoint(self, block_number: int, account: str, votes: int) -> None:
        history = self.checkpoints.setdefault(account, [])
        if history and history[-1][0] == block_number:
            history[-1] = (block_number, votes)
        else:
            history.append((block_number, votes))


class CompoundTimelock(Contract):
    """Queues individual transactions by hash and executes them after eta."""

    accepts_value = True

    def __init__(self, admin: str, delay: int) -> None:
        if not MINIMUM_DELAY <= delay <= MAXIMUM_DELAY:
            raise ValueError(f"Timelock delay out of range: {delay}")
        self.admin = normalize_address(admin)
        self.pending_admin = ""
        self.admin_initialized = False
        self.delay = delay
        self.queued: dict[bytes, bool] = {}

    @external("delay()", returns=("uint256",), view=True)
    def get_delay(self, ctx: CallContext) -> int:
        return self.delay

    @external("admin()", returns=("address",), view=True)
    def get_admin(self, ctx: CallContext) -> str:
        return self.admin

    @external("queuedTransactions(bytes32)", returns=("bool",), view=True)
    def queued_transactions(self, ctx: CallContext, tx_hash: bytes) -> bool:
        return self.queued.get(tx_hash, False)

    @external("setPendingAdmin(address)")
    def set_pending_admin(self, ctx: CallContext, pending_admin: str) -> None:
        if self.admin_initialized:
            require(ctx.sender == ctx.this, "Timelock::setPendingAdmin: Call must come from Timelock.")
        else:
            require(ctx.sender == self.admin, "Timelock::setPendingAdmin: First call must come from admin.")
            self.admin_initialized = True
        self.pending_admin = pending_admin

    @external("acceptAdmin()")
    def accept_admin(self, ctx: CallContext) -> None:
        require(ctx.sender == self.pending_admin, "Timelock::acceptAdmin: Call must come from pendingAdmin.")
        self.admin = ctx.sender
        self.pending_admin = ""

    @external(QUEUE_TRANSACTION, returns=("bytes32",))
    def queue_transaction(
        self,
        ctx: CallContext,
        target: str,
        value: int,
        signature: str,
        data: bytes,
        eta: int,
    ) -> bytes:
        require(ctx.sender == self.admin, "Timelock::queueTransaction: Call must come from admin.")
        require(
            eta >= ctx.chain.timestamp + self.delay,
            "Timelock::queueTransaction: Estimated execution block must satisfy delay.",
        )
        tx_hash = transaction_hash(target, value, signature, data, eta)
        self.queued[tx_hash] = True
        return tx_hash

    @external(EXECUTE_TRANSACTION, returns=("bytes",), payable=True)
    def execute_transaction(
        self,
        ctx: CallContext,
        target: str,
        value: int,
        signature: str,
        data: bytes,
        eta: int,
    ) -> bytes:
        require(ctx.sender == self.admin, "Timelock::executeTransaction: Call must come from admin.")
        tx_hash = transaction_hash(target, value, signature, data, eta)
        require(self.queued.get(tx_hash, False), "Timelock::executeTransaction: Transaction hasn't been queued.")
        require(ctx.chain.timestamp >= eta, "Timelock::executeTransaction: Transaction hasn't surpassed time lock.")
        require(ctx.chain.timestamp <= eta + GRACE_PERIOD, "Timelock::executeTransaction: Transaction is stale.")
        self.queued[tx_hash] = False

        call_data = data if not signature else selector(signature) + data
        try:
            return ctx.call(target, call_data, value)
        except Revert as exc:
            raise Revert(
                f"Timelock::executeTransaction: Transaction execution reverted. ({exc.reason})"
            ) from exc


def transaction_hash(target: str, value: int, signature: str, data: bytes, eta: int) -> bytes:
    return keccak(
        encode(
            ["address", "uint256", "string", "bytes", "uint256"],
            [target, value, signature, data, eta],
        )
    )


@dataclass
class BravoProposal:
    proposal_id: int
    proposer: str
    targets: tuple
    values: tuple
    signatures: tuple
    calldatas: tuple
    description: str
    start_block: int
    end_block: int
    eta: int = 0
    for_votes: int = 0
    against_votes: int = 0
    abstain_votes: int = 0
    canceled: bool = False
    executed: bool = False
    receipts: dict = field(default_factory=dict)


class GovernorBravo(Contract):
    """Token-weighted voting governor that executes through a timelock."""

    def __init__(
        self,
        timelock: str,
        token: str,
        voting_delay: int = 1,
        voting_period: int = 5760,
        proposal_threshold: int = 0,
        quorum_votes: int = 1,
    ) -> None:
        self.timelock = normalize_address(timelock)
        self.token = normalize_address(token)
        self.voting_delay = voting_delay
        self.voting_period = voting_period
        self.proposal_threshold = proposal_threshold
        self.quorum_votes = quorum_votes
        self.proposal_count = 0
        self.proposals: dict[int, BravoProposal] = {}
        self.latest_proposal_ids: dict[str, int] = {}

    # ------------------------------------------------------------------ #
    # Views                                                               #
    # ------------------------------------------------------------------ #

    @external("votingDelay()", returns=("uint256",), view=True)
    def get_voting_delay(self, ctx: CallContext) -> int:
        return self.voting_delay

    @external("votingPeriod()", returns=("uint256",), view=True)
    def get_voting_period(self, ctx: CallContext) -> int:
        return self.voting_period

    @external("quorumVotes()", returns=("uint256",), view=True)
    def get_quorum_votes(self, ctx: CallContext) -> int:
        return self.quorum_votes

    @external("proposalThreshold()", returns=("uint256",), view=True)
    def get_proposal_threshold(self, ctx: CallContext) -> int:
        return self.proposal_threshold

    @external("proposalCount()", returns=("uint256",), view=True)
    def get_proposal_count(self, ctx: CallContext) -> int:
        return self.proposal_count

    @external("timelock()", returns=("address",), view=True)
    def get_timelock(self, ctx: CallContext) -> str:
        return self.timelock

    @external("comp()", returns=("address",), view=True)
    def get_token(self, ctx: CallContext) -> str:
        return self.token

    @external(
        "getActions(uint256)",
        returns=("address[]", "uint256[]", "string[]", "bytes[]"),
        view=True,
    )
    def get_actions(self, ctx: CallContext, proposal_id: int) -> tuple:
        proposal = self._proposal(proposal_id)
        return (
            list(proposal.targets),
            list(proposal.values),
            list(proposal.signatures),
            list(proposal.calldatas),
        )

    @external("state(uint256)", returns=("uint8",), view=True)
    def state(self, ctx: CallContext, proposal_id: int) -> int:
        proposal = self._proposal(proposal_id)
        block = ctx.chain.block_number
        if proposal.canceled:
            return ProposalState.CANCELED
        if block <= proposal.start_block:
            return ProposalState.PENDING
        if block <= proposal.end_block:
            return ProposalState.ACTIVE
        if (
            proposal.for_votes <= proposal.against_votes
            or proposal.for_votes < self.quorum_votes
        ):
            return ProposalState.DEFEATED
        if proposal.eta == 0:
            return ProposalState.SUCCEEDED
        if proposal.executed:
            return ProposalState.EXECUTED
        if ctx.chain.timestamp >= proposal.eta + GRACE_PERIOD:
            return ProposalState.EXPIRED
        return ProposalState.QUEUED

    # ------------------------------------------------------------------ #
    # Mutations                                                           #
    # ------------------------------------------------------------------ #

    @external(PROPOSE, returns=("uint256",))
    def propose(
        self,
        ctx: CallContext,
        targets: tuple,
        values: tuple,
        signatures: tuple,
        calldatas: tuple,
        description: str,
    ) -> int:
        votes = self._prior_votes(ctx, ctx.sender, ctx.chain.block_number - 1)
        require(
            votes > self.proposal_threshold,
            "GovernorBravo::propose: proposer votes below proposal threshold",
        )
        require(
            len(targets) == len(values) == len(signatures) == len(calldatas),
            "GovernorBravo::propose: proposal function information arity mismatch",
        )
        require(len(targets) != 0, "GovernorBravo::propose: must provide actions")
        require(
            len(targets) <= PROPOSAL_MAX_OPERATIONS,
            "GovernorBravo::propose: too many actions",
        )

        latest = self.latest_proposal_ids.get(ctx.sender)
        if latest is not None:
            latest_state = self.state(ctx, latest)
            require(
                latest_state != ProposalState.ACTIVE,
                "GovernorBravo::propose: one live proposal per proposer, found an already active proposal",
            )
            require(
                latest_state != ProposalState.PENDING,
                "GovernorBravo::propose: one live proposal per proposer, found an already pending proposal",
            )

        self.proposal_count += 1
        start_block = ctx.chain.block_number + self.voting_delay
        proposal = BravoProposal(
            proposal_id=self.proposal_count,
            proposer=ctx.sender,
            targets=targets,
            values=values,
            signatures=signatures,
            calldatas=calldatas,
            description=description,
            start_block=start_block,
            end_block=start_block + self.voting_period,
        )
        self.proposals[proposal.proposal_id] = proposal
        self.latest_proposal_ids[ctx.sender] = proposal.proposal_id
        return proposal.proposal_id

    @external("castVote(uint256,uint8)")
    def cast_vote(self, ctx: CallContext, proposal_id: int, support: int) -> None:
        require(
            self.state(ctx, proposal_id) == ProposalState.ACTIVE,
            "GovernorBravo::castVoteInternal: voting is closed",
        )
        require(support <= VoteSupport.ABSTAIN, "GovernorBravo::castVoteInternal: invalid vote type")
        proposal = self.proposals[proposal_id]
        require(
            ctx.sender not in proposal.receipts,
            "GovernorBravo::castVoteInternal: voter already voted",
        )
        votes = self._prior_votes(ctx, ctx.sender, proposal.start_block)
        if support == VoteSupport.AGAINST:
            proposal.against_votes += votes
        elif support == VoteSupport.FOR:
            proposal.for_votes += votes
        else:
            proposal.abstain_votes += votes
        proposal.receipts[ctx.sender] = (support, votes)

    @external("queue(uint256)")
    def queue(self, ctx: CallContext, proposal_id: int) -> None:
        require(
            self.state(ctx, proposal_id) == ProposalState.SUCCEEDED,
            "GovernorBravo::queue: proposal can only be queued if it is succeeded",
        )
        proposal = self.proposals[proposal_id]
        (delay,) = decode_args(
            ("uint256",), ctx.static_call(self.timelock, encode_call("delay()"))
        )
        eta = ctx.chain.timestamp + delay
        for target, value, signature, data in zip(
            proposal.targets, proposal.values, proposal.signatures, proposal.calldatas
        ):
            (already,) = decode_args(
                ("bool",),
                ctx.static_call(
                    self.timelock,
                    encode_call(
                        "queuedTransactions(bytes32)",
                        transaction_hash(target, value, signature, data, eta),
                    ),
                ),
            )
            require(
                not already,
                "GovernorBravo::queueOrRevertInternal: identical proposal action already queued at eta",
            )
            ctx.call(
                self.timelock,
                encode_call(QUEUE_TRANSACTION, target, value, signature, data, eta),
            )
        proposal.eta = eta

    @external("execute(uint256)", payable=True)
    def execute(self, ctx: CallContext, proposal_id: int) -> None:
        require(
            self.state(ctx, proposal_id) == ProposalState.QUEUED,
            "GovernorBravo::execute: proposal can only be executed if it is queued",
        )
        proposal = self.proposals[proposal_id]
        proposal.executed = True
        for target, value, signature, data in zip(
            proposal.targets, proposal.values, proposal.signatures, proposal.calldatas
        ):
            ctx.call(
                self.timelock,
                encode_call(EXECUTE_TRANSACTION, target, value, signature, data, proposal.eta),
            )

    @external("cancel(uint256)")
    def cancel(self, ctx: CallContext, proposal_id: int) -> None:
        require(
            self.state(ctx, proposal_id) != ProposalState.EXECUTED,
            "GovernorBravo::cancel: cannot cancel executed proposal",
        )
        proposal = self.proposals[proposal_id]
        require(ctx.sender == proposal.proposer, "GovernorBravo::cancel: proposer only")
        proposal.canceled = True

    @external("_acceptAdmin()")
    def accept_admin(self, ctx: CallContext) -> None:
        ctx.call(self.timelock, encode_call("acceptAdmin()"))

    def _proposal(self, proposal_id: int) -> BravoProposal:
        proposal = self.proposals.get(proposal_id)
        if proposal is None:
            raise Revert("GovernorBravo::state: invalid proposal id")
        return proposal

    def _prior_votes(self, ctx: CallContext, account: str, block_number: int) -> int:
        (votes,) = decode_args(
            ("uint256",),
            ctx.static_call(self.token, encode_call(GET_PRIOR_VOTES, account, block_number)),
        )
        return votes
