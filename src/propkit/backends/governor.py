"""GovernorBravo backend — propose, vote, queue, execute.

The simulated flow must observe the proposal states in exactly this
order; any other state at any step is a simulation failure:

    Pending → Active → Succeeded → Queued → Executed
"""

from __future__ import annotations

import dataclasses
from typing import Mapping, Sequence

from propkit.addresses import Addresses
from propkit.backends.base import Backend, chain_for
from propkit.encoding.abi import decode_args, encode_call
from propkit.encoding.governor import propose_calldata
from propkit.models.action import Action
from propkit.models.backend import BackendKind, EncodedCall, GovernorConfig
from propkit.sim.chain import SimulatedChain
from propkit.sim.contracts.governor import ProposalState, VoteSupport


EXPECTED_STATES = (
    ProposalState.PENDING,
    ProposalState.ACTIVE,
    ProposalState.SUCCEEDED,
    ProposalState.QUEUED,
    ProposalState.EXECUTED,
)


class GovernorBravoBackend(Backend):
    kind = BackendKind.GOVERNOR_BRAVO

    def bind(
        self,
        config: GovernorConfig,
        addresses: Addresses,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
        description: str,
    ) -> GovernorConfig:
        governor = addresses.ref(config.governor, chain_id)
        if config.timelock:
            timelock = addresses.ref(config.timelock, chain_id)
        else:
            chain = chain_for(chains, chain_id, self.kind.value)
            timelock = self.read_config(chain, governor, "timelock()", returns=("address",))
        return dataclasses.replace(
            config,
            governor=governor,
            proposer=addresses.ref(config.proposer, chain_id),
            description=config.description or description,
            timelock=timelock,
        )

    def build_caller(self, config: GovernorConfig) -> str:
        return config.timelock

    def encode(self, actions: Sequence[Action], config: GovernorConfig) -> bytes:
        return propose_calldata(actions, config.description)

    def calldata(self, actions: Sequence[Action], config: GovernorConfig) -> list[EncodedCall]:
        return [
            EncodedCall(
                label="propose",
                target=config.governor,
                value=0,
                data=self.encode(actions, config),
            )
        ]

    def simulate(
        self,
        actions: Sequence[Action],
        config: GovernorConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> list[str]:
        chain = chain_for(chains, chain_id, self.kind.value)
        governor = config.governor
        proposer = config.proposer
        observed: list[str] = []

        def observe(step: str, proposal_id: int) -> None:
            state = ProposalState(
                self.read(chain, governor, "state(uint256)", proposal_id, returns=("uint8",))
            )
            expected = EXPECTED_STATES[len(observed)]
            self.expect(
                state == expected,
                step,
                f"expected state {expected.name}, got {state.name}",
            )
            observed.append(state.name)

        with self.step("deal"):
            self._grant_votes(chain, governor, proposer)

        with self.step("propose"):
            output = chain.call(proposer, governor, self.encode(actions, config))
            (proposal_id,) = decode_args(("uint256",), output)
            observe("propose", proposal_id)

        with self.step("vote"):
            voting_delay = self.read(chain, governor, "votingDelay()")
            chain.mine(voting_delay + 1)
            observe("vote", proposal_id)
            chain.call(
                proposer,
                governor,
                encode_call("castVote(uint256,uint8)", proposal_id, int(VoteSupport.FOR)),
            )

        with self.step("tally"):
            voting_period = self.read(chain, governor, "votingPeriod()")
            chain.mine(voting_period)
            observe("tally", proposal_id)

        with self.step("queue"):
            chain.call(proposer, governor, encode_call("queue(uint256)", proposal_id))
            observe("queue", proposal_id)

        with self.step("execute"):
            delay = self.read(chain, config.timelock, "delay()")
            chain.skip(delay + 1)
            chain.call(proposer, governor, encode_call("execute(uint256)", proposal_id))
            observe("execute", proposal_id)

        return observed

    def check_on_chain(
        self,
        actions: Sequence[Action],
        config: GovernorConfig,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> bool:
        chain = chain_for(chains, chain_id, self.kind.value)
        governor = config.governor
        if not chain.has_code(governor):
            return False
        expected = (
            [a.target for a in actions],
            [a.value for a in actions],
            [""] * len(actions),
            [a.payload for a in actions],
        )
        count = self.read(chain, governor, "proposalCount()")
        for proposal_id in range(1, count + 1):
            targets, values, signatures, calldatas = self.read(
                chain,
                governor,
                "getActions(uint256)",
                proposal_id,
                returns=("address[]", "uint256[]", "string[]", "bytes[]"),
            )
            if (list(targets), list(values), list(signatures), list(calldatas)) == expected:
                return True
        return False

    def _grant_votes(self, chain: SimulatedChain, governor: str, proposer: str) -> None:
        """Mint the proposer enough weight to propose and reach quorum alone."""
        token = self.read(chain, governor, "comp()", returns=("address",))
        quorum = self.read(chain, governor, "quorumVotes()")
        threshold = self.read(chain, governor, "proposalThreshold()")
        needed = max(quorum, threshold + 1)
        current = self.read(chain, token, "balanceOf(address)", proposer)
        if current < needed:
            minter = self.read(chain, token, "minter()", returns=("address",))
            chain.call(minter, token, encode_call("mint(address,uint256)", proposer, needed - current))
        chain.mine(1)
