"""Proposal runner — drives one proposal through its lifecycle.

Created → Deployed → Built → Simulated → Validated, strictly forward.

- Deploy runs the author's deploy hook, then freezes the address
  registry.
- Build binds the backend config, opens the ledger under the backend's
  build caller, runs the author's build hook against a chain snapshot,
  closes the ledger and reverts the snapshot. The recorded actions are
  the proposal.
- Simulate replays the backend's real authorization flow from the
  pre-build state.
- Validate runs the author's post-conditions on the simulated state.

Every failure is fatal and propagates unchanged.

Usage:
    runner = ProposalRunner(MyProposal(), Addresses(chain_id=1))
    summary = runner.run()
"""

from __future__ import annotations

import logging
from typing import Any, MutableMapping, Optional

from propkit.addresses import Addresses
from propkit.backends import backend_for
from propkit.config import RunConfig
from propkit.encoding.batch import flatten
from propkit.errors import ConfigurationError, PhaseTransitionError, ValidationFailed
from propkit.lifecycle.phases import ProposalPhase, check_transition
from propkit.lifecycle.proposal import Proposal
from propkit.models.action import Action
from propkit.models.backend import BackendConfig, EncodedCall, RelayConfig
from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.recording.ledger import ActionLedger
from propkit.sim.chain import SimulatedChain


logger = logging.getLogger(__name__)


class ProposalRunner:
    """Lifecycle controller for a single proposal."""

    def __init__(
        self,
        proposal: Proposal,
        addresses: Addresses,
        chains: Optional[MutableMapping[int, SimulatedChain]] = None,
        config: Optional[RunConfig] = None,
    ) -> None:
        self.proposal = proposal
        self.addresses = addresses
        self.config = config or RunConfig(chain_id=addresses.chain_id)
        self.chain_id = self.config.chain_id
        self._declared = proposal.backend()
        self.backend = backend_for(self._declared.kind)
        self.chains = chains if chains is not None else {}
        for chain_id in _chain_ids(self._declared, self.chain_id):
            self.chains.setdefault(chain_id, SimulatedChain(chain_id=chain_id))

        self._phase = ProposalPhase.CREATED
        self._ledger = ActionLedger()
        self._bound: Optional[BackendConfig] = None
        self._actions: tuple[Action, ...] = ()
        self._steps: list[str] = []

    @property
    def phase(self) -> ProposalPhase:
        return self._phase

    @property
    def actions(self) -> tuple[Action, ...]:
        return self._actions

    @property
    def steps(self) -> list[str]:
        """Backend steps reached by the last simulation."""
        return list(self._steps)

    @property
    def bound_config(self) -> BackendConfig:
        if self._bound is None:
            raise PhaseTransitionError("Backend config is bound during build")
        return self._bound

    @property
    def build_chain_id(self) -> int:
        return self.backend.build_chain_id(self.bound_config, self.chain_id)

    # ------------------------------------------------------------------ #
    # Phases                                                              #
    # ------------------------------------------------------------------ #

    def deploy(self) -> None:
        self._advance(ProposalPhase.DEPLOYED)
        if self.config.do_deploy:
            self.proposal.deploy(DeployContext(self.chains, self.addresses, self.chain_id))
        else:
            logger.info("Skipping deploy hook for %s", self.proposal.name())
            self._require_registered_code()
        self.addresses.freeze()
        self._phase = ProposalPhase.DEPLOYED
        logger.info("%s: deployed (%d new addresses)", self.proposal.name(), len(self.addresses.recorded()))

    def build(self) -> tuple[Action, ...]:
        self._advance(ProposalPhase.BUILT)
        bound = self.backend.bind(
            self._declared,
            self.addresses,
            self.chains,
            self.chain_id,
            self.proposal.description(),
        )
        caller = self.backend.build_caller(bound)
        build_chain_id = self.backend.build_chain_id(bound, self.chain_id)
        chain = self.chains[build_chain_id]

        snapshot = chain.snapshot()
        self._ledger.begin_recording(caller)
        try:
            if self.config.do_build:
                self.proposal.build(
                    BuildContext(self.chains, self.addresses, build_chain_id, self._ledger)
                )
            else:
                logger.info("Skipping build hook for %s", self.proposal.name())
        finally:
            actions = self._ledger.end_recording()
            chain.revert_to(snapshot)

        if self.config.do_build:
            self.backend.require_actions(actions)
        self._bound = bound
        self._actions = actions
        self._phase = ProposalPhase.BUILT
        logger.info(
            "%s: built %d action(s) as %s on chain %d",
            self.proposal.name(),
            len(actions),
            caller,
            build_chain_id,
        )
        return actions

    def simulate(self) -> list[str]:
        self._advance(ProposalPhase.SIMULATED)
        bound = self.bound_config
        if isinstance(bound, RelayConfig):
            bound.envelope.seal()
        if self.config.do_simulate:
            self.backend.require_actions(self._actions)
            self._steps = self.backend.simulate(
                self._actions, bound, self.chains, self.chain_id
            )
        else:
            logger.info("Skipping simulation for %s", self.proposal.name())
        self._phase = ProposalPhase.SIMULATED
        logger.info("%s: simulated %s", self.proposal.name(), " → ".join(self._steps) or "(skipped)")
        return self.steps

    def validate(self) -> None:
        self._advance(ProposalPhase.VALIDATED)
        if self.config.do_validate:
            ctx = ValidateContext(
                self.chains, self.addresses, self.build_chain_id, self._actions
            )
            try:
                self.proposal.validate(ctx)
            except AssertionError as exc:
                raise ValidationFailed(self.proposal.name(), str(exc) or None) from exc
        else:
            logger.info("Skipping validate hook for %s", self.proposal.name())
        self._phase = ProposalPhase.VALIDATED
        logger.info("%s: validated", self.proposal.name())

    def run(self) -> dict[str, Any]:
        self.deploy()
        self.build()
        self.simulate()
        self.validate()
        return self.summary()

    # ------------------------------------------------------------------ #
    # Reporting                                                           #
    # ------------------------------------------------------------------ #

    def get_proposal_actions(self) -> tuple[list[str], list[int], list[bytes]]:
        """Recorded actions as parallel (targets, values, payloads) lists."""
        self._require_built()
        return flatten(self._actions)

    def get_calldata(self) -> bytes:
        """Primary submission payload for the backend."""
        self._require_built()
        return self.backend.encode(self._actions, self.bound_config)

    def calldata(self) -> list[EncodedCall]:
        self._require_built()
        return self.backend.calldata(self._actions, self.bound_config)

    def check_on_chain_calldata(self) -> bool:
        self._require_built()
        return self.backend.check_on_chain(
            self._actions, self.bound_config, self.chains, self.chain_id
        )

    def summary(self) -> dict[str, Any]:
        self._require_built()
        return {
            "name": self.proposal.name(),
            "description": self.proposal.description(),
            "backend": self.backend.kind.value,
            "phase": self._phase.value,
            "chain_id": self.chain_id,
            "build_chain_id": self.build_chain_id,
            "build_caller": self.backend.build_caller(self.bound_config),
            "actions": [a.to_dict() for a in self._actions],
            "calldata": [c.to_dict() for c in self.calldata()],
            "steps": self.steps,
            "new_addresses": [r.to_json() for r in self.addresses.recorded()],
        }

    # ------------------------------------------------------------------ #
    # Internal                                                            #
    # ------------------------------------------------------------------ #

    def _advance(self, target: ProposalPhase) -> None:
        check_transition(self._phase, target)
        logger.info("%s: %s → %s", self.proposal.name(), self._phase.value, target.value)

    def _require_registered_code(self) -> None:
        """Without the deploy hook, registered contracts must already have code."""
        missing = [
            f"{record.name} at {record.address} (chain {record.chain_id})"
            for chain_id, chain in sorted(self.chains.items())
            for record in self.addresses.entries(chain_id)
            if record.is_contract and not chain.has_code(record.address)
        ]
        if missing:
            raise ConfigurationError(
                "Deploy skipped but registered contracts have no code on the "
                "simulated chain: " + ", ".join(missing)
            )

    def _require_built(self) -> None:
        if self._bound is None:
            raise PhaseTransitionError(
                f"{self.proposal.name()}: no actions before the build phase"
            )


def _chain_ids(config: BackendConfig, chain_id: int) -> list[int]:
    if isinstance(config, RelayConfig):
        return [chain_id, config.remote_chain_id]
    return [chain_id]


def run_proposal(
    proposal: Proposal,
    addresses: Addresses,
    chains: Optional[MutableMapping[int, SimulatedChain]] = None,
    config: Optional[RunConfig] = None,
) -> dict[str, Any]:
    """Run every phase and return the summary."""
    return ProposalRunner(proposal, addresses, chains, config).run()
