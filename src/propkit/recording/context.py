"""Phase contexts handed to proposal author hooks.

BuildContext is the recording interceptor: every ``call`` is validated,
executed against the simulated chain as the build caller, and then
appended to the ledger. Nothing routed through it is suppressed.
``view`` and address lookups are reads and are never recorded.
"""

from __future__ import annotations

import logging
from typing import Callable, Mapping, Optional, Sequence

from propkit.addresses import Addresses
from propkit.encoding.abi import decode_args, encode_call, make_address
from propkit.errors import ConfigurationError, NotRecording, ValidationFailed
from propkit.models.action import Action
from propkit.recording.ledger import ActionLedger, default_description
from propkit.sim.chain import SimulatedChain
from propkit.sim.contract import Contract


logger = logging.getLogger(__name__)


class _ChainReader:
    """Read access shared by every phase context."""

    def __init__(
        self,
        chains: Mapping[int, SimulatedChain],
        addresses: Addresses,
        chain_id: int,
    ) -> None:
        self._chains = chains
        self.addresses = addresses
        self.chain_id = chain_id

    def chain(self, chain_id: Optional[int] = None) -> SimulatedChain:
        chain_id = self.chain_id if chain_id is None else chain_id
        try:
            return self._chains[chain_id]
        except KeyError:
            raise ConfigurationError(f"No simulated chain for chain id {chain_id}") from None

    def address(self, name_or_address: str, chain_id: Optional[int] = None) -> str:
        """Resolve a symbolic name (or pass through a literal address)."""
        chain_id = self.chain_id if chain_id is None else chain_id
        return self.addresses.ref(name_or_address, chain_id)

    def view(
        self,
        target: str,
        signature: str,
        *args: object,
        returns: Sequence[str] = ("uint256",),
        chain_id: Optional[int] = None,
    ) -> tuple:
        """Static call; the result is decoded with ``returns``."""
        chain = self.chain(chain_id)
        output = chain.static_call(
            make_address("propkit.reader"),
            self.address(target, chain.chain_id),
            encode_call(signature, *args),
        )
        return decode_args(tuple(returns), output)


class DeployContext(_ChainReader):
    """Idempotent deployment: names already in the registry are not redeployed.

    When a registered contract has no code on the (fresh) simulated
    chain, it is deployed at its registered address so the registry
    keeps exactly one entry per name.
    """

    def __init__(
        self,
        chains: Mapping[int, SimulatedChain],
        addresses: Addresses,
        chain_id: int,
        deployer: Optional[str] = None,
    ) -> None:
        super().__init__(chains, addresses, chain_id)
        self.deployer = deployer or make_address("propkit.deployer")

    def deploy(
        self,
        name: str,
        factory: Callable[[], Contract],
        chain_id: Optional[int] = None,
    ) -> str:
        chain = self.chain(chain_id)
        if self.addresses.is_set(name, chain.chain_id):
            address = self.addresses.resolve(name, chain.chain_id)
            if not chain.has_code(address):
                chain.deploy(factory(), address=address)
                logger.info("Restored %s at registered address %s", name, address)
            else:
                logger.info("Skipping %s: already deployed at %s", name, address)
            return address
        address = chain.deploy(factory())
        self.addresses.register(name, address, is_contract=True, chain_id=chain.chain_id)
        logger.info("Deployed %s at %s (chain %d)", name, address, chain.chain_id)
        return address

    def account(self, name: str, chain_id: Optional[int] = None) -> str:
        """Register a labelled externally owned account, once."""
        chain_id = self.chain_id if chain_id is None else chain_id
        if self.addresses.is_set(name, chain_id):
            return self.addresses.resolve(name, chain_id)
        address = make_address(name)
        self.addresses.register(name, address, is_contract=False, chain_id=chain_id)
        return address

    def call(
        self,
        sender: str,
        target: str,
        signature: str,
        *args: object,
        value: int = 0,
        chain_id: Optional[int] = None,
    ) -> bytes:
        """Setup call made during deployment. Executed, never recorded."""
        chain = self.chain(chain_id)
        return chain.call(
            self.address(sender, chain.chain_id),
            self.address(target, chain.chain_id),
            encode_call(signature, *args),
            value,
        )


class BuildContext(_ChainReader):
    """Recording interceptor for the Build phase.

    Usage inside Proposal.build:
        ctx.call("VAULT", "setFee(uint256)", 5)
        ctx.call_raw(treasury, b"", value=10**18, description="fund treasury")
        fee, = ctx.view("VAULT", "fee()")
    """

    def __init__(
        self,
        chains: Mapping[int, SimulatedChain],
        addresses: Addresses,
        chain_id: int,
        ledger: ActionLedger,
    ) -> None:
        super().__init__(chains, addresses, chain_id)
        self._ledger = ledger

    @property
    def caller(self) -> str:
        caller = self._ledger.caller
        if caller is None:
            raise NotRecording("Build context used outside an active capture")
        return caller

    def call(
        self,
        target: str,
        signature: str,
        *args: object,
        value: int = 0,
        description: Optional[str] = None,
    ) -> bytes:
        if description is None:
            description = f"{signature} on {target}"
        return self.call_raw(
            target, encode_call(signature, *args), value=value, description=description
        )

    def call_raw(
        self,
        target: str,
        data: bytes,
        value: int = 0,
        description: Optional[str] = None,
    ) -> bytes:
        caller = self.caller
        action = Action(
            target=self.address(target),
            value=value,
            payload=bytes(data),
            description=description or default_description(bytes(data), value),
        )
        output = self.chain().call(caller, action.target, action.payload, action.value)
        self._ledger.record(action.target, action.value, action.payload, action.description)
        return output


class ValidateContext(_ChainReader):
    """Read access to post-simulation state plus the recorded actions."""

    def __init__(
        self,
        chains: Mapping[int, SimulatedChain],
        addresses: Addresses,
        chain_id: int,
        actions: tuple[Action, ...],
    ) -> None:
        super().__init__(chains, addresses, chain_id)
        self.actions = actions

    def expect(self, condition: bool, check: str, detail: Optional[str] = None) -> None:
        """Fail validation unless ``condition`` holds."""
        if not condition:
            raise ValidationFailed(check, detail)
