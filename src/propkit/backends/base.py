"""Backend capability — what the lifecycle controller depends on.

One implementation per BackendKind. The controller never inspects a
concrete backend; it binds the config, asks for the build caller,
encodes, simulates and checks on-chain state through this interface.
"""

from __future__ import annotations

import abc
import logging
from contextlib import contextmanager
from typing import Any, ClassVar, Iterator, Mapping, Sequence

from eth_abi.exceptions import DecodingError

from propkit.addresses import Addresses
from propkit.encoding.abi import decode_args, encode_call, make_address
from propkit.errors import ConfigurationError, EmptyProposal, SimulationFailed
from propkit.models.action import Action
from propkit.models.backend import BackendKind, EncodedCall
from propkit.sim.chain import SimulatedChain
from propkit.sim.contract import Revert, require


logger = logging.getLogger(__name__)

READER = make_address("propkit.reader")


class Backend(abc.ABC):
    """Encoder plus simulated authorization flow for one backend kind."""

    kind: ClassVar[BackendKind]
    requires_actions: ClassVar[bool] = True

    @abc.abstractmethod
    def bind(
        self,
        config: Any,
        addresses: Addresses,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
        description: str,
    ) -> Any:
        """Return a copy of config with every name resolved to an address."""

    @abc.abstractmethod
    def build_caller(self, config: Any) -> str:
        """Identity the privileged calls execute as."""

    def build_chain_id(self, config: Any, chain_id: int) -> int:
        """Chain the privileged calls execute on."""
        return chain_id

    def executing_address(self, config: Any) -> str:
        """Address that finally sends the calls on chain (the msg.sender)."""
        return self.build_caller(config)

    @abc.abstractmethod
    def encode(self, actions: Sequence[Action], config: Any) -> bytes:
        """Primary submission payload. Pure: no chain access."""

    @abc.abstractmethod
    def calldata(self, actions: Sequence[Action], config: Any) -> list[EncodedCall]:
        """Every payload an operator submits, in submission order."""

    @abc.abstractmethod
    def simulate(
        self,
        actions: Sequence[Action],
        config: Any,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> list[str]:
        """Replay the real authorization flow. Returns the steps reached."""

    def check_on_chain(
        self,
        actions: Sequence[Action],
        config: Any,
        chains: Mapping[int, SimulatedChain],
        chain_id: int,
    ) -> bool:
        """Whether the proposed calldata is already present on chain."""
        return False

    def require_actions(self, actions: Sequence[Action]) -> None:
        if self.requires_actions and not actions:
            raise EmptyProposal(self.kind.value)

    # ------------------------------------------------------------------ #
    # Helpers for simulate()                                              #
    # ------------------------------------------------------------------ #

    @contextmanager
    def step(self, name: str) -> Iterator[None]:
        """Turn any revert inside the block into SimulationFailed(name).

        Return data that does not decode (a call into an account with no
        code returns nothing) fails the step the same way.
        """
        logger.info("%s: %s", self.kind.value, name)
        try:
            yield
        except Revert as exc:
            raise SimulationFailed(self.kind.value, name, exc.reason) from exc
        except DecodingError as exc:
            raise SimulationFailed(
                self.kind.value, name, f"undecodable return data: {exc}"
            ) from exc

    def expect(self, condition: bool, step: str, reason: str) -> None:
        if not condition:
            raise SimulationFailed(self.kind.value, step, reason)

    @staticmethod
    def read(
        chain: SimulatedChain,
        target: str,
        signature: str,
        *args: object,
        returns: Sequence[str] = ("uint256",),
    ) -> Any:
        """Static call returning a single decoded value.

        Reverts, as a Solidity caller would, when ``target`` has no code
        or returns data that does not decode as ``returns``.
        """
        require(chain.has_code(target), f"{signature}: no code at {target}")
        output = chain.static_call(READER, target, encode_call(signature, *args))
        try:
            values = decode_args(tuple(returns), output)
        except DecodingError as exc:
            raise Revert(f"{signature}: undecodable return data from {target}") from exc
        return values[0] if len(values) == 1 else values

    def read_config(
        self,
        chain: SimulatedChain,
        target: str,
        signature: str,
        *args: object,
        returns: Sequence[str] = ("uint256",),
    ) -> Any:
        """``read`` for bind-time defaults. Failures are configuration errors."""
        try:
            return self.read(chain, target, signature, *args, returns=returns)
        except Revert as exc:
            raise ConfigurationError(
                f"{self.kind.value}: cannot read {signature} from {target} "
                f"on chain {chain.chain_id}: {exc.reason}"
            ) from exc


def chain_for(chains: Mapping[int, SimulatedChain], chain_id: int, backend: str) -> SimulatedChain:
    try:
        return chains[chain_id]
    except KeyError:
        raise SimulationFailed(backend, "setup", f"no simulated chain {chain_id}") from None
