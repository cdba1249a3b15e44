"""Contract base class for the simulated environment.

A simulated contract is a Python object whose externally callable
methods are declared with ``@external(signature)``. Calls arrive as raw
calldata, are dispatched by 4-byte selector and decoded with eth_abi,
so a contract only ever sees what a real contract would see on chain.

Usage:
    class Counter(Contract):
        def __init__(self) -> None:
            self.count = 0

        @external("increment(uint256)")
        def increment(self, ctx: CallContext, by: int) -> None:
            self.count += by

        @external("count()", returns=("uint256",), view=True)
        def get_count(self, ctx: CallContext) -> int:
            return self.count
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Optional

from eth_abi import encode
from eth_abi.exceptions import DecodingError

from propkit.encoding.abi import decode_args, parse_signature, selector

if TYPE_CHECKING:
    from propkit.sim.chain import SimulatedChain


class Revert(Exception):
    """A simulated call reverted. State of the reverted frame is rolled back."""

    def __init__(self, reason: str = "") -> None:
        super().__init__(reason or "execution reverted")
        self.reason = reason


def require(condition: bool, reason: str) -> None:
    if not condition:
        raise Revert(reason)


@dataclass(frozen=True)
class FunctionABI:
    """ABI metadata attached to an external method."""
    signature: str
    selector: bytes
    arg_types: tuple[str, ...]
    returns: tuple[str, ...]
    payable: bool
    view: bool


def external(
    signature: str,
    returns: tuple[str, ...] = (),
    payable: bool = False,
    view: bool = False,
) -> Callable:
    """Declare a method callable through calldata."""
    _, arg_types = parse_signature(signature)

    def decorator(fn: Callable) -> Callable:
        fn.__abi__ = FunctionABI(
            signature=signature,
            selector=selector(signature),
            arg_types=tuple(arg_types),
            returns=tuple(returns),
            payable=payable,
            view=view,
        )
        return fn

    return decorator


@dataclass(frozen=True)
class CallContext:
    """Execution frame handed to every external method.

    ``this`` is the address whose storage and balance the frame acts on.
    Under delegate_call it is the caller's address, not the code's.
    """
    chain: "SimulatedChain"
    sender: str
    value: int
    this: str
    static: bool = False

    def call(self, target: str, data: bytes, value: int = 0) -> bytes:
        """Sub-call from this contract. Static frames stay static."""
        return self.chain.execute(self.this, target, data, value, static=self.static)

    def static_call(self, target: str, data: bytes) -> bytes:
        return self.chain.execute(self.this, target, data, 0, static=True)


class Contract:
    """Base class for simulated contracts.

    Subclasses keep all state in plain instance attributes so the chain
    can snapshot and restore it.
    """

    accepts_value: ClassVar[bool] = False
    _functions: ClassVar[dict[bytes, tuple[str, FunctionABI]]] = {}

    address: Optional[str] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        functions: dict[bytes, tuple[str, FunctionABI]] = {}
        for klass in reversed(cls.__mro__):
            for name, member in vars(klass).items():
                abi = getattr(member, "__abi__", None)
                if abi is not None:
                    functions[abi.selector] = (name, abi)
        cls._functions = functions

    @classmethod
    def function_abi(cls, signature: str) -> FunctionABI:
        entry = cls._functions.get(selector(signature))
        if entry is None:
            raise KeyError(f"{cls.__name__} has no function {signature}")
        return entry[1]

    def dispatch(self, ctx: CallContext, data: bytes) -> bytes:
        if not data:
            require(
                ctx.value == 0 or self.accepts_value,
                f"{type(self).__name__}: cannot receive value",
            )
            return b""

        entry = self._functions.get(bytes(data[:4]))
        if entry is None:
            raise Revert(f"{type(self).__name__}: unknown selector 0x{bytes(data[:4]).hex()}")
        name, abi = entry

        require(ctx.value == 0 or abi.payable, f"{abi.signature}: non-payable")
        require(not ctx.static or abi.view, f"{abi.signature}: state change in static call")

        try:
            args = decode_args(abi.arg_types, bytes(data[4:]))
        except DecodingError as exc:
            raise Revert(f"{abi.signature}: malformed calldata") from exc

        result = getattr(self, name)(ctx, *args)
        if not abi.returns:
            return b""
        values = [result] if len(abi.returns) == 1 else list(result)
        return encode(list(abi.returns), values)
