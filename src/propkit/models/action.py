"""Action — one recorded privileged call.

An action is appended exactly once, in call order, during the Build
phase and is immutable afterwards. The full ordered sequence is the
read-only input to every encoder.
"""

from __future__ import annotations

from dataclasses import dataclass

from propkit.encoding.abi import ZERO_ADDRESS, normalize_address
from propkit.errors import InvalidAction, InvalidTarget


@dataclass(frozen=True)
class Action:
    """A single privileged call.

    Invariants:
    - target is a well-formed address and never the zero address.
    - value >= 0.
    - payload is non-empty or value is strictly positive.
    - description is non-empty (reporting only, never encoded).
    """
    target: str
    value: int
    payload: bytes
    description: str

    def __post_init__(self) -> None:
        try:
            target = normalize_address(self.target)
        except ValueError as exc:
            raise InvalidTarget(str(exc)) from exc
        if target == ZERO_ADDRESS:
            raise InvalidTarget("Action target cannot be the zero address")
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise InvalidAction(f"Action value must be an integer, got {self.value!r}")
        if self.value < 0:
            raise InvalidAction(f"Action value cannot be negative: {self.value}")
        payload = bytes(self.payload)
        if not payload and self.value == 0:
            raise InvalidAction(
                f"Action to {target} has empty payload and zero value"
            )
        if not self.description:
            raise InvalidAction(f"Action to {target} has no description")
        object.__setattr__(self, "target", target)
        object.__setattr__(self, "payload", payload)

    @property
    def selector(self) -> bytes:
        """First four payload bytes (empty for value-only transfers)."""
        return self.payload[:4]

    def to_dict(self) -> dict:
        return {
            "target": self.target,
            "value": self.value,
            "payload": "0x" + self.payload.hex(),
            "description": self.description,
        }
