"""Action ledger — the ordered record of privileged calls made during Build.

Recording is bracketed: begin_recording(caller) ... end_recording().
Every action in one capture shares the build caller. Recording is
strictly sequential; starting a second capture while one is active is
an error, and calls made while recording are captured flat.
"""

from __future__ import annotations

import logging
from typing import Optional

from propkit.encoding.abi import normalize_address
from propkit.errors import AlreadyRecording, NotRecording
from propkit.models.action import Action


logger = logging.getLogger(__name__)


class ActionLedger:
    """In-memory, order-preserving action capture.

    Usage:
        ledger = ActionLedger()
        ledger.begin_recording(timelock)
        ledger.record(vault, 0, calldata, "set fee to 5 bps")
        actions = ledger.end_recording()
    """

    def __init__(self) -> None:
        self._caller: Optional[str] = None
        self._actions: list[Action] = []

    @property
    def is_recording(self) -> bool:
        return self._caller is not None

    @property
    def caller(self) -> Optional[str]:
        """The build caller of the active capture, or None."""
        return self._caller

    def __len__(self) -> int:
        return len(self._actions)

    def begin_recording(self, caller: str) -> None:
        if self._caller is not None:
            raise AlreadyRecording(f"Already recording actions for {self._caller}")
        self._caller = normalize_address(caller)
        self._actions = []
        logger.debug("Recording actions as %s", self._caller)

    def record(
        self,
        target: str,
        value: int,
        payload: bytes,
        description: Optional[str] = None,
    ) -> Action:
        """Append one action. Validation happens in Action itself."""
        if self._caller is None:
            raise NotRecording("Cannot record an action outside a capture")
        action = Action(
            target=target,
            value=value,
            payload=payload,
            description=description or default_description(payload, value),
        )
        self._actions.append(action)
        logger.debug(
            "Recorded action #%d: %s -> %s", len(self._actions), action.description, action.target
        )
        return action

    def end_recording(self) -> tuple[Action, ...]:
        if self._caller is None:
            raise NotRecording("No active capture to end")
        actions = tuple(self._actions)
        self._caller = None
        self._actions = []
        return actions


def default_description(payload: bytes, value: int) -> str:
    if payload:
        return f"call 0x{bytes(payload[:4]).hex()}"
    return f"transfer {value} wei"
