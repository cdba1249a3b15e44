"""Flattening of an action sequence into parallel arrays."""

from __future__ import annotations

from typing import Sequence

from propkit.models.action import Action


def flatten(actions: Sequence[Action]) -> tuple[list[str], list[int], list[bytes]]:
    """Split actions into parallel (targets, values, payloads) lists.

    Order is preserved; an empty sequence yields three empty lists.
    """
    targets = [a.target for a in actions]
    values = [a.value for a in actions]
    payloads = [a.payload for a in actions]
    return targets, values, payloads
