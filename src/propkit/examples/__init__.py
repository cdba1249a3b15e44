"""Bundled example proposals, one per backend."""

from propkit.examples.governor_fee import GovernorFeeIncrease
from propkit.examples.multisig_fee import MultisigFeeChange
from propkit.examples.relay_remote import RemoteFeeChange
from propkit.examples.timelock_batch import TimelockMaintenance

__all__ = [
    "GovernorFeeIncrease",
    "MultisigFeeChange",
    "RemoteFeeChange",
    "TimelockMaintenance",
]
