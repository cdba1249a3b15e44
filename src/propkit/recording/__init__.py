"""Action recording — the ledger and the phase contexts that feed it."""

from propkit.recording.context import BuildContext, DeployContext, ValidateContext
from propkit.recording.ledger import ActionLedger

__all__ = ["ActionLedger", "BuildContext", "DeployContext", "ValidateContext"]
