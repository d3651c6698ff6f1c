"""
Exception hierarchy for perp-launcher.

Taxonomy:
- LedgerTransportError: RPC-level rejection, expiry or failed execution
- ProvisioningError: a pipeline step failed (always carries the step label)
- InvalidPhaseTransition: a phase change outside the allowed graph
- EndpointError / StatsStoreError: HTTP collaborators answered with an error
"""

from typing import List, Optional


class LauncherError(Exception):
    """Base class for all perp-launcher errors."""


# =============================================================================
# LEDGER TRANSPORT
# =============================================================================


class LedgerTransportError(LauncherError):
    """
    Error raised by the ledger transport.

    Args:
        message: Raw transport message
        logs: Program logs attached to the error, if the transport returned any
        signature: Transaction signature, if the transaction reached the ledger
    """

    def __init__(
        self,
        message: str,
        logs: Optional[List[str]] = None,
        signature: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.logs = list(logs) if logs else []
        self.signature = signature


class ConfirmationTimeout(LedgerTransportError):
    """Blockhash expired (last valid block height exceeded) before confirmation."""


class TransactionRejected(LedgerTransportError):
    """Transaction landed but its execution failed."""


# =============================================================================
# PROVISIONING
# =============================================================================


class ProvisioningError(LauncherError):
    """
    A provisioning step failed.

    The label identifies which transaction group produced the failure, so callers
    never need the raw instruction data to locate it.
    """

    def __init__(self, label: str, diagnostic: str):
        super().__init__(diagnostic)
        self.label = label
        self.diagnostic = diagnostic


class SubmissionFailure(ProvisioningError):
    """Submission or confirmation of a step transaction failed."""

    def __init__(self, label: str, diagnostic: str, signature: Optional[str] = None):
        super().__init__(label, diagnostic)
        self.signature = signature


class EngineStartError(ProvisioningError):
    """The start-engine endpoint refused to start the price driver."""


# =============================================================================
# SESSION / HTTP
# =============================================================================


class InvalidPhaseTransition(LauncherError):
    """Requested phase change is not an edge of the phase graph."""


class EndpointError(LauncherError):
    """HTTP endpoint returned a non-success response."""

    def __init__(self, reason: str, status_code: Optional[int] = None):
        super().__init__(reason)
        self.reason = reason
        self.status_code = status_code


class StatsStoreError(LauncherError):
    """Stats store (PostgREST) request failed."""
