"""
Ledger layer: address derivation, instruction codec, RPC transport,
submission and failure diagnostics.
"""

from perp_launcher.ledger.addresses import (
    MarketAddresses,
    derive_associated_token_address,
    derive_lp_pda,
    derive_market_addresses,
    derive_vault_authority,
)
from perp_launcher.ledger.submission import SubmissionEngine
from perp_launcher.ledger.transport import LedgerTransport, SolanaRpcTransport

__all__ = [
    "MarketAddresses",
    "derive_vault_authority",
    "derive_lp_pda",
    "derive_associated_token_address",
    "derive_market_addresses",
    "SubmissionEngine",
    "LedgerTransport",
    "SolanaRpcTransport",
]
