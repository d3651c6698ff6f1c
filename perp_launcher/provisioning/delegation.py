"""
Oracle delegation — hand a market's oracle authority to the crank service.

After launch the oracle authority of a market may be the admin wallet; the
crank service only pushes prices for markets whose oracle authority is the
configured crank wallet. Delegation is offered only when:
- a crank wallet is configured for the network
- the caller is the market admin
- the oracle is not already delegated
"""

import logging
from dataclasses import dataclass
from typing import Optional

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from perp_launcher.ledger.submission import SubmissionEngine

from .steps.base import set_oracle_authority_ix

logger = logging.getLogger(__name__)

DELEGATE_LABEL = "Delegate oracle"


@dataclass(frozen=True)
class DelegationDecision:
    """Whether delegation is offered, and why not."""

    allowed: bool
    reason: str


def evaluate_delegation(
    crank_wallet: str,
    caller: Pubkey,
    admin: Pubkey,
    oracle_authority: Optional[Pubkey],
) -> DelegationDecision:
    """
    Decide whether the caller may delegate the oracle to the crank wallet.

    Args:
        crank_wallet: Configured crank wallet (base58, "" if none)
        caller: Connected wallet
        admin: Market admin from the slab header
        oracle_authority: Current oracle authority (None if unset)

    Returns:
        DelegationDecision
    """
    if not crank_wallet:
        return DelegationDecision(False, "no_crank_wallet")
    if caller != admin:
        return DelegationDecision(False, "caller_not_admin")
    if oracle_authority is not None and oracle_authority == Pubkey.from_string(crank_wallet):
        return DelegationDecision(False, "already_delegated")
    return DelegationDecision(True, "ok")


def build_delegation_instruction(
    program_id: Pubkey, admin: Pubkey, slab: Pubkey, crank_wallet: str
) -> Instruction:
    return set_oracle_authority_ix(program_id, admin, slab, Pubkey.from_string(crank_wallet))


async def delegate_oracle(
    submitter: SubmissionEngine,
    program_id: Pubkey,
    admin: Keypair,
    slab: Pubkey,
    crank_wallet: str,
) -> Signature:
    """
    Submit SetOracleAuthority(crank wallet) signed by the admin.

    Raises:
        SubmissionFailure: If the transaction failed
    """
    ix = build_delegation_instruction(program_id, admin.pubkey(), slab, crank_wallet)
    signature = await submitter.submit([ix], [admin], DELEGATE_LABEL)
    logger.info("Oracle of %s delegated to %s", slab, crank_wallet)
    return signature
