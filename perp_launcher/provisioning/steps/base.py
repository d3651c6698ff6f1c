"""
Step plan types and the instruction helpers shared by the ledger steps.

A StepPlan is pure data: ordered transactions, each with its ordered
instructions, exact signer set and the label used in diagnostics.
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.sysvar import CLOCK

from perp_launcher.core.domain.policy import CRANK_CALLER_PERMISSIONLESS, INITIAL_PRICE_E6
from perp_launcher.ledger.instructions import (
    ACCOUNTS_KEEPER_CRANK,
    ACCOUNTS_PUSH_ORACLE_PRICE,
    ACCOUNTS_SET_ORACLE_AUTHORITY,
    KeeperCrank,
    PushOraclePrice,
    SetOracleAuthority,
    build_instruction,
)

from ..context import ProvisioningContext


@dataclass(frozen=True)
class StepTransaction:
    """One ledger transaction of a step."""

    label: str
    instructions: Tuple[Instruction, ...]
    signers: Tuple[Keypair, ...]

    @property
    def signer_keys(self) -> Tuple[Pubkey, ...]:
        return tuple(kp.pubkey() for kp in self.signers)


@dataclass(frozen=True)
class StepPlan:
    """Ordered transactions of one pipeline step."""

    index: int
    description: str
    transactions: Tuple[StepTransaction, ...]


def make_plan(
    index: int, description: str, transactions: Sequence[StepTransaction]
) -> StepPlan:
    return StepPlan(index=index, description=description, transactions=tuple(transactions))


# =============================================================================
# SHARED INSTRUCTIONS
# =============================================================================


def push_price_ix(
    ctx: ProvisioningContext, authority: Pubkey, timestamp: int, price_e6: int = INITIAL_PRICE_E6
) -> Instruction:
    slab = ctx.slab.pubkey()
    return build_instruction(
        ctx.program_id,
        ACCOUNTS_PUSH_ORACLE_PRICE,
        [authority, slab],
        PushOraclePrice(price_e6=price_e6, timestamp=timestamp),
    )


def crank_ix(ctx: ProvisioningContext) -> Instruction:
    slab = ctx.slab.pubkey()
    # the slab doubles as the oracle account for admin-pushed prices
    return build_instruction(
        ctx.program_id,
        ACCOUNTS_KEEPER_CRANK,
        [ctx.payer, slab, CLOCK, slab],
        KeeperCrank(caller_idx=CRANK_CALLER_PERMISSIONLESS, allow_panic=False),
    )


def set_oracle_authority_ix(
    program_id: Pubkey, admin: Pubkey, slab: Pubkey, new_authority: Pubkey
) -> Instruction:
    return build_instruction(
        program_id,
        ACCOUNTS_SET_ORACLE_AUTHORITY,
        [admin, slab],
        SetOracleAuthority(new_authority=new_authority),
    )
