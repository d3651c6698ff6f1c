"""STEP 3: LP + vAMM

Signed by funding + matcher context:
1. create the funding ATA
2. create the matcher context account (320 bytes, owner = matcher program)
3. mint the LP fee to the funding ATA
4. InitLP binding LP index 0 to the matcher program and context
5. matcher InitVamm (lp PDA readonly, context writable)
"""

from dataclasses import dataclass

from solders.system_program import CreateAccountParams, create_account
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import MintToParams, create_associated_token_account, mint_to

from perp_launcher.core.domain.policy import LP_FEE, MATCHER_CTX_SIZE, rent_exempt_lamports
from perp_launcher.ledger.instructions import (
    ACCOUNTS_INIT_LP,
    ACCOUNTS_INIT_VAMM,
    InitLP,
    InitVamm,
    build_instruction,
)

from ..context import ProvisioningContext
from .base import StepPlan, StepTransaction, make_plan


@dataclass(frozen=True)
class Step03Config:
    """vAMM quoting parameters."""

    mode: int = 0
    trading_fee_bps: int = 30
    base_spread_bps: int = 50
    max_total_bps: int = 200
    impact_k_bps: int = 0
    liquidity_notional_e6: int = 10_000_000_000_000
    max_fill_abs: int = 1_000_000_000_000
    max_inventory_abs: int = 0


class Step03Liquidity:
    """STEP 3: funding ATA + matcher context + InitLP + InitVamm."""

    INDEX = 3
    LABEL = "LP+vAMM"
    DESCRIPTION = "Initializing LP & vAMM..."

    def __init__(self, config: Step03Config = None):
        self.config = config or Step03Config()

    def build(self, ctx: ProvisioningContext, now_secs: int) -> StepPlan:
        cfg = self.config
        payer = ctx.payer
        mint = ctx.mint.pubkey()
        slab = ctx.slab.pubkey()
        matcher_ctx = ctx.matcher_context.pubkey()
        addrs = ctx.addresses

        instructions = (
            create_associated_token_account(payer, payer, mint),
            create_account(
                CreateAccountParams(
                    from_pubkey=payer,
                    to_pubkey=matcher_ctx,
                    lamports=rent_exempt_lamports(MATCHER_CTX_SIZE),
                    space=MATCHER_CTX_SIZE,
                    owner=ctx.matcher_program_id,
                )
            ),
            mint_to(
                MintToParams(
                    program_id=TOKEN_PROGRAM_ID,
                    mint=mint,
                    dest=addrs.funding_ata,
                    mint_authority=payer,
                    amount=LP_FEE,
                )
            ),
            build_instruction(
                ctx.program_id,
                ACCOUNTS_INIT_LP,
                [payer, slab, addrs.funding_ata, addrs.vault_ata, TOKEN_PROGRAM_ID],
                InitLP(
                    matcher_program=ctx.matcher_program_id,
                    matcher_context=matcher_ctx,
                    fee_payment=LP_FEE,
                ),
            ),
            build_instruction(
                ctx.matcher_program_id,
                ACCOUNTS_INIT_VAMM,
                [addrs.lp_pda, matcher_ctx],
                InitVamm(
                    mode=cfg.mode,
                    trading_fee_bps=cfg.trading_fee_bps,
                    base_spread_bps=cfg.base_spread_bps,
                    max_total_bps=cfg.max_total_bps,
                    impact_k_bps=cfg.impact_k_bps,
                    liquidity_notional_e6=cfg.liquidity_notional_e6,
                    max_fill_abs=cfg.max_fill_abs,
                    max_inventory_abs=cfg.max_inventory_abs,
                ),
            ),
        )

        return make_plan(
            self.INDEX,
            self.DESCRIPTION,
            [StepTransaction(self.LABEL, instructions, (ctx.funding, ctx.matcher_context))],
        )
