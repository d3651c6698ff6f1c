"""STEP 1: Create mint, slab and market

One transaction, signed by funding + mint + slab:
1. create mint account (82 bytes, owner = token program)
2. initialize mint (authority = funding, no freeze authority)
3. create slab account (tier size, owner = markets program)
4. create vault ATA (owner = vault authority PDA)
5. InitMarket with the fixed risk parameters below

The slab is created with the full tier size up front and never resized.
"""

from dataclasses import dataclass

from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import CreateAccountParams, create_account
from solders.sysvar import CLOCK, RENT
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import (
    InitializeMintParams,
    create_associated_token_account,
    initialize_mint,
)

from perp_launcher.core.domain.policy import (
    INITIAL_PRICE_E6,
    MINT_SIZE,
    rent_exempt_lamports,
)
from perp_launcher.ledger.instructions import (
    ACCOUNTS_INIT_MARKET,
    InitMarket,
    build_instruction,
)

from ..context import ProvisioningContext
from .base import StepPlan, StepTransaction, make_plan


@dataclass(frozen=True)
class Step01Config:
    """InitMarket risk parameters."""

    max_staleness_secs: int = 86_400
    conf_filter_bps: int = 0
    invert: int = 0
    unit_scale: int = 0
    warmup_period_slots: int = 10
    maintenance_margin_bps: int = 500
    initial_margin_bps: int = 1000
    trading_fee_bps: int = 30
    new_account_fee: int = 1_000_000
    risk_reduction_threshold: int = 0
    maintenance_fee_per_slot: int = 0
    max_crank_staleness_slots: int = 400
    liquidation_fee_bps: int = 100
    liquidation_fee_cap: int = 100_000_000_000
    liquidation_buffer_bps: int = 50
    min_liquidation_abs: int = 1_000_000


class Step01CreateMarket:
    """STEP 1: mint + slab + vault + InitMarket."""

    INDEX = 1
    LABEL = "Create market"
    DESCRIPTION = "Creating mint, slab & market..."

    def __init__(self, config: Step01Config = None):
        self.config = config or Step01Config()

    def build(self, ctx: ProvisioningContext, now_secs: int) -> StepPlan:
        cfg = self.config
        payer = ctx.payer
        mint = ctx.mint.pubkey()
        slab = ctx.slab.pubkey()
        addrs = ctx.addresses

        instructions = (
            create_account(
                CreateAccountParams(
                    from_pubkey=payer,
                    to_pubkey=mint,
                    lamports=rent_exempt_lamports(MINT_SIZE),
                    space=MINT_SIZE,
                    owner=TOKEN_PROGRAM_ID,
                )
            ),
            initialize_mint(
                InitializeMintParams(
                    decimals=ctx.decimals,
                    program_id=TOKEN_PROGRAM_ID,
                    mint=mint,
                    mint_authority=payer,
                    freeze_authority=None,
                )
            ),
            create_account(
                CreateAccountParams(
                    from_pubkey=payer,
                    to_pubkey=slab,
                    lamports=rent_exempt_lamports(ctx.tier.data_size),
                    space=ctx.tier.data_size,
                    owner=ctx.program_id,
                )
            ),
            create_associated_token_account(payer, addrs.vault_authority, mint),
            build_instruction(
                ctx.program_id,
                ACCOUNTS_INIT_MARKET,
                [
                    payer,
                    slab,
                    mint,
                    addrs.vault_ata,
                    TOKEN_PROGRAM_ID,
                    CLOCK,
                    RENT,
                    addrs.vault_authority,
                    SYSTEM_PROGRAM_ID,
                ],
                InitMarket(
                    admin=payer,
                    collateral_mint=mint,
                    index_feed_id=bytes(32),
                    max_staleness_secs=cfg.max_staleness_secs,
                    conf_filter_bps=cfg.conf_filter_bps,
                    invert=cfg.invert,
                    unit_scale=cfg.unit_scale,
                    initial_mark_price_e6=INITIAL_PRICE_E6,
                    warmup_period_slots=cfg.warmup_period_slots,
                    maintenance_margin_bps=cfg.maintenance_margin_bps,
                    initial_margin_bps=cfg.initial_margin_bps,
                    trading_fee_bps=cfg.trading_fee_bps,
                    max_accounts=ctx.tier.max_accounts,
                    new_account_fee=cfg.new_account_fee,
                    risk_reduction_threshold=cfg.risk_reduction_threshold,
                    maintenance_fee_per_slot=cfg.maintenance_fee_per_slot,
                    max_crank_staleness_slots=cfg.max_crank_staleness_slots,
                    liquidation_fee_bps=cfg.liquidation_fee_bps,
                    liquidation_fee_cap=cfg.liquidation_fee_cap,
                    liquidation_buffer_bps=cfg.liquidation_buffer_bps,
                    min_liquidation_abs=cfg.min_liquidation_abs,
                ),
            ),
        )

        return make_plan(
            self.INDEX,
            self.DESCRIPTION,
            [StepTransaction(self.LABEL, instructions, (ctx.funding, ctx.mint, ctx.slab))],
        )
