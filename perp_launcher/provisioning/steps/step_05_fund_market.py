"""STEP 5: Mint tokens + fund market

Two transactions:
- "Mint tokens" (funding): mint the full collateral supply to the funding ATA
- "Fund market" (funding + oracle): deposit 70% as LP collateral, top up
  insurance with 20%, push a fresh price as the oracle, crank

The remaining 10% stays in the funding ATA.
"""

from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import MintToParams, mint_to
from solders.sysvar import CLOCK

from perp_launcher.core.domain.policy import LP_INDEX, MINT_AMOUNT, split_collateral
from perp_launcher.ledger.instructions import (
    ACCOUNTS_DEPOSIT_COLLATERAL,
    ACCOUNTS_TOPUP_INSURANCE,
    DepositCollateral,
    TopUpInsurance,
    build_instruction,
)

from ..context import ProvisioningContext
from .base import StepPlan, StepTransaction, crank_ix, make_plan, push_price_ix


class Step05FundMarket:
    """STEP 5: MintTo | Deposit -> TopUp -> Push(oracle) -> Crank."""

    INDEX = 5
    MINT_LABEL = "Mint tokens"
    FUND_LABEL = "Fund market"
    DESCRIPTION = "Minting tokens & funding market..."

    def __init__(self, mint_amount: int = MINT_AMOUNT):
        self.mint_amount = mint_amount

    def build(self, ctx: ProvisioningContext, now_secs: int) -> StepPlan:
        payer = ctx.payer
        mint = ctx.mint.pubkey()
        slab = ctx.slab.pubkey()
        addrs = ctx.addresses
        split = split_collateral(self.mint_amount)

        mint_tx = StepTransaction(
            self.MINT_LABEL,
            (
                mint_to(
                    MintToParams(
                        program_id=TOKEN_PROGRAM_ID,
                        mint=mint,
                        dest=addrs.funding_ata,
                        mint_authority=payer,
                        amount=self.mint_amount,
                    )
                ),
            ),
            (ctx.funding,),
        )

        fund_tx = StepTransaction(
            self.FUND_LABEL,
            (
                build_instruction(
                    ctx.program_id,
                    ACCOUNTS_DEPOSIT_COLLATERAL,
                    [payer, slab, addrs.funding_ata, addrs.vault_ata, TOKEN_PROGRAM_ID, CLOCK],
                    DepositCollateral(user_idx=LP_INDEX, amount=split.lp_collateral),
                ),
                build_instruction(
                    ctx.program_id,
                    ACCOUNTS_TOPUP_INSURANCE,
                    [payer, slab, addrs.funding_ata, addrs.vault_ata, TOKEN_PROGRAM_ID],
                    TopUpInsurance(amount=split.insurance),
                ),
                push_price_ix(ctx, ctx.oracle.pubkey(), now_secs),
                crank_ix(ctx),
            ),
            (ctx.funding, ctx.oracle),
        )

        return make_plan(self.INDEX, self.DESCRIPTION, [mint_tx, fund_tx])
