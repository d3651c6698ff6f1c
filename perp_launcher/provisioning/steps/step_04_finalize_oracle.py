"""STEP 4: Finalize oracle

Signed by funding + oracle. Push and crank once more as the funding account,
then hand oracle authority to the dedicated oracle keypair and prove it works
with a push one second later signed by the oracle itself.
"""

from ..context import ProvisioningContext
from .base import (
    StepPlan,
    StepTransaction,
    crank_ix,
    make_plan,
    push_price_ix,
    set_oracle_authority_ix,
)


class Step04FinalizeOracle:
    """STEP 4: Push -> Crank -> SetOracleAuthority(oracle) -> Push(oracle)."""

    INDEX = 4
    LABEL = "Finalize oracle"
    DESCRIPTION = "Finalizing oracle..."

    def build(self, ctx: ProvisioningContext, now_secs: int) -> StepPlan:
        payer = ctx.payer
        oracle = ctx.oracle.pubkey()
        slab = ctx.slab.pubkey()

        instructions = (
            push_price_ix(ctx, payer, now_secs),
            crank_ix(ctx),
            set_oracle_authority_ix(ctx.program_id, payer, slab, oracle),
            push_price_ix(ctx, oracle, now_secs + 1),
        )

        return make_plan(
            self.INDEX,
            self.DESCRIPTION,
            [StepTransaction(self.LABEL, instructions, (ctx.funding, ctx.oracle))],
        )
