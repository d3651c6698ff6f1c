"""STEP 2: Oracle bootstrap + config

Signed by funding alone. The funding account first makes itself oracle
authority so it can push the initial price, caps per-push price moves, sets
funding/threshold parameters and cranks once.
"""

from dataclasses import dataclass

from perp_launcher.core.domain.policy import ORACLE_PRICE_CAP_E2BPS
from perp_launcher.ledger.instructions import (
    ACCOUNTS_SET_ORACLE_AUTHORITY,
    ACCOUNTS_UPDATE_CONFIG,
    SetOraclePriceCap,
    UpdateConfig,
    build_instruction,
)

from ..context import ProvisioningContext
from .base import (
    StepPlan,
    StepTransaction,
    crank_ix,
    make_plan,
    push_price_ix,
    set_oracle_authority_ix,
)


@dataclass(frozen=True)
class Step02Config:
    """UpdateConfig parameters."""

    funding_horizon_slots: int = 3600
    funding_k_bps: int = 100
    funding_inv_scale_notional_e6: int = 1_000_000_000_000
    funding_max_premium_bps: int = 1000
    funding_max_bps_per_slot: int = 10
    thresh_floor: int = 0
    thresh_risk_bps: int = 500
    thresh_update_interval_slots: int = 100
    thresh_step_bps: int = 100
    thresh_alpha_bps: int = 5000
    thresh_min: int = 0
    thresh_max: int = 10**18
    thresh_min_step: int = 0


class Step02OracleConfig:
    """STEP 2: SetOracleAuthority(funding) -> Push -> PriceCap -> UpdateConfig -> Crank."""

    INDEX = 2
    LABEL = "Oracle+config"
    DESCRIPTION = "Setting up oracle & config..."

    def __init__(self, config: Step02Config = None):
        self.config = config or Step02Config()

    def build(self, ctx: ProvisioningContext, now_secs: int) -> StepPlan:
        cfg = self.config
        payer = ctx.payer
        slab = ctx.slab.pubkey()

        instructions = (
            set_oracle_authority_ix(ctx.program_id, payer, slab, payer),
            push_price_ix(ctx, payer, now_secs),
            # price cap uses the admin + slab account list
            build_instruction(
                ctx.program_id,
                ACCOUNTS_SET_ORACLE_AUTHORITY,
                [payer, slab],
                SetOraclePriceCap(max_change_e2bps=ORACLE_PRICE_CAP_E2BPS),
            ),
            build_instruction(
                ctx.program_id,
                ACCOUNTS_UPDATE_CONFIG,
                [payer, slab],
                UpdateConfig(
                    funding_horizon_slots=cfg.funding_horizon_slots,
                    funding_k_bps=cfg.funding_k_bps,
                    funding_inv_scale_notional_e6=cfg.funding_inv_scale_notional_e6,
                    funding_max_premium_bps=cfg.funding_max_premium_bps,
                    funding_max_bps_per_slot=cfg.funding_max_bps_per_slot,
                    thresh_floor=cfg.thresh_floor,
                    thresh_risk_bps=cfg.thresh_risk_bps,
                    thresh_update_interval_slots=cfg.thresh_update_interval_slots,
                    thresh_step_bps=cfg.thresh_step_bps,
                    thresh_alpha_bps=cfg.thresh_alpha_bps,
                    thresh_min=cfg.thresh_min,
                    thresh_max=cfg.thresh_max,
                    thresh_min_step=cfg.thresh_min_step,
                ),
            ),
            crank_ix(ctx),
        )

        return make_plan(
            self.INDEX,
            self.DESCRIPTION,
            [StepTransaction(self.LABEL, instructions, (ctx.funding,))],
        )
