"""
PipelineRun — observable snapshot of one launch run

Immutable Pydantic model. The session replaces it on every change
(model_copy(update=...)), so observers never see a half-applied update.
"""

from typing import Optional

from pydantic import BaseModel, Field

from .phase import Phase


class PipelineRun(BaseModel):
    """
    Snapshot of the current run.

    step_index is set *before* a step starts: an observer reading 3 knows
    step 3 is in progress, never that it is already done.
    """

    phase: Phase = Field(default=Phase.DEPOSIT, description="Current phase")
    step_index: int = Field(default=0, ge=0, le=6, description="Step in progress (0 = none)")
    step_label: str = Field(default="", description="Human-readable step description")
    last_error: Optional[str] = Field(default=None, description="Latest diagnostic")
    funding_address: str = Field(..., description="Funding account address (base58)")
    balance_lamports: int = Field(default=0, ge=0, description="Last observed funding balance")
    slab_address: Optional[str] = Field(default=None, description="Market state account")
    mint_address: Optional[str] = Field(default=None, description="Collateral mint")

    model_config = {"frozen": True}
