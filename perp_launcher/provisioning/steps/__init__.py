"""Steps — the ordered provisioning steps of a market launch.

- STEP 1: Create mint, slab & market
- STEP 2: Oracle bootstrap + config
- STEP 3: LP + vAMM
- STEP 4: Finalize oracle
- STEP 5: Mint tokens + fund market
- STEP 6: Start simulation engine (off-ledger)
"""

from .base import StepPlan, StepTransaction
from .step_01_create_market import Step01Config, Step01CreateMarket
from .step_02_oracle_config import Step02Config, Step02OracleConfig
from .step_03_liquidity import Step03Config, Step03Liquidity
from .step_04_finalize_oracle import Step04FinalizeOracle
from .step_05_fund_market import Step05FundMarket
from .step_06_start_engine import Step06StartEngine

__all__ = [
    "StepPlan",
    "StepTransaction",
    "Step01CreateMarket",
    "Step01Config",
    "Step02OracleConfig",
    "Step02Config",
    "Step03Liquidity",
    "Step03Config",
    "Step04FinalizeOracle",
    "Step05FundMarket",
    "Step06StartEngine",
]
