"""
PipelineDriver — runs the six provisioning steps in order.

Order:
1. Create market         (ledger)
2. Oracle + config       (ledger)
3. LP + vAMM             (ledger)
4. Finalize oracle       (ledger)
5. Mint + fund market    (ledger, two transactions)
6. Start engine          (HTTP)

Steps are strictly sequential: a step starts only after every transaction of
the previous step is confirmed. The first failure aborts the run; ledger
objects already created are left behind.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from perp_launcher.core.errors import ProvisioningError
from perp_launcher.engine.client import SimulationEngineClient
from perp_launcher.ledger.submission import SubmissionEngine

from .context import ProvisioningContext
from .steps import (
    Step01CreateMarket,
    Step02OracleConfig,
    Step03Liquidity,
    Step04FinalizeOracle,
    Step05FundMarket,
    Step06StartEngine,
)

logger = logging.getLogger(__name__)

# (step_index, description)
ProgressCallback = Callable[[int, str], None]
# (slab_address, mint_address)
MarketCreatedCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class PipelineResult:
    """
    Outcome of one pipeline run.

    step_index is the last step that was started: on failure it points at the
    failing step.
    """

    success: bool
    step_index: int
    slab_address: str
    mint_address: str
    signatures: Tuple[str, ...] = field(default_factory=tuple)
    error: Optional[str] = None
    failed_label: Optional[str] = None


def default_ledger_steps() -> List:
    return [
        Step01CreateMarket(),
        Step02OracleConfig(),
        Step03Liquidity(),
        Step04FinalizeOracle(),
        Step05FundMarket(),
    ]


class PipelineDriver:
    """
    Sequences the ledger steps and the engine start.

    Args:
        submitter: Submission engine for ledger transactions
        engine: Simulation engine client (step 6)
        ledger_steps: Steps 1-5 (defaults to the standard market recipe)
        clock: Wall clock in seconds, used for oracle timestamps
    """

    def __init__(
        self,
        submitter: SubmissionEngine,
        engine: SimulationEngineClient,
        ledger_steps: Optional[Sequence] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.submitter = submitter
        self.ledger_steps = list(ledger_steps) if ledger_steps is not None else default_ledger_steps()
        self.engine_step = Step06StartEngine(engine)
        self.clock = clock

    async def run(
        self,
        ctx: ProvisioningContext,
        on_progress: Optional[ProgressCallback] = None,
        on_market_created: Optional[MarketCreatedCallback] = None,
    ) -> PipelineResult:
        """
        Run steps 1-6.

        Args:
            ctx: Run keys and derived addresses
            on_progress: Called with (index, description) before each step starts
            on_market_created: Called once step 1 is confirmed

        Returns:
            PipelineResult; ProvisioningError is converted into a failed result,
            anything else propagates
        """
        signatures: List[str] = []
        step_index = 0

        def _progress(index: int, description: str) -> None:
            logger.info("Step %d: %s", index, description)
            if on_progress is not None:
                on_progress(index, description)

        try:
            for step in self.ledger_steps:
                step_index = step.INDEX
                _progress(step.INDEX, step.DESCRIPTION)
                plan = step.build(ctx, int(self.clock()))
                for tx in plan.transactions:
                    signature = await self.submitter.submit(tx.instructions, tx.signers, tx.label)
                    signatures.append(str(signature))
                if step.INDEX == 1 and on_market_created is not None:
                    on_market_created(ctx.slab_address, ctx.mint_address)

            step_index = self.engine_step.INDEX
            _progress(self.engine_step.INDEX, self.engine_step.DESCRIPTION)
            await self.engine_step.execute(ctx)
        except ProvisioningError as e:
            logger.error("Pipeline failed at step %d [%s]: %s", step_index, e.label, e.diagnostic)
            return PipelineResult(
                success=False,
                step_index=step_index,
                slab_address=ctx.slab_address,
                mint_address=ctx.mint_address,
                signatures=tuple(signatures),
                error=e.diagnostic,
                failed_label=e.label,
            )

        logger.info("Market %s live after %d transactions", ctx.slab_address, len(signatures))
        return PipelineResult(
            success=True,
            step_index=step_index,
            slab_address=ctx.slab_address,
            mint_address=ctx.mint_address,
            signatures=tuple(signatures),
        )
