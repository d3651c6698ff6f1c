"""STEP 6: Start simulation engine

Not a ledger transaction: hands the slab address and the oracle secret to the
engine, which pushes prices from then on. A refusal fails the pipeline like a
ledger step would.
"""

from perp_launcher.engine.client import SimulationEngineClient

from ..context import ProvisioningContext


class Step06StartEngine:
    """STEP 6: POST /api/simulation/start."""

    INDEX = 6
    LABEL = "Start engine"
    DESCRIPTION = "Starting simulation engine..."

    def __init__(self, engine: SimulationEngineClient):
        self.engine = engine

    async def execute(self, ctx: ProvisioningContext) -> None:
        """
        Raises:
            EngineStartError: If the engine refused to start
        """
        await self.engine.start_engine(ctx.slab_address, ctx.oracle, ctx.sim_speed)
