"""
Domain models and value objects.

Contains the launch run snapshot, phases, simulation state, price history,
stats store rows and the fixed market policy.
"""

from perp_launcher.core.domain.market import (
    GallerySort,
    MarketWithStats,
    OraclePriceSample,
    SimulationSummary,
    Trade,
    TradeSide,
    sort_gallery,
)
from perp_launcher.core.domain.phase import ALLOWED_TRANSITIONS, Phase, is_allowed_transition
from perp_launcher.core.domain.policy import (
    INITIAL_PRICE_E6,
    MIN_FUNDING_LAMPORTS,
    MINT_AMOUNT,
    SLAB_TIERS,
    CollateralSplit,
    SlabTier,
    build_cost_lamports,
    funding_threshold_lamports,
    get_slab_tier,
    rent_exempt_lamports,
    split_collateral,
)
from perp_launcher.core.domain.price_history import PRICE_HISTORY_CAPACITY, PriceHistoryBuffer
from perp_launcher.core.domain.run import PipelineRun
from perp_launcher.core.domain.simulation import (
    PLACEHOLDER_TOKEN,
    PricePoint,
    SimulationState,
    SimulationStatus,
    TokenPreview,
)

__all__ = [
    # Phases
    "Phase",
    "ALLOWED_TRANSITIONS",
    "is_allowed_transition",
    # Run snapshot
    "PipelineRun",
    # Simulation
    "SimulationStatus",
    "SimulationState",
    "TokenPreview",
    "PLACEHOLDER_TOKEN",
    "PricePoint",
    "PriceHistoryBuffer",
    "PRICE_HISTORY_CAPACITY",
    # Policy
    "INITIAL_PRICE_E6",
    "MIN_FUNDING_LAMPORTS",
    "MINT_AMOUNT",
    "SLAB_TIERS",
    "SlabTier",
    "get_slab_tier",
    "build_cost_lamports",
    "funding_threshold_lamports",
    "rent_exempt_lamports",
    "CollateralSplit",
    "split_collateral",
    # Stats store rows
    "MarketWithStats",
    "SimulationSummary",
    "OraclePriceSample",
    "GallerySort",
    "sort_gallery",
    "Trade",
    "TradeSide",
]
