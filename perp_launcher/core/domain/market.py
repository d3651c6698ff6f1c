"""
Stats store rows — markets, market stats, simulations, trades

Immutable Pydantic models mirroring the stats store views:
- markets_with_stats (MarketWithStats)
- simulation_gallery (SimulationSummary)
- simulation_price_history (OraclePriceSample)
- trades (Trade)

Numeric stats are nullable until the indexer has written them.
"""

from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field


# =============================================================================
# MARKETS
# =============================================================================


class MarketWithStats(BaseModel):
    """
    Market row joined with its latest stats.
    """

    id: Optional[str] = None
    slab_address: str = Field(..., description="Market state account (base58)")
    mint_address: Optional[str] = None
    symbol: Optional[str] = None
    name: Optional[str] = None
    decimals: Optional[int] = None
    deployer: Optional[str] = None
    oracle_authority: Optional[str] = None
    initial_price_e6: Optional[float] = None
    max_leverage: Optional[float] = None
    trading_fee_bps: Optional[int] = None
    lp_collateral: Optional[float] = None
    matcher_context: Optional[str] = None
    status: Optional[str] = None
    created_at: Optional[str] = None

    # Stats (market_stats)
    last_price: Optional[float] = None
    mark_price: Optional[float] = None
    index_price: Optional[float] = None
    volume_24h: Optional[float] = None
    volume_total: Optional[float] = None
    open_interest_long: Optional[float] = None
    open_interest_short: Optional[float] = None
    insurance_fund: Optional[float] = None
    total_accounts: Optional[int] = None
    funding_rate: Optional[float] = None
    stats_updated_at: Optional[str] = None

    model_config = {"frozen": True, "extra": "ignore"}


# =============================================================================
# SIMULATIONS
# =============================================================================


class SimulationSummary(BaseModel):
    """Finished or running simulation session (simulation_gallery view)."""

    id: str
    status: str
    slab_address: str
    mint_address: Optional[str] = None
    token_symbol: Optional[str] = None
    token_name: Optional[str] = None
    creator_wallet: Optional[str] = None
    model: Optional[str] = None
    scenario: Optional[str] = None
    start_price_e6: Optional[float] = None
    end_price_e6: Optional[float] = None
    high_price_e6: Optional[float] = None
    low_price_e6: Optional[float] = None
    total_trades: Optional[int] = None
    total_liquidations: Optional[int] = None
    total_volume_e6: Optional[float] = None
    force_closes: Optional[int] = None
    duration_seconds: Optional[int] = None
    bot_count: Optional[int] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    price_change_pct: Optional[float] = None

    model_config = {"frozen": True, "extra": "ignore"}


class OraclePriceSample(BaseModel):
    """Recorded price of a simulation session."""

    price_e6: float
    timestamp: int

    model_config = {"frozen": True, "extra": "ignore"}


class GallerySort(str, Enum):
    """Gallery ordering."""

    NEWEST = "newest"
    BIGGEST_MOVE = "biggest_move"
    MOST_TRADES = "most_trades"
    MOST_LIQUIDATIONS = "most_liquidations"


def sort_gallery(
    rows: Sequence[SimulationSummary], key: GallerySort = GallerySort.NEWEST
) -> List[SimulationSummary]:
    """
    Order gallery rows. Missing values sort as empty / zero.

    Args:
        rows: Gallery rows
        key: Ordering

    Returns:
        New list, descending by the chosen key
    """
    if key == GallerySort.NEWEST:
        return sorted(rows, key=lambda r: r.started_at or "", reverse=True)
    if key == GallerySort.BIGGEST_MOVE:
        return sorted(rows, key=lambda r: abs(r.price_change_pct or 0.0), reverse=True)
    if key == GallerySort.MOST_TRADES:
        return sorted(rows, key=lambda r: r.total_trades or 0, reverse=True)
    return sorted(rows, key=lambda r: r.total_liquidations or 0, reverse=True)


# =============================================================================
# TRADES
# =============================================================================


class TradeSide(str, Enum):
    LONG = "long"
    SHORT = "short"


class Trade(BaseModel):
    """Executed trade."""

    id: str
    slab_address: str
    trader: str
    side: TradeSide
    size: float
    price: float
    fee: float
    tx_signature: Optional[str] = None
    created_at: str

    model_config = {"frozen": True, "extra": "ignore"}
