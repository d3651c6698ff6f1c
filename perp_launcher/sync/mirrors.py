"""
Stats store mirrors.

- AllMarketStatsMirror: slab address -> markets_with_stats row, pull every
  30 s, push on market_stats changes
- MarketsMirror: list of markets, push on markets and market_stats changes
- MarketInfoMirror: one market by slab, push on its market_stats row
"""

import logging
from typing import Dict, List, Optional

from perp_launcher.core.config import LauncherConfig
from perp_launcher.core.domain.market import MarketWithStats

from .realtime import RealtimeChannel
from .reconciler import SyncedMirror
from .stats_store import StatsStore

logger = logging.getLogger(__name__)


def _channel(config: LauncherConfig, topic: str, tables: List[str], filters=None):
    if not config.stats_store_enabled:
        return None
    return RealtimeChannel(
        config.supabase_url, config.supabase_key, topic, tables, filters=filters
    )


class AllMarketStatsMirror(SyncedMirror[Dict[str, MarketWithStats]]):
    def __init__(self, store: StatsStore, config: LauncherConfig, push: bool = True):
        async def load() -> Dict[str, MarketWithStats]:
            rows = await store.fetch_markets_with_stats()
            return {row.slab_address: row for row in rows if row.slab_address}

        super().__init__(
            "all-market-stats",
            load,
            config.stats_poll_sec,
            push_source=_channel(config, "all-market-stats", ["market_stats"]) if push else None,
            initial={},
        )


class MarketsMirror(SyncedMirror[List[MarketWithStats]]):
    def __init__(self, store: StatsStore, config: LauncherConfig, push: bool = True):
        super().__init__(
            "markets",
            store.fetch_markets_with_stats,
            config.stats_poll_sec,
            push_source=(
                _channel(config, "markets-realtime", ["markets", "market_stats"]) if push else None
            ),
            initial=[],
        )


class MarketInfoMirror(SyncedMirror[Optional[MarketWithStats]]):
    """Single market; every push triggers a full reload of its row."""

    def __init__(
        self, store: StatsStore, config: LauncherConfig, slab_address: str, push: bool = True
    ):
        self.slab_address = slab_address

        async def load() -> Optional[MarketWithStats]:
            return await store.fetch_market(slab_address)

        push_source = None
        if push:
            push_source = _channel(
                config,
                f"market-{slab_address}",
                ["market_stats"],
                filters={"market_stats": f"slab_address=eq.{slab_address}"},
            )
        super().__init__(
            f"market-{slab_address}", load, config.stats_poll_sec, push_source=push_source
        )
