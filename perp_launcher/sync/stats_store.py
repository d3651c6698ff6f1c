"""
StatsStore — read/write client for the stats store (Supabase PostgREST).

Tables and views:
- markets_with_stats        markets joined with latest stats (read)
- market_stats              latest stats per market (upsert, service key)
- simulation_gallery        finished/running simulation sessions (read)
- simulation_price_history  price samples per session (read)
- trades                    executed trades (read)

Every failure raises StatsStoreError; mirrors built on top keep their last
good value.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from jsonschema import ValidationError

from perp_launcher.core.contracts.validators import validate_market_with_stats
from perp_launcher.core.domain.market import (
    MarketWithStats,
    OraclePriceSample,
    SimulationSummary,
    Trade,
)
from perp_launcher.core.errors import StatsStoreError

logger = logging.getLogger(__name__)

BASE58_PUBKEY = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")

GALLERY_LIMIT = 100
TRADES_DEFAULT_LIMIT = 50
TRADES_MAX_LIMIT = 200


def clamp_trade_limit(limit: Optional[int]) -> int:
    """Clamp a trades page size to 1..200 (None -> 50)."""
    if limit is None:
        return TRADES_DEFAULT_LIMIT
    return min(max(int(limit), 1), TRADES_MAX_LIMIT)


def _require_slab(slab_address: str) -> None:
    if not BASE58_PUBKEY.match(slab_address or ""):
        raise StatsStoreError(f"Invalid slab address: {slab_address!r}")


class StatsStore:
    """
    Async PostgREST client.

    Args:
        url: Supabase project URL
        anon_key: Public (row-level-security) key used for reads
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url or not anon_key:
            raise StatsStoreError("Stats store not configured")
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self._client = httpx.AsyncClient(
            base_url=f"{self.url}/rest/v1",
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _headers(key: str) -> Dict[str, str]:
        return {"apikey": key, "Authorization": f"Bearer {key}"}

    async def _select(self, table: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        try:
            response = await self._client.get(
                f"/{table}", params=params, headers=self._headers(self.anon_key)
            )
        except httpx.HTTPError as e:
            raise StatsStoreError(f"{table}: {e}") from e
        if not response.is_success:
            raise StatsStoreError(f"{table}: HTTP {response.status_code} {response.text}")
        try:
            rows = response.json()
        except ValueError as e:
            raise StatsStoreError(f"{table}: invalid JSON") from e
        if not isinstance(rows, list):
            raise StatsStoreError(f"{table}: expected a list of rows")
        return rows

    # =========================================================================
    # MARKETS
    # =========================================================================

    async def fetch_markets_with_stats(self) -> List[MarketWithStats]:
        """All markets with their latest stats. Rows failing the contract are skipped."""
        markets = []
        for row in await self._select("markets_with_stats", {"select": "*"}):
            try:
                validate_market_with_stats(row)
            except ValidationError as e:
                logger.warning("Skipping invalid markets_with_stats row: %s", e.message)
                continue
            markets.append(MarketWithStats.model_validate(row))
        return markets

    async def fetch_market(self, slab_address: str) -> Optional[MarketWithStats]:
        _require_slab(slab_address)
        rows = await self._select(
            "markets_with_stats",
            {"select": "*", "slab_address": f"eq.{slab_address}", "limit": 1},
        )
        if not rows:
            return None
        return MarketWithStats.model_validate(rows[0])

    async def upsert_market_stats(
        self, slab_address: str, stats: Dict[str, Any], service_key: str
    ) -> None:
        """
        Write the latest stats of a market, stamping updated_at.

        Args:
            slab_address: Market
            stats: market_stats columns
            service_key: Service-role key (bypasses row-level security)
        """
        _require_slab(slab_address)
        row = {
            "slab_address": slab_address,
            **stats,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        headers = self._headers(service_key)
        headers["Prefer"] = "resolution=merge-duplicates"
        try:
            response = await self._client.post("/market_stats", json=row, headers=headers)
        except httpx.HTTPError as e:
            raise StatsStoreError(f"market_stats: {e}") from e
        if not response.is_success:
            raise StatsStoreError(
                f"market_stats: HTTP {response.status_code} {response.text}"
            )

    # =========================================================================
    # SIMULATIONS
    # =========================================================================

    async def fetch_simulation_gallery(self, limit: int = GALLERY_LIMIT) -> List[SimulationSummary]:
        rows = await self._select(
            "simulation_gallery",
            {"select": "*", "order": "started_at.desc", "limit": limit},
        )
        return [SimulationSummary.model_validate(row) for row in rows]

    async def fetch_simulation_prices(self, session_id: str) -> List[OraclePriceSample]:
        rows = await self._select(
            "simulation_price_history",
            {
                "select": "price_e6,timestamp",
                "session_id": f"eq.{session_id}",
                "order": "timestamp.asc",
            },
        )
        return [OraclePriceSample.model_validate(row) for row in rows]

    # =========================================================================
    # TRADES
    # =========================================================================

    async def fetch_recent_trades(
        self, slab_address: str, limit: Optional[int] = None
    ) -> List[Trade]:
        _require_slab(slab_address)
        rows = await self._select(
            "trades",
            {
                "select": "*",
                "slab_address": f"eq.{slab_address}",
                "order": "created_at.desc",
                "limit": clamp_trade_limit(limit),
            },
        )
        return [Trade.model_validate(row) for row in rows]

    async def fetch_global_recent_trades(self, limit: Optional[int] = None) -> List[Trade]:
        rows = await self._select(
            "trades",
            {"select": "*", "order": "created_at.desc", "limit": clamp_trade_limit(limit)},
        )
        return [Trade.model_validate(row) for row in rows]
