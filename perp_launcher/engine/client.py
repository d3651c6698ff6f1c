"""
SimulationEngineClient — HTTP client for the off-ledger price engine.

Endpoints (relative to the API base URL):
- POST /api/simulation/start         start pushing prices for a market
- POST /api/simulation/stop          stop the running engine
- POST /api/simulation/scenario      switch market scenario
- POST /api/simulation/price         one-off price override
- GET  /api/simulation               engine status
- GET  /api/simulation/random-token  token metadata for a new market

Only start is part of provisioning and raises; every other call is
fire-and-forget: failures are logged and reported as False / None /
placeholder values.
"""

import base64
import logging
from typing import Any, Dict, Optional

import httpx
from jsonschema import ValidationError
from solders.keypair import Keypair

from perp_launcher.core.contracts.validators import (
    validate_simulation_status,
    validate_start_engine_request,
    validate_token_preview,
)
from perp_launcher.core.domain.policy import INITIAL_PRICE_E6, engine_interval_ms
from perp_launcher.core.domain.simulation import (
    PLACEHOLDER_TOKEN,
    SimulationStatus,
    TokenPreview,
)
from perp_launcher.core.errors import EndpointError, EngineStartError

logger = logging.getLogger(__name__)

START_FAILED = "Failed to start"


def encode_oracle_secret(oracle: Keypair) -> str:
    """Base64 of the 64-byte oracle secret (seed + public key)."""
    return base64.b64encode(bytes(oracle)).decode("ascii")


def build_start_request(
    slab_address: str,
    oracle: Keypair,
    speed: float = 1.0,
    start_price_e6: int = INITIAL_PRICE_E6,
) -> Dict[str, Any]:
    """
    Start-engine request body.

    Raises:
        ValidationError: If the body violates the start_engine_request contract
    """
    body = {
        "slabAddress": slab_address,
        "oracleSecret": encode_oracle_secret(oracle),
        "startPriceE6": start_price_e6,
        "intervalMs": engine_interval_ms(speed),
    }
    validate_start_engine_request(body)
    return body


def _error_reason(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return START_FAILED
    if not isinstance(payload, dict):
        return START_FAILED
    return payload.get("details") or payload.get("error") or START_FAILED


class SimulationEngineClient:
    """
    Async client for the simulation engine API.

    Args:
        base_url: API base URL (e.g. http://localhost:3000)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests pass httpx.MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # PROVISIONING
    # =========================================================================

    async def start_engine(
        self, slab_address: str, oracle: Keypair, speed: float = 1.0
    ) -> None:
        """
        Start the price engine for a market.

        The oracle secret leaves the process here, once.

        Raises:
            EngineStartError: With the endpoint's reason on a non-2xx response
                or when the endpoint is unreachable
        """
        body = build_start_request(slab_address, oracle, speed)
        try:
            response = await self._get_client().post("/api/simulation/start", json=body)
        except httpx.HTTPError as e:
            raise EngineStartError("Start engine", f"{START_FAILED}: {e}") from e

        if not response.is_success:
            reason = _error_reason(response)
            logger.error("Engine start refused (%s): %s", response.status_code, reason)
            raise EngineStartError("Start engine", reason)
        logger.info("Engine started for %s", slab_address)

    # =========================================================================
    # CONTROLS
    # =========================================================================

    async def _post_control(self, path: str, body: Optional[Dict[str, Any]] = None) -> bool:
        try:
            response = await self._get_client().post(path, json=body)
            if not response.is_success:
                raise EndpointError(_error_reason(response), response.status_code)
        except (httpx.HTTPError, EndpointError) as e:
            logger.warning("POST %s failed: %s", path, e)
            return False
        return True

    async def stop(self) -> bool:
        return await self._post_control("/api/simulation/stop")

    async def set_scenario(self, scenario: str) -> bool:
        return await self._post_control("/api/simulation/scenario", {"scenario": scenario})

    async def override_price(self, price_e6: int) -> bool:
        return await self._post_control("/api/simulation/price", {"priceE6": price_e6})

    # =========================================================================
    # READS
    # =========================================================================

    async def fetch_status(self) -> Optional[SimulationStatus]:
        """
        Poll engine status.

        Returns:
            SimulationStatus, or None if the request failed or the payload
            violates the simulation_status contract
        """
        try:
            response = await self._get_client().get("/api/simulation")
            response.raise_for_status()
            payload = response.json()
            validate_simulation_status(payload)
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.debug("Status poll failed: %s", e)
            return None
        return SimulationStatus.model_validate(payload)

    async def fetch_token_preview(self) -> TokenPreview:
        """Random token metadata; the placeholder on any failure."""
        try:
            response = await self._get_client().get("/api/simulation/random-token")
            response.raise_for_status()
            payload = response.json()
            validate_token_preview(payload)
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning("Token preview unavailable: %s", e)
            return PLACEHOLDER_TOKEN
        decimals = payload.get("decimals")
        return TokenPreview(
            name=payload["name"],
            symbol=payload["symbol"],
            description=payload.get("description") or "",
            decimals=6 if decimals is None else decimals,
        )
