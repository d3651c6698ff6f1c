"""
LauncherConfig — runtime configuration loaded from environment variables.

Every value has a default so the launcher runs against devnet with no setup;
override through the environment (or a process manager's env file).

Networks:
- devnet: default until mainnet launch
- mainnet: markets program deployed, crank wallet not yet assigned
"""

import logging
import os
from dataclasses import dataclass
from typing import Dict, Final

logger = logging.getLogger(__name__)


# =============================================================================
# NETWORK TABLE
# =============================================================================


@dataclass(frozen=True)
class NetworkConfig:
    """Per-network endpoints and program identities."""

    name: str
    rpc_base_url: str
    markets_program_id: str
    matcher_program_id: str
    crank_wallet: str
    explorer_url: str


NETWORKS: Final[Dict[str, NetworkConfig]] = {
    "mainnet": NetworkConfig(
        name="mainnet",
        rpc_base_url="https://mainnet.helius-rpc.com/?api-key=",
        markets_program_id="GM8zjJ8LTBMv9xEsverh6H6wLyevgMHEJXcEzyY3rY24",
        matcher_program_id="DHP6DtwXP1yJsz8YzfoeigRFPB979gzmumkmCxDLSkUX",
        crank_wallet="",
        explorer_url="https://solscan.io",
    ),
    "devnet": NetworkConfig(
        name="devnet",
        rpc_base_url="https://devnet.helius-rpc.com/?api-key=",
        markets_program_id="8n1YAoHzZAAz2JkgASr7Yk9dokptDa9VzjbsRadu3MhL",
        matcher_program_id="4HcGCsyjAqnFua5ccuXyt8KRRQzKFbGTJkVChpS7Yfzy",
        crank_wallet="2JaSzRYrf44fPpQBtRJfnCEgThwCmvpFd3FCXi45VXxm",
        explorer_url="https://explorer.solana.com",
    ),
}

DEFAULT_NETWORK: Final[str] = "devnet"

# Simulation markets are deployed under a dedicated program build
SIMULATION_PROGRAM_ID: Final[str] = "FxfD37s1AZTeWfFQps9Zpebi2dNQ9QSSDtfMKdbsfKrD"
SIMULATION_MATCHER_PROGRAM_ID: Final[str] = "4HcGCsyjAqnFua5ccuXyt8KRRQzKFbGTJkVChpS7Yfzy"


# =============================================================================
# ENV HELPER
# =============================================================================


def _env(name: str, default, cast=str):
    """
    Read an environment variable and cast it to the type of *default*.

    Missing or empty variables, and values that fail to cast, yield *default*.
    """
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        if cast is bool:
            return raw.strip().lower() in ("true", "1", "yes")
        return cast(raw)
    except (ValueError, TypeError):
        logger.warning("Ignoring invalid value for %s: %r", name, raw)
        return default


# =============================================================================
# LAUNCHER CONFIG
# =============================================================================


@dataclass(frozen=True)
class LauncherConfig:
    """
    Launcher configuration.

    Intervals are in seconds. `sim_speed` divides the engine's price-update
    interval (5000 ms at speed 1).
    """

    network: str = DEFAULT_NETWORK
    rpc_url: str = ""
    ws_url: str = ""
    program_id: str = SIMULATION_PROGRAM_ID
    matcher_program_id: str = SIMULATION_MATCHER_PROGRAM_ID
    api_base_url: str = "http://localhost:3000"
    supabase_url: str = ""
    supabase_key: str = ""
    slab_tier: str = "small"
    sim_speed: float = 1.0
    balance_poll_sec: float = 2.0
    status_poll_sec: float = 3.0
    stats_poll_sec: float = 30.0
    http_timeout_sec: float = 10.0

    @property
    def network_config(self) -> NetworkConfig:
        return NETWORKS.get(self.network, NETWORKS[DEFAULT_NETWORK])

    @property
    def stats_store_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_key)


def load_config() -> LauncherConfig:
    """
    Build LauncherConfig from the process environment.

    Returns:
        LauncherConfig with env overrides applied
    """
    network = _env("PERP_NETWORK", DEFAULT_NETWORK)
    if network not in NETWORKS:
        logger.warning("Unknown network %r, using %s", network, DEFAULT_NETWORK)
        network = DEFAULT_NETWORK

    helius_key = _env("HELIUS_API_KEY", "")
    default_rpc = NETWORKS[network].rpc_base_url + helius_key

    return LauncherConfig(
        network=network,
        rpc_url=_env("PERP_RPC_URL", default_rpc),
        ws_url=_env("PERP_WS_URL", ""),
        program_id=_env("PERP_PROGRAM_ID", SIMULATION_PROGRAM_ID),
        matcher_program_id=_env("PERP_MATCHER_PROGRAM_ID", SIMULATION_MATCHER_PROGRAM_ID),
        api_base_url=_env("PERP_API_BASE_URL", "http://localhost:3000"),
        supabase_url=_env("SUPABASE_URL", ""),
        supabase_key=_env("SUPABASE_ANON_KEY", ""),
        slab_tier=_env("PERP_SLAB_TIER", "small"),
        sim_speed=_env("PERP_SIM_SPEED", 1.0, float),
        balance_poll_sec=_env("PERP_BALANCE_POLL_SEC", 2.0, float),
        status_poll_sec=_env("PERP_STATUS_POLL_SEC", 3.0, float),
        stats_poll_sec=_env("PERP_STATS_POLL_SEC", 30.0, float),
        http_timeout_sec=_env("PERP_HTTP_TIMEOUT_SEC", 10.0, float),
    )


# =============================================================================
# EXPLORER LINKS
# =============================================================================


def _cluster_suffix(config: LauncherConfig) -> str:
    return "?cluster=devnet" if config.network == "devnet" else ""


def explorer_tx_url(config: LauncherConfig, signature: str) -> str:
    """Explorer URL for a transaction signature."""
    return f"{config.network_config.explorer_url}/tx/{signature}{_cluster_suffix(config)}"


def explorer_account_url(config: LauncherConfig, address: str) -> str:
    """Explorer URL for an account address."""
    return f"{config.network_config.explorer_url}/account/{address}{_cluster_suffix(config)}"
