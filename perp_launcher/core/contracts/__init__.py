"""
Contract Validation Module

Validation of JSON payloads exchanged with the simulation engine and the stats
store.
"""

from .validators import (
    ContractValidator,
    MarketWithStatsValidator,
    SchemaLoader,
    SimulationStatusValidator,
    StartEngineRequestValidator,
    TokenPreviewValidator,
    validate_market_with_stats,
    validate_simulation_status,
    validate_start_engine_request,
    validate_token_preview,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SimulationStatusValidator",
    "TokenPreviewValidator",
    "StartEngineRequestValidator",
    "MarketWithStatsValidator",
    # Functions
    "validate_simulation_status",
    "validate_token_preview",
    "validate_start_engine_request",
    "validate_market_with_stats",
]
