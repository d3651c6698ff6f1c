"""Simulation engine HTTP client."""

from perp_launcher.engine.client import (
    SimulationEngineClient,
    build_start_request,
    encode_oracle_secret,
)

__all__ = ["SimulationEngineClient", "build_start_request", "encode_oracle_secret"]
