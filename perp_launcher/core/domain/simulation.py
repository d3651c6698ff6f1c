"""
Simulation engine models

- SimulationStatus: raw status poll payload (every field optional)
- SimulationState: mirrored engine state; merging a poll keeps last known values
- TokenPreview: token metadata for the collateral mint
- PricePoint: one price history sample
"""

from typing import Final, Optional

from pydantic import BaseModel, Field

from .policy import INITIAL_PRICE_E6, PRICE_SCALE

DEFAULT_MODEL: Final[str] = "random-walk"


class SimulationStatus(BaseModel):
    """
    Status endpoint payload.

    Fields absent from the response stay None; unknown fields are ignored.
    """

    running: Optional[bool] = None
    price: Optional[float] = Field(default=None, description="Price (e6-scaled)")
    scenario: Optional[str] = None
    model: Optional[str] = None
    uptime: Optional[float] = Field(default=None, description="Engine uptime (ms)")

    model_config = {"frozen": True, "extra": "ignore"}


class SimulationState(BaseModel):
    """Mirrored engine state."""

    running: bool = False
    slab_address: Optional[str] = None
    price_e6: float = INITIAL_PRICE_E6
    scenario: Optional[str] = None
    model: str = DEFAULT_MODEL
    uptime_ms: float = 0.0

    model_config = {"frozen": True}

    def merge(self, status: SimulationStatus) -> "SimulationState":
        """
        Apply a status poll.

        Args:
            status: Poll payload

        Returns:
            New SimulationState; missing fields keep their current value
        """
        return self.model_copy(
            update={
                "running": self.running if status.running is None else status.running,
                "price_e6": self.price_e6 if status.price is None else status.price,
                "scenario": self.scenario if status.scenario is None else status.scenario,
                "model": self.model if status.model is None else status.model,
                "uptime_ms": self.uptime_ms if status.uptime is None else status.uptime,
            }
        )

    @property
    def price(self) -> float:
        return self.price_e6 / PRICE_SCALE


class TokenPreview(BaseModel):
    """Display metadata for the collateral token."""

    name: str
    symbol: str
    description: str = ""
    decimals: int = Field(default=6, ge=0, le=9)

    model_config = {"frozen": True}


PLACEHOLDER_TOKEN: Final[TokenPreview] = TokenPreview(
    name="Mystery Token",
    symbol="???",
    description="Could not load",
    decimals=6,
)


class PricePoint(BaseModel):
    """Price history sample (time in ms, price unscaled)."""

    time_ms: int = Field(..., ge=0)
    price: float

    model_config = {"frozen": True}
