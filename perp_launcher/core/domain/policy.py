"""
Market policy — fixed provisioning constants for launched simulation markets.

Amounts are in base units of the collateral mint (6 decimals by default),
prices are e6-scaled, rents are lamports.

The collateral split (70% LP collateral / 20% insurance / 10% retained) is policy,
not configuration.
"""

from dataclasses import dataclass
from typing import Dict, Final


# =============================================================================
# FUNDING
# =============================================================================
LAMPORTS_PER_SOL: Final[int] = 1_000_000_000

# Minimum funding balance that starts the build; larger slab tiers raise it
# to their build cost (see funding_threshold_lamports)
MIN_FUNDING_SOL: Final[float] = 0.5
MIN_FUNDING_LAMPORTS: Final[int] = int(MIN_FUNDING_SOL * LAMPORTS_PER_SOL)


# =============================================================================
# MARKET POLICY
# =============================================================================
INITIAL_PRICE_E6: Final[int] = 1_000_000
PRICE_SCALE: Final[float] = 1e6

# Full collateral supply minted to the funding account in step 5
MINT_AMOUNT: Final[int] = 10_000_000_000

# Fee paid by the LP on InitLP (minted separately in step 3)
LP_FEE: Final[int] = 1_000_000

LP_COLLATERAL_PCT: Final[int] = 70
INSURANCE_PCT: Final[int] = 20

# LP account index that receives the collateral deposit
LP_INDEX: Final[int] = 0

# Max single-push oracle move (e2 bps: 100_000 = 10%)
ORACLE_PRICE_CAP_E2BPS: Final[int] = 100_000

# KeeperCrank caller index for a permissionless crank
CRANK_CALLER_PERMISSIONLESS: Final[int] = 65535

DEFAULT_DECIMALS: Final[int] = 6


# =============================================================================
# ACCOUNT SIZES / RENT
# =============================================================================
MINT_SIZE: Final[int] = 82
TOKEN_ACCOUNT_SIZE: Final[int] = 165
MATCHER_CTX_SIZE: Final[int] = 320

# Rent-exempt minimum: (data_len + account overhead) * lamports_per_byte_year * 2
ACCOUNT_STORAGE_OVERHEAD: Final[int] = 128
RENT_LAMPORTS_PER_BYTE: Final[int] = 6960


def rent_exempt_lamports(data_size: int) -> int:
    """
    Rent-exempt minimum balance for an account of *data_size* bytes.

    Args:
        data_size: Account data length (bytes)

    Returns:
        Lamports required for rent exemption

    Raises:
        ValueError: If data_size is negative
    """
    if data_size < 0:
        raise ValueError(f"data_size must be non-negative, got {data_size}")
    return (data_size + ACCOUNT_STORAGE_OVERHEAD) * RENT_LAMPORTS_PER_BYTE


@dataclass(frozen=True)
class SlabTier:
    """Capacity tier of the market-state (slab) account."""

    name: str
    max_accounts: int
    data_size: int


SLAB_TIERS: Final[Dict[str, SlabTier]] = {
    "small": SlabTier(name="small", max_accounts=256, data_size=62_808),
    "medium": SlabTier(name="medium", max_accounts=1024, data_size=248_760),
    "large": SlabTier(name="large", max_accounts=4096, data_size=992_560),
}


def get_slab_tier(name: str) -> SlabTier:
    """
    Resolve a slab tier by name.

    Raises:
        ValueError: If the tier is unknown
    """
    try:
        return SLAB_TIERS[name]
    except KeyError:
        raise ValueError(
            f"Unknown slab tier {name!r}, expected one of {sorted(SLAB_TIERS)}"
        ) from None


# Transaction fees and priority headroom for the six build transactions
BUILD_FEE_RESERVE_LAMPORTS: Final[int] = 10_000_000


def build_cost_lamports(tier: SlabTier) -> int:
    """
    Lamports the funding account spends on one build.

    Covers the rent of every account the steps create (mint, slab, vault and
    payer token accounts, matcher context) plus BUILD_FEE_RESERVE_LAMPORTS.
    """
    return (
        rent_exempt_lamports(MINT_SIZE)
        + rent_exempt_lamports(tier.data_size)
        + 2 * rent_exempt_lamports(TOKEN_ACCOUNT_SIZE)
        + rent_exempt_lamports(MATCHER_CTX_SIZE)
        + BUILD_FEE_RESERVE_LAMPORTS
    )


def funding_threshold_lamports(tier: SlabTier) -> int:
    """Funding balance that starts a build for *tier*: 0.5 SOL or the build cost, whichever is higher."""
    return max(MIN_FUNDING_LAMPORTS, build_cost_lamports(tier))


# =============================================================================
# ENGINE
# =============================================================================
ENGINE_BASE_INTERVAL_MS: Final[int] = 5000


def engine_interval_ms(speed: float) -> float:
    """Engine price-update interval for a simulation speed multiplier."""
    if speed <= 0:
        raise ValueError(f"speed must be positive, got {speed}")
    return ENGINE_BASE_INTERVAL_MS / speed


# =============================================================================
# COLLATERAL SPLIT
# =============================================================================


@dataclass(frozen=True)
class CollateralSplit:
    """Split of the minted collateral supply."""

    lp_collateral: int
    insurance: int
    retained: int


def split_collateral(total: int = MINT_AMOUNT) -> CollateralSplit:
    """
    Split minted supply into LP collateral, insurance top-up and remainder.

    Integer floor division; the remainder absorbs any rounding.

    Args:
        total: Minted amount (base units)

    Returns:
        CollateralSplit
    """
    if total < 0:
        raise ValueError(f"total must be non-negative, got {total}")
    lp_collateral = (total * LP_COLLATERAL_PCT) // 100
    insurance = (total * INSURANCE_PCT) // 100
    return CollateralSplit(
        lp_collateral=lp_collateral,
        insurance=insurance,
        retained=total - lp_collateral - insurance,
    )
