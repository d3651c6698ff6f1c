"""
ProvisioningContext — every key and address one provisioning run uses.

Generated once per run: the oracle, mint, slab and matcher-context keypairs are
fresh, derived addresses are computed once and shared by all steps.
"""

import logging
from dataclasses import dataclass

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from perp_launcher.core.config import LauncherConfig
from perp_launcher.core.domain.policy import (
    DEFAULT_DECIMALS,
    LP_INDEX,
    SlabTier,
    get_slab_tier,
)
from perp_launcher.ledger.addresses import MarketAddresses, derive_market_addresses

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisioningContext:
    """Keys, derived addresses and parameters of one run."""

    program_id: Pubkey
    matcher_program_id: Pubkey
    funding: Keypair
    oracle: Keypair
    mint: Keypair
    slab: Keypair
    matcher_context: Keypair
    addresses: MarketAddresses
    tier: SlabTier
    decimals: int = DEFAULT_DECIMALS
    sim_speed: float = 1.0

    @classmethod
    def create(
        cls,
        config: LauncherConfig,
        funding: Keypair,
        decimals: int = DEFAULT_DECIMALS,
        tier: SlabTier = None,
    ) -> "ProvisioningContext":
        """
        Generate run keypairs and derive market addresses.

        Args:
            config: Launcher configuration (program ids, slab tier, speed)
            funding: Funding account; pays for and signs every step
            decimals: Collateral mint decimals
            tier: Slab tier (defaults to config.slab_tier)

        Returns:
            ProvisioningContext
        """
        program_id = Pubkey.from_string(config.program_id)
        matcher_program_id = Pubkey.from_string(config.matcher_program_id)
        tier = tier or get_slab_tier(config.slab_tier)

        mint = Keypair()
        slab = Keypair()
        addresses = derive_market_addresses(
            program_id, slab.pubkey(), mint.pubkey(), funding.pubkey(), LP_INDEX
        )
        logger.info(
            "Provisioning context: slab=%s mint=%s tier=%s",
            slab.pubkey(), mint.pubkey(), tier.name,
        )
        return cls(
            program_id=program_id,
            matcher_program_id=matcher_program_id,
            funding=funding,
            oracle=Keypair(),
            mint=mint,
            slab=slab,
            matcher_context=Keypair(),
            addresses=addresses,
            tier=tier,
            decimals=decimals,
            sim_speed=config.sim_speed,
        )

    @property
    def payer(self) -> Pubkey:
        return self.funding.pubkey()

    @property
    def slab_address(self) -> str:
        return str(self.slab.pubkey())

    @property
    def mint_address(self) -> str:
        return str(self.mint.pubkey())
