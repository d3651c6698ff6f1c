"""
Address Deriver — program-derived addresses for a market

Pure functions, no I/O. Every address here is recomputed independently by the
ledger program; a mismatch only shows up later as a failed submission.

Seeds:
- vault authority:  ["vault", slab]
- LP position:      ["lp", slab, u16_le(lp_index)]
- associated token: [owner, token_program, mint] under the associated token program
"""

from dataclasses import dataclass
from typing import Final, Tuple

from solders.pubkey import Pubkey
from spl.token.constants import ASSOCIATED_TOKEN_PROGRAM_ID, TOKEN_PROGRAM_ID

VAULT_SEED: Final[bytes] = b"vault"
LP_SEED: Final[bytes] = b"lp"

LP_INDEX_MAX: Final[int] = 0xFFFF


def _as_pubkey(value, name: str) -> Pubkey:
    if isinstance(value, Pubkey):
        return value
    if isinstance(value, str):
        try:
            return Pubkey.from_string(value)
        except ValueError as e:
            raise ValueError(f"{name} is not a valid base58 address: {value!r}") from e
    raise ValueError(f"{name} must be a Pubkey or base58 string, got {type(value).__name__}")


def lp_index_seed(lp_index: int) -> bytes:
    """
    Little-endian u16 seed for an LP index.

    Raises:
        ValueError: If lp_index is outside 0..65535
    """
    if isinstance(lp_index, bool) or not isinstance(lp_index, int):
        raise ValueError(f"lp_index must be an int, got {type(lp_index).__name__}")
    if not 0 <= lp_index <= LP_INDEX_MAX:
        raise ValueError(f"lp_index must be in [0, {LP_INDEX_MAX}], got {lp_index}")
    return lp_index.to_bytes(2, "little")


def derive_vault_authority(program_id, slab) -> Tuple[Pubkey, int]:
    """
    Vault authority PDA for a market.

    Args:
        program_id: Markets program
        slab: Market state account

    Returns:
        (address, bump)
    """
    program = _as_pubkey(program_id, "program_id")
    slab_key = _as_pubkey(slab, "slab")
    return Pubkey.find_program_address([VAULT_SEED, bytes(slab_key)], program)


def derive_lp_pda(program_id, slab, lp_index: int) -> Tuple[Pubkey, int]:
    """
    Liquidity-position PDA for an LP index of a market.

    Args:
        program_id: Markets program
        slab: Market state account
        lp_index: LP account index (u16)

    Returns:
        (address, bump)
    """
    program = _as_pubkey(program_id, "program_id")
    slab_key = _as_pubkey(slab, "slab")
    return Pubkey.find_program_address(
        [LP_SEED, bytes(slab_key), lp_index_seed(lp_index)], program
    )


def derive_associated_token_address(owner, mint) -> Pubkey:
    """
    Associated token account of *owner* for *mint*.

    Owners may be off-curve (PDAs): the vault ATA is owned by the vault authority.
    """
    owner_key = _as_pubkey(owner, "owner")
    mint_key = _as_pubkey(mint, "mint")
    address, _ = Pubkey.find_program_address(
        [bytes(owner_key), bytes(TOKEN_PROGRAM_ID), bytes(mint_key)],
        ASSOCIATED_TOKEN_PROGRAM_ID,
    )
    return address


@dataclass(frozen=True)
class MarketAddresses:
    """All derived addresses one provisioning run needs."""

    vault_authority: Pubkey
    vault_authority_bump: int
    vault_ata: Pubkey
    lp_pda: Pubkey
    funding_ata: Pubkey


def derive_market_addresses(
    program_id, slab, mint, funding, lp_index: int = 0
) -> MarketAddresses:
    """
    Derive every address of a market in one call.

    Args:
        program_id: Markets program
        slab: Market state account
        mint: Collateral mint
        funding: Funding account (payer)
        lp_index: LP index bound to the matcher

    Returns:
        MarketAddresses
    """
    vault_authority, bump = derive_vault_authority(program_id, slab)
    lp_pda, _ = derive_lp_pda(program_id, slab, lp_index)
    return MarketAddresses(
        vault_authority=vault_authority,
        vault_authority_bump=bump,
        vault_ata=derive_associated_token_address(vault_authority, mint),
        lp_pda=lp_pda,
        funding_ata=derive_associated_token_address(funding, mint),
    )
