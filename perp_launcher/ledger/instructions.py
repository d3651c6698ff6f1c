"""
Instruction codec — markets program and matcher program instruction surface

Each instruction kind is a frozen dataclass variant with a fixed tag and a
declared little-endian field layout. One codec encodes and decodes every
variant; account lists are declared per instruction as ordered AccountSpec
tuples. The layouts are an external contract of the deployed programs: drift
is only detected by the ledger at submission time.

Markets program tags:
- 0  InitMarket
- 2  InitLP
- 3  DepositCollateral
- 5  KeeperCrank
- 9  TopUpInsurance
- 14 UpdateConfig
- 16 SetOracleAuthority
- 17 PushOraclePrice
- 18 SetOraclePriceCap

Matcher program tags:
- 2  InitVamm
"""

import struct
from dataclasses import dataclass, fields
from typing import ClassVar, Dict, List, Sequence, Tuple, Type

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey


# =============================================================================
# FIELD CODEC
# =============================================================================

_STRUCT_FORMATS: Dict[str, str] = {
    "u8": "<B",
    "bool": "<B",
    "u16": "<H",
    "u32": "<I",
    "u64": "<Q",
    "i64": "<q",
}

_FIELD_SIZES: Dict[str, int] = {
    "u8": 1,
    "bool": 1,
    "u16": 2,
    "u32": 4,
    "u64": 8,
    "i64": 8,
    "u128": 16,
    "pubkey": 32,
    "bytes32": 32,
}


def _encode_field(kind: str, name: str, value) -> bytes:
    if kind in _STRUCT_FORMATS:
        try:
            return struct.pack(_STRUCT_FORMATS[kind], int(value))
        except struct.error as e:
            raise ValueError(f"{name}={value!r} does not fit {kind}") from e
    if kind == "u128":
        value = int(value)
        if not 0 <= value < (1 << 128):
            raise ValueError(f"{name}={value!r} does not fit u128")
        return value.to_bytes(16, "little")
    if kind == "pubkey":
        if not isinstance(value, Pubkey):
            raise ValueError(f"{name} must be a Pubkey, got {type(value).__name__}")
        return bytes(value)
    if kind == "bytes32":
        raw = bytes(value)
        if len(raw) != 32:
            raise ValueError(f"{name} must be 32 bytes, got {len(raw)}")
        return raw
    raise ValueError(f"Unknown field kind: {kind}")


def _decode_field(kind: str, chunk: bytes):
    if kind == "bool":
        return struct.unpack("<B", chunk)[0] != 0
    if kind in _STRUCT_FORMATS:
        return struct.unpack(_STRUCT_FORMATS[kind], chunk)[0]
    if kind == "u128":
        return int.from_bytes(chunk, "little")
    if kind == "pubkey":
        return Pubkey.from_bytes(chunk)
    return bytes(chunk)


# =============================================================================
# VARIANT BASE
# =============================================================================


@dataclass(frozen=True)
class InstructionVariant:
    """
    Base class of tagged instruction variants.

    Subclasses declare TAG and LAYOUT (field kind per dataclass field, in
    wire order). The wire format is: tag (u8) followed by the fields.
    """

    TAG: ClassVar[int] = -1
    LAYOUT: ClassVar[Tuple[str, ...]] = ()

    @classmethod
    def encoded_size(cls) -> int:
        return 1 + sum(_FIELD_SIZES[kind] for kind in cls.LAYOUT)

    def encode(self) -> bytes:
        """Serialize to instruction data."""
        parts = [struct.pack("<B", self.TAG)]
        for f, kind in zip(fields(self), self.LAYOUT):
            parts.append(_encode_field(kind, f.name, getattr(self, f.name)))
        return b"".join(parts)

    @classmethod
    def decode(cls, data: bytes) -> "InstructionVariant":
        """
        Parse instruction data of this variant.

        Raises:
            ValueError: On tag mismatch or wrong length
        """
        if len(data) != cls.encoded_size():
            raise ValueError(
                f"{cls.__name__}: expected {cls.encoded_size()} bytes, got {len(data)}"
            )
        if data[0] != cls.TAG:
            raise ValueError(f"{cls.__name__}: expected tag {cls.TAG}, got {data[0]}")

        values = {}
        offset = 1
        for f, kind in zip(fields(cls), cls.LAYOUT):
            size = _FIELD_SIZES[kind]
            values[f.name] = _decode_field(kind, data[offset:offset + size])
            offset += size
        return cls(**values)


# =============================================================================
# MARKETS PROGRAM VARIANTS
# =============================================================================


@dataclass(frozen=True)
class InitMarket(InstructionVariant):
    """Bind mint, vault, initial price and risk parameters to a new slab."""

    TAG: ClassVar[int] = 0
    LAYOUT: ClassVar[Tuple[str, ...]] = (
        "pubkey", "pubkey", "bytes32", "u64", "u16", "u8", "u32", "u64",
        "u64", "u64", "u64", "u64", "u64", "u128", "u128", "u128",
        "u64", "u64", "u128", "u64", "u128",
    )

    admin: Pubkey
    collateral_mint: Pubkey
    index_feed_id: bytes
    max_staleness_secs: int
    conf_filter_bps: int
    invert: int
    unit_scale: int
    initial_mark_price_e6: int
    # risk params
    warmup_period_slots: int
    maintenance_margin_bps: int
    initial_margin_bps: int
    trading_fee_bps: int
    max_accounts: int
    new_account_fee: int
    risk_reduction_threshold: int
    maintenance_fee_per_slot: int
    max_crank_staleness_slots: int
    liquidation_fee_bps: int
    liquidation_fee_cap: int
    liquidation_buffer_bps: int
    min_liquidation_abs: int


@dataclass(frozen=True)
class InitLP(InstructionVariant):
    TAG: ClassVar[int] = 2
    LAYOUT: ClassVar[Tuple[str, ...]] = ("pubkey", "pubkey", "u128")

    matcher_program: Pubkey
    matcher_context: Pubkey
    fee_payment: int


@dataclass(frozen=True)
class DepositCollateral(InstructionVariant):
    TAG: ClassVar[int] = 3
    LAYOUT: ClassVar[Tuple[str, ...]] = ("u16", "u64")

    user_idx: int
    amount: int


@dataclass(frozen=True)
class KeeperCrank(InstructionVariant):
    TAG: ClassVar[int] = 5
    LAYOUT: ClassVar[Tuple[str, ...]] = ("u16", "bool")

    caller_idx: int
    allow_panic: bool


@dataclass(frozen=True)
class TopUpInsurance(InstructionVariant):
    TAG: ClassVar[int] = 9
    LAYOUT: ClassVar[Tuple[str, ...]] = ("u64",)

    amount: int


@dataclass(frozen=True)
class UpdateConfig(InstructionVariant):
    """Funding and risk-threshold parameters."""

    TAG: ClassVar[int] = 14
    LAYOUT: ClassVar[Tuple[str, ...]] = (
        "u64", "u64", "u128", "i64", "i64",
        "u128", "u64", "u64", "u64", "u64", "u128", "u128", "u128",
    )

    funding_horizon_slots: int
    funding_k_bps: int
    funding_inv_scale_notional_e6: int
    funding_max_premium_bps: int
    funding_max_bps_per_slot: int
    thresh_floor: int
    thresh_risk_bps: int
    thresh_update_interval_slots: int
    thresh_step_bps: int
    thresh_alpha_bps: int
    thresh_min: int
    thresh_max: int
    thresh_min_step: int


@dataclass(frozen=True)
class SetOracleAuthority(InstructionVariant):
    TAG: ClassVar[int] = 16
    LAYOUT: ClassVar[Tuple[str, ...]] = ("pubkey",)

    new_authority: Pubkey


@dataclass(frozen=True)
class PushOraclePrice(InstructionVariant):
    TAG: ClassVar[int] = 17
    LAYOUT: ClassVar[Tuple[str, ...]] = ("u64", "i64")

    price_e6: int
    timestamp: int


@dataclass(frozen=True)
class SetOraclePriceCap(InstructionVariant):
    TAG: ClassVar[int] = 18
    LAYOUT: ClassVar[Tuple[str, ...]] = ("u64",)

    max_change_e2bps: int


# =============================================================================
# MATCHER PROGRAM VARIANTS
# =============================================================================


@dataclass(frozen=True)
class InitVamm(InstructionVariant):
    """Quoting parameters of the vAMM matcher, written into the matcher context."""

    TAG: ClassVar[int] = 2
    LAYOUT: ClassVar[Tuple[str, ...]] = (
        "u8", "u32", "u32", "u32", "u32", "u128", "u128", "u128",
    )

    mode: int
    trading_fee_bps: int
    base_spread_bps: int
    max_total_bps: int
    impact_k_bps: int
    liquidity_notional_e6: int
    max_fill_abs: int
    max_inventory_abs: int


PERCOLATOR_INSTRUCTIONS: Dict[int, Type[InstructionVariant]] = {
    cls.TAG: cls
    for cls in (
        InitMarket,
        InitLP,
        DepositCollateral,
        KeeperCrank,
        TopUpInsurance,
        UpdateConfig,
        SetOracleAuthority,
        PushOraclePrice,
        SetOraclePriceCap,
    )
}

MATCHER_INSTRUCTIONS: Dict[int, Type[InstructionVariant]] = {InitVamm.TAG: InitVamm}


def decode_instruction(
    data: bytes, registry: Dict[int, Type[InstructionVariant]] = PERCOLATOR_INSTRUCTIONS
) -> InstructionVariant:
    """
    Decode instruction data by its tag.

    Raises:
        ValueError: On empty data or an unknown tag
    """
    if not data:
        raise ValueError("Empty instruction data")
    variant = registry.get(data[0])
    if variant is None:
        raise ValueError(f"Unknown instruction tag: {data[0]}")
    return variant.decode(data)


# =============================================================================
# ACCOUNT SPECS
# =============================================================================


@dataclass(frozen=True)
class AccountSpec:
    name: str
    signer: bool
    writable: bool


ACCOUNTS_INIT_MARKET: Tuple[AccountSpec, ...] = (
    AccountSpec("admin", True, True),
    AccountSpec("slab", False, True),
    AccountSpec("mint", False, False),
    AccountSpec("vault", False, True),
    AccountSpec("token_program", False, False),
    AccountSpec("clock", False, False),
    AccountSpec("rent", False, False),
    AccountSpec("vault_authority", False, False),
    AccountSpec("system_program", False, False),
)

ACCOUNTS_INIT_LP: Tuple[AccountSpec, ...] = (
    AccountSpec("user", True, True),
    AccountSpec("slab", False, True),
    AccountSpec("user_ata", False, True),
    AccountSpec("vault", False, True),
    AccountSpec("token_program", False, False),
)

ACCOUNTS_DEPOSIT_COLLATERAL: Tuple[AccountSpec, ...] = (
    AccountSpec("user", True, True),
    AccountSpec("slab", False, True),
    AccountSpec("user_ata", False, True),
    AccountSpec("vault", False, True),
    AccountSpec("token_program", False, False),
    AccountSpec("clock", False, False),
)

ACCOUNTS_KEEPER_CRANK: Tuple[AccountSpec, ...] = (
    AccountSpec("caller", True, True),
    AccountSpec("slab", False, True),
    AccountSpec("clock", False, False),
    AccountSpec("oracle", False, False),
)

ACCOUNTS_TOPUP_INSURANCE: Tuple[AccountSpec, ...] = (
    AccountSpec("user", True, True),
    AccountSpec("slab", False, True),
    AccountSpec("user_ata", False, True),
    AccountSpec("vault", False, True),
    AccountSpec("token_program", False, False),
)

ACCOUNTS_UPDATE_CONFIG: Tuple[AccountSpec, ...] = (
    AccountSpec("admin", True, True),
    AccountSpec("slab", False, True),
)

# SetOraclePriceCap shares this list (admin + slab)
ACCOUNTS_SET_ORACLE_AUTHORITY: Tuple[AccountSpec, ...] = (
    AccountSpec("admin", True, True),
    AccountSpec("slab", False, True),
)

ACCOUNTS_PUSH_ORACLE_PRICE: Tuple[AccountSpec, ...] = (
    AccountSpec("authority", True, True),
    AccountSpec("slab", False, True),
)

ACCOUNTS_INIT_VAMM: Tuple[AccountSpec, ...] = (
    AccountSpec("lp_pda", False, False),
    AccountSpec("matcher_context", False, True),
)


def build_account_metas(accounts: Sequence[AccountSpec], keys: Sequence[Pubkey]) -> List[AccountMeta]:
    """
    Pair an account list with concrete keys.

    Raises:
        ValueError: If the number of keys does not match the account list
    """
    if len(accounts) != len(keys):
        names = ", ".join(s.name for s in accounts)
        raise ValueError(f"Expected {len(accounts)} accounts ({names}), got {len(keys)}")
    return [
        AccountMeta(pubkey=key, is_signer=s.signer, is_writable=s.writable)
        for s, key in zip(accounts, keys)
    ]


def build_instruction(
    program_id: Pubkey,
    accounts: Sequence[AccountSpec],
    keys: Sequence[Pubkey],
    variant: InstructionVariant,
) -> Instruction:
    """Assemble a program instruction from a variant and its account keys."""
    return Instruction(program_id, variant.encode(), build_account_metas(accounts, keys))
