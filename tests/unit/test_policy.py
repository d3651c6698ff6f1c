"""
Tests for market policy constants and helpers
"""

import pytest

from perp_launcher.core.domain.policy import (
    MATCHER_CTX_SIZE,
    MIN_FUNDING_LAMPORTS,
    MINT_AMOUNT,
    MINT_SIZE,
    SLAB_TIERS,
    TOKEN_ACCOUNT_SIZE,
    build_cost_lamports,
    engine_interval_ms,
    funding_threshold_lamports,
    get_slab_tier,
    rent_exempt_lamports,
    split_collateral,
)


class TestRent:
    @pytest.mark.parametrize(
        "size, expected",
        [
            (MINT_SIZE, 1_461_600),
            (MATCHER_CTX_SIZE, 3_118_080),
            (SLAB_TIERS["small"].data_size, 438_034_560),
            (0, 890_880),
        ],
    )
    def test_rent_exempt(self, size, expected):
        assert rent_exempt_lamports(size) == expected

    def test_negative_size_raises(self):
        with pytest.raises(ValueError):
            rent_exempt_lamports(-1)


class TestSlabTiers:
    def test_known_tiers(self):
        assert get_slab_tier("small").max_accounts == 256
        assert get_slab_tier("large").data_size == 992_560

    def test_sizes_increase_with_capacity(self):
        tiers = sorted(SLAB_TIERS.values(), key=lambda t: t.max_accounts)
        assert [t.data_size for t in tiers] == sorted(t.data_size for t in tiers)

    def test_unknown_tier_raises(self):
        with pytest.raises(ValueError, match="Unknown slab tier"):
            get_slab_tier("huge")


class TestCollateralSplit:
    def test_default_supply(self):
        split = split_collateral()
        assert split.lp_collateral == 7_000_000_000
        assert split.insurance == 2_000_000_000
        assert split.retained == 1_000_000_000

    def test_remainder_absorbs_rounding(self):
        split = split_collateral(7)
        assert (split.lp_collateral, split.insurance, split.retained) == (4, 1, 2)
        assert split.lp_collateral + split.insurance + split.retained == 7

    def test_sums_to_total(self):
        split = split_collateral(MINT_AMOUNT + 3)
        assert split.lp_collateral + split.insurance + split.retained == MINT_AMOUNT + 3

    def test_negative_raises(self):
        with pytest.raises(ValueError):
            split_collateral(-1)


class TestEngineInterval:
    @pytest.mark.parametrize("speed, expected", [(1, 5000), (2, 2500), (0.5, 10000)])
    def test_interval(self, speed, expected):
        assert engine_interval_ms(speed) == expected

    def test_non_positive_speed_raises(self):
        with pytest.raises(ValueError):
            engine_interval_ms(0)


def test_min_funding_is_half_sol():
    assert MIN_FUNDING_LAMPORTS == 500_000_000


class TestFundingThreshold:
    def test_token_account_rent(self):
        assert rent_exempt_lamports(TOKEN_ACCOUNT_SIZE) == 2_039_280

    def test_small_tier_keeps_half_sol(self):
        small = get_slab_tier("small")
        assert build_cost_lamports(small) == 456_692_800
        assert funding_threshold_lamports(small) == MIN_FUNDING_LAMPORTS

    def test_medium_tier_covers_build_cost(self):
        assert funding_threshold_lamports(get_slab_tier("medium")) == 1_750_918_720

    @pytest.mark.parametrize("name", sorted(SLAB_TIERS))
    def test_threshold_covers_every_account_rent(self, name):
        tier = get_slab_tier(name)
        rents = (
            rent_exempt_lamports(tier.data_size)
            + rent_exempt_lamports(MINT_SIZE)
            + 2 * rent_exempt_lamports(TOKEN_ACCOUNT_SIZE)
            + rent_exempt_lamports(MATCHER_CTX_SIZE)
        )
        assert funding_threshold_lamports(tier) > rents
