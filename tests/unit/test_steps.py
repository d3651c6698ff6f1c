"""
Tests for the provisioning step plans

Verifies:
- step indices, labels and descriptions
- exact signer set of every transaction (matches the signers the message needs)
- instruction ordering by tag
- collateral split in step 5
- oracle hand-over in step 4
"""

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message

from perp_launcher.core.config import LauncherConfig
from perp_launcher.core.domain.policy import MINT_SIZE, get_slab_tier, rent_exempt_lamports
from perp_launcher.ledger.instructions import (
    MATCHER_INSTRUCTIONS,
    DepositCollateral,
    InitLP,
    InitMarket,
    InitVamm,
    KeeperCrank,
    PushOraclePrice,
    SetOracleAuthority,
    SetOraclePriceCap,
    TopUpInsurance,
    UpdateConfig,
    decode_instruction,
)
from perp_launcher.provisioning.context import ProvisioningContext
from perp_launcher.provisioning.steps import (
    Step01CreateMarket,
    Step02OracleConfig,
    Step03Liquidity,
    Step04FinalizeOracle,
    Step05FundMarket,
)

NOW = 1_700_000_000


@pytest.fixture
def ctx():
    return ProvisioningContext.create(LauncherConfig(), Keypair())


def _required_signers(tx):
    message = Message.new_with_blockhash(list(tx.instructions), tx.signers[0].pubkey(), Hash.default())
    count = message.header.num_required_signatures
    return set(message.account_keys[:count])


def _program_variants(ctx, tx):
    return [
        decode_instruction(bytes(ix.data))
        for ix in tx.instructions
        if ix.program_id == ctx.program_id
    ]


class TestContext:
    def test_fresh_keys_per_run(self):
        funding = Keypair()
        a = ProvisioningContext.create(LauncherConfig(), funding)
        b = ProvisioningContext.create(LauncherConfig(), funding)
        assert a.slab.pubkey() != b.slab.pubkey()
        assert a.mint.pubkey() != b.mint.pubkey()
        assert a.oracle.pubkey() != b.oracle.pubkey()
        assert a.payer == b.payer == funding.pubkey()

    def test_tier_from_config(self):
        ctx = ProvisioningContext.create(LauncherConfig(slab_tier="large"), Keypair())
        assert ctx.tier == get_slab_tier("large")


class TestStepOne:
    def test_single_transaction_signers(self, ctx):
        plan = Step01CreateMarket().build(ctx, NOW)
        assert plan.index == 1
        assert plan.description == "Creating mint, slab & market..."
        (tx,) = plan.transactions
        assert tx.label == "Create market"
        assert tx.signer_keys == (ctx.payer, ctx.mint.pubkey(), ctx.slab.pubkey())
        assert _required_signers(tx) == set(tx.signer_keys)

    def test_instruction_count_and_market_params(self, ctx):
        (tx,) = Step01CreateMarket().build(ctx, NOW).transactions
        assert len(tx.instructions) == 5
        (market,) = _program_variants(ctx, tx)
        assert isinstance(market, InitMarket)
        assert market.admin == ctx.payer
        assert market.collateral_mint == ctx.mint.pubkey()
        assert market.index_feed_id == bytes(32)
        assert market.initial_mark_price_e6 == 1_000_000
        assert market.max_accounts == ctx.tier.max_accounts

    def test_vault_is_market_account(self, ctx):
        (tx,) = Step01CreateMarket().build(ctx, NOW).transactions
        init_market = tx.instructions[-1]
        keys = [meta.pubkey for meta in init_market.accounts]
        assert keys[3] == ctx.addresses.vault_ata
        assert keys[7] == ctx.addresses.vault_authority

    def test_mint_rent(self, ctx):
        assert rent_exempt_lamports(MINT_SIZE) == 1_461_600


class TestStepTwo:
    def test_order_and_signers(self, ctx):
        plan = Step02OracleConfig().build(ctx, NOW)
        (tx,) = plan.transactions
        assert tx.label == "Oracle+config"
        assert tx.signer_keys == (ctx.payer,)
        assert _required_signers(tx) == {ctx.payer}

        variants = _program_variants(ctx, tx)
        assert [type(v) for v in variants] == [
            SetOracleAuthority,
            PushOraclePrice,
            SetOraclePriceCap,
            UpdateConfig,
            KeeperCrank,
        ]
        assert variants[0].new_authority == ctx.payer
        assert variants[1] == PushOraclePrice(price_e6=1_000_000, timestamp=NOW)
        assert variants[2].max_change_e2bps == 100_000
        assert variants[4] == KeeperCrank(caller_idx=65535, allow_panic=False)


class TestStepThree:
    def test_signers(self, ctx):
        (tx,) = Step03Liquidity().build(ctx, NOW).transactions
        assert tx.label == "LP+vAMM"
        assert tx.signer_keys == (ctx.payer, ctx.matcher_context.pubkey())
        assert _required_signers(tx) == set(tx.signer_keys)

    def test_init_lp_binds_matcher(self, ctx):
        (tx,) = Step03Liquidity().build(ctx, NOW).transactions
        (lp,) = _program_variants(ctx, tx)
        assert isinstance(lp, InitLP)
        assert lp.matcher_program == ctx.matcher_program_id
        assert lp.matcher_context == ctx.matcher_context.pubkey()

    def test_vamm_is_last_and_targets_matcher(self, ctx):
        (tx,) = Step03Liquidity().build(ctx, NOW).transactions
        vamm_ix = tx.instructions[-1]
        assert vamm_ix.program_id == ctx.matcher_program_id
        assert isinstance(decode_instruction(bytes(vamm_ix.data), MATCHER_INSTRUCTIONS), InitVamm)
        lp_meta, ctx_meta = vamm_ix.accounts
        assert lp_meta.pubkey == ctx.addresses.lp_pda
        assert not lp_meta.is_writable
        assert ctx_meta.is_writable


class TestStepFour:
    def test_hands_authority_to_oracle(self, ctx):
        (tx,) = Step04FinalizeOracle().build(ctx, NOW).transactions
        assert tx.label == "Finalize oracle"
        assert tx.signer_keys == (ctx.payer, ctx.oracle.pubkey())
        assert _required_signers(tx) == set(tx.signer_keys)

        push, crank, handover, oracle_push = _program_variants(ctx, tx)
        assert push.timestamp == NOW
        assert isinstance(crank, KeeperCrank)
        assert handover.new_authority == ctx.oracle.pubkey()
        assert oracle_push.timestamp == NOW + 1
        assert tx.instructions[-1].accounts[0].pubkey == ctx.oracle.pubkey()


class TestStepFive:
    def test_two_transactions(self, ctx):
        plan = Step05FundMarket().build(ctx, NOW)
        mint_tx, fund_tx = plan.transactions
        assert plan.index == 5
        assert mint_tx.label == "Mint tokens"
        assert mint_tx.signer_keys == (ctx.payer,)
        assert fund_tx.label == "Fund market"
        assert fund_tx.signer_keys == (ctx.payer, ctx.oracle.pubkey())
        assert _required_signers(fund_tx) == set(fund_tx.signer_keys)

    def test_collateral_split(self, ctx):
        _, fund_tx = Step05FundMarket().build(ctx, NOW).transactions
        deposit, topup, push, crank = _program_variants(ctx, fund_tx)
        assert deposit == DepositCollateral(user_idx=0, amount=7_000_000_000)
        assert topup == TopUpInsurance(amount=2_000_000_000)
        assert push.timestamp == NOW
        assert isinstance(crank, KeeperCrank)

    def test_custom_mint_amount(self, ctx):
        _, fund_tx = Step05FundMarket(mint_amount=1000).build(ctx, NOW).transactions
        deposit, topup, _, _ = _program_variants(ctx, fund_tx)
        assert deposit.amount == 700
        assert topup.amount == 200
