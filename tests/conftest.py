"""
Shared fixtures and fakes.

- FakeTransport: in-memory LedgerTransport (balances, sent transactions,
  scripted failures)
- FakeSubmitter: records submissions by label, fails on chosen labels
- FakeEngine: records engine calls, returns scripted status polls
"""

from typing import Dict, List, Optional

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from perp_launcher.core.config import LauncherConfig
from perp_launcher.core.domain.simulation import SimulationStatus, TokenPreview
from perp_launcher.core.errors import EngineStartError, LedgerTransportError, SubmissionFailure


# =============================================================================
# LEDGER
# =============================================================================


class FakeTransport:
    """In-memory ledger transport."""

    def __init__(self, balance: int = 0):
        self.balance = balance
        self.balance_calls = 0
        self.blockhash_calls = 0
        self.sent: List[Transaction] = []
        self.send_error: Optional[Exception] = None
        self.confirm_error: Optional[LedgerTransportError] = None
        self.logs: Dict[str, List[str]] = {}
        self.last_valid_block_height = 1000
        self.confirmed: List[tuple] = []
        self.closed = False

    async def get_balance(self, address: Pubkey) -> int:
        self.balance_calls += 1
        return self.balance

    async def get_latest_blockhash(self):
        self.blockhash_calls += 1
        return Hash.new_unique(), self.last_valid_block_height + self.blockhash_calls

    async def send_raw_transaction(self, payload: bytes) -> Signature:
        if self.send_error is not None:
            raise self.send_error
        tx = Transaction.from_bytes(payload)
        self.sent.append(tx)
        return tx.signatures[0]

    async def confirm_transaction(self, signature: Signature, last_valid_block_height: int) -> None:
        self.confirmed.append((signature, last_valid_block_height))
        if self.confirm_error is not None:
            error = self.confirm_error
            error.signature = str(signature)
            raise error

    async def get_transaction_logs(self, signature: Signature) -> List[str]:
        return list(self.logs.get(str(signature), []))

    async def close(self) -> None:
        self.closed = True


class FakeSubmitter:
    """Records (label, signer keys) per submission; fails on chosen labels."""

    def __init__(self, fail_labels=()):
        self.fail_labels = set(fail_labels)
        self.calls: List[tuple] = []

    @property
    def labels(self) -> List[str]:
        return [label for label, _ in self.calls]

    async def submit(self, instructions, signers, label) -> Signature:
        self.calls.append((label, tuple(kp.pubkey() for kp in signers)))
        if label in self.fail_labels:
            raise SubmissionFailure(label, f"[{label}] custom program error: 0x1")
        return Signature.new_unique()


# =============================================================================
# ENGINE
# =============================================================================


class FakeEngine:
    """Scripted simulation engine client."""

    def __init__(self, start_error: Optional[str] = None):
        self.start_error = start_error
        self.started: List[tuple] = []
        self.statuses: List[Optional[SimulationStatus]] = []
        self.status_calls = 0
        self.stop_calls = 0
        self.scenarios: List[str] = []
        self.prices: List[int] = []
        self.token = TokenPreview(name="Test Token", symbol="TEST", description="", decimals=6)

    async def start_engine(self, slab_address: str, oracle: Keypair, speed: float = 1.0) -> None:
        self.started.append((slab_address, oracle.pubkey(), speed))
        if self.start_error is not None:
            raise EngineStartError("Start engine", self.start_error)

    async def fetch_status(self) -> Optional[SimulationStatus]:
        self.status_calls += 1
        if not self.statuses:
            return None
        return self.statuses.pop(0)

    async def fetch_token_preview(self) -> TokenPreview:
        return self.token

    async def stop(self) -> bool:
        self.stop_calls += 1
        return True

    async def set_scenario(self, scenario: str) -> bool:
        self.scenarios.append(scenario)
        return True

    async def override_price(self, price_e6: int) -> bool:
        self.prices.append(price_e6)
        return True

    async def close(self) -> None:
        pass


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def config():
    """Fast-polling launcher config."""
    return LauncherConfig(balance_poll_sec=0.01, status_poll_sec=0.01, stats_poll_sec=0.01)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_submitter_factory():
    return FakeSubmitter


@pytest.fixture
def fake_engine_factory():
    return FakeEngine


@pytest.fixture
def fake_transport_factory():
    return FakeTransport
