"""
Tests for SolanaRpcTransport error mapping

The AsyncClient is replaced by a stub answering with plain namespaces; the
tests check how RPC outcomes map onto the LedgerTransportError hierarchy.
"""

import asyncio
from types import SimpleNamespace

import httpx
import pytest
from solana.exceptions import SolanaRpcException
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from perp_launcher.core.errors import (
    ConfirmationTimeout,
    LedgerTransportError,
    SubmissionFailure,
    TransactionRejected,
)
from perp_launcher.ledger.submission import SubmissionEngine
from perp_launcher.ledger.transport import SolanaRpcTransport


class StubClient:
    def __init__(self, **responses):
        self.responses = responses
        self.calls = []

    def _answer(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        result = self.responses[name]
        if isinstance(result, Exception):
            raise result
        return result

    async def get_balance(self, *args, **kwargs):
        return self._answer("get_balance", *args, **kwargs)

    async def get_latest_blockhash(self, *args, **kwargs):
        return self._answer("get_latest_blockhash", *args, **kwargs)

    async def send_raw_transaction(self, *args, **kwargs):
        return self._answer("send_raw_transaction", *args, **kwargs)

    async def confirm_transaction(self, *args, **kwargs):
        return self._answer("confirm_transaction", *args, **kwargs)

    async def get_transaction(self, *args, **kwargs):
        return self._answer("get_transaction", *args, **kwargs)

    async def close(self):
        self.closed = True


def _transport(**responses) -> SolanaRpcTransport:
    transport = SolanaRpcTransport("http://rpc.test")
    transport._client = StubClient(**responses)
    return transport


def _status(err=None):
    return SimpleNamespace(value=[SimpleNamespace(err=err)])


SIG = Signature.new_unique()


class TestReads:
    def test_balance(self):
        transport = _transport(get_balance=SimpleNamespace(value=750_000_000))
        assert asyncio.run(transport.get_balance(Pubkey.default())) == 750_000_000

    def test_balance_error(self):
        transport = _transport(get_balance=RPCException("node is behind"))
        with pytest.raises(LedgerTransportError):
            asyncio.run(transport.get_balance(Pubkey.default()))

    def test_blockhash(self):
        blockhash = Hash.new_unique()
        value = SimpleNamespace(blockhash=blockhash, last_valid_block_height=1234)
        transport = _transport(get_latest_blockhash=SimpleNamespace(value=value))
        assert asyncio.run(transport.get_latest_blockhash()) == (blockhash, 1234)


class TestSend:
    def test_skips_preflight(self):
        transport = _transport(send_raw_transaction=SimpleNamespace(value=SIG))

        assert asyncio.run(transport.send_raw_transaction(b"tx")) == SIG

        _, _, kwargs = transport._client.calls[0]
        assert kwargs["opts"].skip_preflight is True

    def test_rpc_error_carries_logs(self):
        payload = SimpleNamespace(
            message="Transaction simulation failed",
            data=SimpleNamespace(logs=["Program log: Error: bad"]),
        )
        transport = _transport(send_raw_transaction=RPCException(payload))

        with pytest.raises(LedgerTransportError) as exc_info:
            asyncio.run(transport.send_raw_transaction(b"tx"))

        assert exc_info.value.message == "Transaction simulation failed"
        assert exc_info.value.logs == ["Program log: Error: bad"]
        assert exc_info.value.signature is None


class TestConfirm:
    def test_success(self):
        transport = _transport(confirm_transaction=_status())
        asyncio.run(transport.confirm_transaction(SIG, 100))
        _, _, kwargs = transport._client.calls[0]
        assert kwargs["last_valid_block_height"] == 100

    def test_failed_execution(self):
        transport = _transport(confirm_transaction=_status(err="InstructionError(2, Custom(1))"))

        with pytest.raises(TransactionRejected) as exc_info:
            asyncio.run(transport.confirm_transaction(SIG, 100))

        assert exc_info.value.signature == str(SIG)
        assert "InstructionError" in exc_info.value.message

    def test_expired(self):
        transport = _transport(
            confirm_transaction=TransactionExpiredBlockheightExceededError("height exceeded")
        )
        with pytest.raises(ConfirmationTimeout) as exc_info:
            asyncio.run(transport.confirm_transaction(SIG, 100))
        assert exc_info.value.message.startswith("Blockhash expired")

    def test_unconfirmed(self):
        transport = _transport(confirm_transaction=UnconfirmedTxError("not confirmed"))
        with pytest.raises(ConfirmationTimeout):
            asyncio.run(transport.confirm_transaction(SIG, 100))


class TestLogs:
    def test_logs(self):
        meta = SimpleNamespace(log_messages=["a", "b"])
        tx = SimpleNamespace(transaction=SimpleNamespace(meta=meta))
        transport = _transport(get_transaction=SimpleNamespace(value=tx))
        assert asyncio.run(transport.get_transaction_logs(SIG)) == ["a", "b"]

    def test_missing_transaction(self):
        transport = _transport(get_transaction=SimpleNamespace(value=None))
        assert asyncio.run(transport.get_transaction_logs(SIG)) == []

    def test_rpc_error_yields_empty(self):
        transport = _transport(get_transaction=RPCException("gone"))
        assert asyncio.run(transport.get_transaction_logs(SIG)) == []


def _network_error(cause: Exception) -> SolanaRpcException:
    # what the HTTP provider raises when httpx fails
    error = SolanaRpcException(cause, None, None, SimpleNamespace())
    error.__cause__ = cause
    return error


class TestNetworkFailures:
    def test_blockhash_connect_error(self):
        transport = _transport(
            get_latest_blockhash=_network_error(httpx.ConnectError("All connection attempts failed"))
        )
        with pytest.raises(LedgerTransportError) as exc_info:
            asyncio.run(transport.get_latest_blockhash())
        assert exc_info.value.message == "ConnectError: All connection attempts failed"

    def test_empty_cause_message_uses_type_name(self):
        transport = _transport(get_balance=_network_error(httpx.ReadTimeout("")))
        with pytest.raises(LedgerTransportError) as exc_info:
            asyncio.run(transport.get_balance(Pubkey.default()))
        assert exc_info.value.message == "ReadTimeout"

    def test_send(self):
        transport = _transport(send_raw_transaction=_network_error(httpx.ConnectError("refused")))
        with pytest.raises(LedgerTransportError) as exc_info:
            asyncio.run(transport.send_raw_transaction(b"tx"))
        assert exc_info.value.message == "ConnectError: refused"

    def test_confirm_keeps_signature(self):
        transport = _transport(confirm_transaction=_network_error(httpx.ReadTimeout("timed out")))
        with pytest.raises(LedgerTransportError) as exc_info:
            asyncio.run(transport.confirm_transaction(SIG, 100))
        assert exc_info.value.signature == str(SIG)
        assert exc_info.value.message == "ReadTimeout: timed out"

    def test_logs_yield_empty(self):
        transport = _transport(get_transaction=_network_error(httpx.ConnectError("refused")))
        assert asyncio.run(transport.get_transaction_logs(SIG)) == []

    def test_submission_failure_is_labelled(self):
        transport = _transport(
            get_latest_blockhash=_network_error(httpx.ConnectError("All connection attempts failed"))
        )

        with pytest.raises(SubmissionFailure) as exc_info:
            asyncio.run(SubmissionEngine(transport).submit([], [Keypair()], "Create market"))

        assert exc_info.value.diagnostic == "[Create market] ConnectError: All connection attempts failed"
