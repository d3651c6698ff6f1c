"""
Ledger transport — the RPC surface the launcher needs.

LedgerTransport is the seam the submission engine and the session depend on;
SolanaRpcTransport implements it over solana-py's AsyncClient and maps every
RPC failure onto the LedgerTransportError hierarchy.
"""

import logging
from typing import List, Optional, Protocol, Tuple

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import (
    RPCException,
    TransactionExpiredBlockheightExceededError,
    UnconfirmedTxError,
)
from solana.exceptions import SolanaRpcException
from solana.rpc.types import TxOpts
from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature

from perp_launcher.core.errors import (
    ConfirmationTimeout,
    LedgerTransportError,
    TransactionRejected,
)

logger = logging.getLogger(__name__)


class LedgerTransport(Protocol):
    """Async ledger RPC used by the launcher."""

    async def get_balance(self, address: Pubkey) -> int:
        ...

    async def get_latest_blockhash(self) -> Tuple[Hash, int]:
        """Returns (blockhash, last_valid_block_height)."""
        ...

    async def send_raw_transaction(self, payload: bytes) -> Signature:
        ...

    async def confirm_transaction(
        self, signature: Signature, last_valid_block_height: int
    ) -> None:
        """Wait for confirmed commitment; raise if execution failed or the blockhash expired."""
        ...

    async def get_transaction_logs(self, signature: Signature) -> List[str]:
        ...

    async def close(self) -> None:
        ...


def _logs_from_rpc_error(error: RPCException) -> List[str]:
    # Preflight failures carry simulation logs in the error payload
    payload = error.args[0] if error.args else None
    data = getattr(payload, "data", None)
    logs = getattr(data, "logs", None)
    return list(logs) if logs else []


def _message_from_rpc_error(error: RPCException) -> str:
    payload = error.args[0] if error.args else None
    message = getattr(payload, "message", None)
    return message or str(error)


def _message_from_network_error(error: SolanaRpcException) -> str:
    # the HTTP layer wraps httpx failures; the useful text is on the cause
    cause = error.__cause__
    if cause is not None:
        detail = str(cause)
        return f"{type(cause).__name__}: {detail}" if detail else type(cause).__name__
    return error.error_msg or type(error).__name__


class SolanaRpcTransport:
    """
    LedgerTransport over solana.rpc.async_api.AsyncClient.

    The client is created lazily on first use and closed by close().
    """

    def __init__(self, rpc_url: str, confirm_sleep_sec: float = 0.5):
        self.rpc_url = rpc_url
        self.confirm_sleep_sec = confirm_sleep_sec
        self._client: Optional[AsyncClient] = None

    def _get_client(self) -> AsyncClient:
        if self._client is None:
            self._client = AsyncClient(self.rpc_url, commitment=Confirmed)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def get_balance(self, address: Pubkey) -> int:
        try:
            resp = await self._get_client().get_balance(address, commitment=Confirmed)
        except RPCException as e:
            raise LedgerTransportError(_message_from_rpc_error(e)) from e
        except SolanaRpcException as e:
            raise LedgerTransportError(_message_from_network_error(e)) from e
        return resp.value

    async def get_latest_blockhash(self) -> Tuple[Hash, int]:
        try:
            resp = await self._get_client().get_latest_blockhash(commitment=Confirmed)
        except RPCException as e:
            raise LedgerTransportError(_message_from_rpc_error(e)) from e
        except SolanaRpcException as e:
            raise LedgerTransportError(_message_from_network_error(e)) from e
        return resp.value.blockhash, resp.value.last_valid_block_height

    async def send_raw_transaction(self, payload: bytes) -> Signature:
        opts = TxOpts(skip_preflight=True, preflight_commitment=Confirmed)
        try:
            resp = await self._get_client().send_raw_transaction(payload, opts=opts)
        except RPCException as e:
            raise LedgerTransportError(
                _message_from_rpc_error(e), logs=_logs_from_rpc_error(e)
            ) from e
        except SolanaRpcException as e:
            raise LedgerTransportError(_message_from_network_error(e)) from e
        return resp.value

    async def confirm_transaction(
        self, signature: Signature, last_valid_block_height: int
    ) -> None:
        try:
            resp = await self._get_client().confirm_transaction(
                signature,
                commitment=Confirmed,
                sleep_seconds=self.confirm_sleep_sec,
                last_valid_block_height=last_valid_block_height,
            )
        except TransactionExpiredBlockheightExceededError as e:
            raise ConfirmationTimeout(
                f"Blockhash expired before confirmation: {e}", signature=str(signature)
            ) from e
        except UnconfirmedTxError as e:
            raise ConfirmationTimeout(str(e), signature=str(signature)) from e
        except RPCException as e:
            raise LedgerTransportError(
                _message_from_rpc_error(e), signature=str(signature)
            ) from e
        except SolanaRpcException as e:
            raise LedgerTransportError(
                _message_from_network_error(e), signature=str(signature)
            ) from e

        status = resp.value[0] if resp.value else None
        if status is not None and status.err is not None:
            raise TransactionRejected(
                f"Transaction failed: {status.err}", signature=str(signature)
            )

    async def get_transaction_logs(self, signature: Signature) -> List[str]:
        try:
            resp = await self._get_client().get_transaction(
                signature, commitment=Confirmed, max_supported_transaction_version=0
            )
        except (RPCException, SolanaRpcException) as e:
            logger.debug("Log fetch failed for %s: %s", signature, e)
            return []
        tx = resp.value
        if tx is None or tx.transaction.meta is None:
            return []
        return list(tx.transaction.meta.log_messages or [])
