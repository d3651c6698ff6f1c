"""
Push sources — websocket change feeds for SyncedMirror.

- RealtimeChannel: Supabase realtime (Phoenix channel protocol) postgres
  change notifications for a set of tables
- AccountChangeSource: Solana accountSubscribe notifications for one account

Both only signal "something changed"; the mirror reloads in full. A dropped
connection is logged and not re-established: the pull loop keeps the mirror
fresh.
"""

import asyncio
import itertools
import json
import logging
from typing import Any, Dict, List, Optional, Sequence

import websockets
from websockets.exceptions import ConnectionClosed
from solana.rpc.commitment import Confirmed
from solana.rpc.websocket_api import connect as solana_ws_connect
from solders.pubkey import Pubkey
from solders.rpc.responses import AccountNotification

from .reconciler import ChangeCallback

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL_SEC = 25.0
PHOENIX_VSN = "1.0.0"


def realtime_url(supabase_url: str, api_key: str) -> str:
    """Websocket endpoint of Supabase realtime for a project URL."""
    base = supabase_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/realtime/v1/websocket?apikey={api_key}&vsn={PHOENIX_VSN}"


def join_message(
    topic: str, tables: Sequence[str], ref: str, filters: Optional[Dict[str, str]] = None
) -> Dict[str, Any]:
    """phx_join for postgres_changes on *tables* (optional per-table row filter)."""
    filters = filters or {}
    changes: List[Dict[str, str]] = []
    for table in tables:
        change = {"event": "*", "schema": "public", "table": table}
        if table in filters:
            change["filter"] = filters[table]
        changes.append(change)
    return {
        "topic": f"realtime:{topic}",
        "event": "phx_join",
        "payload": {"config": {"postgres_changes": changes}},
        "ref": ref,
    }


def heartbeat_message(ref: str) -> Dict[str, Any]:
    return {"topic": "phoenix", "event": "heartbeat", "payload": {}, "ref": ref}


def is_change_message(message: Dict[str, Any]) -> bool:
    return message.get("event") == "postgres_changes"


class RealtimeChannel:
    """
    Supabase realtime subscription.

    Args:
        supabase_url: Project URL
        api_key: Anon key
        topic: Channel name (e.g. "all-market-stats")
        tables: Tables whose changes trigger a reload
        filters: Optional row filter per table (e.g. {"market_stats": "slab_address=eq.X"})
        heartbeat_sec: Phoenix heartbeat interval
    """

    def __init__(
        self,
        supabase_url: str,
        api_key: str,
        topic: str,
        tables: Sequence[str],
        filters: Optional[Dict[str, str]] = None,
        heartbeat_sec: float = HEARTBEAT_INTERVAL_SEC,
    ):
        self.url = realtime_url(supabase_url, api_key)
        self.topic = topic
        self.tables = list(tables)
        self.filters = filters or {}
        self.heartbeat_sec = heartbeat_sec
        self._refs = itertools.count(1)
        self._ws = None
        self._tasks: List[asyncio.Task] = []

    async def start(self, on_change: ChangeCallback) -> None:
        self._ws = await websockets.connect(self.url, ping_interval=20, ping_timeout=10)
        try:
            await self._ws.send(
                json.dumps(join_message(self.topic, self.tables, str(next(self._refs)), self.filters))
            )
        except Exception:
            await self._close_socket()
            raise
        logger.info("Realtime channel %s joined (%s)", self.topic, ", ".join(self.tables))
        loop = asyncio.get_running_loop()
        self._tasks = [
            loop.create_task(self._read(on_change), name=f"realtime-{self.topic}"),
            loop.create_task(self._heartbeat(), name=f"heartbeat-{self.topic}"),
        ]

    async def _read(self, on_change: ChangeCallback) -> None:
        try:
            async for raw in self._ws:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    continue
                if is_change_message(message):
                    await on_change()
        except ConnectionClosed as e:
            logger.warning("Realtime channel %s closed: %s", self.topic, e)

    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_sec)
            try:
                await self._ws.send(json.dumps(heartbeat_message(str(next(self._refs)))))
            except ConnectionClosed:
                return

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        for task in self._tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks = []
        await self._close_socket()

    async def _close_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            await ws.close()


class AccountChangeSource:
    """
    Solana accountSubscribe feed for one account.

    Args:
        ws_url: RPC websocket endpoint
        address: Watched account
    """

    def __init__(self, ws_url: str, address: Pubkey):
        self.ws_url = ws_url
        self.address = address
        self._ws = None
        self._subscription_id: Optional[int] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self, on_change: ChangeCallback) -> None:
        self._ws = await solana_ws_connect(self.ws_url)
        try:
            await self._ws.account_subscribe(self.address, commitment=Confirmed)
            first = await self._ws.recv()
            self._subscription_id = first[0].result
        except Exception:
            ws, self._ws = self._ws, None
            await ws.close()
            raise
        logger.info("Watching account %s (subscription %s)", self.address, self._subscription_id)
        self._task = asyncio.get_running_loop().create_task(
            self._read(on_change), name=f"account-{self.address}"
        )

    async def _read(self, on_change: ChangeCallback) -> None:
        try:
            async for messages in self._ws:
                if any(isinstance(m, AccountNotification) for m in messages):
                    await on_change()
        except ConnectionClosed as e:
            logger.warning("Account feed for %s closed: %s", self.address, e)

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._ws is not None:
            if self._subscription_id is not None:
                try:
                    await self._ws.account_unsubscribe(self._subscription_id)
                except ConnectionClosed:
                    pass
            await self._ws.close()
            self._ws = None
