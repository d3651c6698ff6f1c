"""
Tests for PeriodicTask and SyncedMirror

Verifies:
- a stopped task never ticks again
- callback exceptions do not kill the loop
- mirror keeps the last good value on reload failure
- push failure degrades to pull with a single warning
- push notifications trigger a full reload
"""

import asyncio

import pytest

from perp_launcher.core.config import LauncherConfig
from perp_launcher.core.domain.market import MarketWithStats
from perp_launcher.sync.mirrors import AllMarketStatsMirror, MarketInfoMirror, MarketsMirror
from perp_launcher.sync.realtime import RealtimeChannel
from perp_launcher.sync.reconciler import SyncedMirror
from perp_launcher.sync.tasks import PeriodicTask


class TestPeriodicTask:
    def test_ticks_and_stops(self):
        ticks = []

        async def _scenario():
            async def callback():
                ticks.append(1)

            task = PeriodicTask("t", 0.01, callback, run_immediately=True)
            task.start()
            await asyncio.sleep(0.05)
            await task.stop_and_wait()
            count = len(ticks)
            await asyncio.sleep(0.03)
            return task, count

        task, count = asyncio.run(_scenario())

        assert count >= 2
        assert len(ticks) == count
        assert task.stopped
        assert not task.running

    def test_stop_from_callback(self):
        ticks = []

        async def _scenario():
            task = None

            async def callback():
                ticks.append(1)
                task.stop()

            task = PeriodicTask("self-stop", 0.01, callback, run_immediately=True)
            task.start()
            await asyncio.sleep(0.05)

        asyncio.run(_scenario())

        assert ticks == [1]

    def test_exception_keeps_loop_alive(self, caplog):
        ticks = []

        async def _scenario():
            async def callback():
                ticks.append(1)
                if len(ticks) == 1:
                    raise RuntimeError("first tick fails")

            task = PeriodicTask("flaky", 0.01, callback, run_immediately=True)
            task.start()
            await asyncio.sleep(0.05)
            await task.stop_and_wait()

        asyncio.run(_scenario())

        assert len(ticks) >= 2
        assert "flaky: tick failed" in caplog.text

    def test_invalid_interval(self):
        async def callback():
            pass

        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, callback)


class FakePush:
    def __init__(self, fail=False):
        self.fail = fail
        self.on_change = None
        self.stopped = False

    async def start(self, on_change):
        if self.fail:
            raise ConnectionError("realtime unavailable")
        self.on_change = on_change

    async def stop(self):
        self.stopped = True


class TestSyncedMirror:
    def test_initial_reload_and_listeners(self):
        seen = []

        async def loader():
            return {"a": 1}

        async def _scenario():
            mirror = SyncedMirror("m", loader, 10.0)
            mirror.subscribe(seen.append)
            await mirror.start()
            await mirror.stop()
            return mirror

        mirror = asyncio.run(_scenario())

        assert mirror.value == {"a": 1}
        assert mirror.reload_count == 1
        assert mirror.last_synced_at is not None
        assert seen == [{"a": 1}]

    def test_failure_keeps_last_good_value(self):
        results = [["v1"], RuntimeError("store down")]

        async def loader():
            result = results.pop(0)
            if isinstance(result, Exception):
                raise result
            return result

        async def _scenario():
            mirror = SyncedMirror("m", loader, 10.0, initial=[])
            await mirror.reconcile()
            await mirror.reconcile()
            return mirror

        mirror = asyncio.run(_scenario())

        assert mirror.value == ["v1"]
        assert mirror.last_error == "store down"
        assert mirror.reload_count == 1

    def test_pull_reloads(self):
        calls = []

        async def loader():
            calls.append(1)
            return len(calls)

        async def _scenario():
            mirror = SyncedMirror("m", loader, 0.01)
            await mirror.start()
            await asyncio.sleep(0.05)
            await mirror.stop()
            return mirror

        mirror = asyncio.run(_scenario())

        assert mirror.reload_count >= 2

    def test_push_triggers_reload(self):
        push = FakePush()
        calls = []

        async def loader():
            calls.append(1)
            return len(calls)

        async def _scenario():
            mirror = SyncedMirror("m", loader, 10.0, push_source=push)
            await mirror.start()
            await push.on_change()
            await mirror.stop()
            return mirror

        mirror = asyncio.run(_scenario())

        assert mirror.value == 2
        assert push.stopped
        assert not mirror.push_active

    def test_push_failure_falls_back_to_pull(self, caplog):
        push = FakePush(fail=True)

        async def loader():
            return "ok"

        async def _scenario():
            mirror = SyncedMirror("m", loader, 0.01, push_source=push)
            await mirror.start()
            await asyncio.sleep(0.03)
            await mirror.stop()
            await mirror.start()
            await mirror.stop()
            return mirror

        mirror = asyncio.run(_scenario())

        assert mirror.value == "ok"
        assert not mirror.push_active
        assert mirror.reload_count >= 2
        assert caplog.text.count("push unavailable") == 1
        assert not push.stopped

    def test_concurrent_reconciles_are_serialized(self):
        active = []
        overlaps = []

        async def loader():
            active.append(1)
            if len(active) > 1:
                overlaps.append(1)
            await asyncio.sleep(0.01)
            active.pop()
            return "v"

        async def _scenario():
            mirror = SyncedMirror("m", loader, 10.0)
            await asyncio.gather(mirror.reconcile(), mirror.reconcile(), mirror.reconcile())
            return mirror

        mirror = asyncio.run(_scenario())

        assert overlaps == []
        assert mirror.reload_count == 3


class TestMirrors:
    class _Store:
        def __init__(self, rows):
            self.rows = rows

        async def fetch_markets_with_stats(self):
            return self.rows

        async def fetch_market(self, slab_address):
            return next((r for r in self.rows if r.slab_address == slab_address), None)

    def _rows(self):
        return [
            MarketWithStats(slab_address="8n1YAoHzZAAz2JkgASr7Yk9dokptDa9VzjbsRadu3MhL", symbol="A"),
            MarketWithStats(slab_address="2JaSzRYrf44fPpQBtRJfnCEgThwCmvpFd3FCXi45VXxm", symbol="B"),
        ]

    def test_all_market_stats_keyed_by_slab(self):
        mirror = AllMarketStatsMirror(self._Store(self._rows()), LauncherConfig(), push=False)
        asyncio.run(mirror.reconcile())
        assert mirror.value["2JaSzRYrf44fPpQBtRJfnCEgThwCmvpFd3FCXi45VXxm"].symbol == "B"

    def test_market_info(self):
        slab = "8n1YAoHzZAAz2JkgASr7Yk9dokptDa9VzjbsRadu3MhL"
        mirror = MarketInfoMirror(self._Store(self._rows()), LauncherConfig(), slab, push=False)
        asyncio.run(mirror.reconcile())
        assert mirror.value.symbol == "A"

    def test_no_channel_without_store_config(self):
        mirror = MarketsMirror(self._Store([]), LauncherConfig())
        assert mirror.push_source is None

    def test_filtered_channel(self):
        slab = "8n1YAoHzZAAz2JkgASr7Yk9dokptDa9VzjbsRadu3MhL"
        config = LauncherConfig(supabase_url="https://proj.supabase.co", supabase_key="anon")
        mirror = MarketInfoMirror(self._Store([]), config, slab)
        assert isinstance(mirror.push_source, RealtimeChannel)
        assert mirror.push_source.filters == {"market_stats": f"slab_address=eq.{slab}"}
        assert mirror.push_source.url.startswith("wss://proj.supabase.co/realtime/v1/websocket")
