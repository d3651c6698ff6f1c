"""
Polling and sync: periodic tasks, push/pull mirrors, stats store client and
websocket change feeds.
"""

from perp_launcher.sync.reconciler import PushSource, SyncedMirror
from perp_launcher.sync.stats_store import StatsStore
from perp_launcher.sync.tasks import PeriodicTask

__all__ = ["PeriodicTask", "PushSource", "SyncedMirror", "StatsStore"]
