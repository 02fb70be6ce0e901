"""GitHub sync for devstreak: reconciliation, sync passes and scheduling."""

from .reconciler import ReconcileSummary, reconcile_events, render_note_text
from .scheduler import DailySyncScheduler, is_daily_sync_due, run_daily_sync_if_due
from .service import SyncService

__all__ = [
    "ReconcileSummary",
    "reconcile_events",
    "render_note_text",
    "SyncService",
    "DailySyncScheduler",
    "is_daily_sync_due",
    "run_daily_sync_if_due",
]
