"""Scheduled daily sync: a cancellable cooperative timer on an asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..daykey import resolve_zone, today_key
from ..identity import OwnerIdentity
from ..models.result import OperationResult
from ..models.settings import SyncSettings, parse_sync_time
from .service import SyncService

logger = logging.getLogger(__name__)


def to_local(now: datetime, local_timezone: Optional[str]) -> datetime:
    """Convert to the wall-clock zone used for ``daily_sync_time``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    if local_timezone:
        return now.astimezone(resolve_zone(local_timezone))
    return now.astimezone()


def is_daily_sync_due(settings: SyncSettings, now_local: datetime, today: str) -> bool:
    """True if today's scheduled sync has not run and its time has passed."""
    if not settings.enabled or not settings.daily_sync_enabled:
        return False
    if settings.last_daily_sync_day == today:
        return False
    target_hour, target_minute = parse_sync_time(settings.daily_sync_time)
    return (now_local.hour, now_local.minute) >= (target_hour, target_minute)


def run_daily_sync_if_due(
    identity: Optional[OwnerIdentity],
    sync_service: SyncService,
    now: Optional[datetime] = None,
) -> Optional[OperationResult]:
    """Run one sync pass if the owner's daily sync is due.

    The day is marked done after the attempt whatever its outcome, so a
    persistent failure is not retried every poll; manual and remote-trigger
    syncs still work.

    Returns:
        The sync result, or None if nothing was due
    """
    if identity is None or not identity.is_github_linked:
        return None

    now = now or datetime.now(timezone.utc)
    owner_id = identity.owner_id
    store = sync_service.settings_store
    settings = store.read_sync_settings(owner_id)
    today = today_key(now, sync_service.config.timezone)
    now_local = to_local(now, sync_service.config.scheduler.local_timezone)

    if not is_daily_sync_due(settings, now_local, today):
        return None

    logger.info(f"Running scheduled daily sync for {owner_id} ({settings.daily_sync_time})")
    result = sync_service.sync(identity, now=now)
    store.update_sync_settings(owner_id, last_daily_sync_day=today)
    sync_service.journal.append_event(
        event_type="DAILY_SYNC_RAN",
        payload={"day_key": today, "success": result.success, "message": result.message},
        owner_id=owner_id,
    )
    return result


class DailySyncScheduler:
    """Re-arming timer that calls ``check`` every ``interval_seconds``.

    Runs on the caller's event loop (no threads). ``stop`` cancels the
    pending handle; the owning session calls it when it closes.
    """

    def __init__(self, check: Callable[[], object], interval_seconds: float = 60.0):
        self.check = check
        self.interval_seconds = interval_seconds
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.Handle] = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self, loop: asyncio.AbstractEventLoop, run_immediately: bool = True) -> None:
        if self.running:
            return
        self._loop = loop
        if run_immediately:
            self._handle = loop.call_soon(self._tick)
        else:
            self._handle = loop.call_later(self.interval_seconds, self._tick)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self._loop = None

    def _tick(self) -> None:
        try:
            self.check()
        except Exception as e:
            logger.error(f"Scheduled daily sync check failed: {e}")
        finally:
            # stop() may have run inside check()
            if self._loop is not None and self._handle is not None:
                self._handle = self._loop.call_later(self.interval_seconds, self._tick)
