"""Day closure ("Call it a Day").

Each owner is either OPEN or CLOSED for the current day. The state is
derived by comparing the stored ``last_closed_day`` with today's day key,
so a new calendar day is OPEN without any timer.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel

from .daykey import today_key
from .identity import OwnerIdentity
from .journal import JournalWriter
from .models.result import OperationResult
from .models.settings import DayClosureRecord
from .stores.base import SettingsStore

logger = logging.getLogger(__name__)

CLOSED_MESSAGE = "Great work today! Time to rest and recharge. See you tomorrow! 🌙"
ALREADY_CLOSED_MESSAGE = "You've already called it a day! See you tomorrow! 👋"

PreCloseSync = Callable[[OwnerIdentity, datetime], OperationResult]


class ClosureState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class DayClosureStatus(BaseModel):
    state: ClosureState
    today: str
    last_closed_day: Optional[str] = None

    @property
    def can_close(self) -> bool:
        return self.state == ClosureState.OPEN


def closure_state(record: DayClosureRecord, today: str) -> ClosureState:
    if record.last_closed_day == today:
        return ClosureState.CLOSED
    return ClosureState.OPEN


class DayClosureTracker:
    """Records the user's explicit end-of-day finalization."""

    def __init__(
        self,
        settings_store: SettingsStore,
        tz: str = "UTC",
        journal: Optional[JournalWriter] = None,
    ):
        self.settings_store = settings_store
        self.tz = tz
        self.journal = journal

    def status(self, owner_id: str, now: Optional[datetime] = None) -> DayClosureStatus:
        today = today_key(now, self.tz)
        record = self.settings_store.read_day_closure(owner_id)
        return DayClosureStatus(
            state=closure_state(record, today),
            today=today,
            last_closed_day=record.last_closed_day,
        )

    def close_day(
        self,
        identity: Optional[OwnerIdentity],
        now: Optional[datetime] = None,
        pre_close_sync: Optional[PreCloseSync] = None,
    ) -> OperationResult:
        """Transition today from OPEN to CLOSED.

        If ``pre_close_sync`` is given (the owner has sync configured) it
        runs first so the closed day reflects all of its activity; its
        failure is reported but does not block closing.

        Args:
            identity: Signed-in owner, or None
            now: Current time (defaults to UTC now)
            pre_close_sync: Optional sync pass to run before closing

        Returns:
            Success, or an informational ``already_closed`` result
        """
        if identity is None:
            return OperationResult.not_authenticated()

        now = now or datetime.now(timezone.utc)
        owner_id = identity.owner_id
        today = today_key(now, self.tz)

        if self.status(owner_id, now).state == ClosureState.CLOSED:
            return OperationResult.fail(ALREADY_CLOSED_MESSAGE, already_closed=True, day_key=today)

        sync_data: dict = {}
        if pre_close_sync is not None:
            sync_result = pre_close_sync(identity, now)
            sync_data = {"sync_success": sync_result.success, "sync_message": sync_result.message}
            if not sync_result.success:
                logger.warning(f"Pre-close sync failed for {owner_id}: {sync_result.message}")

        # Re-check right before writing: another close may have landed meanwhile
        record = self.settings_store.read_day_closure(owner_id)
        if closure_state(record, today) == ClosureState.CLOSED:
            return OperationResult.fail(ALREADY_CLOSED_MESSAGE, already_closed=True, day_key=today, **sync_data)

        self.settings_store.write_day_closure(
            owner_id,
            DayClosureRecord(last_closed_day=today, closed_at=now),
        )
        if self.journal is not None:
            self.journal.append_event(
                event_type="DAY_CLOSED",
                payload={"day_key": today, **sync_data},
                owner_id=owner_id,
            )

        return OperationResult.ok(CLOSED_MESSAGE, day_key=today, **sync_data)
