"""Explicit application state for one signed-in owner.

AppSession wires the stores, the sync service and the timers together and
keeps the cached entry list and streak snapshot current. It is the
boundary of the core: every public method returns an OperationResult and
nothing raises past it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from .closure import DayClosureStatus, DayClosureTracker
from .config import DevstreakConfig
from .daykey import today_key
from .facade import LedgerFacade
from .identity import LocalIdentityProvider, OwnerIdentity
from .journal import JournalWriter
from .models.entry import EntryDraft, LedgerEntry
from .models.result import OperationResult
from .models.settings import SyncSettings
from .models.streak import StreakSnapshot
from .paths import StatePaths
from .stores.base import CredentialStore, LedgerStore, SettingsStore
from .stores.credentials import FileCredentialStore
from .stores.json_settings import JsonSettingsStore
from .stores.sqlite_ledger import SqliteLedgerStore
from .streak import HistoryRange, calculate_streak, dashboard_stats
from .sync.scheduler import DailySyncScheduler, run_daily_sync_if_due
from .sync.service import ClientFactory, SyncService

logger = logging.getLogger(__name__)

EMPTY_STREAK = StreakSnapshot(current_streak=0, longest_streak=0, last_active_day=None)


class AppSession:
    """Holds identity, stores, cached entries and the streak snapshot."""

    def __init__(
        self,
        config: DevstreakConfig,
        paths: StatePaths,
        identity_provider: LocalIdentityProvider,
        ledger_store: LedgerStore,
        settings_store: SettingsStore,
        credentials: CredentialStore,
        journal: JournalWriter,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.config = config
        self.paths = paths
        self.identity_provider = identity_provider
        self.ledger_store = ledger_store
        self.settings_store = settings_store
        self.credentials = credentials
        self.journal = journal

        self.facade = LedgerFacade(ledger_store, tz=config.timezone, journal=journal)
        self.closure = DayClosureTracker(settings_store, tz=config.timezone, journal=journal)
        self.sync_service = SyncService(
            config=config,
            paths=paths,
            ledger_store=ledger_store,
            settings_store=settings_store,
            credentials=credentials,
            journal=journal,
            client_factory=client_factory,
        )
        self.scheduler = DailySyncScheduler(
            self._scheduled_check,
            interval_seconds=config.scheduler.poll_interval_seconds,
        )

        self.identity: Optional[OwnerIdentity] = identity_provider.current()
        self.entries: list[LedgerEntry] = []
        self.streak: StreakSnapshot = EMPTY_STREAK
        self.last_remote_result: Optional[OperationResult] = None

        self._unsubscribe: Optional[Callable[[], None]] = None
        self._remote_sync_running = False

        self._subscribe()
        self.refresh()

    @classmethod
    def open(
        cls,
        config: DevstreakConfig,
        client_factory: Optional[ClientFactory] = None,
    ) -> "AppSession":
        """Build a session over the file-backed stores of ``config.state_dir``."""
        paths = StatePaths.from_config(config)
        for directory in paths.get_all_directories():
            directory.mkdir(parents=True, exist_ok=True)

        session = cls(
            config=config,
            paths=paths,
            identity_provider=LocalIdentityProvider(paths.identity_file),
            ledger_store=SqliteLedgerStore(paths.ledger_db),
            settings_store=JsonSettingsStore(paths),
            credentials=FileCredentialStore(paths.credentials_file),
            journal=JournalWriter(paths.journal_file),
            client_factory=client_factory,
        )
        session.process_pending_remote_request()
        return session

    def __enter__(self) -> "AppSession":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        """Stop the timer and drop the settings subscription."""
        self.scheduler.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    # -- identity ---------------------------------------------------------

    def _subscribe(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.identity is not None:
            self._unsubscribe = self.settings_store.subscribe(
                self.identity.owner_id,
                self._on_settings_changed,
            )

    def sign_in(
        self,
        owner_id: str,
        github_login: Optional[str] = None,
        token: Optional[str] = None,
    ) -> OperationResult:
        try:
            self.identity = self.identity_provider.sign_in(owner_id, github_login)
            if token:
                self.credentials.set(owner_id, token)
        except (OSError, ValueError) as e:
            return OperationResult.fail(f"Sign in failed: {e}")
        self._subscribe()
        self.refresh()
        return OperationResult.ok(
            f"Signed in as {owner_id}",
            owner_id=owner_id,
            github_login=self.identity.github_login,
        )

    def sign_out(self) -> OperationResult:
        if self.identity is None:
            return OperationResult.not_authenticated()
        owner_id = self.identity.owner_id
        try:
            self.credentials.clear(owner_id)
            self.identity_provider.sign_out()
        except OSError as e:
            return OperationResult.fail(f"Sign out failed: {e}")
        self.scheduler.stop()
        self.identity = None
        self._subscribe()
        self.refresh()
        return OperationResult.ok(f"Signed out {owner_id}")

    # -- cached state -----------------------------------------------------

    def refresh(self, now: Optional[datetime] = None) -> OperationResult:
        """Reload the owner's entries and recompute the streak snapshot."""
        if self.identity is None:
            self.entries = []
            self.streak = EMPTY_STREAK
            return OperationResult.not_authenticated()
        try:
            self.entries = self.ledger_store.query(self.identity.owner_id)
            self.streak = calculate_streak(self.entries, today_key(now, self.config.timezone))
        except Exception as e:
            logger.error(f"Failed to refresh entries for {self.identity.owner_id}: {e}")
            return OperationResult.fail(f"Failed to load entries: {e}")
        return OperationResult.ok("Entries loaded", count=len(self.entries))

    def _guarded(self, action: str, func: Callable[..., OperationResult], *args: Any, **kwargs: Any) -> OperationResult:
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{action} failed: {e}")
            return OperationResult.fail(f"{action} failed: {e}")
        if result.success:
            self.refresh(kwargs.get("now"))
        return result

    # -- ledger -----------------------------------------------------------

    def create_entry(self, draft: EntryDraft, now: Optional[datetime] = None) -> OperationResult:
        return self._guarded("Create entry", self.facade.create_entry, self.identity, draft, now=now)

    def edit_entry(self, entry_id: str, changes: dict[str, Any], now: Optional[datetime] = None) -> OperationResult:
        return self._guarded("Edit entry", self.facade.edit_entry, self.identity, entry_id, changes, now=now)

    def delete_entry(self, entry_id: str) -> OperationResult:
        return self._guarded("Delete entry", self.facade.delete_entry, self.identity, entry_id)

    def list_entries(self, history_range: HistoryRange = "all", now: Optional[datetime] = None) -> OperationResult:
        try:
            return self.facade.list_entries(self.identity, history_range, now=now)
        except Exception as e:
            logger.error(f"List entries failed: {e}")
            return OperationResult.fail(f"List entries failed: {e}")

    def stats(self, now: Optional[datetime] = None) -> OperationResult:
        if self.identity is None:
            return OperationResult.not_authenticated()
        try:
            entries = self.ledger_store.query(self.identity.owner_id)
            stats = dashboard_stats(entries, today_key(now, self.config.timezone))
        except Exception as e:
            logger.error(f"Stats failed: {e}")
            return OperationResult.fail(f"Stats failed: {e}")
        return OperationResult.ok("Dashboard stats", stats=stats)

    # -- sync and closure -------------------------------------------------

    def sync(self, now: Optional[datetime] = None) -> OperationResult:
        return self._guarded("Sync", self.sync_service.sync, self.identity, now=now)

    def closure_status(self, now: Optional[datetime] = None) -> Optional[DayClosureStatus]:
        if self.identity is None:
            return None
        return self.closure.status(self.identity.owner_id, now)

    def close_day(self, now: Optional[datetime] = None) -> OperationResult:
        pre_close_sync = None
        try:
            if self.sync_service.is_configured(self.identity):
                pre_close_sync = self._pre_close_sync
        except Exception as e:
            logger.warning(f"Could not read sync settings before closing the day: {e}")
        result = self._guarded(
            "Close day",
            self.closure.close_day,
            self.identity,
            now=now,
            pre_close_sync=pre_close_sync,
        )
        if not result.success and result.data.get("sync_success"):
            # Already closed, but the pre-close sync may have added entries
            self.refresh(now)
        return result

    def _pre_close_sync(self, identity: OwnerIdentity, now: datetime) -> OperationResult:
        try:
            return self.sync_service.sync(identity, now=now)
        except Exception as e:
            logger.error(f"Pre-close sync failed: {e}")
            return OperationResult.fail(f"Sync failed: {e}")

    def update_settings(self, **changes: Any) -> OperationResult:
        if self.identity is None:
            return OperationResult.not_authenticated()
        try:
            settings = self.settings_store.update_sync_settings(self.identity.owner_id, **changes)
        except Exception as e:
            return OperationResult.fail(f"Invalid settings: {e}")
        return OperationResult.ok("Settings saved", settings=settings)

    def read_settings(self) -> Optional[SyncSettings]:
        if self.identity is None:
            return None
        return self.settings_store.read_sync_settings(self.identity.owner_id)

    # -- remote trigger and timer ----------------------------------------

    def _on_settings_changed(self, settings: SyncSettings) -> None:
        if not settings.sync_requested or self._remote_sync_running:
            return
        # sync() writes settings itself, which re-enters this listener
        self._remote_sync_running = True
        try:
            logger.info("Remote sync request received")
            self.last_remote_result = self.sync()
            if self.identity is not None:
                self.settings_store.update_sync_settings(self.identity.owner_id, sync_requested=False)
        except Exception as e:
            logger.error(f"Remote sync request failed: {e}")
        finally:
            self._remote_sync_running = False

    def process_pending_remote_request(self) -> None:
        """Honor a sync request written while no session was listening."""
        settings = self.read_settings()
        if settings is not None and settings.sync_requested:
            self._on_settings_changed(settings)

    def _scheduled_check(self) -> None:
        # Listeners only fire in-process; poll for requests written elsewhere
        try:
            self.process_pending_remote_request()
        except Exception as e:
            logger.error(f"Could not check for a remote sync request: {e}")

        result = run_daily_sync_if_due(self.identity, self.sync_service, now=datetime.now(timezone.utc))
        if result is not None:
            logger.info(f"Scheduled sync: {result.message}")
            if result.success:
                self.refresh()

    def start_scheduler(self, loop: asyncio.AbstractEventLoop) -> None:
        self.scheduler.start(loop)

    def stop_scheduler(self) -> None:
        self.scheduler.stop()
