"""One GitHub sync pass: settings, token, fetch, reconcile, bookkeeping."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import DevstreakConfig
from ..daykey import to_day_key
from ..github.client import GitHubClient
from ..github.fetcher import fetch_events, lookback_start
from ..identity import OwnerIdentity
from ..journal import JournalWriter
from ..models.result import OperationResult
from ..paths import StatePaths
from ..stores.base import CredentialStore, LedgerStore, SettingsStore
from .reconciler import ReconcileSummary, reconcile_events
from .trace import write_sync_trace

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], GitHubClient]

TOKEN_MISSING_MESSAGE = "GitHub token not found. Please re-authenticate with GitHub."
TOKEN_EXPIRED_MESSAGE = "GitHub token expired. Please re-authenticate with GitHub."
NOT_LINKED_MESSAGE = "GitHub account not linked. Sign in with a GitHub username first."


class SyncService:
    """Runs GitHub sync passes for the signed-in owner.

    Holds the collaborators; every call takes the identity and clock as
    parameters so no ambient state is read.
    """

    def __init__(
        self,
        config: DevstreakConfig,
        paths: StatePaths,
        ledger_store: LedgerStore,
        settings_store: SettingsStore,
        credentials: CredentialStore,
        journal: JournalWriter,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.config = config
        self.paths = paths
        self.ledger_store = ledger_store
        self.settings_store = settings_store
        self.credentials = credentials
        self.journal = journal
        self.client_factory = client_factory or self._default_client

    def _default_client(self, token: str) -> GitHubClient:
        return GitHubClient(
            token=token,
            base_url=self.config.github.api_url,
            timeout_seconds=self.config.github.timeout_seconds,
        )

    def is_configured(self, identity: Optional[OwnerIdentity]) -> bool:
        """True if the owner is GitHub-linked and has sync enabled."""
        if identity is None or not identity.is_github_linked:
            return False
        return self.settings_store.read_sync_settings(identity.owner_id).enabled

    def sync(
        self,
        identity: Optional[OwnerIdentity],
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Fetch the trailing window of GitHub commits and merge them.

        ``last_sync_at`` is only advanced when the fetch succeeded; a failed
        fetch is never reported as "no new commits".

        Args:
            identity: Signed-in owner, or None
            now: Current time (defaults to UTC now)

        Returns:
            OperationResult with reconcile counts in ``data``
        """
        if identity is None:
            return OperationResult.not_authenticated()
        if not identity.is_github_linked:
            return OperationResult.fail(NOT_LINKED_MESSAGE, needs_reauth=True)

        owner_id = identity.owner_id
        token = self.credentials.get(owner_id)
        if not token:
            return OperationResult.fail(TOKEN_MISSING_MESSAGE, needs_reauth=True)

        now = now or datetime.now(timezone.utc)
        settings = self.settings_store.read_sync_settings(owner_id)
        since = lookback_start(now, self.config.github.lookback_days)
        sync_id = str(uuid.uuid4())

        logger.info(f"Starting GitHub sync for {owner_id} (last sync: {settings.last_sync_at})")

        outcome = fetch_events(
            identity.github_login,
            token,
            since,
            client=self.client_factory(token),
            per_page=self.config.github.per_page,
        )

        if not outcome.ok:
            self.journal.append_event(
                event_type="SYNC_FETCH_FAILED",
                payload={
                    "sync_id": sync_id,
                    "since_day": outcome.since_day,
                    "error": outcome.error,
                    "auth_expired": outcome.auth_expired,
                },
                owner_id=owner_id,
            )
            if outcome.auth_expired:
                return OperationResult.fail(TOKEN_EXPIRED_MESSAGE, needs_reauth=True)
            return OperationResult.fail(f"Sync failed: {outcome.error}")

        self.journal.append_event(
            event_type="SYNC_FETCHED",
            payload={
                "sync_id": sync_id,
                "since_day": outcome.since_day,
                "events_count": len(outcome.events),
                "lookback_days": self.config.github.lookback_days,
            },
            owner_id=owner_id,
        )

        if settings.auto_create_entries:
            summary = reconcile_events(
                owner_id,
                outcome.events,
                self.ledger_store,
                tz=self.config.timezone,
                now=now,
                journal=self.journal,
            )
        else:
            logger.info(f"Auto-create disabled for {owner_id}; {len(outcome.events)} event(s) not written")
            summary = ReconcileSummary()

        self.settings_store.update_sync_settings(owner_id, last_sync_at=now)

        trace_path = write_sync_trace(
            summary=summary,
            run_id=sync_id,
            owner_id=owner_id,
            paths=self.paths,
            date_str=to_day_key(now, "UTC"),
            start_time=now,
            end_time=datetime.now(timezone.utc),
            api_endpoint=f"{self.config.github.api_url}/search/commits",
            api_params={
                "author": identity.github_login,
                "since_day": outcome.since_day,
                "per_page": self.config.github.per_page,
            },
            external_ids=[e.external_id for e in outcome.events],
        )

        data = {
            "fetched": len(outcome.events),
            "events_added": summary.events_added,
            "created": summary.created,
            "updated": summary.updated,
            "count": summary.count,
            "duplicates_skipped": summary.duplicates_skipped,
            "failed_days": list(summary.failed_days),
            "auto_create_entries": settings.auto_create_entries,
            "trace_path": str(trace_path),
        }

        if not settings.auto_create_entries:
            message = f"Fetched {len(outcome.events)} GitHub commits (auto-create is off, nothing written)."
        elif summary.count == 0 and not summary.failed_days:
            message = "All caught up! No new commits since last sync."
        else:
            message = (
                f"Synced {summary.events_added} GitHub commits into "
                f"{summary.count} daily entr{'y' if summary.count == 1 else 'ies'}."
            )
            if summary.failed_days:
                message += f" {len(summary.failed_days)} day(s) failed and will retry on the next sync."

        return OperationResult.ok(message, **data)
