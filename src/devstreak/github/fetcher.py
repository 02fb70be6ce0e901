"""Stateless fetch of external activity events over a trailing window."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

import requests

from ..daykey import to_day_key
from ..models.entry import ExternalEvent
from .client import GitHubAuthError, GitHubClient

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK_DAYS = 7


@dataclass
class FetchOutcome:
    """Fetched events plus an explicit failure signal.

    ``ok`` distinguishes "nothing happened" (ok, no events) from "fetch
    failed" (not ok, no events).
    """

    events: list[ExternalEvent] = field(default_factory=list)
    ok: bool = True
    error: Optional[str] = None
    auth_expired: bool = False
    since_day: Optional[str] = None


def lookback_start(now: datetime, days: int = DEFAULT_LOOKBACK_DAYS) -> datetime:
    """Start of the fixed trailing window re-queried on every sync.

    The window does not depend on the last sync time, so commits indexed
    late by GitHub search are picked up by a later pass.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now - timedelta(days=days)


def fetch_events(
    owner_identity: str,
    access_token: str,
    since: datetime,
    client: Optional[GitHubClient] = None,
    per_page: int = 100,
) -> FetchOutcome:
    """Fetch GitHub commits authored by ``owner_identity`` since ``since``.

    Never raises for network or HTTP failures; they are reported through
    the returned FetchOutcome.

    Args:
        owner_identity: GitHub login to search for
        access_token: GitHub token
        since: Window start (the search is day-granular, UTC)
        client: Optional preconfigured client
        per_page: Page size

    Returns:
        FetchOutcome with events or an error signal
    """
    since_day = to_day_key(since, "UTC")
    try:
        client = client or GitHubClient(token=access_token)
        events = client.search_commits(owner_identity, since_day, per_page=per_page)
    except GitHubAuthError as e:
        logger.warning(f"GitHub rejected token for {owner_identity}: {e}")
        return FetchOutcome(ok=False, error=str(e), auth_expired=True, since_day=since_day)
    except (requests.RequestException, ValueError) as e:
        logger.error(f"Error fetching GitHub commits for {owner_identity}: {e}")
        return FetchOutcome(ok=False, error=str(e), since_day=since_day)

    logger.info(f"Fetched {len(events)} commits for {owner_identity} since {since_day}")
    return FetchOutcome(events=events, ok=True, since_day=since_day)
