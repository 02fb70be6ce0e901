"""GitHub REST client for fetching commit activity."""

import logging
from datetime import datetime, timezone
from typing import Any

import requests

from ..models.entry import ExternalEvent

logger = logging.getLogger(__name__)


class GitHubAuthError(RuntimeError):
    """Raised when GitHub rejects the token (HTTP 401)."""


class GitHubClient:
    """Client for the GitHub commit search API.

    Searches commits authored by a user and converts them into
    ExternalEvent objects.
    """

    BASE_URL = "https://api.github.com"
    ACCEPT = "application/vnd.github.cloak-preview+json"

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
    ):
        """Initialize GitHub API client.

        Args:
            token: GitHub access token
            base_url: API root (defaults to https://api.github.com)
            timeout_seconds: Per-request timeout

        Raises:
            ValueError: If no token is provided
        """
        if not token:
            raise ValueError("GitHub token not found. Please re-authenticate with GitHub.")
        self.token = token
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds

    def search_commits(
        self,
        author: str,
        since_day: str,
        per_page: int = 100,
    ) -> list[ExternalEvent]:
        """Search commits by author with committer date on or after a day.

        Args:
            author: GitHub login of the commit author
            since_day: Earliest committer day (YYYY-MM-DD, UTC)
            per_page: Page size (GitHub caps search pages at 100)

        Returns:
            List of ExternalEvent objects, newest first

        Raises:
            GitHubAuthError: If the token is rejected
            requests.RequestException: If the API request fails
        """
        params = {
            "q": f"author:{author} committer-date:>={since_day}",
            "sort": "committer-date",
            "order": "desc",
            "per_page": per_page,
        }
        headers = {
            "Authorization": f"Bearer {self.token}",
            "Accept": self.ACCEPT,
        }
        endpoint = f"{self.base_url}/search/commits"

        response = requests.get(endpoint, params=params, headers=headers, timeout=self.timeout_seconds)
        if response.status_code == 401:
            raise GitHubAuthError("GitHub token expired. Please re-authenticate with GitHub.")
        response.raise_for_status()

        data = response.json()
        items = data.get("items", []) if isinstance(data, dict) else []

        events: list[ExternalEvent] = []
        for item in items:
            event = self._parse_commit(item)
            if event is not None:
                events.append(event)
        return events

    def _parse_commit(self, item: dict[str, Any]) -> ExternalEvent | None:
        """Parse one search result item, or None if it lacks required fields."""
        commit = item.get("commit") or {}
        sha = item.get("sha")
        committer = commit.get("committer") or {}
        author = commit.get("author") or {}
        occurred_at = self._parse_timestamp(committer.get("date") or author.get("date"))

        if not sha or occurred_at is None:
            logger.warning(f"Skipping commit search item without sha or date: {item.get('url')}")
            return None

        message = commit.get("message") or ""
        repository = item.get("repository") or {}

        return ExternalEvent(
            external_id=sha,
            summary=message.split("\n")[0].strip(),
            source_container=repository.get("full_name") or "",
            permalink=item.get("html_url") or "",
            occurred_at=occurred_at,
        )

    def _parse_timestamp(self, ts: str | None) -> datetime | None:
        """Parse an ISO 8601 timestamp into an aware datetime."""
        if not ts:
            return None
        try:
            parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
        except (ValueError, AttributeError):
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
