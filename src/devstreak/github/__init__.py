"""GitHub integration for devstreak.

Provides the API client and the stateless trailing-window event fetch.
"""

from .client import GitHubAuthError, GitHubClient
from .fetcher import FetchOutcome, fetch_events, lookback_start

__all__ = ["GitHubClient", "GitHubAuthError", "FetchOutcome", "fetch_events", "lookback_start"]
