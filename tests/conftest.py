"""Pytest fixtures for devstreak tests."""

from datetime import datetime, timezone

import pytest

from devstreak.config import DevstreakConfig
from devstreak.identity import OwnerIdentity
from devstreak.journal import JournalWriter
from devstreak.models.entry import EntryOrigin, ExternalEvent, LedgerEntry
from devstreak.paths import StatePaths
from devstreak.stores.credentials import TOKEN_ENV_VAR, FileCredentialStore
from devstreak.stores.json_settings import JsonSettingsStore
from devstreak.stores.sqlite_ledger import SqliteLedgerStore


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep the developer's real token and state dir out of tests."""
    monkeypatch.delenv(TOKEN_ENV_VAR, raising=False)
    monkeypatch.delenv("DEVSTREAK_STATE_DIR", raising=False)
    monkeypatch.delenv("DEVSTREAK_TIMEZONE", raising=False)


@pytest.fixture
def temp_state(tmp_path):
    """Create a temporary state directory for testing.

    Args:
        tmp_path: pytest's built-in temporary directory fixture

    Returns:
        Path to temporary state root
    """
    state_root = tmp_path / "state"
    state_root.mkdir()
    return state_root


@pytest.fixture
def state_config(temp_state):
    return DevstreakConfig(state_dir=temp_state)


@pytest.fixture
def state_paths(state_config):
    """Create StatePaths for the temporary state dir, with directories."""
    paths = StatePaths.from_config(state_config)
    for directory in paths.get_all_directories():
        directory.mkdir(parents=True, exist_ok=True)
    return paths


@pytest.fixture
def ledger_store(state_paths):
    return SqliteLedgerStore(state_paths.ledger_db)


@pytest.fixture
def settings_store(state_paths):
    return JsonSettingsStore(state_paths)


@pytest.fixture
def credentials(state_paths):
    return FileCredentialStore(state_paths.credentials_file)


@pytest.fixture
def journal(state_paths):
    return JournalWriter(state_paths.journal_file)


@pytest.fixture
def owner():
    """A signed-in owner with a linked GitHub account."""
    return OwnerIdentity(owner_id="alice", github_login="alice-gh")


@pytest.fixture
def make_event():
    """Factory for ExternalEvent objects."""

    def _make(sha, when, summary="Fix bug", repo="alice/app"):
        if isinstance(when, str):
            when = datetime.fromisoformat(when.replace("Z", "+00:00"))
        return ExternalEvent(
            external_id=sha,
            summary=summary,
            source_container=repo,
            permalink=f"https://github.com/{repo}/commit/{sha}",
            occurred_at=when,
        )

    return _make


@pytest.fixture
def make_entry():
    """Factory for manual LedgerEntry objects."""

    def _make(day_key, owner_id="alice", note="Worked on things", **fields):
        ts = datetime.fromisoformat(f"{day_key}T12:00:00+00:00")
        return LedgerEntry(
            owner_id=owner_id,
            day_key=day_key,
            note_text=note,
            origin=fields.pop("origin", EntryOrigin.MANUAL),
            created_at=ts,
            updated_at=ts,
            **fields,
        )

    return _make


@pytest.fixture
def search_item():
    """Factory for one GitHub commit search API result item."""

    def _make(sha, date, message="Fix bug", repo="alice/app"):
        return {
            "sha": sha,
            "html_url": f"https://github.com/{repo}/commit/{sha}",
            "url": f"https://api.github.com/repos/{repo}/commits/{sha}",
            "commit": {
                "message": message,
                "author": {"name": "Alice", "date": date},
                "committer": {"name": "Alice", "date": date},
            },
            "repository": {"full_name": repo},
        }

    return _make


@pytest.fixture
def fixed_now():
    return datetime(2024, 1, 5, 18, 30, tzinfo=timezone.utc)
