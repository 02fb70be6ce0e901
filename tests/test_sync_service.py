"""Tests for one GitHub sync pass."""

import json
from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from devstreak.identity import OwnerIdentity
from devstreak.journal import read_journal_tail
from devstreak.models.entry import EntryOrigin
from devstreak.sync.service import (
    NOT_LINKED_MESSAGE,
    TOKEN_EXPIRED_MESSAGE,
    TOKEN_MISSING_MESSAGE,
    SyncService,
)

NOW = datetime(2024, 1, 5, 18, 0, tzinfo=timezone.utc)


def _response(status_code=200, items=None):
    response = Mock()
    response.status_code = status_code
    response.json.return_value = {"items": items or []}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    return response


@pytest.fixture
def service(state_config, state_paths, ledger_store, settings_store, credentials, journal):
    return SyncService(
        config=state_config,
        paths=state_paths,
        ledger_store=ledger_store,
        settings_store=settings_store,
        credentials=credentials,
        journal=journal,
    )


@pytest.fixture
def linked(owner, credentials):
    credentials.set(owner.owner_id, "tok")
    return owner


def test_sync_requires_owner(service):
    result = service.sync(None, now=NOW)
    assert not result.success
    assert result.message == "User not authenticated"


def test_sync_requires_github_link(service):
    result = service.sync(OwnerIdentity(owner_id="alice"), now=NOW)
    assert not result.success
    assert result.message == NOT_LINKED_MESSAGE


def test_sync_requires_token(service, owner):
    result = service.sync(owner, now=NOW)
    assert not result.success
    assert result.message == TOKEN_MISSING_MESSAGE
    assert result.data["needs_reauth"]


@patch("devstreak.github.client.requests.get")
def test_sync_success(mock_get, service, linked, search_item, ledger_store, settings_store):
    mock_get.return_value = _response(items=[
        search_item("a1", "2024-01-03T09:00:00Z", "First"),
        search_item("a2", "2024-01-03T11:00:00Z", "Second"),
        search_item("a3", "2024-01-04T09:00:00Z", "Third"),
    ])

    result = service.sync(linked, now=NOW)

    assert result.success
    assert result.message == "Synced 3 GitHub commits into 2 daily entries."
    assert result.data["created"] == 2
    assert result.data["fetched"] == 3
    assert len(ledger_store.query("alice", origin=EntryOrigin.EXTERNAL_SYNC)) == 2
    assert settings_store.read_sync_settings("alice").last_sync_at == NOW

    # The search window is the fixed 7-day lookback
    assert mock_get.call_args.kwargs["params"]["q"] == "author:alice-gh committer-date:>=2023-12-29"


@patch("devstreak.github.client.requests.get")
def test_sync_writes_trace(mock_get, service, linked, search_item):
    mock_get.return_value = _response(items=[search_item("a1", "2024-01-03T09:00:00Z")])

    result = service.sync(linked, now=NOW)

    trace = json.loads(open(result.data["trace_path"], encoding="utf-8").read())
    assert trace["owner_id"] == "alice"
    assert trace["date"] == "2024-01-05"
    assert trace["external_ids"] == ["a1"]
    assert trace["reconcile_result"]["created"] == 1


@patch("devstreak.github.client.requests.get")
def test_second_sync_is_all_caught_up(mock_get, service, linked, search_item):
    mock_get.return_value = _response(items=[search_item("a1", "2024-01-03T09:00:00Z")])

    service.sync(linked, now=NOW)
    result = service.sync(linked, now=NOW)

    assert result.success
    assert result.message == "All caught up! No new commits since last sync."
    assert result.data["count"] == 0


@patch("devstreak.github.client.requests.get")
def test_expired_token(mock_get, service, linked, settings_store):
    mock_get.return_value = _response(status_code=401)

    result = service.sync(linked, now=NOW)

    assert not result.success
    assert result.message == TOKEN_EXPIRED_MESSAGE
    assert result.data["needs_reauth"]
    assert settings_store.read_sync_settings("alice").last_sync_at is None


@patch("devstreak.github.client.requests.get")
def test_network_failure_is_not_caught_up(mock_get, service, linked, settings_store, state_paths):
    mock_get.side_effect = requests.Timeout("timed out")

    result = service.sync(linked, now=NOW)

    assert not result.success
    assert result.message.startswith("Sync failed:")
    assert settings_store.read_sync_settings("alice").last_sync_at is None
    event_types = [e.event_type for e in read_journal_tail(state_paths.journal_file)]
    assert event_types == ["SYNC_FETCH_FAILED"]


@patch("devstreak.github.client.requests.get")
def test_auto_create_disabled(mock_get, service, linked, search_item, ledger_store, settings_store):
    settings_store.update_sync_settings("alice", auto_create_entries=False)
    mock_get.return_value = _response(items=[search_item("a1", "2024-01-03T09:00:00Z")])

    result = service.sync(linked, now=NOW)

    assert result.success
    assert result.data["fetched"] == 1
    assert result.data["count"] == 0
    assert ledger_store.query("alice") == []
    assert settings_store.read_sync_settings("alice").last_sync_at == NOW


def test_is_configured(service, owner, settings_store):
    assert not service.is_configured(None)
    assert not service.is_configured(owner)
    settings_store.update_sync_settings("alice", enabled=True)
    assert service.is_configured(owner)
    assert not service.is_configured(OwnerIdentity(owner_id="alice"))
