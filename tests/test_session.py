"""Tests for the ledger facade and the application session."""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, patch

import pytest

from devstreak.facade import ENTRY_NOT_FOUND, SYNCED_DAY_LOCKED, LedgerFacade
from devstreak.identity import OwnerIdentity
from devstreak.journal import read_journal_tail
from devstreak.models.entry import EntryDraft, EntryOrigin
from devstreak.models.settings import SyncSettings
from devstreak.session import AppSession
from devstreak.stores.json_settings import JsonSettingsStore
from devstreak.sync.reconciler import reconcile_events

DAY_ONE = datetime(2024, 1, 4, 10, 0, tzinfo=timezone.utc)
DAY_TWO = datetime(2024, 1, 5, 10, 0, tzinfo=timezone.utc)


def _search_response(items):
    response = Mock()
    response.status_code = 200
    response.json.return_value = {"items": items}
    return response


# --- LedgerFacade ---


def test_facade_requires_owner(ledger_store):
    facade = LedgerFacade(ledger_store)
    for result in (
        facade.create_entry(None, EntryDraft(note_text="x")),
        facade.edit_entry(None, "id", {"note_text": "y"}),
        facade.delete_entry(None, "id"),
        facade.list_entries(None),
    ):
        assert not result.success
        assert result.message == "User not authenticated"


def test_facade_create_defaults_to_today(ledger_store, owner, journal, state_paths):
    facade = LedgerFacade(ledger_store, journal=journal)

    result = facade.create_entry(owner, EntryDraft(note_text="  Wrote tests  ", tag="python"), now=DAY_TWO)

    entry = ledger_store.get(result.data["entry_id"])
    assert result.success
    assert entry.day_key == "2024-01-05"
    assert entry.note_text == "Wrote tests"
    assert entry.origin == EntryOrigin.MANUAL
    assert [e.event_type for e in read_journal_tail(state_paths.journal_file)] == ["ENTRY_CREATED"]


def test_facade_rejects_other_owners_entry(ledger_store, owner):
    facade = LedgerFacade(ledger_store)
    bob = OwnerIdentity(owner_id="bob")
    entry_id = facade.create_entry(bob, EntryDraft(note_text="Bob's work"), now=DAY_TWO).data["entry_id"]

    edit = facade.edit_entry(owner, entry_id, {"note_text": "hijacked"})
    delete = facade.delete_entry(owner, entry_id)

    assert not edit.success
    assert edit.message == ENTRY_NOT_FOUND
    assert not delete.success
    assert ledger_store.get(entry_id).note_text == "Bob's work"


def test_facade_edit_validation(ledger_store, owner):
    facade = LedgerFacade(ledger_store)
    entry_id = facade.create_entry(owner, EntryDraft(note_text="Work"), now=DAY_TWO).data["entry_id"]

    assert not facade.edit_entry(owner, entry_id, {"owner_id": "bob"}).success
    assert not facade.edit_entry(owner, entry_id, {"note_text": "   "}).success
    assert not facade.edit_entry(owner, entry_id, {"difficulty": 9}).success
    assert not facade.edit_entry(owner, "missing", {"note_text": "x"}).success

    result = facade.edit_entry(owner, entry_id, {"mood": "😄", "day_key": "2024-01-04"})
    assert result.success
    assert ledger_store.get(entry_id).day_key == "2024-01-04"


def test_facade_keeps_synced_entries_on_their_day(ledger_store, owner, make_event):
    reconcile_events("alice", [make_event("a1", "2024-01-03T09:00:00Z")], ledger_store, now=DAY_TWO)
    reconcile_events("alice", [make_event("b1", "2024-01-04T09:00:00Z")], ledger_store, now=DAY_TWO)
    moved_id = ledger_store.query("alice", day_key="2024-01-04")[0].id
    facade = LedgerFacade(ledger_store)

    result = facade.edit_entry(owner, moved_id, {"day_key": "2024-01-03"})

    assert not result.success
    assert result.message == SYNCED_DAY_LOCKED
    assert len(ledger_store.query("alice", day_key="2024-01-03", origin=EntryOrigin.EXTERNAL_SYNC)) == 1
    assert ledger_store.get(moved_id).day_key == "2024-01-04"

    # Other fields of a synced entry stay editable
    assert facade.edit_entry(owner, moved_id, {"mood": "😄", "day_key": "2024-01-04"}).success
    assert ledger_store.get(moved_id).mood == "😄"


def test_facade_list_with_range(ledger_store, owner):
    facade = LedgerFacade(ledger_store)
    facade.create_entry(owner, EntryDraft(note_text="old", day_key="2023-11-01"), now=DAY_TWO)
    facade.create_entry(owner, EntryDraft(note_text="new"), now=DAY_TWO)

    assert len(facade.list_entries(owner, "all", now=DAY_TWO).data["entries"]) == 2
    assert len(facade.list_entries(owner, "week", now=DAY_TWO).data["entries"]) == 1


# --- AppSession ---


@pytest.fixture
def session(state_config):
    session = AppSession.open(state_config)
    session.sign_in("alice", github_login="alice-gh", token="tok")
    yield session
    session.close()


def test_session_without_identity(state_config):
    with AppSession.open(state_config) as session:
        assert session.identity is None
        assert session.create_entry(EntryDraft(note_text="x")).data["not_authenticated"]
        assert session.sync().data["not_authenticated"]
        assert session.close_day().data["not_authenticated"]
        assert session.streak.current_streak == 0


def test_session_recomputes_streak_after_mutations(session):
    session.create_entry(EntryDraft(note_text="day one"), now=DAY_ONE)
    result = session.create_entry(EntryDraft(note_text="day two"), now=DAY_TWO)
    assert session.streak.current_streak == 2
    assert len(session.entries) == 2

    session.delete_entry(result.data["entry_id"])
    # Cached snapshot is recomputed against the real clock after delete
    assert len(session.entries) == 1
    assert session.streak.last_active_day == "2024-01-04"

    session.refresh(now=DAY_TWO)
    assert session.streak.current_streak == 1


def test_session_converts_store_errors(session):
    session.ledger_store.insert = Mock(side_effect=OSError("database is locked"))

    result = session.create_entry(EntryDraft(note_text="x"), now=DAY_TWO)

    assert not result.success
    assert "database is locked" in result.message


def test_session_list_unknown_range(session):
    result = session.list_entries("decade")
    assert not result.success


@patch("devstreak.github.client.requests.get")
def test_session_sync_refreshes_entries(mock_get, session, search_item):
    mock_get.return_value = _search_response([search_item("a1", "2024-01-05T09:00:00Z")])

    result = session.sync(now=DAY_TWO)

    assert result.success
    assert len(session.entries) == 1
    assert session.entries[0].origin == EntryOrigin.EXTERNAL_SYNC
    assert session.streak.current_streak == 1


@patch("devstreak.github.client.requests.get")
def test_remote_sync_request(mock_get, session, search_item):
    mock_get.return_value = _search_response([search_item("r1", "2024-01-05T09:00:00Z")])

    session.settings_store.update_sync_settings("alice", sync_requested=True)

    assert mock_get.call_count == 1
    assert session.last_remote_result.success
    assert not session.read_settings().sync_requested
    assert session.read_settings().last_sync_at is not None
    assert len(session.entries) == 1


@patch("devstreak.github.client.requests.get")
def test_pending_remote_request_runs_on_open(mock_get, state_config, search_item):
    mock_get.return_value = _search_response([search_item("r1", "2024-01-05T09:00:00Z")])
    with AppSession.open(state_config) as first:
        first.sign_in("alice", github_login="alice-gh", token="tok")
        first.close()
        first.settings_store.update_sync_settings("alice", sync_requested=True)
        assert mock_get.call_count == 0

    with AppSession.open(state_config) as second:
        assert mock_get.call_count == 1
        assert not second.read_settings().sync_requested


@patch("devstreak.github.client.requests.get")
def test_scheduled_check_picks_up_request_from_another_process(mock_get, session, search_item):
    mock_get.return_value = _search_response([search_item("r1", "2024-01-05T09:00:00Z")])
    # A separate store instance has no listeners, like a second CLI process
    other = JsonSettingsStore(session.paths)
    other.write_sync_settings("alice", SyncSettings(enabled=True, sync_requested=True))
    assert mock_get.call_count == 0

    session._scheduled_check()

    assert mock_get.call_count == 1
    assert session.last_remote_result.success
    assert not session.read_settings().sync_requested
    assert len(session.entries) == 1

    session._scheduled_check()
    assert mock_get.call_count == 1


def test_close_unsubscribes(session):
    session.sync = Mock()
    session.close()

    session.settings_store.update_sync_settings("alice", sync_requested=True)

    session.sync.assert_not_called()


@patch("devstreak.github.client.requests.get")
def test_close_day_syncs_when_configured(mock_get, session, search_item):
    mock_get.return_value = _search_response([search_item("c1", "2024-01-05T09:00:00Z")])
    session.update_settings(enabled=True)

    result = session.close_day(now=DAY_TWO)

    assert result.success
    assert result.data["sync_success"]
    assert len(session.entries) == 1
    assert not session.close_day(now=DAY_TWO).success
    assert session.close_day(now=DAY_TWO + timedelta(days=1)).success


def test_close_day_skips_sync_when_disabled(session):
    session.sync_service.sync = Mock()

    result = session.close_day(now=DAY_TWO)

    assert result.success
    session.sync_service.sync.assert_not_called()


def test_sign_out_clears_token(session):
    result = session.sign_out()

    assert result.success
    assert session.identity is None
    assert session.credentials.get("alice") is None
    assert session.identity_provider.current() is None


def test_stats(session):
    session.create_entry(EntryDraft(note_text="a", tag="python", mood="😄"), now=DAY_TWO)
    result = session.stats(now=DAY_TWO)
    assert result.data["stats"].total_entries == 1
    assert result.data["stats"].top_tags[0].tag == "python"


def test_scheduler_stops_on_close(session):
    loop = asyncio.new_event_loop()
    try:
        session.start_scheduler(loop)
        assert session.scheduler.running
        session.close()
        assert not session.scheduler.running
    finally:
        loop.close()
