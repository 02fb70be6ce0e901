"""Owner-scoped create/edit/delete/list of manual ledger entries."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from .daykey import today_key
from .identity import OwnerIdentity
from .journal import JournalWriter
from .models.entry import EntryDraft, EntryOrigin, LedgerEntry
from .models.result import OperationResult
from .stores.base import EntryNotFoundError, LedgerStore
from .streak import HistoryRange, filter_entries_by_range

logger = logging.getLogger(__name__)

ENTRY_NOT_FOUND = "Entry not found"
SYNCED_DAY_LOCKED = "Synced GitHub entries cannot move to another day"

# Fields of an EntryDraft that an edit may change
_EDITABLE_FIELDS = (
    "note_text",
    "title",
    "effort",
    "effort_unit",
    "difficulty",
    "description",
    "mood",
    "tag",
    "day_key",
)


class LedgerFacade:
    """Thin layer over the Ledger Store enforcing ownership.

    Every call performs at most one store mutation. Streak recomputation is
    left to the caller.
    """

    def __init__(self, store: LedgerStore, tz: str = "UTC", journal: Optional[JournalWriter] = None):
        self.store = store
        self.tz = tz
        self.journal = journal

    def _journal(self, event_type: str, payload: dict, owner_id: str) -> None:
        if self.journal is not None:
            self.journal.append_event(event_type=event_type, payload=payload, owner_id=owner_id)

    def _owned(self, identity: OwnerIdentity, entry_id: str) -> Optional[LedgerEntry]:
        entry = self.store.get(entry_id)
        if entry is None or entry.owner_id != identity.owner_id:
            return None
        return entry

    def create_entry(
        self,
        identity: Optional[OwnerIdentity],
        draft: EntryDraft,
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Create a manual entry for today (or ``draft.day_key``)."""
        if identity is None:
            return OperationResult.not_authenticated()

        now = now or datetime.now(timezone.utc)
        entry = LedgerEntry(
            owner_id=identity.owner_id,
            day_key=draft.day_key or today_key(now, self.tz),
            note_text=draft.note_text,
            origin=EntryOrigin.MANUAL,
            created_at=now,
            updated_at=now,
            title=draft.title,
            effort=draft.effort,
            effort_unit=draft.effort_unit,
            difficulty=draft.difficulty,
            description=draft.description,
            mood=draft.mood,
            tag=draft.tag,
        )
        entry_id = self.store.insert(entry)
        self._journal("ENTRY_CREATED", {"entry_id": entry_id, "day_key": entry.day_key}, identity.owner_id)
        logger.info(f"Created entry {entry_id} for {identity.owner_id} on {entry.day_key}")
        return OperationResult.ok("Entry created successfully!", entry_id=entry_id, day_key=entry.day_key)

    def edit_entry(
        self,
        identity: Optional[OwnerIdentity],
        entry_id: str,
        changes: dict[str, Any],
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """Apply a partial edit to one of the owner's entries.

        ``changes`` may only name user-editable fields; values are validated
        through EntryDraft semantics by the store's model validation.
        """
        if identity is None:
            return OperationResult.not_authenticated()

        unknown = sorted(set(changes) - set(_EDITABLE_FIELDS))
        if unknown:
            return OperationResult.fail(f"Cannot edit field(s): {', '.join(unknown)}", entry_id=entry_id)
        if not changes:
            return OperationResult.fail("Nothing to update", entry_id=entry_id)
        if "note_text" in changes:
            note = (changes["note_text"] or "").strip()
            if not note:
                return OperationResult.fail("Note must not be empty", entry_id=entry_id)
            changes = {**changes, "note_text": note}

        entry = self._owned(identity, entry_id)
        if entry is None:
            return OperationResult.fail(ENTRY_NOT_FOUND, entry_id=entry_id)
        # At most one synced entry per owner and day
        if (
            entry.origin == EntryOrigin.EXTERNAL_SYNC
            and "day_key" in changes
            and changes["day_key"] != entry.day_key
        ):
            return OperationResult.fail(SYNCED_DAY_LOCKED, entry_id=entry_id)

        now = now or datetime.now(timezone.utc)
        try:
            self.store.update(entry_id, {**changes, "updated_at": now})
        except EntryNotFoundError:
            return OperationResult.fail(ENTRY_NOT_FOUND, entry_id=entry_id)
        except ValueError as e:
            return OperationResult.fail(f"Invalid update: {e}", entry_id=entry_id)

        self._journal("ENTRY_EDITED", {"entry_id": entry_id, "fields": sorted(changes)}, identity.owner_id)
        return OperationResult.ok("Entry updated successfully!", entry_id=entry_id)

    def delete_entry(self, identity: Optional[OwnerIdentity], entry_id: str) -> OperationResult:
        if identity is None:
            return OperationResult.not_authenticated()

        entry = self._owned(identity, entry_id)
        if entry is None:
            return OperationResult.fail(ENTRY_NOT_FOUND, entry_id=entry_id)

        try:
            self.store.delete(entry_id)
        except EntryNotFoundError:
            return OperationResult.fail(ENTRY_NOT_FOUND, entry_id=entry_id)

        self._journal("ENTRY_DELETED", {"entry_id": entry_id, "day_key": entry.day_key}, identity.owner_id)
        return OperationResult.ok("Entry deleted successfully!", entry_id=entry_id)

    def list_entries(
        self,
        identity: Optional[OwnerIdentity],
        history_range: HistoryRange = "all",
        now: Optional[datetime] = None,
    ) -> OperationResult:
        """List the owner's entries, newest day first, within a history range."""
        if identity is None:
            return OperationResult.not_authenticated()

        entries = self.store.query(identity.owner_id)
        entries = filter_entries_by_range(entries, history_range, today_key(now, self.tz))
        return OperationResult.ok(f"{len(entries)} entries", entries=entries)
