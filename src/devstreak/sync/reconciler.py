"""Merge fetched external events into the owner's daily ledger.

Protocol, each step safe to resume by simply running the pass again:

1. scan the owner's full ledger for known external ids;
2. drop incoming events whose id is already known (first write wins);
3. group the survivors by day key;
4. per day, sequentially: append to that day's external-sync entry, or
   create one.

A failing day is logged and skipped; the other days still commit. The next
pass re-fetches the same window and re-applies the same filter, so skipped
days are retried without creating duplicates.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..daykey import to_day_key
from ..journal import JournalWriter
from ..models.entry import GITHUB_SYNC_TAG, EntryOrigin, ExternalEvent, LedgerEntry
from ..stores.base import LedgerStore

logger = logging.getLogger(__name__)

SYNCED_ENTRY_MOOD = "😊"


@dataclass
class ReconcileSummary:
    created: int = 0
    updated: int = 0
    events_added: int = 0
    duplicates_skipped: int = 0
    failed_days: list[str] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)

    @property
    def count(self) -> int:
        """Entries created or updated; for reporting only."""
        return self.created + self.updated


def _event_sort_key(event: ExternalEvent) -> tuple:
    occurred = event.occurred_at
    if occurred.tzinfo is None:
        occurred = occurred.replace(tzinfo=timezone.utc)
    return (occurred, event.external_id)


def canonical_events(events: Iterable[ExternalEvent]) -> list[ExternalEvent]:
    """De-duplicate by external id (first occurrence wins) and order by time."""
    seen: dict[str, ExternalEvent] = {}
    for event in events:
        seen.setdefault(event.external_id, event)
    return sorted(seen.values(), key=_event_sort_key)


def render_note_text(events: Iterable[ExternalEvent]) -> str:
    """Build the note of an external-sync entry.

    One ``• <summary> (<repo>)`` line per event, using the first stripped
    line of each summary.
    """
    lines = []
    for event in canonical_events(events):
        summary = event.summary.split("\n")[0].strip()
        if event.source_container:
            lines.append(f"• {summary} ({event.source_container})")
        else:
            lines.append(f"• {summary}")
    return "\n".join(lines)


def known_external_ids(store: LedgerStore, owner_id: str) -> set[str]:
    """Every external id already present anywhere in the owner's ledger."""
    ids: set[str] = set()
    for entry in store.query(owner_id):
        ids.update(entry.external_ids())
    return ids


def filter_new_events(
    events: Iterable[ExternalEvent],
    known_ids: set[str],
) -> tuple[list[ExternalEvent], int]:
    """Drop events already in the ledger and repeats within the batch.

    Returns:
        (surviving events, number dropped)
    """
    survivors: list[ExternalEvent] = []
    seen = set(known_ids)
    dropped = 0
    for event in events:
        if event.external_id in seen:
            dropped += 1
            continue
        seen.add(event.external_id)
        survivors.append(event)
    return survivors, dropped


def group_by_day(events: Iterable[ExternalEvent], tz: str) -> dict[str, list[ExternalEvent]]:
    by_day: dict[str, list[ExternalEvent]] = defaultdict(list)
    for event in events:
        by_day[to_day_key(event.occurred_at, tz)].append(event)
    return dict(by_day)


def _merge_day(
    store: LedgerStore,
    owner_id: str,
    day_key: str,
    day_events: list[ExternalEvent],
    now: datetime,
) -> tuple[str, Optional[str]]:
    """Append to or create the external-sync entry of one day.

    Returns:
        ("created" | "updated", entry id)
    """
    existing = store.query(owner_id, day_key=day_key, origin=EntryOrigin.EXTERNAL_SYNC)
    new_events = canonical_events(day_events)

    if existing:
        entry = existing[0]
        if len(existing) > 1:
            logger.warning(
                f"Found {len(existing)} external-sync entries for {owner_id} on {day_key}; "
                f"merging into {entry.id}"
            )
        known = entry.external_ids()
        appended = [e for e in new_events if e.external_id not in known]
        all_events = list(entry.external_events) + appended
        store.update(
            entry.id,
            {
                "external_events": all_events,
                "note_text": render_note_text(all_events),
                "updated_at": now,
            },
        )
        return "updated", entry.id

    entry = LedgerEntry(
        owner_id=owner_id,
        day_key=day_key,
        note_text=render_note_text(new_events),
        origin=EntryOrigin.EXTERNAL_SYNC,
        external_events=new_events,
        created_at=new_events[0].occurred_at,
        updated_at=now,
        tag=GITHUB_SYNC_TAG,
        mood=SYNCED_ENTRY_MOOD,
    )
    return "created", store.insert(entry)


def reconcile_events(
    owner_id: str,
    events: Iterable[ExternalEvent],
    store: LedgerStore,
    *,
    tz: str = "UTC",
    now: Optional[datetime] = None,
    journal: Optional[JournalWriter] = None,
) -> ReconcileSummary:
    """Merge a fetched batch of external events into the Ledger Store.

    Args:
        owner_id: Owner whose ledger is merged into
        events: Freshly fetched events (may overlap earlier batches)
        store: Ledger Store
        tz: Day-key timezone convention
        now: Timestamp used for updated_at (defaults to current UTC time)
        journal: Optional audit journal

    Returns:
        ReconcileSummary with per-pass statistics
    """
    now = now or datetime.now(timezone.utc)
    summary = ReconcileSummary()

    known_ids = known_external_ids(store, owner_id)
    survivors, summary.duplicates_skipped = filter_new_events(events, known_ids)
    if not survivors:
        logger.info(f"No new external events for {owner_id} ({summary.duplicates_skipped} already known)")
        return summary

    by_day = group_by_day(survivors, tz)

    # Sequential, chronological: a failure on one day leaves earlier days committed
    for day_key in sorted(by_day):
        day_events = by_day[day_key]
        try:
            action, entry_id = _merge_day(store, owner_id, day_key, day_events, now)
        except Exception as e:
            logger.error(f"Failed to merge {len(day_events)} event(s) for {owner_id} on {day_key}: {e}")
            summary.failed_days.append(day_key)
            summary.errors.append({"day_key": day_key, "error": str(e)})
            if journal is not None:
                journal.append_event(
                    event_type="SYNC_DAY_FAILED",
                    payload={"day_key": day_key, "events": len(day_events), "error": str(e)},
                    owner_id=owner_id,
                )
            continue

        if action == "created":
            summary.created += 1
        else:
            summary.updated += 1
        summary.events_added += len(day_events)

        if journal is not None:
            journal.append_event(
                event_type="SYNC_DAY_CREATED" if action == "created" else "SYNC_DAY_MERGED",
                payload={
                    "day_key": day_key,
                    "entry_id": entry_id,
                    "external_ids": [e.external_id for e in canonical_events(day_events)],
                },
                owner_id=owner_id,
            )

    logger.info(
        f"Reconciled {summary.events_added} event(s) for {owner_id}: "
        f"{summary.created} created, {summary.updated} updated, "
        f"{len(summary.failed_days)} failed day(s)"
    )
    return summary
