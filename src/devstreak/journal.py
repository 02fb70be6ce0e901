"""Per-owner audit trail of ledger, sync and closure activity.

Every mutation the app performs is recorded as one JSON line in
<state>/journal.jsonl, tagged with the owner it concerns. Several owners
can share a state directory, so readers filter by owner before anything
else.
"""

import uuid
from collections import Counter, deque
from collections.abc import Iterable, Iterator
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from .models.journal import JournalEvent, JournalEventType

console = Console(stderr=True)


class JournalWriter:
    """Appends events for one process run; lines are never rewritten."""

    def __init__(self, journal_path: Path, run_id: str | None = None):
        self.journal_path = journal_path
        # Groups the events written by one CLI invocation or watch loop
        self.run_id = run_id or str(uuid.uuid4())

    def append_event(
        self,
        event_type: JournalEventType,
        payload: dict,
        owner_id: str | None = None,
    ) -> JournalEvent:
        event = JournalEvent(
            event_id=str(uuid.uuid4()),
            run_id=self.run_id,
            ts=datetime.now(timezone.utc),
            event_type=event_type,
            owner_id=owner_id,
            payload=payload,
        )
        self.journal_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.journal_path, "a", encoding="utf-8") as f:
            f.write(event.model_dump_json() + "\n")
        return event


def iter_journal(
    journal_path: Path,
    owner_id: str | None = None,
    event_types: Iterable[str] | None = None,
) -> Iterator[JournalEvent]:
    """Yield events in append order, keeping only those that match.

    ``owner_id=None`` keeps every owner; ``event_types`` limits the event
    kinds. Lines that fail validation are reported on stderr and skipped.
    """
    if not journal_path.exists():
        return

    wanted = set(event_types) if event_types else None
    skipped = 0
    with open(journal_path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                event = JournalEvent.model_validate_json(line)
            except ValidationError as e:
                skipped += 1
                console.print(f"[yellow]Warning: journal line {lineno} is malformed: {e.errors()[0]['msg']}[/yellow]")
                continue
            if owner_id is not None and event.owner_id != owner_id:
                continue
            if wanted is not None and event.event_type not in wanted:
                continue
            yield event

    if skipped:
        console.print(f"[yellow]Skipped {skipped} malformed journal line(s)[/yellow]")


def read_journal_tail(
    journal_path: Path,
    n: int = 20,
    owner_id: str | None = None,
    event_types: Iterable[str] | None = None,
) -> list[JournalEvent]:
    """Return the newest ``n`` matching events, oldest first.

    Filters apply before the limit, so another owner's activity never
    pushes this owner's events out of the window.
    """
    if n <= 0:
        return []
    return list(deque(iter_journal(journal_path, owner_id, event_types), maxlen=n))


def count_by_type(events: Iterable[JournalEvent]) -> dict[str, int]:
    """Event counts keyed by type, most frequent first."""
    return dict(Counter(event.event_type for event in events).most_common())
