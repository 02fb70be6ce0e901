from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..models.entry import EntryOrigin, LedgerEntry
from .base import EntryNotFoundError, LedgerStore

# Fields stored as columns; everything else lives in payload_json
_COLUMNS = ("id", "owner_id", "day_key", "origin", "created_at", "updated_at")
_IMMUTABLE = frozenset({"id", "owner_id", "created_at"})


def _json_dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def _json_loads(text: str) -> Any:
    return json.loads(text) if text else None


def _utc_text(value: datetime) -> str:
    """Fixed-width UTC timestamp, so text order matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SqliteLedgerStore(LedgerStore):
    """Ledger Store backed by a single SQLite file.

    Each call opens its own connection; writes commit per call, so a failed
    write never leaves a half-applied entry behind.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS entries(
                  id TEXT PRIMARY KEY,
                  owner_id TEXT NOT NULL,
                  day_key TEXT NOT NULL,
                  origin TEXT NOT NULL,
                  created_at TEXT NOT NULL,
                  updated_at TEXT NOT NULL,
                  payload_json TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_entries_owner_day
                  ON entries(owner_id, day_key);
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _to_row(entry: LedgerEntry) -> tuple:
        data = entry.model_dump(mode="json")
        payload = {k: v for k, v in data.items() if k not in _COLUMNS}
        return (
            data["id"],
            data["owner_id"],
            data["day_key"],
            data["origin"],
            _utc_text(entry.created_at),
            _utc_text(entry.updated_at),
            _json_dumps(payload),
        )

    @staticmethod
    def _from_row(row: sqlite3.Row) -> LedgerEntry:
        data = dict(_json_loads(str(row["payload_json"])) or {})
        for column in _COLUMNS:
            data[column] = row[column]
        return LedgerEntry.model_validate(data)

    def query(
        self,
        owner_id: str,
        day_key: Optional[str] = None,
        origin: Optional[EntryOrigin] = None,
    ) -> list[LedgerEntry]:
        sql = "SELECT * FROM entries WHERE owner_id = ?"
        params: list[Any] = [owner_id]
        if day_key is not None:
            sql += " AND day_key = ?"
            params.append(day_key)
        if origin is not None:
            sql += " AND origin = ?"
            params.append(EntryOrigin(origin).value)
        sql += " ORDER BY day_key DESC, created_at DESC"

        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
            return [self._from_row(row) for row in rows]
        finally:
            conn.close()

    def get(self, entry_id: str) -> Optional[LedgerEntry]:
        conn = self._connect()
        try:
            row = conn.execute("SELECT * FROM entries WHERE id = ?", (entry_id,)).fetchone()
            return self._from_row(row) if row is not None else None
        finally:
            conn.close()

    def insert(self, entry: LedgerEntry) -> str:
        entry_id = uuid.uuid4().hex
        stored = entry.model_copy(update={"id": entry_id})
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO entries(
                      id, owner_id, day_key, origin, created_at, updated_at, payload_json
                    )
                    VALUES(?, ?, ?, ?, ?, ?, ?)
                    """,
                    self._to_row(stored),
                )
        finally:
            conn.close()
        return entry_id

    def update(self, entry_id: str, changes: dict[str, Any]) -> None:
        forbidden = _IMMUTABLE.intersection(changes)
        if forbidden:
            raise ValueError(f"Cannot change immutable field(s): {', '.join(sorted(forbidden))}")

        conn = self._connect()
        try:
            with conn:
                row = conn.execute("SELECT * FROM entries WHERE id = ?", (entry_id,)).fetchone()
                if row is None:
                    raise EntryNotFoundError(entry_id)
                current = self._from_row(row)
                merged = LedgerEntry.model_validate({**current.model_dump(), **changes})
                _, _, day_key, origin, _, updated_at, payload_json = self._to_row(merged)
                conn.execute(
                    """
                    UPDATE entries
                    SET day_key = ?, origin = ?, updated_at = ?, payload_json = ?
                    WHERE id = ?
                    """,
                    (day_key, origin, updated_at, payload_json, entry_id),
                )
        finally:
            conn.close()

    def delete(self, entry_id: str) -> None:
        conn = self._connect()
        try:
            with conn:
                cur = conn.execute("DELETE FROM entries WHERE id = ?", (entry_id,))
                if cur.rowcount == 0:
                    raise EntryNotFoundError(entry_id)
        finally:
            conn.close()
