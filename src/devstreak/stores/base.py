"""Collaborator interfaces the core depends on."""

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..models.entry import EntryOrigin, LedgerEntry
from ..models.settings import DayClosureRecord, SyncSettings

SettingsListener = Callable[[SyncSettings], None]
Unsubscribe = Callable[[], None]


class EntryNotFoundError(KeyError):
    """Raised when an entry id does not exist in the Ledger Store."""


class LedgerStore(ABC):
    """Abstract store of LedgerEntry rows, scoped by owner."""

    @abstractmethod
    def query(
        self,
        owner_id: str,
        day_key: Optional[str] = None,
        origin: Optional[EntryOrigin] = None,
    ) -> list[LedgerEntry]:
        """Return the owner's entries, newest day first, optionally filtered."""

    @abstractmethod
    def get(self, entry_id: str) -> Optional[LedgerEntry]:
        """Return one entry by id, or None."""

    @abstractmethod
    def insert(self, entry: LedgerEntry) -> str:
        """Insert an entry and return its store-assigned id."""

    @abstractmethod
    def update(self, entry_id: str, changes: dict[str, Any]) -> None:
        """Apply a partial update to an entry.

        Raises:
            EntryNotFoundError: If the entry does not exist
        """

    @abstractmethod
    def delete(self, entry_id: str) -> None:
        """Delete an entry.

        Raises:
            EntryNotFoundError: If the entry does not exist
        """


class SettingsStore(ABC):
    """Abstract per-owner key-value store with push subscriptions."""

    @abstractmethod
    def read_sync_settings(self, owner_id: str) -> SyncSettings:
        """Return the owner's sync settings (defaults if never written)."""

    @abstractmethod
    def write_sync_settings(self, owner_id: str, settings: SyncSettings) -> None:
        """Persist sync settings and notify subscribers."""

    @abstractmethod
    def read_day_closure(self, owner_id: str) -> DayClosureRecord:
        """Return the owner's day-closure record (empty if never written)."""

    @abstractmethod
    def write_day_closure(self, owner_id: str, record: DayClosureRecord) -> None:
        """Persist the day-closure record."""

    @abstractmethod
    def subscribe(self, owner_id: str, listener: SettingsListener) -> Unsubscribe:
        """Register a listener called with every written SyncSettings."""

    def update_sync_settings(self, owner_id: str, **changes: Any) -> SyncSettings:
        """Read-modify-write a subset of sync settings fields."""
        current = self.read_sync_settings(owner_id)
        updated = current.model_copy(update=changes)
        # Re-validate the merged settings
        updated = SyncSettings.model_validate(updated.model_dump())
        self.write_sync_settings(owner_id, updated)
        return updated


class CredentialStore(ABC):
    """Abstract secure store for the external API token of each owner."""

    @abstractmethod
    def get(self, owner_id: str) -> Optional[str]:
        """Return the owner's token, or None."""

    @abstractmethod
    def set(self, owner_id: str, token: str) -> None:
        """Store the owner's token."""

    @abstractmethod
    def clear(self, owner_id: str) -> None:
        """Remove the owner's token if present."""
