"""Ledger, settings and credential stores used by the devstreak core."""

from .base import CredentialStore, EntryNotFoundError, LedgerStore, SettingsStore
from .credentials import FileCredentialStore
from .json_settings import JsonSettingsStore
from .sqlite_ledger import SqliteLedgerStore

__all__ = [
    "LedgerStore",
    "SettingsStore",
    "CredentialStore",
    "EntryNotFoundError",
    "SqliteLedgerStore",
    "JsonSettingsStore",
    "FileCredentialStore",
]
