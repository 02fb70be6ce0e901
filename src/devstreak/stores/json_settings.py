"""Per-owner settings kept as JSON files in the state directory."""

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Any

from ..models.settings import DayClosureRecord, SyncSettings
from ..paths import StatePaths
from .base import SettingsListener, SettingsStore, Unsubscribe

logger = logging.getLogger(__name__)

SYNC_SETTINGS_KEY = "sync_settings"
DAY_CLOSURE_KEY = "day_closure"


class JsonSettingsStore(SettingsStore):
    """Settings Store writing one JSON document per owner.

    Subscribers registered with ``subscribe`` are called in-process with the
    new SyncSettings after every successful write, which is how a remote
    "sync now" flag reaches the session.
    """

    def __init__(self, paths: StatePaths):
        self.paths = paths
        self._listeners: dict[str, list[SettingsListener]] = defaultdict(list)

    def _load(self, owner_id: str) -> dict[str, Any]:
        settings_file = self.paths.owner_settings_file(owner_id)
        if not settings_file.exists():
            return {}

        try:
            with open(settings_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to load settings file {settings_file}: {e}, using defaults")
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, owner_id: str, key: str, value: dict[str, Any]) -> None:
        """Replace one section of the owner's document atomically."""
        settings_file = self.paths.owner_settings_file(owner_id)
        settings_file.parent.mkdir(parents=True, exist_ok=True)

        data = self._load(owner_id)
        data[key] = value

        temp_file = settings_file.with_suffix(".tmp")
        try:
            with open(temp_file, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_file.replace(settings_file)
            logger.debug(f"Saved {key} to {settings_file}")
        except OSError as e:
            logger.error(f"Failed to save settings to {settings_file}: {e}")
            temp_file.unlink(missing_ok=True)
            raise

    def read_sync_settings(self, owner_id: str) -> SyncSettings:
        raw = self._load(owner_id).get(SYNC_SETTINGS_KEY) or {}
        try:
            return SyncSettings.model_validate(raw)
        except ValueError as e:
            logger.warning(f"Invalid sync settings for {owner_id}: {e}, using defaults")
            return SyncSettings()

    def write_sync_settings(self, owner_id: str, settings: SyncSettings) -> None:
        self._save(owner_id, SYNC_SETTINGS_KEY, settings.model_dump(mode="json"))
        for listener in list(self._listeners.get(owner_id, [])):
            listener(settings)

    def read_day_closure(self, owner_id: str) -> DayClosureRecord:
        raw = self._load(owner_id).get(DAY_CLOSURE_KEY) or {}
        # Corrupt closure records raise instead of reading as "open"
        return DayClosureRecord.model_validate(raw)

    def write_day_closure(self, owner_id: str, record: DayClosureRecord) -> None:
        self._save(owner_id, DAY_CLOSURE_KEY, record.model_dump(mode="json"))

    def subscribe(self, owner_id: str, listener: SettingsListener) -> Unsubscribe:
        self._listeners[owner_id].append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(owner_id, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe
