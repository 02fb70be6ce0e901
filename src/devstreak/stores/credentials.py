"""Token storage for the GitHub API."""

import json
import logging
import os
from pathlib import Path
from typing import Optional

from .base import CredentialStore

logger = logging.getLogger(__name__)

TOKEN_ENV_VAR = "DEVSTREAK_GITHUB_TOKEN"


class FileCredentialStore(CredentialStore):
    """Stores tokens keyed by owner in a JSON file readable only by the user.

    ``DEVSTREAK_GITHUB_TOKEN`` overrides the file for every owner.
    """

    def __init__(self, credentials_file: Path):
        self.credentials_file = credentials_file

    def _load(self) -> dict[str, str]:
        if not self.credentials_file.exists():
            return {}
        try:
            data = json.loads(self.credentials_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Failed to read credentials file {self.credentials_file}: {e}")
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _save(self, data: dict[str, str]) -> None:
        self.credentials_file.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.credentials_file.with_suffix(".tmp")
        fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        temp_file.replace(self.credentials_file)

    def get(self, owner_id: str) -> Optional[str]:
        env_token = os.environ.get(TOKEN_ENV_VAR)
        if env_token:
            return env_token
        return self._load().get(owner_id) or None

    def set(self, owner_id: str, token: str) -> None:
        if not token.strip():
            raise ValueError("Token must not be empty")
        data = self._load()
        data[owner_id] = token.strip()
        self._save(data)

    def clear(self, owner_id: str) -> None:
        data = self._load()
        if data.pop(owner_id, None) is not None:
            self._save(data)
