"""Path management for the devstreak state directory."""

from pathlib import Path

from .config import DevstreakConfig


class StatePaths:
    """Manages paths within the devstreak state directory."""

    def __init__(self, state_root: Path):
        """Initialize state paths from root directory.

        Args:
            state_root: Root directory holding all devstreak state
        """
        self.root = state_root

        self.settings = state_root / "settings"
        self.traces = state_root / "traces"
        self.traces_sync = self.traces / "sync"

        self.config_file = state_root / "config.toml"
        self.ledger_db = state_root / "ledger.sqlite"
        self.journal_file = state_root / "journal.jsonl"
        self.identity_file = state_root / "identity.json"
        self.credentials_file = state_root / "credentials.json"

    @classmethod
    def from_config(cls, config: DevstreakConfig) -> "StatePaths":
        """Create StatePaths from a DevstreakConfig."""
        return cls(config.state_dir)

    def get_all_directories(self) -> list[Path]:
        """Get list of all directories that should exist in the state dir."""
        return [
            self.root,
            self.settings,
            self.traces,
            self.traces_sync,
        ]

    def owner_settings_file(self, owner_id: str) -> Path:
        """Get path to the settings JSON of one owner."""
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in owner_id)
        return self.settings / f"{safe}.json"

    def traces_sync_date_folder(self, date_str: str) -> Path:
        """Get path to traces/sync folder for a specific date.

        Args:
            date_str: Date in YYYY-MM-DD format

        Returns:
            Path to the traces/sync date folder
        """
        return self.traces_sync / date_str
