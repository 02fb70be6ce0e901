"""Configuration management for devstreak."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

try:
    import tomllib  # Python 3.11+
except ImportError:
    import tomli as tomllib  # Python < 3.11

from .daykey import resolve_zone

DEFAULT_STATE_DIR = Path.home() / ".devstreak"


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop at filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_toml(config_file: Path) -> Optional[dict]:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        # Malformed repo config is ignored
        return None


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .devstreak/config.toml if it exists."""
    return _load_toml(repo_root / ".devstreak" / "config.toml")


def _get_repo_config_value(data: Optional[dict], keys: list[str]) -> Optional[str]:
    """Safely get a nested repo config value as a string."""
    if not data:
        return None
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    if isinstance(current, (str, int, float)) and not isinstance(current, bool):
        return str(current)
    return None


def _pick(cli_value, repo_value: Optional[str], env_name: str, default: str) -> str:
    if cli_value is not None:
        return str(cli_value)
    if repo_value is not None:
        return repo_value
    return os.environ.get(env_name, default)


class GitHubConfig(BaseModel):
    """Configuration for the GitHub activity fetcher."""

    api_url: str = Field(default="https://api.github.com")
    lookback_days: int = Field(default=7, ge=1)
    per_page: int = Field(default=100, ge=1, le=100)
    timeout_seconds: float = Field(default=30.0, gt=0)


class SchedulerConfig(BaseModel):
    """Configuration for the scheduled daily sync check."""

    poll_interval_seconds: float = Field(default=60.0, gt=0)
    local_timezone: Optional[str] = Field(
        default=None,
        description="Zone for the hh:mm daily sync time; None uses the system zone",
    )


class DevstreakConfig(BaseModel):
    """Configuration for devstreak state and sync."""

    state_dir: Path = Field(default_factory=lambda: DEFAULT_STATE_DIR)
    timezone: str = Field(default="UTC", description="Fixed day-key convention (IANA name)")
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)

    model_config = {"frozen": False}

    @field_validator("timezone")
    @classmethod
    def _check_timezone(cls, value: str) -> str:
        try:
            resolve_zone(value)
        except Exception as e:
            raise ValueError(f"Unknown timezone '{value}': {e}")
        return value

    @classmethod
    def from_env(cls, cli_state_dir: Optional[str] = None) -> "DevstreakConfig":
        """Load configuration with the following precedence:

        1. CLI --state-dir option (state directory only)
        2. repo-local .devstreak/config.toml (walk upward from CWD)
        3. <state_dir>/config.toml written by `devstreak init`
        4. DEVSTREAK_* environment variables
        5. Defaults

        Args:
            cli_state_dir: State directory from CLI --state-dir option
        """
        repo_config = _load_repo_config_data(_find_repo_root(Path.cwd()))

        state_dir = _pick(
            cli_state_dir,
            _get_repo_config_value(repo_config, ["state_dir"]),
            "DEVSTREAK_STATE_DIR",
            str(DEFAULT_STATE_DIR),
        )

        state_path = Path(state_dir).expanduser().resolve()
        state_config = _load_toml(state_path / "config.toml")

        def lookup(keys: list[str]) -> Optional[str]:
            value = _get_repo_config_value(repo_config, keys)
            if value is None:
                value = _get_repo_config_value(state_config, keys)
            return value

        return cls(
            state_dir=state_path,
            timezone=_pick(None, lookup(["timezone"]), "DEVSTREAK_TIMEZONE", "UTC"),
            github=GitHubConfig(
                api_url=_pick(
                    None,
                    lookup(["github", "api_url"]),
                    "DEVSTREAK_GITHUB_API_URL",
                    "https://api.github.com",
                ).rstrip("/"),
                lookback_days=int(_pick(
                    None,
                    lookup(["github", "lookback_days"]),
                    "DEVSTREAK_LOOKBACK_DAYS",
                    "7",
                )),
                timeout_seconds=float(_pick(
                    None,
                    lookup(["github", "timeout_seconds"]),
                    "DEVSTREAK_HTTP_TIMEOUT",
                    "30",
                )),
            ),
            scheduler=SchedulerConfig(
                poll_interval_seconds=float(_pick(
                    None,
                    lookup(["scheduler", "poll_interval_seconds"]),
                    "DEVSTREAK_POLL_INTERVAL",
                    "60",
                )),
                local_timezone=(
                    lookup(["scheduler", "local_timezone"])
                    or os.environ.get("DEVSTREAK_LOCAL_TIMEZONE")
                    or None
                ),
            ),
        )

    def to_toml_str(self) -> str:
        """Generate TOML configuration string."""
        local_tz = self.scheduler.local_timezone
        local_tz_line = f'local_timezone = "{local_tz}"' if local_tz else '# local_timezone = "Europe/Berlin"'
        return f"""# devstreak configuration

state_dir = "{self.state_dir}"

# Fixed timezone used for every day key (streaks, grouping, day closure)
timezone = "{self.timezone}"

[github]
api_url = "{self.github.api_url}"
lookback_days = {self.github.lookback_days}
timeout_seconds = {self.github.timeout_seconds}

[scheduler]
poll_interval_seconds = {self.scheduler.poll_interval_seconds}
{local_tz_line}
"""
