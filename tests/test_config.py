"""Tests for configuration loading."""

from pathlib import Path

import pytest

from devstreak.config import DevstreakConfig
from devstreak.paths import StatePaths


@pytest.fixture
def repo_dir(tmp_path, monkeypatch):
    """An empty repository root used as the working directory."""
    repo = tmp_path / "repo"
    (repo / ".git").mkdir(parents=True)
    monkeypatch.chdir(repo)
    return repo


def test_defaults(repo_dir, monkeypatch, tmp_path):
    monkeypatch.setenv("DEVSTREAK_STATE_DIR", str(tmp_path / "env_state"))

    config = DevstreakConfig.from_env()

    assert config.state_dir == (tmp_path / "env_state").resolve()
    assert config.timezone == "UTC"
    assert config.github.lookback_days == 7
    assert config.github.timeout_seconds == 30.0
    assert config.scheduler.poll_interval_seconds == 60.0


def test_cli_state_dir_wins(repo_dir, monkeypatch, tmp_path):
    monkeypatch.setenv("DEVSTREAK_STATE_DIR", str(tmp_path / "env_state"))

    config = DevstreakConfig.from_env(cli_state_dir=str(tmp_path / "cli_state"))

    assert config.state_dir == (tmp_path / "cli_state").resolve()


def test_env_values(repo_dir, monkeypatch, tmp_path):
    monkeypatch.setenv("DEVSTREAK_TIMEZONE", "Europe/Berlin")
    monkeypatch.setenv("DEVSTREAK_HTTP_TIMEOUT", "5")
    monkeypatch.setenv("DEVSTREAK_LOOKBACK_DAYS", "3")

    config = DevstreakConfig.from_env(cli_state_dir=str(tmp_path / "state"))

    assert config.timezone == "Europe/Berlin"
    assert config.github.timeout_seconds == 5.0
    assert config.github.lookback_days == 3


def test_repo_config_overrides_env(repo_dir, monkeypatch, tmp_path):
    (repo_dir / ".devstreak").mkdir()
    (repo_dir / ".devstreak" / "config.toml").write_text(
        'timezone = "Asia/Tokyo"\n\n[github]\nlookback_days = 14\n',
        encoding="utf-8",
    )
    monkeypatch.setenv("DEVSTREAK_TIMEZONE", "Europe/Berlin")

    config = DevstreakConfig.from_env(cli_state_dir=str(tmp_path / "state"))

    assert config.timezone == "Asia/Tokyo"
    assert config.github.lookback_days == 14


def test_state_config_written_by_init_is_read(repo_dir, tmp_path):
    state = tmp_path / "state"
    state.mkdir()
    written = DevstreakConfig(state_dir=state, timezone="America/Chicago")
    (state / "config.toml").write_text(written.to_toml_str(), encoding="utf-8")

    config = DevstreakConfig.from_env(cli_state_dir=str(state))

    assert config.timezone == "America/Chicago"
    assert config.scheduler.local_timezone is None


def test_unknown_timezone_rejected():
    with pytest.raises(ValueError, match="Unknown timezone"):
        DevstreakConfig(state_dir=Path("/tmp/x"), timezone="Mars/Olympus")


def test_state_paths_layout(temp_state):
    paths = StatePaths(temp_state)
    assert paths.ledger_db == temp_state / "ledger.sqlite"
    assert paths.traces_sync_date_folder("2024-01-05") == temp_state / "traces" / "sync" / "2024-01-05"
    assert paths.owner_settings_file("alice@example.com").name == "alice_example.com.json"
