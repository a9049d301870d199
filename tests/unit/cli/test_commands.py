"""Tests for CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from ffram import __version__
from ffram.cli import app
from ffram.config import Configuration

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_terminal(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep Rich from wrapping long tmp paths in table cells."""
    monkeypatch.setenv("COLUMNS", "250")


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the home directory at tmp_path."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    return home


def _write_config(path: Path, profiles_root: Path, mount_base: Path) -> Path:
    path.write_text(f"firefox:\n  profiles_root: {profiles_root}\nramdisk:\n  mount_base: {mount_base}\n")
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


class TestRunCommand:
    @pytest.mark.usefixtures("home")
    def test_run_uses_defaults_without_config_file(self) -> None:
        with patch("ffram.cli._async_run", new=AsyncMock(return_value=0)) as run_mock:
            result = runner.invoke(app, ["run"])

        assert result.exit_code == 0
        cfg = run_mock.call_args.args[0]
        assert cfg == Configuration()

    def test_run_exit_code_reflects_outcome(self, tmp_path: Path, profiles_root: Path) -> None:
        config_file = _write_config(tmp_path / "c.yaml", profiles_root, tmp_path / "Volumes")

        with patch("ffram.cli._async_run", new=AsyncMock(return_value=1)):
            result = runner.invoke(app, ["run", "--config", str(config_file)])

        assert result.exit_code == 1

    def test_run_with_missing_explicit_config_fails(self, tmp_path: Path) -> None:
        with patch("ffram.cli._async_run", new=AsyncMock(return_value=0)) as run_mock:
            result = runner.invoke(app, ["run", "--config", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "Configuration error" in result.stdout
        run_mock.assert_not_called()

    def test_run_with_invalid_config_lists_errors(self, tmp_path: Path) -> None:
        config_file = tmp_path / "bad.yaml"
        config_file.write_text("ramdisk:\n  min_capacity_mb: zero\n")

        result = runner.invoke(app, ["run", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "ramdisk.min_capacity_mb" in result.stdout


class TestPlanCommand:
    def test_plan_prints_without_running_anything(self, tmp_path: Path, profiles_root: Path) -> None:
        config_file = _write_config(tmp_path / "c.yaml", profiles_root, tmp_path / "Volumes")

        with patch("ffram.executor.LocalExecutor.run_command") as run_command:
            result = runner.invoke(app, ["plan", "--config", str(config_file)])

        assert result.exit_code == 0
        assert "abcd1234.default-release" in result.stdout
        assert "512 MB" in result.stdout
        run_command.assert_not_called()
        assert not (tmp_path / "Volumes").exists()

    def test_plan_without_profile_fails(self, tmp_path: Path) -> None:
        empty_root = tmp_path / "empty"
        empty_root.mkdir()
        config_file = _write_config(tmp_path / "c.yaml", empty_root, tmp_path / "Volumes")

        result = runner.invoke(app, ["plan", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Cannot find default Firefox profile" in result.stdout


class TestInitCommand:
    def test_init_writes_default_config(self, home: Path) -> None:
        result = runner.invoke(app, ["init"])

        config_path = home / ".config" / "ff-ramdisk" / "config.yaml"
        assert result.exit_code == 0
        assert config_path.exists()
        assert Configuration.from_yaml(config_path) == Configuration()

    def test_init_refuses_to_overwrite(self, home: Path) -> None:
        config_path = home / ".config" / "ff-ramdisk" / "config.yaml"
        config_path.parent.mkdir(parents=True)
        config_path.write_text("log_cli_level: INFO\n")

        result = runner.invoke(app, ["init"])

        assert result.exit_code == 1
        assert config_path.read_text() == "log_cli_level: INFO\n"

    def test_init_force_overwrites(self, home: Path) -> None:
        config_path = home / ".config" / "ff-ramdisk" / "config.yaml"
        config_path.parent.mkdir(parents=True)
        config_path.write_text("log_cli_level: INFO\n")

        result = runner.invoke(app, ["init", "--force"])

        assert result.exit_code == 0
        assert "ramdisk:" in config_path.read_text()


class TestLogsCommand:
    def test_last_without_logs(self, home: Path) -> None:
        result = runner.invoke(app, ["logs", "--last"])

        assert result.exit_code == 1
        assert "No log files found" in result.stdout

    def test_last_displays_entries(self, home: Path) -> None:
        logs_dir = home / ".local" / "share" / "ff-ramdisk" / "logs"
        logs_dir.mkdir(parents=True)
        entry = {
            "event": "Phase changed",
            "level": "info",
            "logger": "ffram.orchestrator",
            "timestamp": "2025-03-01T14:05:09.123456Z",
            "phase": "copying_in",
        }
        (logs_dir / "run-20250301T140509-abcd1234.log").write_text(json.dumps(entry) + "\nnot json\n")

        result = runner.invoke(app, ["logs", "--last"])

        assert result.exit_code == 0
        assert "14:05:09" in result.stdout
        assert "Phase changed" in result.stdout
        assert "phase=copying_in" in result.stdout
        assert "not json" in result.stdout

    def test_lists_log_files(self, home: Path) -> None:
        logs_dir = home / ".local" / "share" / "ff-ramdisk" / "logs"
        logs_dir.mkdir(parents=True)
        (logs_dir / "run-20250301T140509-abcd1234.log").write_text("")

        result = runner.invoke(app, ["logs"])

        assert result.exit_code == 0
        assert "run-20250301T140509-abcd1234.log" in result.stdout
