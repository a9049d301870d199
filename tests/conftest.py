"""Shared test fixtures for ff-ramdisk tests."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from ffram.config import Configuration, FirefoxConfig, RamDiskConfig, ToolsConfig
from ffram.events import EventBus
from ffram.jobs import JobContext
from ffram.models import CommandResult, StagingPlan
from ffram.volume import plan_staging

PROFILE_DIR_NAME = "Profiles/abcd1234.default-release"


@pytest.fixture(scope="session", autouse=True)
def configure_test_logging() -> None:
    """Keep ffram loggers verbose while the root stays at WARNING."""
    logging.getLogger().setLevel(logging.WARNING)
    logging.getLogger("ffram").setLevel(logging.DEBUG)


class FakeProcess:
    """Stand-in for a started process with scripted output and exit code."""

    def __init__(
        self,
        lines: Sequence[str] = (),
        exit_code: int = 0,
        pid: int = 4242,
        block: bool = False,
    ) -> None:
        self.pid = pid
        self._lines = list(lines)
        self._exit_code = exit_code
        # When block is set, wait() only returns after release()
        self._released = asyncio.Event()
        if not block:
            self._released.set()
        self.terminate = AsyncMock(side_effect=self.release)

    def release(self) -> None:
        self._released.set()

    async def output(self) -> AsyncIterator[str]:
        for line in self._lines:
            yield line

    async def wait(self) -> CommandResult:
        await self._released.wait()
        return CommandResult(exit_code=self._exit_code, stdout="", stderr="")


@pytest.fixture
def make_process() -> type[FakeProcess]:
    """Factory for scripted processes returned by a mocked start_process."""
    return FakeProcess


@pytest.fixture
def mock_executor() -> MagicMock:
    """Create a mock executor for testing jobs."""
    executor = MagicMock()
    executor.run_command = AsyncMock(return_value=CommandResult(exit_code=0, stdout="", stderr=""))
    executor.start_process = AsyncMock(return_value=FakeProcess())
    executor.terminate_all_processes = AsyncMock()
    return executor


@pytest.fixture
def mock_event_bus() -> MagicMock:
    """Create a mock EventBus for testing."""
    event_bus = MagicMock(spec=EventBus)
    event_bus.subscribe = MagicMock(return_value=MagicMock())
    event_bus.publish = MagicMock()
    event_bus.close = MagicMock()
    return event_bus


@pytest.fixture
def tools_available(monkeypatch: pytest.MonkeyPatch) -> None:
    """Pretend every configured tool is installed."""
    monkeypatch.setattr("shutil.which", lambda cmd: cmd)


@pytest.fixture
def profiles_root(tmp_path: Path) -> Path:
    """A Firefox profiles root with one default profile holding a few files."""
    root = tmp_path / "Firefox"
    profile = root / PROFILE_DIR_NAME
    profile.mkdir(parents=True)
    (profile / "prefs.js").write_text('user_pref("a", 1);\n')
    (profile / "places.sqlite").write_bytes(b"\0" * 4096)
    (root / "profiles.ini").write_text(
        "[General]\n"
        "StartWithLastProfile=1\n"
        "\n"
        "[Profile0]\n"
        "Name=default-release\n"
        "IsRelative=1\n"
        f"Path={PROFILE_DIR_NAME}\n"
        "Default=1\n"
    )
    return root


@pytest.fixture
def config(tmp_path: Path, profiles_root: Path) -> Configuration:
    """Configuration pointing every path into tmp_path."""
    return Configuration(
        firefox=FirefoxConfig(app_path=tmp_path / "Firefox.app", profiles_root=profiles_root),
        ramdisk=RamDiskConfig(mount_base=tmp_path / "Volumes"),
        tools=ToolsConfig(hdiutil="hdiutil", diskutil="diskutil", rsync="rsync"),
    )


@pytest.fixture
def staging_plan(config: Configuration, profiles_root: Path) -> StagingPlan:
    """Staging plan for the default profile of profiles_root."""
    source = profiles_root / PROFILE_DIR_NAME
    return plan_staging(source, 4096 + 19, config.ramdisk)


@pytest.fixture
def job_context(
    config: Configuration,
    staging_plan: StagingPlan,
    mock_executor: MagicMock,
    mock_event_bus: MagicMock,
) -> JobContext:
    """JobContext wired to mocks."""
    return JobContext(
        config=config,
        plan=staging_plan,
        executor=mock_executor,
        event_bus=mock_event_bus,
        run_id="test1234",
    )
