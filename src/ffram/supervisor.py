"""Launching the browser against the staged profile and watching for its exit."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from pathlib import Path

from ffram.executor import Executor
from ffram.logger import get_logger
from ffram.models import LaunchFailedError, Session

__all__ = [
    "SessionSupervisor",
    "TerminationWatch",
    "app_executable",
]

logger = get_logger(__name__)


def app_executable(app_path: Path) -> Path:
    """Executable to run for app_path.

    A macOS application bundle ("Firefox.app") is run through its
    Contents/MacOS/firefox binary; anything else is run as given.
    """
    if app_path.suffix == ".app":
        return app_path / "Contents" / "MacOS" / "firefox"
    return app_path


class TerminationWatch:
    """Process-exit observers keyed by pid.

    An observer is removed before it is invoked, so each registered watch
    fires at most once. Notifying an unknown or already-fired pid is a no-op.
    """

    def __init__(self) -> None:
        self._observers: dict[int, Callable[[int], None]] = {}

    def register(self, pid: int, callback: Callable[[int], None]) -> None:
        if pid in self._observers:
            raise RuntimeError(f"Termination watch already registered for pid {pid}")
        self._observers[pid] = callback

    def unregister(self, pid: int) -> bool:
        """Remove the watch for pid. Returns False if there was none."""
        return self._observers.pop(pid, None) is not None

    def notify(self, pid: int, exit_code: int) -> bool:
        """Deliver a termination. Returns True if an observer fired."""
        callback = self._observers.pop(pid, None)
        if callback is None:
            return False
        callback(exit_code)
        return True

    def __contains__(self, pid: object) -> bool:
        return pid in self._observers

    def __len__(self) -> int:
        return len(self._observers)


class SessionSupervisor:
    """Runs the consuming application and reports when it exits.

    Attributes:
        watch: Termination observers for launched processes
    """

    def __init__(self, executor: Executor) -> None:
        self._executor = executor
        self.watch = TerminationWatch()

    async def launch(self, app_path: Path, profile_dir: Path) -> Session:
        """Start the application with profile_dir as its profile.

        Raises:
            LaunchFailedError: If the application cannot be started
        """
        executable = app_executable(app_path)
        try:
            process = await self._executor.start_process(
                [str(executable), "-profile", str(profile_dir)],
                capture_output=False,
            )
        except OSError as e:
            raise LaunchFailedError(f"Failed to launch Firefox: {e}") from e

        logger.info("Launched application", pid=process.pid, executable=str(executable))
        return Session(pid=process.pid, process=process)

    async def wait(self, session: Session) -> int:
        """Wait until the session's process terminates.

        Any termination ends the session, including crashes and kills,
        which are logged with their exit code.

        Returns:
            Exit code of the application
        """
        terminated: asyncio.Future[int] = asyncio.get_running_loop().create_future()
        self.watch.register(session.pid, terminated.set_result)
        try:
            result = await session.process.wait()
            self.watch.notify(session.pid, result.exit_code)
            exit_code = await terminated
        finally:
            # No-op when the watch already fired
            self.watch.unregister(session.pid)

        if exit_code == 0:
            logger.info("Application terminated", pid=session.pid)
        else:
            logger.warning("Application terminated abnormally", pid=session.pid, exit_code=exit_code)
        return exit_code
