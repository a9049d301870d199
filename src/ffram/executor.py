"""Command execution on the local machine."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from typing import Protocol

from ffram.models import CommandResult

__all__ = [
    "Executor",
    "LocalExecutor",
    "LocalProcess",
    "Process",
]

# rsync rewrites its progress line with carriage returns, so a single
# newline-terminated line can grow well past asyncio's 64 KiB default.
STREAM_LIMIT = 4 * 1024 * 1024


class Executor(Protocol):
    """Protocol for running external tools.

    Commands are always argument lists, never shell strings: every tool is
    invoked with a fixed argument shape and no shell interpretation.
    """

    async def run_command(
        self,
        args: Sequence[str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and wait for completion."""
        ...

    async def start_process(
        self,
        args: Sequence[str],
        capture_output: bool = True,
    ) -> Process:
        """Start a long-running process."""
        ...

    async def terminate_all_processes(self) -> None:
        """Terminate all tracked processes."""
        ...


class Process(Protocol):
    """Handle for a running process.

    Note: stdin is intentionally not supported. All commands must be
    non-interactive.
    """

    @property
    def pid(self) -> int:
        """Operating system process identifier."""
        ...

    def output(self) -> AsyncIterator[str]:
        """Iterate over combined stdout/stderr lines as they arrive."""
        ...

    async def wait(self) -> CommandResult:
        """Wait for process to complete and return result."""
        ...

    async def terminate(self) -> None:
        """Terminate the process."""
        ...


class LocalProcess:
    """Process wrapper for local asyncio subprocess."""

    def __init__(
        self,
        proc: asyncio.subprocess.Process,
        on_exit: Callable[[asyncio.subprocess.Process], None] | None = None,
    ) -> None:
        self._proc = proc
        self._on_exit = on_exit

    @property
    def pid(self) -> int:
        return self._proc.pid

    async def output(self) -> AsyncIterator[str]:
        """Iterate over combined stdout/stderr lines as they arrive."""
        if self._proc.stdout is None:
            return
        async for line in self._proc.stdout:
            yield line.decode(errors="replace")

    async def wait(self) -> CommandResult:
        """Wait for process to complete and return result.

        Output not consumed through output() is returned in stdout.
        """
        stdout_bytes, _ = await self._proc.communicate()
        if self._on_exit is not None:
            self._on_exit(self._proc)
        return CommandResult(
            exit_code=self._proc.returncode or 0,
            stdout=stdout_bytes.decode(errors="replace") if stdout_bytes else "",
            stderr="",
        )

    async def terminate(self) -> None:
        """Terminate the process."""
        if self._proc.returncode is None:
            self._proc.terminate()
        await self._proc.wait()


class LocalExecutor:
    """Executes external tools via async subprocess."""

    def __init__(self) -> None:
        self._processes: list[asyncio.subprocess.Process] = []

    async def run_command(
        self,
        args: Sequence[str],
        timeout: float | None = None,
    ) -> CommandResult:
        """Run a command and wait for completion.

        Args:
            args: Program and arguments
            timeout: Optional timeout in seconds

        Returns:
            CommandResult with exit code, stdout, and stderr

        Raises:
            OSError: If the program cannot be started
        """
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            stdout, stderr = await asyncio.wait_for(
                proc.communicate(),
                timeout=timeout,
            )
            return CommandResult(
                exit_code=proc.returncode or 0,
                stdout=stdout.decode(errors="replace") if stdout else "",
                stderr=stderr.decode(errors="replace") if stderr else "",
            )
        except TimeoutError:
            proc.terminate()
            await proc.wait()
            raise

    async def start_process(
        self,
        args: Sequence[str],
        capture_output: bool = True,
    ) -> LocalProcess:
        """Start a long-running process.

        Args:
            args: Program and arguments
            capture_output: If True, stdout and stderr are merged into one
                stream readable via LocalProcess.output(). If False, both are
                discarded.

        Returns:
            LocalProcess wrapper for the subprocess

        Raises:
            OSError: If the program cannot be started
        """
        if capture_output:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                limit=STREAM_LIMIT,
            )
        else:
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        self._processes.append(proc)
        return LocalProcess(proc, on_exit=self._forget)

    def _forget(self, proc: asyncio.subprocess.Process) -> None:
        """Stop tracking a process that has exited."""
        if proc in self._processes:
            self._processes.remove(proc)

    async def terminate_all_processes(self) -> None:
        """Terminate all tracked processes."""
        for proc in self._processes:
            if proc.returncode is None:  # Still running
                proc.terminate()
        # Wait for all to finish
        await asyncio.gather(
            *(proc.wait() for proc in self._processes if proc.returncode is None),
            return_exceptions=True,
        )
        self._processes.clear()
