"""Copy-in job: staging the profile onto the RAM disk."""

from __future__ import annotations

import shutil
from typing import ClassVar

from ffram.jobs.base import Job
from ffram.models import CopyFailedError, LogLevel, ProgressUpdate, TransferState, ValidationError
from ffram.prefs import USER_JS, write_user_js
from ffram.rsync import copy_in_args, parse_progress_bytes

COPY_FAILED_MESSAGE = "Copy failed. Possibly not enough space on RAM disk."


class CopyInJob(Job):
    """Copy the profile onto the RAM disk with progress reporting.

    The staged directory is replaced, never merged: any previous copy is
    removed before rsync runs. Progress is the running sum of the per-file
    byte counts rsync prints, relative to the profile size measured at
    startup, clamped to 100.
    """

    name: ClassVar[str] = "copy_in"
    error_class: ClassVar[type[CopyFailedError]] = CopyFailedError

    async def validate(self) -> list[ValidationError]:
        """Check that rsync exists."""
        rsync = self.context.config.tools.rsync
        if shutil.which(rsync) is None:
            return [self._validation_error(f"{rsync} not found")]
        return []

    async def execute(self) -> TransferState:
        """Run rsync and stream its progress.

        Returns:
            Final TransferState

        Raises:
            CopyFailedError: If rsync exits non-zero
        """
        plan = self.context.plan
        destination = plan.staged_path

        if destination.exists():
            self._log(LogLevel.INFO, f"Removing previous staged copy at {destination}")
            try:
                shutil.rmtree(destination)
            except OSError as e:
                raise CopyFailedError(f"Cannot remove previous staged copy at {destination}: {e}") from e

        state = TransferState(total_bytes=plan.source_size_bytes)
        self._log(
            LogLevel.INFO,
            f"Copying profile to {destination}",
            source=str(plan.source_path),
            total_bytes=state.total_bytes,
        )
        self._report_progress(ProgressUpdate(percent=0, item="Copying profile"))

        args = copy_in_args(self.context.config.tools.rsync, plan.source_path, destination)
        self._log(LogLevel.DEBUG, "Starting rsync", args=args)
        process = await self.context.executor.start_process(args)

        async for line in process.output():
            byte_count = parse_progress_bytes(line)
            if byte_count is None:
                self._log(LogLevel.DEBUG, line.rstrip())
                continue
            percent = state.add(byte_count)
            self._report_progress(ProgressUpdate(percent=percent, item="Copying profile"))

        result = await process.wait()
        if not result.success:
            self._log(LogLevel.CRITICAL, COPY_FAILED_MESSAGE, exit_code=result.exit_code)
            raise CopyFailedError(f"{COPY_FAILED_MESSAGE} (rsync exited {result.exit_code})")

        self._report_progress(ProgressUpdate(percent=100, item="Profile staged"))
        self._log(LogLevel.INFO, "Profile staged", transferred_bytes=state.transferred_bytes)

        prefs = self.context.config.firefox.user_prefs
        if prefs:
            try:
                user_js = write_user_js(destination, prefs)
            except (OSError, UnicodeError) as e:
                self._log(LogLevel.CRITICAL, "Cannot write preference overrides", error=str(e))
                raise CopyFailedError(f"Cannot write preference overrides to {destination / USER_JS}: {e}") from e
            self._log(LogLevel.INFO, f"Wrote {len(prefs)} preference override(s)", path=str(user_js))

        return state
