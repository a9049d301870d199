"""Sync-back job: reconciling the staged profile with the original."""

from __future__ import annotations

import shutil
from typing import ClassVar

from ffram.jobs.base import Job
from ffram.models import LogLevel, ProgressUpdate, ReconciliationResult, SyncBackError, ValidationError
from ffram.rsync import sync_back_args


class SyncBackJob(Job):
    """Copy the staged profile back over the original.

    Files missing from the staged copy are deleted from the original unless
    they match one of the configured excludes. This runs once; a failure
    leaves the original in an unknown state and is not retried.
    """

    name: ClassVar[str] = "sync_back"
    error_class: ClassVar[type[SyncBackError]] = SyncBackError

    async def validate(self) -> list[ValidationError]:
        """Check that there is a staged copy to sync from."""
        errors: list[ValidationError] = []
        if not self.context.plan.staged_path.is_dir():
            errors.append(self._validation_error(f"Staged profile is missing: {self.context.plan.staged_path}"))
        if shutil.which(self.context.config.tools.rsync) is None:
            errors.append(self._validation_error(f"{self.context.config.tools.rsync} not found"))
        return errors

    async def execute(self) -> ReconciliationResult:
        """Run rsync with delete semantics.

        Raises:
            SyncBackError: If rsync exits non-zero, with its output attached
        """
        plan = self.context.plan
        excludes = self.context.config.sync_back.excludes
        args = sync_back_args(self.context.config.tools.rsync, plan.staged_path, plan.source_path, excludes)

        self._log(LogLevel.INFO, f"Syncing profile back to {plan.source_path}", excludes=excludes)
        self._report_progress(ProgressUpdate(percent=0, item="Syncing back"))
        result = await self.context.executor.run_command(args)

        if not result.success:
            self._log(
                LogLevel.CRITICAL,
                "Failed to sync back Firefox profile",
                exit_code=result.exit_code,
                output=result.output,
            )
            raise SyncBackError(
                f"Failed to sync back Firefox profile (rsync exited {result.exit_code})",
                output=result.output,
            )

        self._report_progress(ProgressUpdate(percent=100, item="Synced back"))
        self._log(LogLevel.INFO, "Profile sync completed")
        return ReconciliationResult(success=True, exit_code=result.exit_code, output=result.output)
