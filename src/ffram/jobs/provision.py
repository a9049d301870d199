"""RAM disk provisioning job."""

from __future__ import annotations

import shutil
from typing import ClassVar

from ffram.jobs.base import Job
from ffram.models import LogLevel, ValidationError, Volume, VolumeProvisionError
from ffram.volume import ensure_volume


class ProvisionVolumeJob(Job):
    """Ensure the RAM disk from the staging plan exists and is mounted.

    Idempotent: an existing mount point means the volume is already there
    and no external command runs.
    """

    name: ClassVar[str] = "provision"
    error_class: ClassVar[type[VolumeProvisionError]] = VolumeProvisionError

    async def validate(self) -> list[ValidationError]:
        """Check that the disk tools exist when a volume has to be created."""
        if self.context.plan.mount_point.exists():
            return []

        tools = self.context.config.tools
        return [
            self._validation_error(f"{tool} not found; cannot create RAM disk")
            for tool in (tools.hdiutil, tools.diskutil)
            if shutil.which(tool) is None
        ]

    async def execute(self) -> Volume:
        """Create and format the RAM disk unless it is already mounted."""
        plan = self.context.plan
        volume = await ensure_volume(
            self.context.executor,
            plan,
            self.context.config.tools,
            filesystem=self.context.config.ramdisk.filesystem,
        )
        if volume.created:
            self._log(
                LogLevel.INFO,
                f"Created RAM disk '{plan.volume_name}' ({plan.capacity_mb} MB)",
                device=volume.device,
            )
        else:
            self._log(LogLevel.INFO, f"Reusing mounted RAM disk at {plan.mount_point}")
        return volume
