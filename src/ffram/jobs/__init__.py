"""Job system for ff-ramdisk staging runs."""

from __future__ import annotations

from .base import Job
from .context import JobContext
from .copy_in import CopyInJob
from .provision import ProvisionVolumeJob
from .sync_back import SyncBackJob

__all__ = [
    "CopyInJob",
    "Job",
    "JobContext",
    "ProvisionVolumeJob",
    "SyncBackJob",
]
