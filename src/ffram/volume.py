"""RAM disk sizing and provisioning via hdiutil and diskutil."""

from __future__ import annotations

import math
from pathlib import Path

from ffram.config import RamDiskConfig, ToolsConfig
from ffram.executor import Executor
from ffram.logger import get_logger
from ffram.models import StagingPlan, Volume, VolumeProvisionError

__all__ = [
    "BLOCKS_PER_MB",
    "BYTES_PER_MB",
    "attach_ram_device",
    "capacity_blocks",
    "compute_capacity_mb",
    "ensure_volume",
    "erase_volume",
    "parse_device_identifier",
    "plan_staging",
]

BYTES_PER_MB = 1_048_576
BLOCKS_PER_MB = 2048  # 512-byte blocks

logger = get_logger(__name__)


def compute_capacity_mb(
    size_bytes: int,
    min_capacity_mb: int = 512,
    headroom_percent: int = 20,
) -> int:
    """RAM disk capacity for a tree of size_bytes.

    The size is rounded up to whole megabytes, grown by headroom_percent
    (rounded up again) and never below min_capacity_mb.

    Examples:
        100 MB  -> 512 MB (minimum applies)
        1000 MB -> 1200 MB
    """
    size_mb = math.ceil(size_bytes / BYTES_PER_MB)
    grown_mb = -(-size_mb * (100 + headroom_percent) // 100)  # Integer ceil
    return max(min_capacity_mb, grown_mb)


def capacity_blocks(capacity_mb: int) -> int:
    """Convert megabytes to the 512-byte block count hdiutil expects."""
    return capacity_mb * BLOCKS_PER_MB


def plan_staging(source_path: Path, source_size_bytes: int, ramdisk: RamDiskConfig) -> StagingPlan:
    """Build the immutable staging plan for a run."""
    capacity_mb = compute_capacity_mb(
        source_size_bytes,
        min_capacity_mb=ramdisk.min_capacity_mb,
        headroom_percent=ramdisk.headroom_percent,
    )
    return StagingPlan(
        source_path=source_path,
        source_size_bytes=source_size_bytes,
        volume_name=ramdisk.volume_name,
        mount_point=ramdisk.mount_point,
        capacity_blocks=capacity_blocks(capacity_mb),
    )


def parse_device_identifier(output: str) -> str | None:
    """Extract the device identifier from `hdiutil attach` output.

    hdiutil prints the device (e.g. "/dev/disk4") padded with whitespace on
    its first line.
    """
    lines = output.strip().splitlines()
    if not lines:
        return None
    device = lines[0].strip()
    return device or None


async def attach_ram_device(executor: Executor, hdiutil: str, blocks: int) -> str:
    """Allocate an unmounted RAM-backed device of the given block count.

    Returns:
        Device identifier (e.g. "/dev/disk4")

    Raises:
        VolumeProvisionError: If hdiutil fails or prints no device
    """
    result = await executor.run_command([hdiutil, "attach", "-nomount", f"ram://{blocks}"])
    if not result.success:
        raise VolumeProvisionError(
            f"Failed to create RAM disk: hdiutil exited {result.exit_code}: {result.stderr.strip()}"
        )

    device = parse_device_identifier(result.stdout)
    if device is None:
        raise VolumeProvisionError("Failed to create RAM disk: hdiutil reported no device")
    return device


async def erase_volume(
    executor: Executor,
    diskutil: str,
    device: str,
    filesystem: str,
    volume_name: str,
) -> None:
    """Format device with filesystem, labelled volume_name, which mounts it.

    Raises:
        VolumeProvisionError: If diskutil exits non-zero
    """
    result = await executor.run_command([diskutil, "erasevolume", filesystem, volume_name, device])
    if not result.success:
        raise VolumeProvisionError(
            f"Failed to format RAM disk {device}: diskutil exited {result.exit_code}: {result.stderr.strip()}"
        )


async def ensure_volume(
    executor: Executor,
    plan: StagingPlan,
    tools: ToolsConfig,
    filesystem: str = "HFS+",
) -> Volume:
    """Make sure the RAM disk described by plan is mounted.

    If the mount point already exists nothing is run. Otherwise a device is
    attached and formatted. A device left behind by a failed format is not
    detached.

    Raises:
        VolumeProvisionError: If attaching or formatting fails
    """
    if plan.mount_point.exists():
        logger.info("RAM disk already mounted", mount_point=str(plan.mount_point))
        return Volume(volume_name=plan.volume_name, mount_point=plan.mount_point)

    logger.info(
        "Creating RAM disk",
        volume_name=plan.volume_name,
        capacity_mb=plan.capacity_mb,
        blocks=plan.capacity_blocks,
    )
    device = await attach_ram_device(executor, tools.hdiutil, plan.capacity_blocks)
    logger.debug("Attached RAM device", device=device)

    await erase_volume(executor, tools.diskutil, device, filesystem, plan.volume_name)
    logger.info("RAM disk formatted", device=device, mount_point=str(plan.mount_point))

    return Volume(volume_name=plan.volume_name, mount_point=plan.mount_point, device=device)
