"""Core types, dataclasses and errors for ff-ramdisk."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum, StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from ffram.executor import Process

__all__ = [
    "CommandResult",
    "ConfigError",
    "CopyFailedError",
    "LaunchFailedError",
    "LogLevel",
    "OutcomeKind",
    "ProfileNotFoundError",
    "ProgressUpdate",
    "ReconciliationResult",
    "RunOutcome",
    "RunPhase",
    "Session",
    "StagingError",
    "StagingPlan",
    "SyncBackError",
    "TransferState",
    "ValidationError",
    "Volume",
    "VolumeProvisionError",
]


class LogLevel(IntEnum):
    """Logging levels with stdlib-compatible values.

    DEBUG carries per-line detail (rsync output, external command lines).
    """

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50


class RunPhase(StrEnum):
    """Phases of a single staging run, in execution order."""

    IDLE = "idle"
    RESOLVING = "resolving"
    PROVISIONING = "provisioning"
    COPYING_IN = "copying_in"
    SESSION_ACTIVE = "session_active"
    SYNCING_BACK = "syncing_back"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (RunPhase.COMPLETED, RunPhase.FAILED)


class OutcomeKind(StrEnum):
    """Terminal outcome of a run, as surfaced to the user."""

    COMPLETED = "completed"
    SOURCE_MISSING = "source-missing"
    PROVISIONING_FAILED = "provisioning-failed"
    COPY_FAILED = "copy-failed"
    LAUNCH_FAILED = "launch-failed"
    SYNC_BACK_FAILED = "sync-back-failed"


@dataclass(frozen=True)
class CommandResult:
    """Result of executing a command via LocalExecutor."""

    exit_code: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for diagnostics."""
        return "\n".join(part.rstrip("\n") for part in (self.stdout, self.stderr) if part)


@dataclass(frozen=True)
class ProgressUpdate:
    """Progress information emitted by jobs."""

    percent: int | None = None  # 0-100 if known
    item: str | None = None  # Current item description

    def __post_init__(self) -> None:
        if self.percent is not None and not 0 <= self.percent <= 100:
            raise ValueError(f"percent must be 0-100, got {self.percent}")


@dataclass(frozen=True)
class ConfigError:
    """Error found while loading or validating the configuration file."""

    path: str  # Dotted path to invalid value
    message: str


@dataclass(frozen=True)
class ValidationError:
    """Unmet precondition reported by a job before it runs."""

    job: str
    message: str


@dataclass(frozen=True)
class StagingPlan:
    """Where the profile comes from and what volume it is staged onto.

    Created once at startup and never modified during a run.
    """

    source_path: Path
    source_size_bytes: int
    volume_name: str
    mount_point: Path
    capacity_blocks: int  # 512-byte blocks

    @property
    def capacity_mb(self) -> int:
        return self.capacity_blocks // 2048

    @property
    def staged_path(self) -> Path:
        """Directory on the volume that receives the profile copy."""
        return self.mount_point / self.source_path.name


@dataclass(frozen=True)
class Volume:
    """A mounted RAM-backed volume.

    device is None when the volume was already mounted before the run.
    """

    volume_name: str
    mount_point: Path
    device: str | None = None

    @property
    def created(self) -> bool:
        return self.device is not None


@dataclass
class TransferState:
    """Byte accounting for a single copy operation.

    transferred_bytes only ever grows. Because rsync reports per-file byte
    counts, the sum can exceed total_bytes; percent is clamped to 100.
    """

    total_bytes: int
    transferred_bytes: int = 0

    def add(self, byte_count: int) -> int:
        """Account for byte_count more bytes and return the new percentage."""
        if byte_count < 0:
            raise ValueError(f"byte count must not be negative, got {byte_count}")
        self.transferred_bytes += byte_count
        return self.percent

    @property
    def percent(self) -> int:
        if self.total_bytes <= 0:
            return 100
        return min(100, self.transferred_bytes * 100 // self.total_bytes)


@dataclass(eq=False)
class Session:
    """A running instance of the consuming application."""

    pid: int
    process: Process
    started_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class ReconciliationResult:
    """Result of copying the staged profile back to the original."""

    success: bool
    exit_code: int
    output: str = ""


@dataclass(frozen=True)
class RunOutcome:
    """Terminal signal of a run, handed to the presentation layer."""

    kind: OutcomeKind
    detail: str

    @property
    def success(self) -> bool:
        return self.kind is OutcomeKind.COMPLETED


class StagingError(Exception):
    """Base class for fatal errors that end a run."""

    kind: ClassVar[OutcomeKind]


class ProfileNotFoundError(StagingError):
    """No eligible default profile, or the resolved path does not exist."""

    kind = OutcomeKind.SOURCE_MISSING


class VolumeProvisionError(StagingError):
    """Creating or formatting the RAM disk failed."""

    kind = OutcomeKind.PROVISIONING_FAILED


class CopyFailedError(StagingError):
    """Copying the profile onto the RAM disk failed."""

    kind = OutcomeKind.COPY_FAILED


class LaunchFailedError(StagingError):
    """The consuming application could not be started."""

    kind = OutcomeKind.LAUNCH_FAILED


class SyncBackError(StagingError):
    """Copying the staged profile back failed.

    The durable profile may be inconsistent afterwards, so the captured
    rsync output is kept for diagnosis.
    """

    kind = OutcomeKind.SYNC_BACK_FAILED

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)
