"""Base class for staging jobs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ffram.events import ProgressEvent
from ffram.logger import get_logger
from ffram.models import LogLevel, ProgressUpdate, StagingError, ValidationError

from .context import JobContext


class Job(ABC):
    """Abstract base class for the steps of a staging run.

    Jobs are self-contained operations that:
    - Validate their preconditions before touching anything
    - Execute one phase of the run
    - Raise their error_class on failure; nothing is retried
    """

    name: ClassVar[str]
    error_class: ClassVar[type[StagingError]]

    def __init__(self, context: JobContext) -> None:
        """Initialize job with context.

        Args:
            context: JobContext with configuration, plan, executor and event bus
        """
        self._context = context
        self._logger = get_logger(f"ffram.jobs.{self.name}", job=self.name, run_id=context.run_id)

    @property
    def context(self) -> JobContext:
        return self._context

    @abstractmethod
    async def validate(self) -> list[ValidationError]:
        """Validate preconditions before execution.

        Returns:
            List of ValidationError for any issues found.
            Empty list if the job can run.
        """
        ...

    @abstractmethod
    async def execute(self) -> Any:
        """Execute job logic.

        Raises:
            StagingError: The job's error_class; halts the run
        """
        ...

    def _validation_error(self, message: str) -> ValidationError:
        return ValidationError(job=self.name, message=message)

    def _log(
        self,
        level: LogLevel,
        message: str,
        **extra: Any,
    ) -> None:
        """Log a message with the job's bound context.

        Args:
            level: Log level
            message: Human-readable message
            **extra: Additional structured context
        """
        self._logger.log(level, message, **extra)

    def _report_progress(
        self,
        update: ProgressUpdate,
    ) -> None:
        """Report progress through EventBus.

        Args:
            update: ProgressUpdate with percent and item
        """
        self._context.event_bus.publish(
            ProgressEvent(
                job=self.name,
                update=update,
            )
        )
