"""Job execution context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ffram.config import Configuration
    from ffram.events import EventBus
    from ffram.executor import Executor
    from ffram.models import StagingPlan


@dataclass(frozen=True)
class JobContext:
    """Run-scoped context provided to jobs at execution time."""

    config: Configuration
    plan: StagingPlan
    executor: Executor
    event_bus: EventBus  # For progress and phase events
    run_id: str
