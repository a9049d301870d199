"""Event system decoupling the staging run from its presentation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypeAlias

from ffram.models import ProgressUpdate, RunOutcome, RunPhase

__all__ = [
    "EventBus",
    "OutcomeEvent",
    "PhaseEvent",
    "ProgressEvent",
]


@dataclass(frozen=True)
class ProgressEvent:
    """Progress reported by a job."""

    job: str
    update: ProgressUpdate
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class PhaseEvent:
    """Event published when the run moves to another phase."""

    phase: RunPhase
    previous: RunPhase
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass(frozen=True)
class OutcomeEvent:
    """Event published once, when the run reaches a terminal phase."""

    outcome: RunOutcome


Event: TypeAlias = ProgressEvent | PhaseEvent | OutcomeEvent


class EventBus:
    """Fan-out of run events to independent subscribers.

    Every subscriber owns an unbounded queue, so a slow renderer never
    blocks the run. Ordering is preserved per subscriber.
    """

    def __init__(self) -> None:
        self._queues: list[asyncio.Queue[Event | None]] = []
        self._closed = False

    def subscribe(self) -> asyncio.Queue[Event | None]:
        """Register a subscriber.

        Only events published after this call are delivered. None marks
        the end of the stream.
        """
        subscriber: asyncio.Queue[Event | None] = asyncio.Queue()
        self._queues.append(subscriber)
        return subscriber

    def publish(self, event: Event) -> None:
        """Deliver event to every subscriber without waiting.

        Ignored once the bus is closed.
        """
        if self._closed:
            return
        for subscriber in self._queues:
            subscriber.put_nowait(event)

    def close(self) -> None:
        """End the stream for all subscribers. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        for subscriber in self._queues:
            subscriber.put_nowait(None)
