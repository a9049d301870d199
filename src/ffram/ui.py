"""Terminal UI with Rich Live display for staging progress."""

from __future__ import annotations

import asyncio
from typing import Any, ClassVar

from rich.console import Console, Group, RenderableType
from rich.live import Live
from rich.progress import BarColumn, Progress, TaskID, TaskProgressColumn, TextColumn
from rich.text import Text

from ffram.events import OutcomeEvent, PhaseEvent, ProgressEvent
from ffram.models import ProgressUpdate, RunOutcome, RunPhase

__all__ = ["TerminalUI"]


class TerminalUI:
    """Rich terminal UI showing the current phase and job progress.

    The display is hidden while the browser session is active and shown
    again for sync-back. It is the only consumer that renders events, so
    all visible state changes happen in its consume_events() task.
    """

    PHASE_LABELS: ClassVar[dict[RunPhase, str]] = {
        RunPhase.IDLE: "Starting",
        RunPhase.RESOLVING: "Locating Firefox profile",
        RunPhase.PROVISIONING: "Preparing RAM disk",
        RunPhase.COPYING_IN: "Copying profile to RAM disk",
        RunPhase.SESSION_ACTIVE: "Firefox is running",
        RunPhase.SYNCING_BACK: "Syncing profile back",
        RunPhase.COMPLETED: "Done",
        RunPhase.FAILED: "Failed",
    }

    def __init__(self, console: Console) -> None:
        """Initialize the terminal UI.

        Args:
            console: Rich console for rendering
        """
        self._console = console
        self._phase = RunPhase.IDLE

        self._progress = Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
            expand=True,
        )
        self._job_tasks: dict[str, TaskID] = {}
        self._job_percent: dict[str, int] = {}

        self._live: Live | None = None
        self.outcome: RunOutcome | None = None

    @property
    def phase(self) -> RunPhase:
        return self._phase

    @property
    def visible(self) -> bool:
        return self._live is not None

    def _render(self) -> RenderableType:
        status = Text()
        status.append("Phase: ", style="dim")
        status.append(self.PHASE_LABELS[self._phase], style="cyan")
        return Group(status, self._progress)

    def _refresh(self) -> None:
        if self._live:
            self._live.update(self._render())

    def start(self) -> None:
        """Start the live display."""
        if self._live is not None:
            return
        self._live = Live(
            self._render(),
            console=self._console,
            refresh_per_second=10,
            transient=False,
        )
        self._live.start()

    def stop(self) -> None:
        """Stop the live display."""
        if self._live:
            self._live.stop()
            self._live = None

    def update_job_progress(self, job: str, update: ProgressUpdate) -> None:
        """Update progress for a specific job.

        Percentages never move backwards on screen.

        Args:
            job: Job name
            update: Progress information to display
        """
        if job not in self._job_tasks:
            self._job_tasks[job] = self._progress.add_task(f"[cyan]{job}[/cyan]", total=100)
            self._job_percent[job] = 0

        description = f"[cyan]{job}[/cyan]"
        if update.item:
            description += f": {update.item}"

        if update.percent is not None:
            self._job_percent[job] = max(self._job_percent[job], update.percent)
        self._progress.update(
            self._job_tasks[job],
            completed=self._job_percent[job],
            description=description,
        )
        self._refresh()

    def job_percent(self, job: str) -> int | None:
        """Last percentage displayed for job, or None if it never reported."""
        return self._job_percent.get(job)

    def set_phase(self, phase: RunPhase) -> None:
        """Show a new phase; the display hides while the session runs."""
        self._phase = phase
        if phase is RunPhase.SESSION_ACTIVE:
            self.stop()
            self._console.print(f"[dim]{self.PHASE_LABELS[phase]}; waiting for it to quit...[/dim]")
        elif phase is RunPhase.SYNCING_BACK:
            self.start()
        self._refresh()

    def show_outcome(self, outcome: RunOutcome) -> None:
        """Print the terminal outcome of the run."""
        self.outcome = outcome
        self.stop()
        if outcome.success:
            self._console.print(f"[bold green]{outcome.detail}[/bold green]")
        else:
            self._console.print(f"[bold red]Error ({outcome.kind.value}):[/bold red] {outcome.detail}")

    async def consume_events(self, queue: asyncio.Queue[Any]) -> None:
        """Consume events from EventBus queue and update UI.

        This runs as a background task until the None sentinel arrives.

        Args:
            queue: EventBus queue to consume from
        """
        while True:
            event = await queue.get()
            if event is None:  # Shutdown sentinel
                break

            if isinstance(event, ProgressEvent):
                self.update_job_progress(event.job, event.update)
            elif isinstance(event, PhaseEvent):
                self.set_phase(event.phase)
            elif isinstance(event, OutcomeEvent):
                self.show_outcome(event.outcome)

        self.stop()
