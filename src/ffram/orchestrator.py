"""Orchestrator driving a staging run from profile lookup to sync-back."""

from __future__ import annotations

import asyncio
import secrets
from typing import Any

from ffram.config import Configuration
from ffram.events import EventBus, OutcomeEvent, PhaseEvent
from ffram.executor import Executor, LocalExecutor
from ffram.jobs import CopyInJob, Job, JobContext, ProvisionVolumeJob, SyncBackJob
from ffram.logger import get_logger
from ffram.models import (
    OutcomeKind,
    RunOutcome,
    RunPhase,
    StagingError,
    StagingPlan,
)
from ffram.profiles import resolve_default_profile
from ffram.supervisor import SessionSupervisor
from ffram.volume import plan_staging

__all__ = ["Orchestrator", "PhaseTransitionError"]

# Forward order of non-terminal phases; FAILED is reachable from any of them
_PHASE_ORDER: tuple[RunPhase, ...] = (
    RunPhase.IDLE,
    RunPhase.RESOLVING,
    RunPhase.PROVISIONING,
    RunPhase.COPYING_IN,
    RunPhase.SESSION_ACTIVE,
    RunPhase.SYNCING_BACK,
    RunPhase.COMPLETED,
)

COMPLETED_MESSAGE = "Profile sync completed."


class PhaseTransitionError(RuntimeError):
    """Raised on an attempt to move the run backwards or out of a terminal phase."""


class Orchestrator:
    """Runs one staging session end to end.

    Phases run strictly in sequence:
    Resolving -> Provisioning -> CopyingIn -> SessionActive -> SyncingBack,
    ending in Completed or Failed. Every fatal error is caught once here,
    logged, turned into a RunOutcome and published; nothing is retried.
    """

    def __init__(
        self,
        config: Configuration,
        event_bus: EventBus | None = None,
        executor: Executor | None = None,
        run_id: str | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Validated configuration
            event_bus: Bus for progress/phase/outcome events (created if None)
            executor: Executor for external tools (LocalExecutor if None)
            run_id: Identifier tying log lines to this run (generated if None)
        """
        self._config = config
        self._run_id = run_id or secrets.token_hex(4)
        self._event_bus = event_bus or EventBus()
        self._executor: Executor = executor or LocalExecutor()
        self._supervisor = SessionSupervisor(self._executor)
        self._logger = get_logger("ffram.orchestrator", run_id=self._run_id)

        self._phase = RunPhase.IDLE
        self.phase_history: list[RunPhase] = [RunPhase.IDLE]
        self.plan: StagingPlan | None = None

    @property
    def run_id(self) -> str:
        return self._run_id

    @property
    def phase(self) -> RunPhase:
        return self._phase

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def supervisor(self) -> SessionSupervisor:
        return self._supervisor

    def _transition(self, phase: RunPhase) -> None:
        """Move to phase, publishing a PhaseEvent.

        Raises:
            PhaseTransitionError: If the move is not forward
        """
        current = self._phase
        if current.terminal:
            raise PhaseTransitionError(f"Run already ended in {current.value}")
        if phase is not RunPhase.FAILED and _PHASE_ORDER.index(phase) != _PHASE_ORDER.index(current) + 1:
            raise PhaseTransitionError(f"Cannot move from {current.value} to {phase.value}")

        self._phase = phase
        self.phase_history.append(phase)
        self._logger.info("Phase changed", phase=phase.value, previous=current.value)
        self._event_bus.publish(PhaseEvent(phase=phase, previous=current))

    def _create_job_context(self) -> JobContext:
        """Create JobContext with current orchestrator state.

        Must only be called after the staging plan exists.
        """
        assert self.plan is not None

        return JobContext(
            config=self._config,
            plan=self.plan,
            executor=self._executor,
            event_bus=self._event_bus,
            run_id=self._run_id,
        )

    async def _run_job(self, job: Job) -> Any:
        """Validate and execute a job.

        Raises:
            StagingError: The job's error_class if validation fails, or
                whatever the job raises while executing
        """
        errors = await job.validate()
        if errors:
            error_msgs = [f"  - {e.job}: {e.message}" for e in errors]
            raise job.error_class(f"{job.name} validation failed:\n" + "\n".join(error_msgs))
        return await job.execute()

    def _resolve_plan(self) -> StagingPlan:
        firefox = self._config.firefox
        source_path, size_bytes = resolve_default_profile(firefox.profiles_root)
        plan = plan_staging(source_path, size_bytes, self._config.ramdisk)
        self._logger.info(
            "Staging plan ready",
            source=str(plan.source_path),
            size_bytes=plan.source_size_bytes,
            capacity_mb=plan.capacity_mb,
            mount_point=str(plan.mount_point),
        )
        return plan

    async def run(self) -> RunOutcome:
        """Execute the staging workflow.

        Returns:
            RunOutcome describing how the run ended

        Raises:
            asyncio.CancelledError: If interrupted; tracked processes are
                terminated and no sync-back happens
        """
        try:
            self._transition(RunPhase.RESOLVING)
            plan = self._resolve_plan()
            self.plan = plan

            self._transition(RunPhase.PROVISIONING)
            await self._run_job(ProvisionVolumeJob(self._create_job_context()))

            self._transition(RunPhase.COPYING_IN)
            await self._run_job(CopyInJob(self._create_job_context()))

            session = await self._supervisor.launch(self._config.firefox.app_path, plan.staged_path)
            self._transition(RunPhase.SESSION_ACTIVE)
            await self._supervisor.wait(session)

            self._transition(RunPhase.SYNCING_BACK)
            await self._run_job(SyncBackJob(self._create_job_context()))

            self._transition(RunPhase.COMPLETED)
            outcome = RunOutcome(kind=OutcomeKind.COMPLETED, detail=COMPLETED_MESSAGE)
            self._logger.info(COMPLETED_MESSAGE)

        except StagingError as e:
            self._logger.critical("Run failed", kind=e.kind.value, error=str(e), phase=self._phase.value)
            self._transition(RunPhase.FAILED)
            outcome = RunOutcome(kind=e.kind, detail=str(e))

        except asyncio.CancelledError:
            self._logger.warning("Run interrupted", phase=self._phase.value)
            await self._executor.terminate_all_processes()
            raise

        self._event_bus.publish(OutcomeEvent(outcome=outcome))
        return outcome
