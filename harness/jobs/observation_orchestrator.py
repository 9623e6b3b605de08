"""Job-layer observation orchestrator with stage timeline recording."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Callable, TypeVar

from harness.adapters import WorkflowApiError
from harness.domain import RunConclusion, domain_build_stage_event

from .cancellation import CancellationSignal
from .completion_waiter import CompletionWaiter
from .interfaces import (
    OBSERVATION_TRANSITIONS,
    PHASE_COMPLETION_WAITER,
    PHASE_JOB_STATE_MONITOR,
    PHASE_RUN_WATCHER,
    ObservationOrchestratorPort,
    ObservationRequest,
    ObservationResult,
    ObservationState,
)
from .job_state_monitor import JobStateMonitor
from .observation_errors import ObservationError, ObservationFailedError
from .run_watcher import RunWatcher

logger = logging.getLogger(__name__)

PhaseValue = TypeVar("PhaseValue")


@dataclass(frozen=True)
class ObservationOrchestratorConfig:
    """Per-phase timeouts and cancellation marker template.

    Attributes:
        watch_timeout_seconds: Run Watcher timeout.
        monitor_timeout_seconds: Job-State Monitor grace timeout.
        completion_timeout_seconds: Completion Waiter timeout.
        abort_marker_template: Marker path template containing `{test_id}`.
    """

    watch_timeout_seconds: float = 900.0
    monitor_timeout_seconds: float = 180.0
    completion_timeout_seconds: float = 600.0
    abort_marker_template: str = "/tmp/runson-{test_id}-abort"


class ObservationOrchestrator(ObservationOrchestratorPort):
    """Sequence Run Watcher, Job-State Monitor and Completion Waiter.

    One instance observes one run. Reaching `DONE` or `FAILED` ends its
    lifecycle; create a new orchestrator for the next observation.
    """

    def __init__(
        self,
        run_watcher: RunWatcher,
        job_state_monitor: JobStateMonitor,
        completion_waiter: CompletionWaiter,
        config: ObservationOrchestratorConfig,
    ):
        """Initialize orchestrator dependencies.

        Args:
            run_watcher: Run discovery phase.
            job_state_monitor: Executor acceptance phase.
            completion_waiter: Completion phase.
            config: Timeouts and marker template.

        Returns:
            None: Initializer does not return a value.

        Raises:
            ValueError: Raised when dependencies or config values are invalid.
        """

        if run_watcher is None:
            raise ValueError("run_watcher must not be None")
        if job_state_monitor is None:
            raise ValueError("job_state_monitor must not be None")
        if completion_waiter is None:
            raise ValueError("completion_waiter must not be None")
        for timeout_name in ("watch_timeout_seconds", "monitor_timeout_seconds", "completion_timeout_seconds"):
            if getattr(config, timeout_name) <= 0:
                raise ValueError(f"config.{timeout_name} must be > 0")
        if "{test_id}" not in config.abort_marker_template:
            raise ValueError("config.abort_marker_template must contain '{test_id}'")

        self._run_watcher = run_watcher
        self._job_state_monitor = job_state_monitor
        self._completion_waiter = completion_waiter
        self._config = config
        self._state = ObservationState.WATCHING
        self._started = False

    def job_current_state(self) -> ObservationState:
        """Return the current state machine state."""

        return self._state

    def job_observe(self, request: ObservationRequest) -> ObservationResult:
        """Run the three observation phases in sequence.

        Args:
            request: Observation inputs.

        Returns:
            ObservationResult: Run handle, conclusion (possibly `UNKNOWN`), final state and timeline.

        Raises:
            RuntimeError: Raised when the orchestrator was already used.
            ObservationFailedError: Raised when any phase fails; names the phase and wraps the cause.
        """

        if self._started:
            raise RuntimeError(f"orchestrator already used (state={self._state.value}); create a new instance")
        self._started = True

        cancellation = CancellationSignal.signal_for_test_id(
            marker_template=self._config.abort_marker_template,
            test_id=request.token.value,
        )
        timeline: list[dict[str, object]] = []
        logger.info("Observation started; to abort run: %s", cancellation.signal_instructions())

        run_handle = self._job_run_phase(
            phase=PHASE_RUN_WATCHER,
            timeline=timeline,
            action=lambda: self._run_watcher.job_watch_for_run(
                repository=request.repository,
                workflow_file=request.workflow_file,
                token=request.token,
                window=request.window,
                timeout_seconds=self._config.watch_timeout_seconds,
                cancellation=cancellation,
            ),
        )
        timeline[-1]["details"] = {"run_id": run_handle.run_id, "html_url": run_handle.handle_browser_url()}
        self._job_transition(ObservationState.MONITORING)

        snapshot = self._job_run_phase(
            phase=PHASE_JOB_STATE_MONITOR,
            timeline=timeline,
            action=lambda: self._job_state_monitor.job_monitor_run(
                run_handle=run_handle,
                timeout_seconds=self._config.monitor_timeout_seconds,
                cancellation=cancellation,
            ),
        )
        timeline[-1]["details"] = {"job_counts": snapshot.snapshot_counts()}
        self._job_transition(ObservationState.WAITING)

        conclusion = self._job_run_phase(
            phase=PHASE_COMPLETION_WAITER,
            timeline=timeline,
            action=lambda: self._completion_waiter.job_wait_for_completion(
                run_handle=run_handle,
                timeout_seconds=self._config.completion_timeout_seconds,
                cancellation=cancellation,
            ),
        )
        completion_details: dict[str, object] = {
            "conclusion": conclusion.value,
            "completion_observed": conclusion is not RunConclusion.UNKNOWN,
        }
        if conclusion is RunConclusion.UNRECOGNIZED:
            completion_details["conclusion_raw"] = self._completion_waiter.job_last_conclusion_raw()
        timeline[-1]["details"] = completion_details
        self._job_transition(ObservationState.DONE)

        logger.info("Observation of run %d finished with conclusion=%s", run_handle.run_id, conclusion.value)
        return ObservationResult(
            run_handle=run_handle,
            conclusion=conclusion,
            state=self._state,
            stage_timeline=timeline,
        )

    def _job_run_phase(
        self,
        phase: str,
        timeline: list[dict[str, object]],
        action: Callable[[], PhaseValue],
    ) -> PhaseValue:
        """Run one phase, recording timeline events and wrapping typed failures.

        Raises:
            ObservationFailedError: Raised when the phase raises an observation, API or runtime error.
        """

        timeline.append(domain_build_stage_event(stage=phase, status="started"))
        try:
            phase_value = action()
        except (ObservationError, WorkflowApiError, TimeoutError, ConnectionError, ValueError, RuntimeError) as error:
            timeline.append(
                domain_build_stage_event(
                    stage=phase,
                    status="failed",
                    details={"error_type": type(error).__name__, "error_message": str(error)},
                )
            )
            self._job_transition(ObservationState.FAILED)
            logger.error("Observation failed in phase=%s: %s", phase, error)
            raise ObservationFailedError(phase=phase, cause=error) from error
        timeline.append(domain_build_stage_event(stage=phase, status="completed"))
        return phase_value

    def _job_transition(self, target_state: ObservationState) -> None:
        allowed_targets = OBSERVATION_TRANSITIONS[self._state]
        if target_state not in allowed_targets:
            raise RuntimeError(f"invalid observation transition {self._state.value} -> {target_state.value}")
        logger.debug("Observation state %s -> %s", self._state.value, target_state.value)
        self._state = target_state
