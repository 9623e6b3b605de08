"""Typed interfaces for job-layer observation responsibilities."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Final, Protocol

from harness.domain import CorrelationToken, ObservationWindow, RepositoryCoordinate, RunConclusion, RunHandle

PHASE_RUN_WATCHER: Final[str] = "run_watcher"
PHASE_JOB_STATE_MONITOR: Final[str] = "job_state_monitor"
PHASE_COMPLETION_WAITER: Final[str] = "completion_waiter"
PHASE_REGISTRATION_WAITER: Final[str] = "registration_waiter"
PHASE_MANUAL_PROMPT: Final[str] = "manual_prompt"


class ObservationState(str, Enum):
    """Orchestrator state machine states; `DONE` and `FAILED` are terminal."""

    WATCHING = "watching"
    MONITORING = "monitoring"
    WAITING = "waiting"
    DONE = "done"
    FAILED = "failed"

    def state_is_terminal(self) -> bool:
        """Return whether no further transitions are allowed."""

        return self in (ObservationState.DONE, ObservationState.FAILED)


OBSERVATION_TRANSITIONS: Final[dict[ObservationState, frozenset[ObservationState]]] = {
    ObservationState.WATCHING: frozenset({ObservationState.MONITORING, ObservationState.FAILED}),
    ObservationState.MONITORING: frozenset({ObservationState.WAITING, ObservationState.FAILED}),
    ObservationState.WAITING: frozenset({ObservationState.DONE, ObservationState.FAILED}),
    ObservationState.DONE: frozenset(),
    ObservationState.FAILED: frozenset(),
}


@dataclass(frozen=True)
class ObservationRequest:
    """Inputs of one orchestrated observation.

    Attributes:
        repository: Repository the workflow lives in.
        workflow_file: Workflow file name.
        token: Correlation token of this test invocation.
        window: Observation window opened before the trigger.
    """

    repository: RepositoryCoordinate
    workflow_file: str
    token: CorrelationToken
    window: ObservationWindow

    def __post_init__(self) -> None:
        normalized_workflow_file = self.workflow_file.strip()
        if not normalized_workflow_file:
            raise ValueError("workflow_file must not be blank")
        object.__setattr__(self, "workflow_file", normalized_workflow_file)


@dataclass(frozen=True)
class ObservationResult:
    """Result contract for one orchestrated observation.

    Attributes:
        run_handle: Run discovered by the Run Watcher.
        conclusion: Observed conclusion, `RunConclusion.UNKNOWN` when completion was not observed.
        state: Final orchestrator state.
        stage_timeline: Structured stage events in recording order.
    """

    run_handle: RunHandle
    conclusion: RunConclusion
    state: ObservationState
    stage_timeline: list[dict[str, object]] = field(default_factory=list)

    def result_completion_observed(self) -> bool:
        """Return whether completion was observed before the deadline."""

        return self.conclusion.conclusion_was_observed()


class ObservationOrchestratorPort(Protocol):
    """Port definition for sequencing the observation phases."""

    def job_observe(self, request: ObservationRequest) -> ObservationResult:
        """Run watcher, monitor and waiter phases in sequence.

        Args:
            request: Observation inputs.

        Returns:
            ObservationResult: Final observation payload.

        Raises:
            ObservationFailedError: Raised when any phase fails.
        """
