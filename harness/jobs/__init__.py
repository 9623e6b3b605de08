"""Job layer package for the remote workflow observation protocol."""

from .cancellation import CancellationSignal
from .completion_waiter import CompletionWaiter
from .interfaces import (
	OBSERVATION_TRANSITIONS,
	PHASE_COMPLETION_WAITER,
	PHASE_JOB_STATE_MONITOR,
	PHASE_MANUAL_PROMPT,
	PHASE_REGISTRATION_WAITER,
	PHASE_RUN_WATCHER,
	ObservationOrchestratorPort,
	ObservationRequest,
	ObservationResult,
	ObservationState,
)
from .job_state_monitor import JobStateMonitor
from .manual_prompt import InputSource, ManualObservationPrompter, StreamInputSource
from .observation_errors import (
	ExecutorUnavailableError,
	ObservationCancelledError,
	ObservationError,
	ObservationFailedError,
	ObservationSkippedError,
	RegistrationTimeoutError,
	RunNotFoundError,
)
from .observation_orchestrator import ObservationOrchestrator, ObservationOrchestratorConfig
from .polling import PollAttempt, PollingStrategy, job_poll_until
from .registration_waiter import EXECUTOR_LOG_MARKERS, RegistrationWaiter
from .run_watcher import DISPATCH_EVENT, RunWatcher
from .workflow_trigger import TOKEN_INPUT_NAME, WorkflowDispatchTrigger

__all__ = [
	"CancellationSignal",
	"CompletionWaiter",
	"DISPATCH_EVENT",
	"EXECUTOR_LOG_MARKERS",
	"ExecutorUnavailableError",
	"InputSource",
	"JobStateMonitor",
	"ManualObservationPrompter",
	"OBSERVATION_TRANSITIONS",
	"ObservationCancelledError",
	"ObservationError",
	"ObservationFailedError",
	"ObservationOrchestrator",
	"ObservationOrchestratorConfig",
	"ObservationOrchestratorPort",
	"ObservationRequest",
	"ObservationResult",
	"ObservationSkippedError",
	"ObservationState",
	"PHASE_COMPLETION_WAITER",
	"PHASE_JOB_STATE_MONITOR",
	"PHASE_MANUAL_PROMPT",
	"PHASE_REGISTRATION_WAITER",
	"PHASE_RUN_WATCHER",
	"PollAttempt",
	"PollingStrategy",
	"RegistrationTimeoutError",
	"RegistrationWaiter",
	"RunNotFoundError",
	"RunWatcher",
	"StreamInputSource",
	"TOKEN_INPUT_NAME",
	"WorkflowDispatchTrigger",
	"job_poll_until",
]
