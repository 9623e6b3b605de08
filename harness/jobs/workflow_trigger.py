"""Workflow Dispatch Trigger: start the test workflow for one correlation token."""

from __future__ import annotations

import logging
from typing import Final

from harness.adapters import WorkflowApiPort
from harness.domain import CorrelationToken, RepositoryCoordinate, RunHandle

from .manual_prompt import ManualObservationPrompter

logger = logging.getLogger(__name__)

TOKEN_INPUT_NAME: Final[str] = "test_id"


class WorkflowDispatchTrigger:
    """Dispatch the workflow through the API, or hand over to a human.

    The dispatched run carries the token as its `test_id` input, which the
    test workflow echoes in its run name and logs for the Run Watcher.
    """

    def __init__(
        self,
        workflow_api: WorkflowApiPort | None,
        dispatch_ref: str = "main",
        manual_prompter: ManualObservationPrompter | None = None,
    ):
        """Initialize trigger collaborators.

        Args:
            workflow_api: Workflow API port, None when no API token is available.
            dispatch_ref: Git ref the workflow runs on.
            manual_prompter: Interactive fallback used without an API.

        Raises:
            ValueError: Raised when neither collaborator is given or the ref is blank.
        """

        if workflow_api is None and manual_prompter is None:
            raise ValueError("either workflow_api or manual_prompter must be provided")
        if not dispatch_ref.strip():
            raise ValueError("dispatch_ref must not be blank")

        self._workflow_api = workflow_api
        self._dispatch_ref = dispatch_ref.strip()
        self._manual_prompter = manual_prompter

    def job_trigger_uses_api(self) -> bool:
        """Return whether dispatches go through the workflow API."""

        return self._workflow_api is not None

    def job_trigger_dispatch(
        self,
        repository: RepositoryCoordinate,
        workflow_file: str,
        token: CorrelationToken,
    ) -> RunHandle | None:
        """Start one workflow run for `token`.

        Args:
            repository: Repository the workflow lives in.
            workflow_file: Workflow file name.
            token: Correlation token passed as the `test_id` input.

        Returns:
            RunHandle | None: None after an API dispatch (the Run Watcher finds
            the run); the typed run handle when a human triggered it.

        Raises:
            WorkflowApiRequestError: Raised when the API rejects the dispatch.
            ObservationSkippedError: Raised when the human skips the manual trigger.
        """

        if self._workflow_api is None and self._manual_prompter is not None:
            return self._manual_prompter.prompt_for_run_id(repository=repository, workflow_file=workflow_file)
        if self._workflow_api is None:
            raise RuntimeError("no workflow API or manual prompter configured")

        logger.info(
            "Dispatching %s on %s@%s with %s=%s",
            workflow_file,
            repository,
            self._dispatch_ref,
            TOKEN_INPUT_NAME,
            token,
        )
        self._workflow_api.workflow_dispatch(
            repository=repository,
            workflow_file=workflow_file,
            ref=self._dispatch_ref,
            inputs={TOKEN_INPUT_NAME: token.value},
        )
        return None
