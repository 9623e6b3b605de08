"""Harness bootstrap wiring for settings validation and dependency assembly."""

from datetime import timedelta
from pathlib import Path
from typing import Mapping

from harness.adapters import (
    Boto3CloudResourceClient,
    GitHubActionsAdapter,
    HttpLogArchiveFetcher,
    LogArchiveFetcherPort,
    OpenTofuProvisioner,
    SsmRemoteCommandRunner,
    WorkflowApiPort,
)
from harness.config import HarnessSettings, IntegrationInputsMissingError, config_load_settings
from harness.domain import CorrelationToken, ObservationWindow, RepositoryCoordinate
from harness.jobs import (
    CompletionWaiter,
    InputSource,
    JobStateMonitor,
    ManualObservationPrompter,
    ObservationOrchestrator,
    ObservationOrchestratorConfig,
    ObservationRequest,
    PollingStrategy,
    RegistrationWaiter,
    RunWatcher,
    StreamInputSource,
    WorkflowDispatchTrigger,
)


def bootstrap_create_workflow_api(settings: HarnessSettings | None = None) -> GitHubActionsAdapter:
    """Build the workflow API adapter from settings.

    Args:
        settings: Loaded settings, loaded from the environment when omitted.

    Returns:
        GitHubActionsAdapter: Adapter authenticated with `GITHUB_TOKEN`.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        IntegrationInputsMissingError: Raised when `GITHUB_TOKEN` is not set.
    """

    resolved_settings = settings or config_load_settings()
    if not resolved_settings.github_token:
        raise IntegrationInputsMissingError("GITHUB_TOKEN not set", missing_keys=("GITHUB_TOKEN",))
    return GitHubActionsAdapter(
        token=resolved_settings.github_token,
        base_url=resolved_settings.github_api_base_url,
        request_timeout_seconds=resolved_settings.github_request_timeout_seconds,
    )


def bootstrap_create_log_fetcher(settings: HarnessSettings | None = None) -> HttpLogArchiveFetcher:
    """Build the capped log downloader."""

    resolved_settings = settings or config_load_settings()
    return HttpLogArchiveFetcher(request_timeout_seconds=resolved_settings.github_request_timeout_seconds)


def bootstrap_create_polling_strategy(settings: HarnessSettings) -> PollingStrategy:
    """Build the real-time polling strategy for observation phases."""

    return PollingStrategy(interval_seconds=settings.observation_poll_interval_seconds)


def bootstrap_create_observation_orchestrator(
    settings: HarnessSettings | None = None,
    workflow_api: WorkflowApiPort | None = None,
    log_fetcher: LogArchiveFetcherPort | None = None,
    strategy: PollingStrategy | None = None,
) -> ObservationOrchestrator:
    """Build a fresh observation orchestrator.

    Orchestrators are single-use, so call this once per observation.

    Args:
        settings: Loaded settings, loaded from the environment when omitted.
        workflow_api: Optional workflow API override.
        log_fetcher: Optional log downloader override.
        strategy: Optional polling strategy override.

    Returns:
        ObservationOrchestrator: Fully wired orchestrator.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        IntegrationInputsMissingError: Raised when the API adapter must be built without a token.
    """

    resolved_settings = settings or config_load_settings()
    resolved_workflow_api = workflow_api or bootstrap_create_workflow_api(resolved_settings)
    resolved_log_fetcher = log_fetcher or bootstrap_create_log_fetcher(resolved_settings)
    resolved_strategy = strategy or bootstrap_create_polling_strategy(resolved_settings)
    return ObservationOrchestrator(
        run_watcher=RunWatcher(
            workflow_api=resolved_workflow_api,
            log_fetcher=resolved_log_fetcher,
            strategy=resolved_strategy,
            page_size=resolved_settings.observation_run_page_size,
            job_log_max_bytes=resolved_settings.observation_job_log_max_bytes,
            verify_token_in_logs=resolved_settings.observation_verify_token_in_logs,
        ),
        job_state_monitor=JobStateMonitor(workflow_api=resolved_workflow_api, strategy=resolved_strategy),
        completion_waiter=CompletionWaiter(workflow_api=resolved_workflow_api, strategy=resolved_strategy),
        config=ObservationOrchestratorConfig(
            watch_timeout_seconds=resolved_settings.observation_watch_timeout_seconds,
            monitor_timeout_seconds=resolved_settings.observation_monitor_timeout_seconds,
            completion_timeout_seconds=resolved_settings.observation_completion_timeout_seconds,
            abort_marker_template=resolved_settings.observation_abort_marker_template,
        ),
    )


def bootstrap_create_observation_request(
    settings: HarnessSettings,
    token: CorrelationToken,
) -> ObservationRequest:
    """Open an observation window now and build the request for `token`.

    Raises:
        IntegrationInputsMissingError: Raised when repository or workflow are not configured.
        ValueError: Raised when the repository is not in `owner/repo` form.
    """

    _token, repository, workflow_file = settings.settings_require_integration_inputs()
    return ObservationRequest(
        repository=RepositoryCoordinate.coordinate_parse(repository),
        workflow_file=workflow_file,
        token=token,
        window=ObservationWindow.window_open_now(
            tolerance_skew=timedelta(seconds=settings.observation_clock_skew_seconds)
        ),
    )


def bootstrap_create_registration_waiter(
    settings: HarnessSettings | None = None,
    workflow_api: WorkflowApiPort | None = None,
    log_fetcher: LogArchiveFetcherPort | None = None,
) -> RegistrationWaiter:
    """Build the executor registration waiter."""

    resolved_settings = settings or config_load_settings()
    return RegistrationWaiter(
        workflow_api=workflow_api or bootstrap_create_workflow_api(resolved_settings),
        log_fetcher=log_fetcher or bootstrap_create_log_fetcher(resolved_settings),
        strategy=bootstrap_create_polling_strategy(resolved_settings),
        run_log_max_bytes=resolved_settings.observation_run_log_max_bytes,
    )


def bootstrap_create_workflow_trigger(
    settings: HarnessSettings | None = None,
    workflow_api: WorkflowApiPort | None = None,
    input_source: InputSource | None = None,
) -> WorkflowDispatchTrigger:
    """Build the dispatch trigger, with a stdin prompter when API dispatch is off.

    The prompter is only wired when `observation_dispatch_via_api` is false
    or no token is configured.
    """

    resolved_settings = settings or config_load_settings()
    use_api = resolved_settings.observation_dispatch_via_api and bool(resolved_settings.github_token)
    resolved_workflow_api = None
    if use_api:
        resolved_workflow_api = workflow_api or bootstrap_create_workflow_api(resolved_settings)
    manual_prompter = None if use_api else ManualObservationPrompter(input_source or StreamInputSource())
    return WorkflowDispatchTrigger(
        workflow_api=resolved_workflow_api,
        dispatch_ref=resolved_settings.observation_dispatch_ref,
        manual_prompter=manual_prompter,
    )


def bootstrap_create_cloud_client(settings: HarnessSettings | None = None) -> Boto3CloudResourceClient:
    """Build the cloud resource client for the configured region."""

    resolved_settings = settings or config_load_settings()
    return Boto3CloudResourceClient(region_name=resolved_settings.aws_region)


def bootstrap_create_command_runner(settings: HarnessSettings | None = None) -> SsmRemoteCommandRunner:
    """Build the remote command runner for the configured region."""

    resolved_settings = settings or config_load_settings()
    return SsmRemoteCommandRunner(region_name=resolved_settings.aws_region)


def bootstrap_create_provisioner(
    module_directory: str | Path,
    variables: Mapping[str, object],
    settings: HarnessSettings | None = None,
) -> OpenTofuProvisioner:
    """Build a provisioner for one module directory.

    The region is exported to child processes so provider blocks without an
    explicit region use the harness region.
    """

    resolved_settings = settings or config_load_settings()
    return OpenTofuProvisioner(
        module_directory=module_directory,
        variables=variables,
        binary=resolved_settings.tofu_binary,
        environment={"AWS_REGION": resolved_settings.aws_region},
    )
