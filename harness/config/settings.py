"""Typed harness settings with dotenv support and load-time validation."""

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class SettingsLoadError(RuntimeError):
    """Raised when harness settings cannot be loaded or validated."""


class IntegrationInputsMissingError(RuntimeError):
    """Raised when an opt-in integration check lacks its required inputs.

    Attributes:
        missing_keys: Environment keys that were absent or blank.
    """

    def __init__(self, message: str, missing_keys: tuple[str, ...] = ()):
        super().__init__(message)
        self.missing_keys = missing_keys


class HarnessSettings(BaseSettings):
    """Settings for provisioning, validation and remote workflow observation.

    Environment variable names map directly to field names in uppercase.
    Example: `runs_on_test_repo` reads from `RUNS_ON_TEST_REPO`.

    Attributes:
        github_token: API token for the workflow API; integration checks skip without it.
        runs_on_test_repo: Target repository in `owner/repo` form.
        github_repository: CI-provided repository fallback for `runs_on_test_repo`.
        runs_on_test_workflow: Target workflow file name (e.g. `test.yml`).
        github_org: Explicit organization for the runner stack.
        runs_on_license_key: Runner stack license key.
        aws_region: Region for all cloud clients.
        github_api_base_url: Workflow API base URL.
        github_request_timeout_seconds: Per-request HTTP timeout.
        observation_poll_interval_seconds: Fixed sleep between poll iterations.
        observation_watch_timeout_seconds: Run Watcher deadline.
        observation_monitor_timeout_seconds: Job-State Monitor grace deadline.
        observation_completion_timeout_seconds: Completion Waiter deadline.
        observation_clock_skew_seconds: Backward skew applied to the observation window.
        observation_run_page_size: Number of most recent runs listed per poll.
        observation_job_log_max_bytes: Byte cap per job log download.
        observation_run_log_max_bytes: Byte cap per run log archive download.
        observation_verify_token_in_logs: Require the token in job logs for window matches.
        observation_abort_marker_template: Cancellation marker path, `{test_id}` is substituted.
        observation_dispatch_ref: Git ref used when dispatching the workflow through the API.
        observation_dispatch_via_api: Dispatch the workflow instead of waiting for a human trigger.
        tofu_binary: Infrastructure-as-code binary.
        e2e_full_featured_enabled: Run the NAT + EFS + ECR scenario.
        e2e_interactive_enabled: Allow interactive prompts when no API token is set.
        e2e_module_directory: Runner stack root module directory for scenario suites.
        e2e_vpc_fixture_directory: VPC fixture module directory for scenario suites.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    github_token: str | None = Field(default=None)
    runs_on_test_repo: str | None = Field(default=None)
    github_repository: str | None = Field(default=None)
    runs_on_test_workflow: str | None = Field(default=None)
    github_org: str | None = Field(default=None)
    runs_on_license_key: str = Field(default="test-license", min_length=1)
    aws_region: str = Field(default="us-east-1", min_length=1)
    github_api_base_url: str = Field(default="https://api.github.com", min_length=1)
    github_request_timeout_seconds: float = Field(default=30.0, gt=0)
    observation_poll_interval_seconds: float = Field(default=15.0, gt=0)
    observation_watch_timeout_seconds: float = Field(default=900.0, gt=0)
    observation_monitor_timeout_seconds: float = Field(default=180.0, gt=0)
    observation_completion_timeout_seconds: float = Field(default=600.0, gt=0)
    observation_clock_skew_seconds: float = Field(default=60.0, ge=0)
    observation_run_page_size: int = Field(default=10, ge=1, le=100)
    observation_job_log_max_bytes: int = Field(default=1024 * 1024, ge=1)
    observation_run_log_max_bytes: int = Field(default=10 * 1024 * 1024, ge=1)
    observation_verify_token_in_logs: bool = Field(default=True)
    observation_abort_marker_template: str = Field(default="/tmp/runson-{test_id}-abort")
    observation_dispatch_ref: str = Field(default="main", min_length=1)
    observation_dispatch_via_api: bool = Field(default=False)
    tofu_binary: str = Field(default="tofu", min_length=1)
    e2e_full_featured_enabled: bool = Field(default=False)
    e2e_interactive_enabled: bool = Field(default=False)
    e2e_module_directory: str | None = Field(default=None)
    e2e_vpc_fixture_directory: str | None = Field(default=None)

    @field_validator(
        "github_token",
        "runs_on_test_repo",
        "github_repository",
        "runs_on_test_workflow",
        "github_org",
        "e2e_module_directory",
        "e2e_vpc_fixture_directory",
    )
    @classmethod
    def _normalize_optional_string(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped_value = value.strip()
        return stripped_value or None

    @field_validator("observation_abort_marker_template")
    @classmethod
    def _validate_marker_template(cls, value: str) -> str:
        stripped_value = value.strip()
        if "{test_id}" not in stripped_value:
            raise ValueError("observation_abort_marker_template must contain '{test_id}'")
        return stripped_value

    @field_validator("github_api_base_url")
    @classmethod
    def _validate_base_url(cls, value: str) -> str:
        stripped_value = value.strip().rstrip("/")
        if not stripped_value.startswith(("http://", "https://")):
            raise ValueError("github_api_base_url must be an http(s) URL")
        return stripped_value

    def settings_test_repository(self) -> str | None:
        """Return target repository, preferring `RUNS_ON_TEST_REPO` over `GITHUB_REPOSITORY`.

        Returns:
            str | None: Repository slug, None when neither is set.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        return self.runs_on_test_repo or self.github_repository

    def settings_github_org(self) -> str:
        """Resolve the GitHub organization for the runner stack.

        Priority: `GITHUB_ORG`, then the owner part of `RUNS_ON_TEST_REPO`,
        then `test-org`.

        Returns:
            str: Organization name.

        Raises:
            RuntimeError: This helper does not raise runtime errors.
        """

        if self.github_org:
            return self.github_org
        if self.runs_on_test_repo:
            owner = self.runs_on_test_repo.split("/")[0].strip()
            if owner:
                return owner
        return "test-org"

    def settings_require_integration_inputs(self) -> tuple[str, str, str]:
        """Return token, repository and workflow required by the job-execution check.

        Returns:
            tuple[str, str, str]: API token, repository slug and workflow file name.

        Raises:
            IntegrationInputsMissingError: Raised with the first missing input, in
                the order token, repository, workflow.
        """

        if not self.github_token:
            raise IntegrationInputsMissingError("GITHUB_TOKEN not set", missing_keys=("GITHUB_TOKEN",))
        test_repository = self.settings_test_repository()
        if not test_repository:
            raise IntegrationInputsMissingError(
                "RUNS_ON_TEST_REPO or GITHUB_REPOSITORY not set",
                missing_keys=("RUNS_ON_TEST_REPO", "GITHUB_REPOSITORY"),
            )
        if not self.runs_on_test_workflow:
            raise IntegrationInputsMissingError(
                "RUNS_ON_TEST_WORKFLOW not set",
                missing_keys=("RUNS_ON_TEST_WORKFLOW",),
            )
        return self.github_token, test_repository, self.runs_on_test_workflow

    def settings_abort_marker_path(self, test_id: str) -> str:
        """Render the cancellation marker path for one test id."""

        return self.observation_abort_marker_template.format(test_id=test_id)


def config_load_settings() -> HarnessSettings:
    """Load and validate harness settings from environment and dotenv.

    Returns:
        HarnessSettings: Validated settings object.

    Raises:
        SettingsLoadError: Raised when settings are invalid.
    """

    try:
        return HarnessSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Harness configuration validation failed. Update .env or environment variables. Details: {error}"
        ) from error
