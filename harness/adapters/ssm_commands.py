"""SSM Run Command adapter for executing shell commands on test instances."""

from __future__ import annotations

import logging
import time
from typing import Any, Final

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from harness.domain import CommandInvocationStatus, CommandResult

from .aws_errors import RemoteCommandError, RemoteCommandTimeoutError
from .interfaces import RemoteCommandPort

logger = logging.getLogger(__name__)


class SsmRemoteCommandRunner(RemoteCommandPort):
    """Run shell scripts through `AWS-RunShellScript` and poll the invocation."""

    _DOCUMENT_NAME: Final[str] = "AWS-RunShellScript"
    _INVOCATION_PENDING_ERROR_CODE: Final[str] = "InvocationDoesNotExist"

    def __init__(
        self,
        region_name: str = "us-east-1",
        session: boto3.session.Session | None = None,
        poll_interval_seconds: float = 3.0,
        poll_attempts: int = 60,
        command_timeout_seconds: int = 120,
    ):
        """Initialize the runner.

        Args:
            region_name: Region of the target instances.
            session: Optional preconfigured boto3 session.
            poll_interval_seconds: Sleep before each invocation poll.
            poll_attempts: Maximum number of invocation polls.
            command_timeout_seconds: Remote execution timeout passed to SSM.

        Raises:
            ValueError: Raised when config values are invalid.
        """

        if not region_name.strip():
            raise ValueError("region_name must not be blank")
        if poll_interval_seconds < 0:
            raise ValueError("poll_interval_seconds must be >= 0")
        if poll_attempts < 1:
            raise ValueError("poll_attempts must be >= 1")
        if command_timeout_seconds < 30:
            raise ValueError("command_timeout_seconds must be >= 30")

        resolved_session = session or boto3.session.Session(region_name=region_name.strip())
        self._ssm_client = resolved_session.client("ssm", region_name=region_name.strip())
        self._poll_interval_seconds = poll_interval_seconds
        self._poll_attempts = poll_attempts
        self._command_timeout_seconds = command_timeout_seconds

    def command_run(self, instance_id: str, commands: list[str]) -> CommandResult:
        """Run commands on one instance and wait for a terminal status.

        A `Failed`, `Cancelled` or `TimedOut` invocation is returned as data;
        callers decide whether a non-zero outcome is expected (access-denied
        probes rely on that).

        Args:
            instance_id: Target instance id.
            commands: Shell lines executed in order.

        Returns:
            CommandResult: Terminal status with captured stdout and stderr.

        Raises:
            ValueError: Raised when instance id or commands are empty.
            RemoteCommandError: Raised when submission or polling fails.
            RemoteCommandTimeoutError: Raised when no terminal status is observed.
        """

        normalized_instance_id = instance_id.strip()
        if not normalized_instance_id:
            raise ValueError("instance_id must not be blank")
        if not commands:
            raise ValueError("commands must not be empty")

        logger.info("Running SSM command on instance %s: %s", normalized_instance_id, commands)
        command_id = self._command_send(instance_id=normalized_instance_id, commands=commands)
        logger.info("SSM command id: %s", command_id)

        for _poll_index in range(self._poll_attempts):
            time.sleep(self._poll_interval_seconds)

            invocation = self._command_get_invocation(command_id=command_id, instance_id=normalized_instance_id)
            if invocation is None:
                continue

            status = CommandInvocationStatus.status_from_api(invocation.get("Status"))
            logger.info("SSM command %s status: %s", command_id, status.value)
            if status.status_is_terminal():
                return CommandResult(
                    command_id=command_id,
                    status=status,
                    stdout=str(invocation.get("StandardOutputContent") or ""),
                    stderr=str(invocation.get("StandardErrorContent") or ""),
                )

        raise RemoteCommandTimeoutError(
            f"SSM command timed out after {self._poll_attempts * self._poll_interval_seconds:.0f} seconds",
            command_id=command_id,
        )

    def _command_send(self, instance_id: str, commands: list[str]) -> str:
        try:
            response = self._ssm_client.send_command(
                InstanceIds=[instance_id],
                DocumentName=self._DOCUMENT_NAME,
                Parameters={"commands": list(commands)},
                TimeoutSeconds=self._command_timeout_seconds,
            )
        except (ClientError, BotoCoreError) as error:
            raise RemoteCommandError(f"failed to send SSM command: {error}") from error
        return str(response["Command"]["CommandId"])

    def _command_get_invocation(self, command_id: str, instance_id: str) -> dict[str, Any] | None:
        """Return invocation payload, None while SSM has not registered it yet.

        Raises:
            RemoteCommandError: Raised for failures other than a pending invocation.
        """

        try:
            return self._ssm_client.get_command_invocation(CommandId=command_id, InstanceId=instance_id)
        except ClientError as error:
            error_code = str(error.response.get("Error", {}).get("Code", ""))
            if error_code == self._INVOCATION_PENDING_ERROR_CODE:
                return None
            raise RemoteCommandError(f"failed to get command invocation: {error}", command_id=command_id) from error
        except BotoCoreError as error:
            raise RemoteCommandError(f"failed to get command invocation: {error}", command_id=command_id) from error
