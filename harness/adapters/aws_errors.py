"""Project-native typed exceptions for cloud SDK and remote command failures."""

from __future__ import annotations


class CloudResourceError(RuntimeError):
    """Cloud SDK call failed.

    Attributes:
        operation: SDK operation name.
        error_code: Provider error code, e.g. `NoSuchBucket`.
    """

    def __init__(self, message: str, operation: str, error_code: str | None = None):
        super().__init__(message)
        self.operation = operation
        self.error_code = error_code


class CloudResourceNotFoundError(CloudResourceError, LookupError):
    """Requested resource or configuration does not exist."""


class RemoteCommandError(RuntimeError):
    """Remote shell command could not be submitted or its invocation could not be read.

    Attributes:
        command_id: Remote command id when submission succeeded.
    """

    def __init__(self, message: str, command_id: str | None = None):
        super().__init__(message)
        self.command_id = command_id


class RemoteCommandTimeoutError(RemoteCommandError, TimeoutError):
    """Remote shell command did not reach a terminal status in time."""


class ProvisionerError(RuntimeError):
    """Infrastructure-as-code command failed.

    Attributes:
        command: Executed command line.
        return_code: Process exit status.
        stderr: Captured standard error.
    """

    def __init__(self, message: str, command: tuple[str, ...], return_code: int, stderr: str = ""):
        super().__init__(message)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr
