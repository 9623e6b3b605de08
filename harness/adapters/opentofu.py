"""OpenTofu command-line adapter for provisioning scenario stacks."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
import shutil
import subprocess
from typing import Any, Final, Mapping

from .aws_errors import ProvisionerError
from .interfaces import InfrastructureProvisionerPort

logger = logging.getLogger(__name__)

MODULE_COPY_IGNORED_PATTERNS: Final[tuple[str, ...]] = (".terraform", "*.tfstate", "*.tfstate.*", "*.auto.tfvars.json")


def opentofu_copy_module(source_directory: str | Path, destination_directory: str | Path) -> Path:
    """Copy a module into a fresh working directory without local state.

    Each scenario applies its own copy, so concurrent or sequential scenarios
    never share `.terraform` data, state files or generated variables.

    Args:
        source_directory: Module directory to copy.
        destination_directory: Target directory; must not exist yet.

    Returns:
        Path: The destination directory.

    Raises:
        ValueError: Raised when the source is not a directory.
        FileExistsError: Raised when the destination already exists.
    """

    resolved_source = Path(source_directory)
    resolved_destination = Path(destination_directory)
    if not resolved_source.is_dir():
        raise ValueError(f"module directory not found: {resolved_source}")
    shutil.copytree(resolved_source, resolved_destination, ignore=shutil.ignore_patterns(*MODULE_COPY_IGNORED_PATTERNS))
    logger.info("Copied module %s to %s", resolved_source, resolved_destination)
    return resolved_destination


class OpenTofuProvisioner(InfrastructureProvisionerPort):
    """Apply, destroy and read outputs of one module directory.

    Variables are written to a `*.auto.tfvars.json` file inside the module
    directory so list and boolean values keep their types.
    """

    _VARIABLES_FILE_NAME: Final[str] = "harness.auto.tfvars.json"

    def __init__(
        self,
        module_directory: str | Path,
        variables: Mapping[str, object],
        binary: str = "tofu",
        environment: Mapping[str, str] | None = None,
        command_timeout_seconds: float = 3600.0,
    ):
        """Initialize the provisioner.

        Args:
            module_directory: Directory holding the module to apply.
            variables: Module input variables.
            binary: Infrastructure-as-code executable.
            environment: Extra environment variables for child processes.
            command_timeout_seconds: Timeout for each child process.

        Raises:
            ValueError: Raised when config values are invalid.
        """

        resolved_directory = Path(module_directory)
        if not binary.strip():
            raise ValueError("binary must not be blank")
        if command_timeout_seconds <= 0:
            raise ValueError("command_timeout_seconds must be > 0")

        self._module_directory = resolved_directory
        self._variables = dict(variables)
        self._binary = binary.strip()
        self._environment = {**os.environ, "TF_IN_AUTOMATION": "1", **dict(environment or {})}
        self._command_timeout_seconds = command_timeout_seconds
        self._outputs_cache: dict[str, Any] | None = None

    def provisioner_init_and_apply(self) -> None:
        """Write variables, then run `init` and `apply -auto-approve`.

        Raises:
            ProvisionerError: Raised when either command exits non-zero.
        """

        self._provisioner_write_variables()
        self._provisioner_run("init", "-input=false", "-no-color")
        self._provisioner_run("apply", "-auto-approve", "-input=false", "-no-color")
        self._outputs_cache = None

    def provisioner_destroy(self) -> None:
        """Run `destroy -auto-approve` and remove the generated variables file.

        Raises:
            ProvisionerError: Raised when destroy exits non-zero.
        """

        self._provisioner_write_variables()
        try:
            self._provisioner_run("destroy", "-auto-approve", "-input=false", "-no-color")
        finally:
            self._provisioner_variables_path().unlink(missing_ok=True)
            self._outputs_cache = None

    def provisioner_output(self, name: str) -> str:
        """Return one string output.

        Raises:
            KeyError: Raised when the output is not declared.
            ProvisionerError: Raised when reading outputs fails.
        """

        output_value = self._provisioner_outputs()[name]
        if isinstance(output_value, (list, dict)):
            return json.dumps(output_value)
        return "" if output_value is None else str(output_value)

    def provisioner_output_list(self, name: str) -> list[str]:
        """Return one list output.

        Raises:
            KeyError: Raised when the output is not declared.
            ValueError: Raised when the output is not a list.
        """

        output_value = self._provisioner_outputs()[name]
        if not isinstance(output_value, list):
            raise ValueError(f"output {name} is not a list")
        return [str(item) for item in output_value]

    def _provisioner_outputs(self) -> dict[str, Any]:
        if self._outputs_cache is None:
            completed_process = self._provisioner_run("output", "-json", "-no-color")
            try:
                raw_outputs = json.loads(completed_process.stdout or "{}")
            except json.JSONDecodeError as error:
                raise ProvisionerError(
                    "output -json returned invalid JSON",
                    command=(self._binary, "output", "-json"),
                    return_code=completed_process.returncode,
                ) from error
            self._outputs_cache = {name: entry.get("value") for name, entry in raw_outputs.items()}
        return self._outputs_cache

    def _provisioner_variables_path(self) -> Path:
        return self._module_directory / self._VARIABLES_FILE_NAME

    def _provisioner_write_variables(self) -> None:
        self._provisioner_variables_path().write_text(json.dumps(self._variables, indent=2), encoding="utf-8")

    def _provisioner_run(self, *arguments: str) -> subprocess.CompletedProcess[str]:
        """Run one child process in the module directory.

        Raises:
            ProvisionerError: Raised for non-zero exit, missing binary or timeout.
        """

        command = (self._binary, *arguments)
        logger.info("Running %s in %s", " ".join(command), self._module_directory)
        try:
            completed_process = subprocess.run(  # noqa: S603
                command,
                cwd=str(self._module_directory),
                env=self._environment,
                text=True,
                capture_output=True,
                check=False,
                timeout=self._command_timeout_seconds,
            )
        except FileNotFoundError as error:
            raise ProvisionerError(f"{self._binary} executable not found", command=command, return_code=-1) from error
        except subprocess.TimeoutExpired as error:
            raise ProvisionerError(
                f"{' '.join(command)} timed out after {self._command_timeout_seconds:.0f}s",
                command=command,
                return_code=-1,
            ) from error

        if completed_process.returncode != 0:
            raise ProvisionerError(
                f"{' '.join(command)} exited with {completed_process.returncode}",
                command=command,
                return_code=completed_process.returncode,
                stderr=completed_process.stderr,
            )
        return completed_process
