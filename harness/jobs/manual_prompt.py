"""Interactive fallback for humans triggering and judging workflow runs.

The input source is passed in explicitly; tests drive the prompter with an
in-memory stream.
"""

from __future__ import annotations

import logging
import sys
from typing import Protocol, TextIO

from harness.domain import RepositoryCoordinate, RunConclusion, RunHandle

from .interfaces import PHASE_MANUAL_PROMPT
from .observation_errors import ObservationSkippedError

logger = logging.getLogger(__name__)

SKIP_ANSWER = "s"


class InputSource(Protocol):
    """Line-oriented source of human answers."""

    def input_read_line(self, prompt: str) -> str | None:
        """Show `prompt` and return one stripped line, None at end of input."""


class StreamInputSource(InputSource):
    """InputSource over text streams, stdin/stdout by default."""

    def __init__(self, input_stream: TextIO | None = None, output_stream: TextIO | None = None):
        self._input_stream = input_stream if input_stream is not None else sys.stdin
        self._output_stream = output_stream if output_stream is not None else sys.stdout

    def input_read_line(self, prompt: str) -> str | None:
        self._output_stream.write(prompt)
        self._output_stream.flush()
        raw_line = self._input_stream.readline()
        if raw_line == "":
            return None
        return raw_line.strip()

    def input_write(self, text: str) -> None:
        """Write informational text to the output stream."""

        self._output_stream.write(text)
        self._output_stream.flush()


class ManualObservationPrompter:
    """Ask a human for a run id or a conclusion, honoring skip requests."""

    def __init__(self, input_source: InputSource):
        if input_source is None:
            raise ValueError("input_source must not be None")
        self._input_source = input_source

    def prompt_for_run_id(self, repository: RepositoryCoordinate, workflow_file: str) -> RunHandle:
        """Ask the human to trigger the workflow and type the resulting run id.

        Args:
            repository: Repository the workflow lives in.
            workflow_file: Workflow file to trigger.

        Returns:
            RunHandle: Handle built from the typed run id.

        Raises:
            ObservationSkippedError: Raised when the human types `s` or input ends.
        """

        self._prompt_show(
            "\nMANUAL WORKFLOW TRIGGER\n"
            f"  1. Go to: https://github.com/{repository.coordinate_slug()}/actions\n"
            f"  2. Select the '{workflow_file}' workflow\n"
            "  3. Click 'Run workflow' -> 'Run workflow'\n"
            "  4. Copy the run ID from the URL (the number after /runs/)\n"
        )
        while True:
            answer = self._prompt_read("\nEnter the workflow run ID (or 's' to skip): ", "workflow trigger")
            if not answer:
                self._prompt_show("Please enter a valid run ID (the number from the URL after /runs/)\n")
                continue
            try:
                run_id = int(answer)
            except ValueError:
                self._prompt_show(f"Invalid run ID '{answer}'. Please enter a number.\n")
                continue
            if run_id <= 0:
                self._prompt_show(f"Invalid run ID '{answer}'. Please enter a positive number.\n")
                continue
            logger.info("Using manually provided workflow run id %d", run_id)
            return RunHandle(run_id=run_id, repository=repository)

    def prompt_for_conclusion(self, run_handle: RunHandle) -> RunConclusion:
        """Ask the human for the run's conclusion once it finished.

        Raises:
            ObservationSkippedError: Raised when the human types `s` or input ends.
        """

        self._prompt_show(f"\nWAITING FOR WORKFLOW\n  Monitor: {run_handle.handle_browser_url()}\n")
        while True:
            answer = self._prompt_read(
                "\nEnter the workflow conclusion (success/failure) or 's' to skip: ",
                "workflow completion check",
            )
            conclusion = RunConclusion.conclusion_from_api(answer)
            if conclusion is None:
                continue
            if conclusion is RunConclusion.UNRECOGNIZED:
                logger.warning("User reported unrecognized workflow conclusion %r", answer)
            else:
                logger.info("User reported workflow conclusion: %s", conclusion.value)
            return conclusion

    def _prompt_read(self, prompt: str, step_name: str) -> str:
        answer = self._input_source.input_read_line(prompt)
        if answer is None or answer.strip().lower() == SKIP_ANSWER:
            raise ObservationSkippedError(f"{step_name} skipped by user", phase=PHASE_MANUAL_PROMPT)
        return answer.strip()

    def _prompt_show(self, text: str) -> None:
        write_text = getattr(self._input_source, "input_write", None)
        if callable(write_text):
            write_text(text)
        else:
            logger.info(text.strip())
