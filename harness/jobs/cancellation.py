"""Filesystem-marker cancellation signal for cooperative observation aborts."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path

from .observation_errors import ObservationCancelledError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CancellationSignal:
    """Cancellation requested by the existence of one marker file.

    Attributes:
        marker_path: Marker path namespaced by test id.
    """

    marker_path: Path

    @classmethod
    def signal_for_test_id(cls, marker_template: str, test_id: str) -> "CancellationSignal":
        """Build the signal for one test id.

        Args:
            marker_template: Path template containing `{test_id}`.
            test_id: Test or correlation identifier.

        Returns:
            CancellationSignal: Signal bound to the rendered path.

        Raises:
            ValueError: Raised when the template lacks `{test_id}` or test id is blank.
        """

        if "{test_id}" not in marker_template:
            raise ValueError("marker_template must contain '{test_id}'")
        if not test_id.strip():
            raise ValueError("test_id must not be blank")
        return cls(marker_path=Path(marker_template.format(test_id=test_id.strip())))

    def signal_is_requested(self) -> bool:
        """Return whether the marker currently exists."""

        return self.marker_path.exists()

    def signal_raise_if_requested(self, phase: str) -> None:
        """Consume the marker and abort when cancellation was requested.

        The marker is deleted before raising so a later run with the same id
        does not inherit the abort.

        Args:
            phase: Name of the phase checking the signal.

        Returns:
            None: Returns normally when no marker exists.

        Raises:
            ObservationCancelledError: Raised when the marker exists.
        """

        if not self.signal_is_requested():
            return
        self.marker_path.unlink(missing_ok=True)
        logger.warning("Cancellation marker %s observed during %s; aborting", self.marker_path, phase)
        raise ObservationCancelledError(
            f"observation cancelled by marker {self.marker_path}",
            phase=phase,
            marker_path=str(self.marker_path),
        )

    def signal_instructions(self) -> str:
        """Return the shell command a human runs to abort."""

        return f"touch {self.marker_path}"
