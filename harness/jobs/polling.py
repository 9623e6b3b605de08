"""Reusable fixed-interval poll-until utility shared by observation phases."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
import time
from typing import Callable, TypeVar

from harness.adapters import WorkflowApiTransientError

from .cancellation import CancellationSignal

logger = logging.getLogger(__name__)

PollValue = TypeVar("PollValue")


@dataclass(frozen=True)
class PollingStrategy:
    """Immutable polling timing config.

    Attributes:
        interval_seconds: Fixed sleep between iterations.
        clock: Monotonic clock used for deadlines.
        sleeper: Sleep function; tests inject a recorder that advances a fake clock.
    """

    interval_seconds: float
    clock: Callable[[], float] = field(default=time.monotonic)
    sleeper: Callable[[float], None] = field(default=time.sleep)

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")


@dataclass(frozen=True)
class PollAttempt:
    """Progress of one poll iteration, passed to probes and timeout handlers.

    Attributes:
        number: One-based iteration number.
        elapsed_seconds: Seconds since phase entry.
        remaining_seconds: Seconds until the phase deadline.
    """

    number: int
    elapsed_seconds: float
    remaining_seconds: float


def job_poll_until(
    phase: str,
    probe: Callable[[PollAttempt], PollValue | None],
    timeout_seconds: float,
    strategy: PollingStrategy,
    on_timeout: Callable[[PollAttempt], PollValue],
    cancellation: CancellationSignal | None = None,
) -> PollValue:
    """Poll `probe` at a fixed interval until it returns a value or the deadline passes.

    Each iteration first checks cancellation, then the deadline, then calls
    the probe. Transient workflow API errors raised by the probe are logged
    and retried; they do not shorten or extend the deadline.

    Args:
        phase: Phase name used in logs and cancellation errors.
        probe: Returns a value to finish, or None to keep polling.
        timeout_seconds: Phase timeout; the deadline is computed once at entry.
        strategy: Interval, clock and sleeper.
        on_timeout: Called once the deadline passes; returns a sentinel or raises.
        cancellation: Optional cancellation signal.

    Returns:
        PollValue: Value returned by the probe or by `on_timeout`.

    Raises:
        ValueError: Raised when the timeout is not positive.
        ObservationCancelledError: Raised when the cancellation marker is observed.
    """

    if timeout_seconds <= 0:
        raise ValueError("timeout_seconds must be > 0")

    started_at = strategy.clock()
    deadline = started_at + timeout_seconds
    attempt_number = 0

    while True:
        if cancellation is not None:
            cancellation.signal_raise_if_requested(phase)

        now = strategy.clock()
        if now >= deadline:
            return on_timeout(
                PollAttempt(number=attempt_number, elapsed_seconds=now - started_at, remaining_seconds=0.0)
            )

        attempt_number += 1
        attempt = PollAttempt(
            number=attempt_number,
            elapsed_seconds=now - started_at,
            remaining_seconds=deadline - now,
        )
        try:
            probe_value = probe(attempt)
        except WorkflowApiTransientError as error:
            logger.warning(
                "[%s] attempt %d: transient error, retrying in %.0fs: %s",
                phase,
                attempt.number,
                strategy.interval_seconds,
                error,
            )
            probe_value = None

        if probe_value is not None:
            return probe_value

        logger.info(
            "[%s] attempt %d: elapsed %.0fs, remaining %.0fs; next poll in %.0fs",
            phase,
            attempt.number,
            attempt.elapsed_seconds,
            attempt.remaining_seconds,
            strategy.interval_seconds,
        )
        strategy.sleeper(strategy.interval_seconds)
