"""Structured stage timeline helpers for observation diagnostics."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def domain_build_stage_event(
    stage: str,
    status: str,
    details: dict[str, Any] | None = None,
) -> dict[str, object]:
    """Build one structured timeline event payload.

    Args:
        stage: Observation phase or validation stage name.
        status: Stage status marker (`started`, `completed`, `failed`, ...).
        details: Optional structured details object.

    Returns:
        dict[str, object]: Event with `stage`, `status`, `at_utc` and optional `details`.

    Raises:
        ValueError: Raised when stage or status is blank.
    """

    if not stage.strip():
        raise ValueError("stage must not be blank")
    if not status.strip():
        raise ValueError("status must not be blank")

    event_payload: dict[str, object] = {
        "stage": stage,
        "status": status,
        "at_utc": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        event_payload["details"] = dict(details)
    return event_payload


def domain_timeline_stage_statuses(timeline: list[dict[str, object]], stage: str) -> list[str]:
    """Return the ordered status markers recorded for one stage.

    Args:
        timeline: Timeline events in recording order.
        stage: Stage name to filter on.

    Returns:
        list[str]: Status markers for the stage, oldest first.

    Raises:
        RuntimeError: This helper does not raise runtime errors.
    """

    return [str(event.get("status")) for event in timeline if event.get("stage") == stage]
