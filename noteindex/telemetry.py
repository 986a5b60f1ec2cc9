"""Observability: structured per-task logging and pipeline counters."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class PipelineMetrics:
    """In-process counters for one pipeline instance. Mutated on the event loop thread only."""

    events_received: int = 0
    events_dropped: int = 0
    tasks_started: int = 0
    tasks_done: int = 0
    tasks_failed: int = 0
    points_upserted: int = 0
    points_deleted: int = 0

    def snapshot(self) -> dict[str, int]:
        return asdict(self)


def log_index_task(
    *,
    path: str,
    action: str,
    outcome: str,
    latency_ms: int,
    points: int = 0,
    error_code: str | None = None,
    error: BaseException | None = None,
) -> None:
    """Emit one structured log line per finished task. Never log note content."""
    extra: dict[str, Any] = {
        "path": path,
        "action": action,
        "outcome": outcome,
        "points": points,
        "latency_ms": latency_ms,
    }
    if error_code is not None:
        extra["error_code"] = error_code
    if outcome == "done":
        logger.info("%s %s: %s points in %sms", action, path, points, latency_ms, extra=extra)
    else:
        logger.error(
            "%s %s failed after %sms [%s]: %s",
            action, path, latency_ms, error_code or "UNKNOWN", error, extra=extra,
        )
