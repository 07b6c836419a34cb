"""Collection and summary of per-image sync outcomes."""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from .core.types import REPORT_ALL, REPORT_CHANGES, REPORT_FAILURES
from .models import SyncOutcome, SyncStatus

logger = logging.getLogger(__name__)

Sink = Callable[[SyncOutcome], Awaitable[None]]

_LEVEL_STATUSES = {
    REPORT_FAILURES: {
        SyncStatus.FAILED_FETCH,
        SyncStatus.FAILED_COPY,
        SyncStatus.FAILED_PERSIST,
    },
    REPORT_CHANGES: {
        SyncStatus.FAILED_FETCH,
        SyncStatus.FAILED_COPY,
        SyncStatus.FAILED_PERSIST,
        SyncStatus.SYNCED,
    },
    REPORT_ALL: set(SyncStatus),
}


@dataclass
class ReportSummary:
    """Aggregated outcomes of a run."""

    counts: Counter = field(default_factory=Counter)
    reported: list[SyncOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def failures(self) -> list[SyncOutcome]:
        return [outcome for outcome in self.reported if outcome.status.failed]

    def count(self, outcome: SyncOutcome) -> None:
        self.counts[outcome.status] += 1

    def render(self) -> str:
        """Plain-text summary for terminals and notifications."""
        lines = [f"Total: {self.total}"]
        for status in SyncStatus:
            lines.append(f"  {status.value}: {self.counts[status]}")
        for outcome in self.reported:
            lines.append(f"- {outcome}")
        return "\n".join(lines)


class Reporter:
    """Multi-producer, single-consumer intake of sync outcomes.

    Workers call ``emit``; one consumer task drains the bounded queue into a
    ``ReportSummary`` and the optional sink. When reporting is disabled,
    outcomes are only logged.
    """

    def __init__(
        self,
        enabled: bool = False,
        level: int = REPORT_FAILURES,
        maxsize: int = 1,
        sink: Sink | None = None,
    ) -> None:
        self.enabled = enabled
        self.level = level
        self.sink = sink
        self.summary = ReportSummary()
        self._queue: asyncio.Queue[SyncOutcome | None] = asyncio.Queue(
            maxsize=max(1, maxsize)
        )
        self._consumer: asyncio.Task | None = None

    async def __aenter__(self) -> "Reporter":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def start(self) -> None:
        if self.enabled and self._consumer is None:
            self._consumer = asyncio.create_task(self._consume(), name="imgsync-reporter")

    async def emit(self, outcome: SyncOutcome) -> None:
        """Log an outcome and queue it for the consumer."""
        if outcome.status.failed:
            logger.error(f"Failed to sync {outcome}")
        elif outcome.status is SyncStatus.SKIPPED_UNCHANGED:
            logger.debug(f"Image {outcome.image} not changed, skip sync")
        else:
            logger.info(f"Synced {outcome}")
        self.summary.count(outcome)

        if not self.enabled:
            return
        await self._queue.put(outcome)

    async def close(self) -> ReportSummary:
        """Drain the queue and stop the consumer."""
        if self._consumer is not None:
            await self._queue.put(None)
            await self._consumer
            self._consumer = None
        return self.summary

    async def _consume(self) -> None:
        allowed = _LEVEL_STATUSES.get(self.level, _LEVEL_STATUSES[REPORT_FAILURES])
        while True:
            outcome = await self._queue.get()
            if outcome is None:
                return
            if outcome.status not in allowed:
                continue
            self.summary.reported.append(outcome)
            if self.sink is not None:
                try:
                    await self.sink(outcome)
                except Exception as e:
                    logger.error(f"Failed to report {outcome.image}: {e}")
