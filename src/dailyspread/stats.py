"""Aggregated decision counters, logged as one summary line per period."""

from dataclasses import asdict, dataclass
from enum import Enum
import logging

logger = logging.getLogger(__name__)

STATS_FLUSH_INTERVAL_SECONDS = 3600


class StatsCounter(str, Enum):
    """Names of the counters kept by ``FeedStats``."""

    REGULAR_SKIPPED = "regular_skipped"
    REGULAR_REFRESHED = "regular_refreshed"
    RSSHUB_SKIPPED = "rsshub_skipped"
    RSSHUB_REFRESHED = "rsshub_refreshed"
    RSSHUB_FOLLOWUPS_EXECUTED = "rsshub_followups_executed"
    RSSHUB_FOLLOWUPS_QUEUED = "rsshub_followups_queued"


# Summary wording, in the order counters appear in the log line
_SUMMARY_LABELS: dict[StatsCounter, str] = {
    StatsCounter.REGULAR_SKIPPED: "regular feed(s) skipped (not their slot)",
    StatsCounter.REGULAR_REFRESHED: "regular feed(s) refreshed",
    StatsCounter.RSSHUB_SKIPPED: "RSSHub feed(s) skipped (not their slot)",
    StatsCounter.RSSHUB_REFRESHED: "RSSHub feed(s) refreshed",
    StatsCounter.RSSHUB_FOLLOWUPS_QUEUED: "RSSHub follow-up(s) queued",
    StatsCounter.RSSHUB_FOLLOWUPS_EXECUTED: "RSSHub follow-up(s) executed",
}


@dataclass
class FeedStats:
    """Counters accumulated since the last flush.

    Attributes:
        regular_skipped: Non-eligible feeds suppressed outside their window.
        regular_refreshed: Non-eligible feeds allowed a primary fetch.
        rsshub_skipped: Eligible feeds suppressed (outside window or awaiting follow-up).
        rsshub_refreshed: Eligible feeds allowed a primary fetch.
        rsshub_followups_executed: Follow-up fetches allowed.
        rsshub_followups_queued: Follow-ups scheduled by the gate.
        last_flush_at: Epoch seconds of the last flush.
    """

    regular_skipped: int = 0
    regular_refreshed: int = 0
    rsshub_skipped: int = 0
    rsshub_refreshed: int = 0
    rsshub_followups_executed: int = 0
    rsshub_followups_queued: int = 0
    last_flush_at: int = 0

    def counters(self) -> dict[str, int]:
        """Return the six counters, without the flush timestamp."""
        values = asdict(self)
        del values["last_flush_at"]
        return values

    @property
    def total(self) -> int:
        return sum(self.counters().values())


class StatsAggregator:
    """Owned accumulator for gate decisions.

    Attributes:
        _stats: Current counters.
        _flush_interval: Minimum seconds between timed flushes.
    """

    def __init__(
        self, now: int, flush_interval: int = STATS_FLUSH_INTERVAL_SECONDS
    ) -> None:
        self._stats = FeedStats(last_flush_at=now)
        self._flush_interval = flush_interval

    @property
    def total(self) -> int:
        return self._stats.total

    def snapshot(self) -> FeedStats:
        return FeedStats(**asdict(self._stats))

    def record(self, counter: StatsCounter) -> None:
        name = counter.value
        setattr(self._stats, name, getattr(self._stats, name) + 1)

    def reset(self, now: int) -> None:
        self._stats = FeedStats(last_flush_at=now)

    def maybe_flush(self, now: int) -> bool:
        """Flush if more than the flush interval passed since the last one."""
        return self.flush(now, force=False)

    def flush(self, now: int, force: bool = False) -> bool:
        """Log a summary of non-zero counters and reset them.

        Args:
            now: Current epoch seconds.
            force: Flush regardless of the time since the last flush.

        Returns:
            True if a summary was logged.
        """
        elapsed = now - self._stats.last_flush_at
        if not force and elapsed <= self._flush_interval:
            return False
        if self._stats.total == 0:
            return False

        counters = self._stats.counters()
        parts = [
            f"{counters[counter.value]} {label}"
            for counter, label in _SUMMARY_LABELS.items()
            if counters[counter.value] > 0
        ]
        period = (
            f"last {max(1, round(elapsed / 60))} minute(s)"
            if elapsed > 0
            else "current period"
        )
        logger.info(
            "Feed refresh summary.",
            extra={
                "period": period,
                "summary": ", ".join(parts),
                **{k: v for k, v in counters.items() if v > 0},
            },
        )
        self.reset(now)
        return True
