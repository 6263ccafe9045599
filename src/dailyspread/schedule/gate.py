"""Per-feed fetch gate.

The host asks the gate about every feed on every cycle. The gate answers
whether the fetch may proceed and keeps the follow-up queue and decision
counters current. Suppression is not sticky: a suppressed feed is simply
asked about again on the next cycle.
"""

from collections.abc import Callable
from enum import Enum
import logging
import time

from ..config.schedule_config import ScheduleConfig
from ..feeds.types import Feed, RefreshMode
from ..followup_queue import FollowupQueue
from ..stats import StatsAggregator, StatsCounter
from .slots import slot_for_feed
from .window import should_run_primary

logger = logging.getLogger(__name__)


def wall_clock() -> int:
    """Return the current time in whole epoch seconds."""
    return int(time.time())


class GateDecision(str, Enum):
    """Outcome of evaluating one feed."""

    UNMANAGED = "unmanaged"
    RUN_PRIMARY = "run_primary"
    RUN_FOLLOWUP = "run_followup"
    SKIP_NOT_DUE = "skip_not_due"
    SKIP_FOLLOWUP_PENDING = "skip_followup_pending"

    @property
    def allows_fetch(self) -> bool:
        return self in (
            GateDecision.UNMANAGED,
            GateDecision.RUN_PRIMARY,
            GateDecision.RUN_FOLLOWUP,
        )


class RefreshGate:
    """Decide, feed by feed, whether a fetch proceeds this cycle.

    Attributes:
        _config: Schedule snapshot in effect.
        _queue: Pending follow-ups.
        _stats: Decision counters.
        _salt: Installation-wide slot salt.
        _clock: Source of the current epoch seconds.
    """

    def __init__(
        self,
        config: ScheduleConfig,
        queue: FollowupQueue,
        stats: StatsAggregator,
        salt: str = "",
        clock: Callable[[], int] = wall_clock,
    ):
        self._config = config
        self._queue = queue
        self._stats = stats
        self._salt = salt
        self._clock = clock

    def slot(self, feed: Feed) -> int:
        return slot_for_feed(feed, self._salt, self._config.interval_seconds)

    def is_eligible_host(self, feed: Feed) -> bool:
        return self._config.eligible_hosts.matches(feed.url)

    def evaluate(self, feed: Feed, now: int) -> GateDecision:
        """Decide what happens to ``feed`` at ``now`` and record the outcome.

        Args:
            feed: The feed about to be refreshed by the host.
            now: Current epoch seconds.

        Returns:
            The decision; ``decision.allows_fetch`` tells whether to fetch.
        """
        if feed.refresh_mode != RefreshMode.DEFAULT:
            logger.debug(
                "Feed bypassed because it has a custom refresh mode.",
                extra={"feed_id": feed.id, "feed_name": feed.name},
            )
            return GateDecision.UNMANAGED

        due_at = self._queue.due_at(feed.id)
        if due_at is not None:
            if now >= due_at:
                self._queue.clear(feed.id)
                self._stats.record(StatsCounter.RSSHUB_FOLLOWUPS_EXECUTED)
                logger.debug(
                    "Follow-up due, allowing fetch.",
                    extra={
                        "feed_id": feed.id,
                        "feed_name": feed.name,
                        "due_at": due_at,
                    },
                )
                return GateDecision.RUN_FOLLOWUP
            self._stats.record(StatsCounter.RSSHUB_SKIPPED)
            return GateDecision.SKIP_FOLLOWUP_PENDING

        eligible = self.is_eligible_host(feed)
        if feed.last_update == 0:
            logger.debug(
                "Feed never updated, updating now.",
                extra={"feed_id": feed.id, "feed_name": feed.name},
            )

        if not should_run_primary(feed, now, self.slot(feed), self._config):
            self._stats.record(
                StatsCounter.RSSHUB_SKIPPED if eligible else StatsCounter.REGULAR_SKIPPED
            )
            return GateDecision.SKIP_NOT_DUE

        self._stats.record(
            StatsCounter.RSSHUB_REFRESHED if eligible else StatsCounter.REGULAR_REFRESHED
        )
        if (
            eligible
            and self._config.followup_delay_seconds > 0
            and not self._queue.is_pending(feed.id)
        ):
            if feed.id <= 0:
                logger.debug(
                    "Follow-up not queued; feed has no positive id.",
                    extra={"feed_id": feed.id, "feed_name": feed.name},
                )
            else:
                self._queue.schedule(
                    feed.id, now + self._config.followup_delay_seconds
                )
                self._stats.record(StatsCounter.RSSHUB_FOLLOWUPS_QUEUED)
        return GateDecision.RUN_PRIMARY

    def on_before_fetch(self, feed: Feed) -> Feed | None:
        """Host hook: return the feed to fetch it, or None to skip this cycle."""
        now = self._clock()
        decision = self.evaluate(feed, now)
        self._stats.maybe_flush(now)
        return feed if decision.allows_fetch else None
