"""Entry point tying the scheduler components to a host.

``DailySpread`` owns the schedule snapshot, the follow-up queue and the
stats aggregator for one process run. Hosts call ``start`` once, ask
``on_before_fetch`` about each feed (or hand a whole cycle to
``run_cycle``), and ``close`` it at the end of the run, typically through
``with``.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, tzinfo
import logging
from types import TracebackType
from typing import Self

from .config.schedule_config import (
    DEFAULT_FORCE_REFRESH_INTERVALS,
    DEFAULT_STALE_FOLLOWUP_INTERVALS,
    ScheduleConfig,
    ScheduleConfigUpdate,
    apply_schedule_update,
    load_schedule_config,
)
from .exceptions import ConfigStoreError
from .feeds import Feed, FeedSource
from .followup_queue import FollowupQueue
from .followup_reconciler import FollowupReconciler, ReconcileResult
from .logging_config import set_context_id
from .preview import TimingPreview, build_timing_preview
from .schedule import GateDecision, RefreshGate, wall_clock
from .stats import StatsAggregator
from .store import LAST_DISCOVERY_KEY, ConfigStore

logger = logging.getLogger(__name__)

DISCOVERY_INTERVAL_SECONDS = 3600


@dataclass
class CycleResult:
    """Decisions taken during one refresh cycle.

    Attributes:
        started_at: Epoch seconds the cycle was evaluated at.
        decisions: (feed id, decision) pairs in evaluation order; a feed
            handed over twice appears twice.
    """

    started_at: int
    decisions: list[tuple[int, GateDecision]] = field(
        default_factory=list[tuple[int, GateDecision]]
    )

    @property
    def allowed_feed_ids(self) -> list[int]:
        return [fid for fid, d in self.decisions if d.allows_fetch]

    @property
    def suppressed_feed_ids(self) -> list[int]:
        return [fid for fid, d in self.decisions if not d.allows_fetch]


class DailySpread:
    """Spread feed refreshes over the interval and queue follow-up fetches.

    Attributes:
        _store: Persisted configuration store.
        _feed_source: Lists the host's feeds for discovery and previews.
        _salt: Installation-wide slot salt.
        _clock: Source of the current epoch seconds.
        _queue: Pending follow-ups.
        _stats: Decision counters.
        _config: Schedule snapshot, set by ``start``.
        _gate: Gate bound to the current snapshot.
        _reconciler: Discovery bound to the current snapshot.
    """

    def __init__(
        self,
        store: ConfigStore,
        feed_source: FeedSource,
        salt: str = "",
        clock: Callable[[], int] = wall_clock,
        force_refresh_intervals: int = DEFAULT_FORCE_REFRESH_INTERVALS,
        stale_followup_intervals: int = DEFAULT_STALE_FOLLOWUP_INTERVALS,
    ):
        self._store = store
        self._feed_source = feed_source
        self._salt = salt
        self._clock = clock
        self._force_refresh_intervals = force_refresh_intervals
        self._stale_followup_intervals = stale_followup_intervals
        self._queue = FollowupQueue(store)
        self._stats = StatsAggregator(now=clock())
        self._config: ScheduleConfig | None = None
        self._gate: RefreshGate | None = None
        self._reconciler: FollowupReconciler | None = None
        self._closed = False
        logger.debug("DailySpread initialized.")

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def config(self) -> ScheduleConfig:
        if self._config is None:
            raise RuntimeError("DailySpread.start() must be called first.")
        return self._config

    @property
    def queue(self) -> FollowupQueue:
        return self._queue

    @property
    def stats(self) -> StatsAggregator:
        return self._stats

    @property
    def gate(self) -> RefreshGate:
        if self._gate is None:
            raise RuntimeError("DailySpread.start() must be called first.")
        return self._gate

    @property
    def reconciler(self) -> FollowupReconciler:
        if self._reconciler is None:
            raise RuntimeError("DailySpread.start() must be called first.")
        return self._reconciler

    def _load(self, now: int) -> None:
        """Take a fresh config snapshot and reload the queue against it."""
        config = load_schedule_config(
            self._store,
            force_refresh_intervals=self._force_refresh_intervals,
            stale_followup_intervals=self._stale_followup_intervals,
        )
        self._bind(config)
        self._queue.load_and_prune(now, config.stale_followup_after_seconds)

    def _bind(self, config: ScheduleConfig) -> None:
        self._config = config
        self._gate = RefreshGate(
            config, self._queue, self._stats, salt=self._salt, clock=self._clock
        )
        self._reconciler = FollowupReconciler(
            config, self._queue, self._feed_source, salt=self._salt
        )

    def start(self) -> None:
        """Load configuration and queue, then run throttled discovery."""
        now = self._clock()
        self._load(now)
        logger.info(
            "DailySpread started.",
            extra={
                "interval_hours": self.config.refresh_interval_hours,
                "followup_minutes": self.config.followup_minutes,
                "eligible_hosts": str(self.config.eligible_hosts),
                "pending_followups": len(self._queue),
            },
        )
        self.run_periodic_discovery(now)

    def on_before_fetch(self, feed: Feed) -> Feed | None:
        """Return the feed if it should be fetched now, None to skip it this cycle."""
        return self.gate.on_before_fetch(feed)

    def run_cycle(self, feeds: Iterable[Feed]) -> CycleResult:
        """Gate every feed of one host refresh cycle, then end the pass.

        Args:
            feeds: Feeds the host is about to refresh, in any order.

        Returns:
            The decision taken for each feed.
        """
        now = self._clock()
        set_context_id(f"cycle-{now}")
        result = CycleResult(started_at=now)
        for feed in feeds:
            result.decisions.append((feed.id, self.gate.evaluate(feed, now)))

        logger.info(
            "Refresh cycle evaluated.",
            extra={
                "feed_count": len(result.decisions),
                "allowed_count": len(result.allowed_feed_ids),
            },
        )
        self.end_pass(now)
        return result

    def end_pass(self, now: int | None = None) -> None:
        """Flush a dirty queue and let the stats flush if their period elapsed."""
        now = self._clock() if now is None else now
        self._queue.persist()
        self._stats.maybe_flush(now)

    def run_periodic_discovery(self, now: int | None = None) -> ReconcileResult | None:
        """Run discovery if it has not run within the last hour.

        Args:
            now: Current epoch seconds; defaults to the clock.

        Returns:
            The discovery result, or None if follow-ups are disabled or the
            pass was throttled.
        """
        now = self._clock() if now is None else now
        config = self.config
        if not config.followups_enabled:
            return None
        if now - config.last_discovery_at < DISCOVERY_INTERVAL_SECONDS:
            logger.debug(
                "Skipping discovery; ran recently.",
                extra={"last_discovery_at": config.last_discovery_at},
            )
            return None

        result = self.reconciler.reconcile(now, force_log=False)
        self._store.set(LAST_DISCOVERY_KEY, now)
        if not self._queue.persist():
            self._store.save()
        self._bind(config.model_copy(update={"last_discovery_at": now}))
        return result

    def update_configuration(self, update: ScheduleConfigUpdate) -> ScheduleConfig:
        """Apply an operator configuration change with immediate effect.

        Persists the queue, writes the new settings, reloads the snapshot,
        prunes against the new interval and runs discovery without throttling.

        Args:
            update: The validated change.

        Returns:
            The new schedule snapshot.
        """
        now = self._clock()
        self._queue.persist()
        apply_schedule_update(self._store, update)
        self._load(now)

        config = self.config
        logger.info(
            "Configuration updated.",
            extra={
                "interval_hours": config.refresh_interval_hours,
                "followup_minutes": config.followup_minutes,
                "eligible_hosts": str(config.eligible_hosts),
            },
        )
        if config.followups_enabled:
            self.reconciler.reconcile(now, force_log=True)
        self._queue.persist(force=True)
        return config

    def timing_preview(self, tz: tzinfo = UTC) -> TimingPreview:
        """Preview the next fetch of every managed feed.

        Raises:
            FeedListingError: If the feed set cannot be listed.
        """
        return build_timing_preview(
            self._feed_source.list_feeds(),
            self.config,
            self._queue,
            now=self._clock(),
            salt=self._salt,
            tz=tz,
        )

    def close(self) -> None:
        """Persist a dirty queue and force-flush the stats; safe to call twice."""
        if self._closed:
            return
        self._closed = True
        now = self._clock()
        try:
            self._queue.persist()
        except ConfigStoreError as e:
            logger.error("Failed to persist follow-up queue at shutdown.", exc_info=e)
        self._stats.flush(now, force=True)
