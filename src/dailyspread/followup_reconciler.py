"""Follow-up discovery across the full feed set.

Follow-ups are normally queued as a side effect of a primary refresh. After
a restart, a configuration change or the addition of a feed no such refresh
may happen for a whole interval, so this module periodically walks every
eligible feed and backfills the missing entries.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
import logging

from .config.schedule_config import ScheduleConfig
from .exceptions import FeedListingError
from .feeds import FeedSource, RefreshMode
from .followup_queue import FollowupQueue
from .schedule import next_refresh_time, slot_for_feed

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one discovery pass.

    Attributes:
        scheduled: Follow-ups newly added to the queue.
        skipped: Eligible feeds that already had a follow-up.
        listing_failed: Whether the feed set could not be listed.
    """

    scheduled: int = 0
    skipped: int = 0
    listing_failed: bool = False


class FollowupReconciler:
    """Backfill follow-ups for eligible feeds that have none.

    Attributes:
        _config: Schedule snapshot in effect.
        _queue: Pending follow-ups.
        _feed_source: Lists the host's feeds.
        _salt: Installation-wide slot salt.
    """

    def __init__(
        self,
        config: ScheduleConfig,
        queue: FollowupQueue,
        feed_source: FeedSource,
        salt: str = "",
    ) -> None:
        self._config = config
        self._queue = queue
        self._feed_source = feed_source
        self._salt = salt

    def reconcile(self, now: int, force_log: bool = False) -> ReconcileResult:
        """Schedule a follow-up for every eligible feed lacking one.

        Each new follow-up lands ``followup_delay_seconds`` after the feed's
        next expected primary refresh. Feeds that already have an entry are
        left alone, so repeated passes never duplicate or move entries.

        Args:
            now: Current epoch seconds.
            force_log: Log the summary even if nothing was scheduled.

        Returns:
            Counts for the pass. A listing failure is logged and reported in
            the result rather than raised.
        """
        result = ReconcileResult()
        if not self._config.followups_enabled:
            return result

        try:
            feeds = self._feed_source.list_feeds()
        except FeedListingError as e:
            logger.warning("Error discovering follow-up feeds.", exc_info=e)
            result.listing_failed = True
            return result
        except Exception as e:
            # Host-supplied sources may fail in ways of their own
            logger.warning("Unexpected error listing feeds for discovery.", exc_info=e)
            result.listing_failed = True
            return result

        interval = self._config.interval_seconds
        delay = self._config.followup_delay_seconds
        for feed in feeds:
            if feed.refresh_mode != RefreshMode.DEFAULT:
                continue
            if not self._config.eligible_hosts.matches(feed.url):
                continue
            if feed.id <= 0:
                logger.debug(
                    "Skipping feed without a positive id.",
                    extra={"feed_id": feed.id, "feed_name": feed.name},
                )
                continue
            if self._queue.is_pending(feed.id):
                result.skipped += 1
                continue

            slot = slot_for_feed(feed, self._salt, interval)
            refresh_at = next_refresh_time(feed, now, slot, self._config)
            followup_at = refresh_at + delay
            self._queue.schedule(feed.id, followup_at)
            result.scheduled += 1

            logger.debug(
                "Auto-scheduled follow-up.",
                extra={
                    "feed_id": feed.id,
                    "feed_name": feed.name,
                    "next_refresh": datetime.fromtimestamp(refresh_at, UTC).isoformat(),
                    "followup_at": datetime.fromtimestamp(followup_at, UTC).isoformat(),
                },
            )

        if force_log or result.scheduled > 0:
            logger.info(
                "Discovered follow-up feeds.",
                extra={
                    "scheduled": result.scheduled,
                    "already_scheduled": result.skipped,
                },
            )
        return result
