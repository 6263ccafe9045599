"""Refresh window arithmetic.

Each feed's timeline is cut into windows of ``interval_seconds`` starting
at its slot. A feed is due once the current window index is past the index
of its last successful update.
"""

from ..config.schedule_config import ScheduleConfig
from ..feeds.types import Feed

# Window index of timestamps that never happened; below any real window
NEVER_WINDOW = -1_000_000_000


def window_index(timestamp: int, slot: int, interval_seconds: int) -> int:
    """Return the index of the window containing ``timestamp``."""
    if timestamp <= 0:
        return NEVER_WINDOW
    return (timestamp - slot) // interval_seconds


def _is_due(feed: Feed, now: int, slot: int, config: ScheduleConfig) -> bool:
    if feed.last_update == 0:
        return True
    if now - feed.last_update >= config.force_refresh_after_seconds:
        return True
    interval = config.interval_seconds
    return window_index(now, slot, interval) > window_index(
        feed.last_update, slot, interval
    )


def should_run_primary(feed: Feed, now: int, slot: int, config: ScheduleConfig) -> bool:
    """Decide whether a feed's primary refresh should run at ``now``.

    Runs on a cold start (never updated), as a forced catch-up once the feed
    has been idle for ``force_refresh_intervals`` full intervals, or when a
    new window began since the last update.

    Args:
        feed: The feed being evaluated.
        now: Current epoch seconds.
        slot: The feed's slot within the interval.
        config: Current schedule snapshot.

    Returns:
        True if the fetch should proceed.
    """
    return _is_due(feed, now, slot, config)


def next_refresh_time(feed: Feed, now: int, slot: int, config: ScheduleConfig) -> int:
    """Return when the feed's next primary refresh is expected.

    Args:
        feed: The feed being evaluated.
        now: Current epoch seconds.
        slot: The feed's slot within the interval.
        config: Current schedule snapshot.

    Returns:
        ``now`` if the feed is already due, otherwise the start of its next window.
    """
    if _is_due(feed, now, slot, config):
        return now
    interval = config.interval_seconds
    return slot + (window_index(now, slot, interval) + 1) * interval
