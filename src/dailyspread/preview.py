"""Read-only preview of upcoming fetch times."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo

from .config.schedule_config import ScheduleConfig
from .feeds import Feed, RefreshMode
from .followup_queue import FollowupQueue
from .schedule import next_refresh_time, slot_for_feed

REGULAR_STATUS = "Single refresh (no follow-up)"


@dataclass(frozen=True)
class PreviewRow:
    """One managed feed in the preview.

    Attributes:
        feed_id: Feed identifier.
        feed_name: Feed display name.
        fetch_time: Epoch seconds of the next expected primary fetch.
        status: Human-readable follow-up status.
    """

    feed_id: int
    feed_name: str
    fetch_time: int
    status: str


@dataclass
class TimingPreview:
    """Managed feeds split by follow-up eligibility, each sorted by fetch time."""

    rsshub: list[PreviewRow] = field(default_factory=list[PreviewRow])
    regular: list[PreviewRow] = field(default_factory=list[PreviewRow])


def describe_followup_status(
    queue: FollowupQueue, feed_id: int, now: int, tz: tzinfo = UTC
) -> str:
    """Describe where an eligible feed stands in its follow-up cycle."""
    due_at = queue.due_at(feed_id)
    if due_at is None:
        return "Follow-up completed"
    if due_at <= now:
        return "Follow-up ready now"
    return f"Follow-up queued for {datetime.fromtimestamp(due_at, tz):%Y-%m-%d %H:%M}"


def build_timing_preview(
    feeds: Iterable[Feed],
    config: ScheduleConfig,
    queue: FollowupQueue,
    now: int,
    salt: str = "",
    tz: tzinfo = UTC,
) -> TimingPreview:
    """Compute the next fetch time and status of every managed feed.

    Args:
        feeds: The host's feeds; custom refresh mode feeds are left out.
        config: Schedule snapshot in effect.
        queue: Pending follow-ups.
        now: Current epoch seconds.
        salt: Installation-wide slot salt.
        tz: Timezone used to render queued follow-up times.

    Returns:
        The preview, split into follow-up-eligible and regular feeds.
    """
    preview = TimingPreview()
    for feed in feeds:
        if feed.refresh_mode != RefreshMode.DEFAULT:
            continue
        slot = slot_for_feed(feed, salt, config.interval_seconds)
        fetch_time = next_refresh_time(feed, now, slot, config)
        if config.eligible_hosts.matches(feed.url):
            status = describe_followup_status(queue, feed.id, now, tz)
            preview.rsshub.append(PreviewRow(feed.id, feed.name, fetch_time, status))
        else:
            preview.regular.append(
                PreviewRow(feed.id, feed.name, fetch_time, REGULAR_STATUS)
            )

    preview.rsshub.sort(key=lambda row: row.fetch_time)
    preview.regular.sort(key=lambda row: row.fetch_time)
    return preview
