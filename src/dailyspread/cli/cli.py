"""Command-line interface entry points for DailySpread.

One invocation runs one mode against the YAML state file and feed snapshot:
``cycle`` gates every feed once and prints the ids allowed to fetch,
``preview`` prints the upcoming fetch times and ``configure`` applies a new
interval, follow-up delay and host list.
"""

from datetime import UTC, datetime, tzinfo
import logging

from pydantic import ValidationError

from ..config import AppSettings, RunMode, ScheduleConfigUpdate
from ..exceptions import DailySpreadError
from ..feeds import YamlFeedSource
from ..logging_config import setup_logging
from ..preview import PreviewRow
from ..spreader import DailySpread
from ..store import YamlConfigStore

logger = logging.getLogger(__name__)


def _print_rows(title: str, rows: list[PreviewRow], tz: tzinfo) -> None:
    print(f"{title} ({len(rows)})")
    for row in rows:
        when = datetime.fromtimestamp(row.fetch_time, tz).strftime("%Y-%m-%d %H:%M")
        print(f"  {when}  #{row.feed_id:<6} {row.feed_name}  [{row.status}]")


def run_cycle_mode(spread: DailySpread, feed_source: YamlFeedSource) -> None:
    """Gate every feed once and print the ids allowed to fetch."""
    result = spread.run_cycle(feed_source.list_feeds())
    for feed_id in result.allowed_feed_ids:
        print(feed_id)


def run_preview_mode(spread: DailySpread, tz: tzinfo) -> None:
    """Print the timing preview for every managed feed."""
    preview = spread.timing_preview(tz)
    _print_rows("Follow-up feeds", preview.rsshub, tz)
    _print_rows("Regular feeds", preview.regular, tz)


def run_configure_mode(spread: DailySpread, settings: AppSettings) -> None:
    """Apply the interval, delay and host list given on the command line.

    Raises:
        ValueError: If a required configure input is missing or invalid.
    """
    if settings.interval_hours is None or settings.followup_delay_minutes is None:
        raise ValueError(
            "configure mode requires INTERVAL_HOURS and FOLLOWUP_DELAY_MINUTES"
        )
    host_list = (
        settings.host_list
        if settings.host_list is not None
        else spread.config.eligible_hosts.host_input
    )
    update = ScheduleConfigUpdate(
        interval_hours=settings.interval_hours,
        followup_delay_minutes=settings.followup_delay_minutes,
        host_list=host_list,
    )
    spread.update_configuration(update)


def main_cli() -> int:
    """Initialize and run DailySpread based on settings.

    Returns:
        Process exit code.
    """
    settings = AppSettings()  # type: ignore

    setup_logging(
        log_format_type=settings.log_format,
        app_log_level_name=settings.log_level,
        include_stacktrace=settings.log_include_stacktrace,
    )
    logger.debug(
        "Application settings loaded.",
        extra={
            "mode": settings.mode.value,
            "state_file": str(settings.state_file),
            "feeds_file": str(settings.feeds_file),
        },
    )

    tz: tzinfo = settings.tz or UTC
    feed_source = YamlFeedSource(settings.feeds_file)
    try:
        store = YamlConfigStore(settings.state_file)
        with DailySpread(store, feed_source, salt=settings.salt) as spread:
            match settings.mode:
                case RunMode.CYCLE:
                    run_cycle_mode(spread, feed_source)
                case RunMode.PREVIEW:
                    run_preview_mode(spread, tz)
                case RunMode.CONFIGURE:
                    run_configure_mode(spread, settings)
    except (DailySpreadError, ValidationError, ValueError) as e:
        logger.error(
            "DailySpread run failed.", extra={"mode": settings.mode.value}, exc_info=e
        )
        return 1
    return 0
