"""Schedule tunables loaded from the persisted configuration store.

``ScheduleConfig`` is an immutable snapshot taken at start-up and replaced
only through the configuration-update path. Malformed or out-of-range stored
values are sanitized to defaults or clamped, never surfaced as errors.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..store import (
    FOLLOWUP_DELAY_KEY,
    FOLLOWUP_QUEUE_KEY,
    HOSTS_KEY,
    INTERVAL_KEY,
    LAST_DISCOVERY_KEY,
    ConfigStore,
)
from .types import EligibleHosts

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 86_400
MIN_INTERVAL_SECONDS = 3_600
DEFAULT_FOLLOWUP_DELAY_SECONDS = 600
DEFAULT_HOST_INPUT = "rsshub.app"

# Feeds idle this many intervals are refreshed regardless of their slot
DEFAULT_FORCE_REFRESH_INTERVALS = 2
# Follow-ups overdue by this many intervals are dropped as stale
DEFAULT_STALE_FOLLOWUP_INTERVALS = 2


def _coerce_int(value: Any, default: int) -> int:
    """Interpret a stored scalar as an int, falling back to ``default``."""
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default


class ScheduleConfig(BaseModel):
    """Snapshot of the scheduler's tunables.

    Attributes:
        interval_seconds: Target refresh interval per feed.
        followup_delay_seconds: Delay between a primary fetch and its follow-up;
            0 disables follow-ups.
        eligible_hosts: Hosts whose feeds get a follow-up fetch.
        last_discovery_at: Epoch seconds of the last periodic discovery pass.
        force_refresh_intervals: Idle intervals after which a feed is refreshed
            regardless of its slot.
        stale_followup_intervals: Intervals after which an overdue follow-up is
            pruned as stale.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    interval_seconds: int = Field(
        default=DEFAULT_INTERVAL_SECONDS, ge=MIN_INTERVAL_SECONDS
    )
    followup_delay_seconds: int = Field(default=DEFAULT_FOLLOWUP_DELAY_SECONDS, ge=0)
    eligible_hosts: EligibleHosts = Field(
        default_factory=lambda: EligibleHosts(DEFAULT_HOST_INPUT)
    )
    last_discovery_at: int = Field(default=0, ge=0)
    force_refresh_intervals: int = Field(default=DEFAULT_FORCE_REFRESH_INTERVALS, ge=1)
    stale_followup_intervals: int = Field(
        default=DEFAULT_STALE_FOLLOWUP_INTERVALS, ge=1
    )

    @property
    def followups_enabled(self) -> bool:
        """Whether any feed can receive a follow-up fetch."""
        return self.followup_delay_seconds > 0 and bool(self.eligible_hosts)

    @property
    def force_refresh_after_seconds(self) -> int:
        return self.force_refresh_intervals * self.interval_seconds

    @property
    def stale_followup_after_seconds(self) -> int:
        return self.stale_followup_intervals * self.interval_seconds

    @property
    def refresh_interval_hours(self) -> int:
        """Interval rounded to whole hours for display, at least 1."""
        return max(1, round(self.interval_seconds / 3600))

    @property
    def followup_minutes(self) -> int:
        """Follow-up delay rounded to whole minutes for display; 0 when disabled."""
        if self.followup_delay_seconds == 0:
            return 0
        return max(1, round(self.followup_delay_seconds / 60))


class ScheduleConfigUpdate(BaseModel):
    """Operator-supplied configuration change.

    Attributes:
        interval_hours: New refresh interval in hours.
        followup_delay_minutes: New follow-up delay in minutes; 0 disables follow-ups.
        host_list: Newline or comma separated eligible hosts.
    """

    interval_hours: int = Field(..., ge=1)
    followup_delay_minutes: int = Field(..., ge=0)
    host_list: str = Field(default="")


def _ensure_defaults(store: ConfigStore) -> None:
    """Write defaults for any missing key, saving once if anything changed."""
    defaults: dict[str, Any] = {
        INTERVAL_KEY: DEFAULT_INTERVAL_SECONDS,
        HOSTS_KEY: DEFAULT_HOST_INPUT,
        FOLLOWUP_DELAY_KEY: DEFAULT_FOLLOWUP_DELAY_SECONDS,
        FOLLOWUP_QUEUE_KEY: {},
    }
    missing = [key for key in defaults if not store.has_key(key)]
    for key in missing:
        store.set(key, defaults[key])
    if missing:
        store.save()
        logger.debug("Initialized missing schedule settings.", extra={"keys": missing})


def load_schedule_config(
    store: ConfigStore,
    force_refresh_intervals: int = DEFAULT_FORCE_REFRESH_INTERVALS,
    stale_followup_intervals: int = DEFAULT_STALE_FOLLOWUP_INTERVALS,
) -> ScheduleConfig:
    """Read and sanitize the schedule settings from the store.

    Args:
        store: The persisted configuration store.
        force_refresh_intervals: Idle intervals before a forced refresh.
        stale_followup_intervals: Overdue intervals before a follow-up is pruned.

    Returns:
        A validated, immutable ScheduleConfig.
    """
    _ensure_defaults(store)

    interval = _coerce_int(store.get(INTERVAL_KEY), DEFAULT_INTERVAL_SECONDS)
    delay = _coerce_int(store.get(FOLLOWUP_DELAY_KEY), DEFAULT_FOLLOWUP_DELAY_SECONDS)
    last_discovery = _coerce_int(store.get(LAST_DISCOVERY_KEY), 0)
    host_input = store.get(HOSTS_KEY)
    if not isinstance(host_input, str):
        host_input = DEFAULT_HOST_INPUT

    config = ScheduleConfig(
        interval_seconds=max(MIN_INTERVAL_SECONDS, interval),
        followup_delay_seconds=max(0, delay),
        eligible_hosts=EligibleHosts(host_input),
        last_discovery_at=max(0, last_discovery),
        force_refresh_intervals=force_refresh_intervals,
        stale_followup_intervals=stale_followup_intervals,
    )
    logger.debug(
        "Schedule configuration loaded.",
        extra={
            "interval_seconds": config.interval_seconds,
            "followup_delay_seconds": config.followup_delay_seconds,
            "eligible_hosts": list(config.eligible_hosts.hosts),
        },
    )
    return config


def apply_schedule_update(store: ConfigStore, update: ScheduleConfigUpdate) -> None:
    """Write an operator update to the store and save it.

    Args:
        store: The persisted configuration store.
        update: The validated update.
    """
    store.set(INTERVAL_KEY, update.interval_hours * 3600)
    store.set(FOLLOWUP_DELAY_KEY, update.followup_delay_minutes * 60)
    store.set(HOSTS_KEY, update.host_list.strip())
    store.save()
