# pyright: reportPrivateUsage=false

"""Tests for the DailySpread entry point."""

from unittest.mock import MagicMock

import pytest

from dailyspread.config import ScheduleConfigUpdate
from dailyspread.exceptions import ConfigStoreError, FeedListingError
from dailyspread.feeds import FeedRecord, FeedSource
from dailyspread.schedule import GateDecision
from dailyspread.spreader import DISCOVERY_INTERVAL_SECONDS, DailySpread
from dailyspread.store import (
    FOLLOWUP_DELAY_KEY,
    FOLLOWUP_QUEUE_KEY,
    HOSTS_KEY,
    INTERVAL_KEY,
    LAST_DISCOVERY_KEY,
    MemoryConfigStore,
)

INTERVAL = 86_400


class _Clock:
    """Settable clock."""

    def __init__(self, now: int):
        self.now = now

    def __call__(self) -> int:
        return self.now


# --- Fixtures ---


@pytest.fixture
def clock(now: int) -> _Clock:
    return _Clock(now)


@pytest.fixture
def store() -> MemoryConfigStore:
    return MemoryConfigStore()


@pytest.fixture
def feeds() -> list[FeedRecord]:
    return [
        FeedRecord(id=1, url="https://rsshub.app/a", name="Hub A"),
        FeedRecord(id=2, url="https://example.com/b", name="Regular B"),
    ]


@pytest.fixture
def mock_feed_source(feeds: list[FeedRecord]) -> MagicMock:
    source = MagicMock(spec=FeedSource)
    source.list_feeds.return_value = feeds
    return source


@pytest.fixture
def spread(
    store: MemoryConfigStore, mock_feed_source: MagicMock, clock: _Clock
) -> DailySpread:
    return DailySpread(store, mock_feed_source, salt="s", clock=clock)


# --- start ---


@pytest.mark.unit
def test_accessors_require_start(spread: DailySpread):
    """Config-bound parts are unavailable until start."""
    with pytest.raises(RuntimeError):
        _ = spread.config
    with pytest.raises(RuntimeError):
        _ = spread.gate
    with pytest.raises(RuntimeError):
        _ = spread.reconciler


@pytest.mark.unit
def test_start_writes_defaults_and_discovers(
    spread: DailySpread, store: MemoryConfigStore, mock_feed_source: MagicMock, now: int
):
    """First start initializes the store and backfills follow-ups."""
    spread.start()

    assert store.get(INTERVAL_KEY) == INTERVAL
    assert store.get(FOLLOWUP_DELAY_KEY) == 600
    assert store.get(HOSTS_KEY) == "rsshub.app"
    assert store.get(LAST_DISCOVERY_KEY) == now
    assert spread.config.last_discovery_at == now

    mock_feed_source.list_feeds.assert_called_once_with()
    assert store.get(FOLLOWUP_QUEUE_KEY) == {1: now + 600}


@pytest.mark.unit
def test_start_prunes_stale_followups(mock_feed_source: MagicMock, clock: _Clock, now: int):
    """Entries overdue by two intervals are dropped on start."""
    store = MemoryConfigStore(
        {
            FOLLOWUP_QUEUE_KEY: {7: now - 2 * INTERVAL - 1, 8: now - 5},
            LAST_DISCOVERY_KEY: now - 60,
        }
    )
    spread = DailySpread(store, mock_feed_source, clock=clock)

    spread.start()

    assert dict(spread.queue.items()) == {8: now - 5}
    assert store.get(FOLLOWUP_QUEUE_KEY) == {8: now - 5}


@pytest.mark.unit
def test_discovery_is_throttled(
    spread: DailySpread, mock_feed_source: MagicMock, clock: _Clock, now: int
):
    """Discovery runs at most once per hour."""
    spread.start()
    mock_feed_source.list_feeds.reset_mock()

    clock.now = now + DISCOVERY_INTERVAL_SECONDS - 1
    assert spread.run_periodic_discovery() is None
    mock_feed_source.list_feeds.assert_not_called()

    clock.now = now + DISCOVERY_INTERVAL_SECONDS
    result = spread.run_periodic_discovery()
    assert result is not None
    assert result.skipped == 1
    mock_feed_source.list_feeds.assert_called_once_with()


@pytest.mark.unit
def test_discovery_listing_failure_still_stamps(
    spread: DailySpread, mock_feed_source: MagicMock, store: MemoryConfigStore, now: int
):
    """A failed listing does not make every subsequent cycle retry it."""
    mock_feed_source.list_feeds.side_effect = FeedListingError("boom", source="test")

    spread.start()

    assert store.get(LAST_DISCOVERY_KEY) == now
    assert len(spread.queue) == 0


@pytest.mark.unit
def test_start_skips_discovery_when_disabled(mock_feed_source: MagicMock, clock: _Clock):
    """With follow-ups disabled the feed set is never listed."""
    store = MemoryConfigStore({FOLLOWUP_DELAY_KEY: 0})
    spread = DailySpread(store, mock_feed_source, clock=clock)

    spread.start()

    assert not spread.config.followups_enabled
    mock_feed_source.list_feeds.assert_not_called()
    assert not store.has_key(LAST_DISCOVERY_KEY)


# --- cycles ---


@pytest.mark.unit
def test_run_cycle_gates_each_feed_and_persists(
    mock_feed_source: MagicMock, feeds: list[FeedRecord], clock: _Clock, now: int
):
    """Never-updated feeds run; the queued follow-up is saved at end of pass."""
    store = MemoryConfigStore({LAST_DISCOVERY_KEY: now})
    spread = DailySpread(store, mock_feed_source, clock=clock)
    spread.start()

    result = spread.run_cycle(feeds)

    assert result.started_at == now
    assert result.decisions == [
        (1, GateDecision.RUN_PRIMARY),
        (2, GateDecision.RUN_PRIMARY),
    ]
    assert result.allowed_feed_ids == [1, 2]
    assert result.suppressed_feed_ids == []
    assert store.get(FOLLOWUP_QUEUE_KEY) == {1: now + 600}
    assert not spread.queue.dirty


@pytest.mark.unit
def test_followup_runs_on_a_later_cycle(
    spread: DailySpread, feeds: list[FeedRecord], clock: _Clock, now: int
):
    """A follow-up queued by discovery is suppressed, then released once due."""
    spread.start()
    refreshed = [feed.model_copy(update={"last_update": now}) for feed in feeds]

    clock.now = now + 300
    early = spread.run_cycle(refreshed)
    assert dict(early.decisions)[1] == GateDecision.SKIP_FOLLOWUP_PENDING
    assert spread.stats.snapshot().rsshub_skipped == 1

    clock.now = now + 600
    due = spread.run_cycle(refreshed)
    assert dict(due.decisions)[1] == GateDecision.RUN_FOLLOWUP
    assert not spread.queue.is_pending(1)


@pytest.mark.unit
def test_on_before_fetch_delegates_to_gate(spread: DailySpread, feeds: list[FeedRecord]):
    spread.start()

    assert spread.on_before_fetch(feeds[1]) is feeds[1]


# --- configuration ---


@pytest.mark.unit
def test_update_configuration_takes_effect(
    spread: DailySpread, store: MemoryConfigStore, mock_feed_source: MagicMock, now: int
):
    """New settings are saved, reloaded and discovery is rerun unthrottled."""
    spread.start()
    spread.queue.clear(1)
    mock_feed_source.list_feeds.reset_mock()
    saves_before = store.save_count

    config = spread.update_configuration(
        ScheduleConfigUpdate(
            interval_hours=12, followup_delay_minutes=15, host_list="example.com"
        )
    )

    assert config.interval_seconds == 12 * 3600
    assert config.followup_delay_seconds == 900
    assert config.eligible_hosts.hosts == ("example.com",)
    assert spread.config is config
    assert store.get(INTERVAL_KEY) == 12 * 3600
    assert store.get(HOSTS_KEY) == "example.com"

    mock_feed_source.list_feeds.assert_called_once_with()
    assert dict(spread.queue.items()) == {2: now + 900}
    assert store.get(FOLLOWUP_QUEUE_KEY) == {2: now + 900}
    assert store.save_count > saves_before


@pytest.mark.unit
def test_update_configuration_can_disable_followups(
    spread: DailySpread, mock_feed_source: MagicMock
):
    spread.start()
    mock_feed_source.list_feeds.reset_mock()

    config = spread.update_configuration(
        ScheduleConfigUpdate(interval_hours=24, followup_delay_minutes=0)
    )

    assert not config.followups_enabled
    mock_feed_source.list_feeds.assert_not_called()


# --- preview ---


@pytest.mark.unit
def test_timing_preview_lists_managed_feeds(spread: DailySpread):
    spread.start()

    preview = spread.timing_preview()

    assert [row.feed_id for row in preview.rsshub] == [1]
    assert [row.feed_id for row in preview.regular] == [2]


@pytest.mark.unit
def test_timing_preview_propagates_listing_errors(
    spread: DailySpread, mock_feed_source: MagicMock
):
    spread.start()
    mock_feed_source.list_feeds.side_effect = FeedListingError("boom", source="test")

    with pytest.raises(FeedListingError):
        spread.timing_preview()


# --- shutdown ---


@pytest.mark.unit
def test_close_persists_and_flushes(
    mock_feed_source: MagicMock, feeds: list[FeedRecord], clock: _Clock, now: int
):
    """Closing saves a dirty queue and resets the counters."""
    store = MemoryConfigStore({LAST_DISCOVERY_KEY: now})
    spread = DailySpread(store, mock_feed_source, clock=clock)
    spread.start()
    spread.gate.evaluate(feeds[0], now)
    assert spread.queue.dirty
    assert spread.stats.total > 0

    spread.close()
    spread.close()

    assert store.get(FOLLOWUP_QUEUE_KEY) == {1: now + 600}
    assert not spread.queue.dirty
    assert spread.stats.total == 0


@pytest.mark.unit
def test_close_logs_store_failures(
    spread: DailySpread,
    store: MemoryConfigStore,
    app_caplog: pytest.LogCaptureFixture,
    now: int,
):
    """A failing save at shutdown is logged, not raised."""
    spread.start()
    spread.queue.schedule(9, now + 60)
    store.save = MagicMock(side_effect=ConfigStoreError("disk full", store_path="x"))

    spread.close()

    errors = [r for r in app_caplog.records if r.levelname == "ERROR"]
    assert len(errors) == 1


@pytest.mark.unit
def test_context_manager_starts_and_closes(
    store: MemoryConfigStore, mock_feed_source: MagicMock, clock: _Clock, now: int
):
    with DailySpread(store, mock_feed_source, clock=clock) as spread:
        assert spread.config.interval_seconds == INTERVAL
        spread.queue.schedule(5, now + 60)

    assert store.get(FOLLOWUP_QUEUE_KEY)[5] == now + 60


@pytest.mark.unit
def test_run_cycle_keeps_repeated_feed_ids(
    mock_feed_source: MagicMock, feeds: list[FeedRecord], clock: _Clock, now: int
):
    """A feed handed over twice in one cycle is reported twice."""
    store = MemoryConfigStore({LAST_DISCOVERY_KEY: now})
    spread = DailySpread(store, mock_feed_source, clock=clock)
    spread.start()

    result = spread.run_cycle([feeds[0], feeds[0]])

    assert result.decisions == [
        (1, GateDecision.RUN_PRIMARY),
        (1, GateDecision.SKIP_FOLLOWUP_PENDING),
    ]
    assert result.allowed_feed_ids == [1]
    assert result.suppressed_feed_ids == [1]


@pytest.mark.unit
def test_start_survives_unexpected_source_errors(
    spread: DailySpread, mock_feed_source: MagicMock, store: MemoryConfigStore, now: int
):
    """Host-side faults other than listing errors do not escape start."""
    mock_feed_source.list_feeds.side_effect = RuntimeError("db down")

    spread.start()

    assert store.get(LAST_DISCOVERY_KEY) == now
    assert len(spread.queue) == 0
