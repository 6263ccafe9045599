"""Tests for the decision counters and their periodic summary."""

import pytest

from dailyspread.stats import STATS_FLUSH_INTERVAL_SECONDS, StatsAggregator, StatsCounter


@pytest.fixture
def aggregator(now: int) -> StatsAggregator:
    return StatsAggregator(now=now)


@pytest.mark.unit
def test_record_increments_named_counter(aggregator: StatsAggregator):
    """Each record bumps exactly one counter."""
    aggregator.record(StatsCounter.REGULAR_SKIPPED)
    aggregator.record(StatsCounter.REGULAR_SKIPPED)
    aggregator.record(StatsCounter.RSSHUB_FOLLOWUPS_QUEUED)

    snapshot = aggregator.snapshot()
    assert snapshot.regular_skipped == 2
    assert snapshot.rsshub_followups_queued == 1
    assert aggregator.total == 3


@pytest.mark.unit
def test_snapshot_is_a_copy(aggregator: StatsAggregator):
    """Mutating a snapshot does not affect the aggregator."""
    snapshot = aggregator.snapshot()
    snapshot.regular_refreshed = 99

    assert aggregator.snapshot().regular_refreshed == 0


@pytest.mark.unit
def test_maybe_flush_waits_for_the_interval(aggregator: StatsAggregator, now: int):
    """No flush until more than an hour has passed."""
    aggregator.record(StatsCounter.REGULAR_REFRESHED)

    assert not aggregator.maybe_flush(now + STATS_FLUSH_INTERVAL_SECONDS)
    assert aggregator.total == 1

    assert aggregator.maybe_flush(now + STATS_FLUSH_INTERVAL_SECONDS + 1)
    assert aggregator.total == 0


@pytest.mark.unit
def test_flush_resets_and_stamps(aggregator: StatsAggregator, now: int):
    """After a flush every counter is zero and the flush time recorded."""
    for counter in StatsCounter:
        aggregator.record(counter)

    assert aggregator.flush(now + 10, force=True)

    snapshot = aggregator.snapshot()
    assert all(value == 0 for value in snapshot.counters().values())
    assert snapshot.last_flush_at == now + 10


@pytest.mark.unit
def test_flush_with_zero_counters_is_noop(
    aggregator: StatsAggregator, now: int, app_caplog: pytest.LogCaptureFixture
):
    """Nothing to report: no log line and no new flush stamp."""
    assert not aggregator.flush(now + 7_200, force=True)

    assert aggregator.snapshot().last_flush_at == now
    assert not [r for r in app_caplog.records if r.name == "dailyspread.stats"]


@pytest.mark.unit
def test_flush_logs_non_zero_counters(
    aggregator: StatsAggregator, now: int, app_caplog: pytest.LogCaptureFixture
):
    """The summary lists only non-zero counters, with the elapsed period."""
    aggregator.record(StatsCounter.RSSHUB_REFRESHED)
    aggregator.record(StatsCounter.RSSHUB_FOLLOWUPS_EXECUTED)
    aggregator.record(StatsCounter.RSSHUB_FOLLOWUPS_EXECUTED)

    aggregator.flush(now + 1_800, force=True)

    records = [r for r in app_caplog.records if r.name == "dailyspread.stats"]
    assert len(records) == 1
    record = records[0]
    assert record.getMessage() == "Feed refresh summary."
    assert record.period == "last 30 minute(s)"  # type: ignore[attr-defined]
    assert record.summary == (  # type: ignore[attr-defined]
        "1 RSSHub feed(s) refreshed, 2 RSSHub follow-up(s) executed"
    )
    assert "regular_skipped" not in record.__dict__
