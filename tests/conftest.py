"""Global pytest configuration for the test suite."""

from collections.abc import Iterator
import logging

import pytest

from dailyspread.logging_config import setup_logging


def pytest_configure() -> None:
    """Configure logging once for the whole session."""
    setup_logging(
        log_format_type="human", app_log_level_name="DEBUG", include_stacktrace=False
    )


@pytest.fixture
def now() -> int:
    """A fixed 'current time' shared by tests (2024-01-15 12:00:00 UTC)."""
    return 1_705_320_000


@pytest.fixture
def app_caplog(caplog: pytest.LogCaptureFixture) -> Iterator[pytest.LogCaptureFixture]:
    """Capture records from the non-propagating 'dailyspread' logger."""
    logger = logging.getLogger("dailyspread")
    logger.addHandler(caplog.handler)
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)
