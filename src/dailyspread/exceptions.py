"""Custom exceptions for the DailySpread scheduler.

The scheduling core itself never raises; these errors surface from the
collaborators around it (the persisted configuration store, the feed source
and the process-level settings) and carry structured attributes that the
logging setup renders as extras.
"""


class DailySpreadError(Exception):
    """Base class for application-specific errors."""


class ConfigLoadError(DailySpreadError):
    """Raised when a configuration or state file fails to load.

    Attributes:
        config_file: Path to the file that failed to load.
    """

    def __init__(
        self,
        message: str,
        config_file: str | None = None,
    ):
        super().__init__(message)
        self.config_file = config_file


class ConfigStoreError(DailySpreadError):
    """Raised when the persisted configuration store cannot be written.

    Attributes:
        store_path: Location of the backing store, if it has one.
    """

    def __init__(
        self,
        message: str,
        store_path: str | None = None,
    ):
        super().__init__(message)
        self.store_path = store_path


class FeedListingError(DailySpreadError):
    """Raised by a feed source when the full feed set cannot be listed.

    Attributes:
        source: Description of the feed source that failed.
    """

    def __init__(
        self,
        message: str,
        source: str | None = None,
    ):
        super().__init__(message)
        self.source = source
