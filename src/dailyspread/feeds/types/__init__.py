"""Feed model and enum types."""

from .feed import Feed, FeedRecord
from .refresh_mode import RefreshMode

__all__ = [
    "Feed",
    "FeedRecord",
    "RefreshMode",
]
