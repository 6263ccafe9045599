# This file makes src/dailyspread/feeds a Python package.

from .feed_source import FeedSource, YamlFeedSource
from .types import Feed, FeedRecord, RefreshMode

__all__ = [
    "Feed",
    "FeedRecord",
    "FeedSource",
    "RefreshMode",
    "YamlFeedSource",
]
