"""Enumeration of feed refresh modes."""

from enum import Enum


class RefreshMode(str, Enum):
    """Represent how the host decides when a feed is refreshed.

    Only feeds left on the host's default cadence are managed by the
    scheduler; feeds with a custom TTL pass through untouched.
    """

    DEFAULT = "default"
    CUSTOM = "custom"

    def __str__(self) -> str:
        return self.value
