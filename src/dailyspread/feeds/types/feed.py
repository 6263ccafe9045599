"""Feed model consumed by the scheduler.

The host owns its feeds; the scheduler only reads the handful of attributes
declared by the ``Feed`` protocol. ``FeedRecord`` is a concrete, validated
implementation used by the YAML feed source and by tests.
"""

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from .refresh_mode import RefreshMode


@runtime_checkable
class Feed(Protocol):
    """Read-only view of a host feed.

    Attributes:
        id: Stable integer identity of the feed.
        url: Feed URL as stored by the host, possibly with credentials.
        name: Human-readable name, used only for logs and previews.
        last_update: Epoch seconds of the last successful fetch (0 = never).
        refresh_mode: Whether the host's default cadence applies.
    """

    @property
    def id(self) -> int: ...

    @property
    def url(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def last_update(self) -> int: ...

    @property
    def refresh_mode(self) -> RefreshMode: ...


class FeedRecord(BaseModel):
    """Immutable snapshot of a single feed."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., ge=1, description="Stable feed identifier.")
    url: str = Field(..., min_length=1, description="Feed URL.")
    name: str = Field(default="", description="Display name of the feed.")
    last_update: int = Field(
        default=0,
        ge=0,
        description="Epoch seconds of the last successful fetch; 0 if never fetched.",
    )
    refresh_mode: RefreshMode = Field(
        default=RefreshMode.DEFAULT,
        description="'default' for host-cadence feeds, 'custom' for feeds with their own TTL.",
    )
