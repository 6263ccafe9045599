"""Sources of the full feed set.

Discovery and the timing preview need to list every feed the host knows
about. Hosts plug in their own ``FeedSource``; ``YamlFeedSource`` reads a
snapshot file and backs the command-line interface.
"""

from collections.abc import Sequence
import logging
from pathlib import Path
from typing import Any, Protocol, cast

from pydantic import ValidationError
import yaml

from ..exceptions import FeedListingError
from .types import Feed, FeedRecord

logger = logging.getLogger(__name__)


class FeedSource(Protocol):
    """Anything able to list the host's feeds.

    Implementations must raise ``FeedListingError`` when the feed set is
    unavailable; other exceptions are treated as programming errors.
    """

    def list_feeds(self) -> Sequence[Feed]: ...


class YamlFeedSource:
    """Read feeds from a YAML snapshot file.

    The file holds a top-level ``feeds`` list; each entry maps onto
    ``FeedRecord`` (``id``, ``url``, ``name``, ``last_update``,
    ``refresh_mode``). The file is re-read on every listing so that an
    external process can keep it current between cycles.

    Attributes:
        _path: Location of the YAML snapshot.
    """

    def __init__(self, path: Path):
        self._path = path

    def __repr__(self) -> str:
        return f"YamlFeedSource(path='{self._path}')"

    def _read(self) -> Any:
        try:
            with Path.open(self._path, encoding="utf-8") as f:
                return yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise FeedListingError(
                "Failed to read feed snapshot file.", source=str(self._path)
            ) from e

    def list_feeds(self) -> list[FeedRecord]:
        """Load and validate every feed in the snapshot file.

        Returns:
            Feed records in file order.

        Raises:
            FeedListingError: If the file cannot be read, is not a mapping with
                a ``feeds`` list, or an entry fails validation.
        """
        loaded = self._read()
        if loaded is None:
            logger.info("Feed snapshot file is empty.", extra={"path": str(self._path)})
            return []
        if not isinstance(loaded, dict):
            raise FeedListingError(
                f"Invalid feed snapshot format: expected dict, got {type(loaded).__name__}",
                source=str(self._path),
            )

        raw_feeds = cast(dict[str, Any], loaded).get("feeds") or []
        if not isinstance(raw_feeds, list):
            raise FeedListingError(
                "Invalid feed snapshot format: 'feeds' must be a list.",
                source=str(self._path),
            )

        try:
            feeds = [
                FeedRecord.model_validate(entry)
                for entry in cast(list[Any], raw_feeds)
            ]
        except ValidationError as e:
            raise FeedListingError(
                "Feed snapshot contains an invalid feed entry.",
                source=str(self._path),
            ) from e

        logger.debug(
            "Loaded feed snapshot.",
            extra={"path": str(self._path), "feed_count": len(feeds)},
        )
        return feeds
