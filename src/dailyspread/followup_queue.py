"""Pending follow-up fetches, backed by the configuration store.

The gate runs once per feed per cycle, so mutations only mark the queue
dirty; the owner persists it at well-defined points (configuration change,
pruning, end of pass, shutdown).
"""

from collections.abc import ItemsView, Mapping
from datetime import UTC, datetime
import logging
from typing import Any, cast

from .store import FOLLOWUP_QUEUE_KEY, ConfigStore

logger = logging.getLogger(__name__)


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None


def sanitize_followups(raw: Any) -> dict[int, int]:
    """Keep only entries whose feed id and due time are positive integers.

    Args:
        raw: Value read from the store; anything but a mapping yields an empty queue.

    Returns:
        Mapping of feed id to due time.
    """
    if not isinstance(raw, Mapping):
        return {}
    result: dict[int, int] = {}
    for key, value in cast(Mapping[Any, Any], raw).items():
        feed_id = _positive_int(key)
        due_at = _positive_int(value)
        if feed_id is not None and due_at is not None:
            result[feed_id] = due_at
    return result


class FollowupQueue:
    """At most one pending follow-up per feed, keyed by feed id.

    Attributes:
        _store: Persisted configuration store.
        _pending: In-memory map of feed id to due time.
        _dirty: Whether ``_pending`` differs from what was last persisted.
    """

    def __init__(self, store: ConfigStore):
        self._store = store
        self._pending: dict[int, int] = {}
        self._dirty = False

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, feed_id: object) -> bool:
        return feed_id in self._pending

    @property
    def dirty(self) -> bool:
        return self._dirty

    def items(self) -> ItemsView[int, int]:
        return self._pending.items()

    def load(self) -> None:
        """Replace the in-memory queue with the sanitized persisted one."""
        self._pending = sanitize_followups(self._store.get(FOLLOWUP_QUEUE_KEY))
        self._dirty = False
        logger.debug(
            "Follow-up queue loaded.", extra={"pending_count": len(self._pending)}
        )

    def is_pending(self, feed_id: int) -> bool:
        return feed_id in self._pending

    def due_at(self, feed_id: int) -> int | None:
        return self._pending.get(feed_id)

    def schedule(self, feed_id: int, due_at: int) -> None:
        """Set the follow-up for a feed, replacing any existing entry.

        Raises:
            ValueError: If the feed id or due time is not positive.
        """
        if feed_id <= 0 or due_at <= 0:
            raise ValueError(
                f"Follow-up entries need a positive feed id and due time, got {feed_id} -> {due_at}"
            )
        self._pending[feed_id] = due_at
        self._dirty = True

    def clear(self, feed_id: int) -> bool:
        """Remove a feed's follow-up.

        Returns:
            True if an entry was removed.
        """
        if self._pending.pop(feed_id, None) is None:
            return False
        self._dirty = True
        return True

    def prune_older_than(self, threshold: int) -> int:
        """Drop every entry due strictly before ``threshold``.

        Returns:
            Number of entries removed.
        """
        stale = [fid for fid, due in self._pending.items() if due < threshold]
        for feed_id in stale:
            del self._pending[feed_id]
        if stale:
            self._dirty = True
        return len(stale)

    def persist(self, force: bool = False) -> bool:
        """Write the queue to the store and save it.

        Args:
            force: Write even if nothing changed since the last persist.

        Returns:
            True if a write happened.
        """
        if not force and not self._dirty:
            return False
        self._store.set(FOLLOWUP_QUEUE_KEY, dict(self._pending))
        self._store.save()
        self._dirty = False
        return True

    def load_and_prune(self, now: int, stale_after_seconds: int) -> int:
        """Load the persisted queue and drop stale entries.

        Entries overdue by more than ``stale_after_seconds`` belong to deleted
        feeds or to a process that died before consuming them. When anything
        is pruned the result is persisted immediately.

        Args:
            now: Current epoch seconds.
            stale_after_seconds: Age past which an overdue entry is stale.

        Returns:
            Number of entries removed.
        """
        self.load()
        threshold = now - stale_after_seconds
        removed = self.prune_older_than(threshold)
        if removed:
            self.persist(force=True)
            logger.info(
                "Removed stale follow-ups.",
                extra={
                    "removed_count": removed,
                    "threshold": datetime.fromtimestamp(threshold, UTC).isoformat(),
                },
            )
        return removed
