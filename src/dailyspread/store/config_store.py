"""Persisted key/value configuration store.

The scheduler keeps its tunables and its pending follow-up queue in a
user-scoped key/value store owned by the host. Values are scalars or
integer-keyed maps of integers. Writes are staged with ``set`` and made
durable with ``save``.
"""

from collections.abc import Mapping
import logging
import os
from pathlib import Path
import tempfile
from typing import Any, Protocol, cast

import yaml

from ..exceptions import ConfigLoadError, ConfigStoreError

logger = logging.getLogger(__name__)

INTERVAL_KEY = "daily_spread_interval_seconds"
HOSTS_KEY = "daily_spread_rsshub_hosts"
FOLLOWUP_DELAY_KEY = "daily_spread_rsshub_followup_seconds"
FOLLOWUP_QUEUE_KEY = "daily_spread_pending_followups"
LAST_DISCOVERY_KEY = "daily_spread_last_discovery"


class ConfigStore(Protocol):
    """Minimal interface onto the host's configuration store."""

    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...

    def save(self) -> None: ...

    def has_key(self, key: str) -> bool: ...


class MemoryConfigStore:
    """Dict-backed store for embedding hosts that persist state themselves.

    Attributes:
        save_count: Number of times ``save`` has been called.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None):
        self._values: dict[str, Any] = dict(initial or {})
        self.save_count = 0

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def save(self) -> None:
        self.save_count += 1

    def has_key(self, key: str) -> bool:
        return key in self._values


class YamlConfigStore:
    """File-backed store serialized as a YAML mapping.

    The whole file is read once at construction and rewritten on ``save``
    through a temporary file and an atomic rename, so a crash mid-write never
    leaves a truncated file behind. Concurrent writers are not coordinated:
    the last ``save`` wins.

    Attributes:
        _path: Location of the YAML file.
        _values: In-memory copy of the stored mapping.
    """

    def __init__(self, path: Path):
        self._path = path
        self._values = self._load()

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            logger.debug(
                "State file does not exist yet; starting empty.",
                extra={"path": str(self._path)},
            )
            return {}

        try:
            with Path.open(self._path, encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigLoadError(
                "Failed to load or parse state file.", config_file=str(self._path)
            ) from e

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise ConfigLoadError(
                f"Invalid state file format: expected dict, got {type(loaded).__name__}",
                config_file=str(self._path),
            )
        return {str(k): v for k, v in cast(dict[Any, Any], loaded).items()}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def has_key(self, key: str) -> bool:
        return key in self._values

    def save(self) -> None:
        """Write the current mapping to disk.

        Raises:
            ConfigStoreError: If the file cannot be written.
        """
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(self._values, f, sort_keys=True)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except (OSError, yaml.YAMLError) as e:
            raise ConfigStoreError(
                "Failed to write state file.", store_path=str(self._path)
            ) from e

        logger.debug("State file saved.", extra={"path": str(self._path)})
