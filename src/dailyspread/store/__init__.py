"""Persisted configuration store and its key layout."""

from .config_store import (
    FOLLOWUP_DELAY_KEY,
    FOLLOWUP_QUEUE_KEY,
    HOSTS_KEY,
    INTERVAL_KEY,
    LAST_DISCOVERY_KEY,
    ConfigStore,
    MemoryConfigStore,
    YamlConfigStore,
)

__all__ = [
    "FOLLOWUP_DELAY_KEY",
    "FOLLOWUP_QUEUE_KEY",
    "HOSTS_KEY",
    "INTERVAL_KEY",
    "LAST_DISCOVERY_KEY",
    "ConfigStore",
    "MemoryConfigStore",
    "YamlConfigStore",
]
