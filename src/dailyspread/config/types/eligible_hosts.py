"""Eligible host list for follow-up scheduling.

This module provides the EligibleHosts dataclass, which parses the operator's
free-form host list and classifies feed URLs against it.
"""

from dataclasses import dataclass
import re
from urllib.parse import urlsplit

# Hosts may be separated by any mix of whitespace and commas
_SEPARATOR_PATTERN = re.compile(r"[\s,]+")


def parse_hosts(text: str) -> tuple[str, ...]:
    """Normalize a host list into lowercase bare hostnames.

    Entries given as URLs are reduced to their hostname, leading dots are
    dropped and duplicates removed while preserving first-seen order.

    Args:
        text: Newline, whitespace or comma separated host list.

    Returns:
        Tuple of normalized hostnames.
    """
    cleaned: list[str] = []
    for raw in _SEPARATOR_PATTERN.split(text.lower()):
        host = raw.strip()
        if not host:
            continue
        if "://" in host:
            host = urlsplit(host).hostname or host
        host = host.lstrip(".")
        if host and host not in cleaned:
            cleaned.append(host)
    return tuple(cleaned)


def url_hostname(url: str) -> str:
    """Return the lowercase hostname of ``url``, or an empty string."""
    try:
        return (urlsplit(url).hostname or "").lower()
    except ValueError:
        return ""


@dataclass(frozen=True)
class EligibleHosts:
    """Hostnames whose feeds get a follow-up fetch.

    A feed matches when its hostname equals an entry or is a subdomain of
    one, so ``rsshub.app`` also covers ``eu.rsshub.app``.

    Examples:
        - "rsshub.app" -> ("rsshub.app",)
        - "RSSHub.app, https://hub.example.com/path" -> ("rsshub.app", "hub.example.com")
        - "  " -> ()

    Attributes:
        host_input: Operator input, stripped.
        hosts: Normalized hostnames.
    """

    host_input: str
    hosts: tuple[str, ...]

    def __init__(self, host_input: str):
        stripped = host_input.strip()
        object.__setattr__(self, "host_input", stripped)
        object.__setattr__(self, "hosts", parse_hosts(stripped))

    def __bool__(self) -> bool:
        return bool(self.hosts)

    def __str__(self) -> str:
        return ", ".join(self.hosts) if self.hosts else "none"

    def matches(self, url: str) -> bool:
        """Check whether a feed URL belongs to an eligible host.

        Args:
            url: Feed URL; credentials, if any, are ignored.

        Returns:
            True if the URL's hostname equals or is a subdomain of an entry.
        """
        if not self.hosts:
            return False
        host = url_hostname(url)
        if not host:
            return False
        return any(
            host == allowed or host.endswith(f".{allowed}") for allowed in self.hosts
        )
