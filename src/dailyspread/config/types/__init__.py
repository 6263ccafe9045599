"""Configuration value types."""

from .eligible_hosts import EligibleHosts, parse_hosts, url_hostname

__all__ = [
    "EligibleHosts",
    "parse_hosts",
    "url_hostname",
]
