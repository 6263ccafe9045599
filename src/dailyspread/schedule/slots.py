"""Deterministic slot assignment within the refresh interval."""

from urllib.parse import urlsplit, urlunsplit
import zlib

from ..feeds.types import Feed


def strip_credentials(url: str) -> str:
    """Remove any ``user:password@`` part from a URL.

    Args:
        url: URL as stored by the host.

    Returns:
        The URL without userinfo; unparsable input is returned unchanged.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if "@" not in parts.netloc:
        return url
    netloc = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=netloc))


def slot_for_feed(feed: Feed, salt: str, interval_seconds: int) -> int:
    """Map a feed onto a stable offset in ``[0, interval_seconds)``.

    The hash covers the credential-free URL, the numeric id (never the
    mutable name, so renames keep their slot) and an installation salt.
    CRC-32 is unsigned in Python, so the result is identical on every
    platform and across restarts.

    Args:
        feed: The feed to place.
        salt: Installation-wide salt; changing it reshuffles every slot.
        interval_seconds: Length of the refresh interval.

    Returns:
        Offset in seconds; 0 when the interval is not positive.
    """
    if interval_seconds <= 0:
        return 0
    key = f"{strip_credentials(feed.url)}|{feed.id}|{salt}"
    return zlib.crc32(key.encode("utf-8")) % interval_seconds
