"""Map source URLs to the platform that serves them."""

from __future__ import annotations

from urllib.parse import urlsplit

from clipvault.services.extractors.base import Platform
from clipvault.services.extractors.exceptions import UnsupportedUrlError

# Checked in order; first match wins. Domain sets are disjoint.
PLATFORM_DOMAINS: tuple[tuple[Platform, tuple[str, ...]], ...] = (
    (Platform.SHORT_VIDEO, ("douyin.com", "iesdouyin.com")),
    (Platform.IMAGE_NOTE, ("xiaohongshu.com", "xhslink.com")),
)


def _hostname(url: str) -> str:
    candidate = url.strip()
    if "://" not in candidate:
        # Share texts often carry bare "v.douyin.com/abc" links
        candidate = f"//{candidate}"
    try:
        return (urlsplit(candidate).hostname or "").lower()
    except ValueError:
        return ""


def detect_platform(url: str) -> Platform:
    """Return the platform serving ``url``.

    Raises:
        UnsupportedUrlError: If the hostname matches no known platform.
    """
    host = _hostname(url)
    if host:
        for platform, domains in PLATFORM_DOMAINS:
            if any(domain in host for domain in domains):
                return platform
    raise UnsupportedUrlError(url)
