"""Exception hierarchy for social content extraction."""

from __future__ import annotations


class ExtractionError(Exception):
    """Base exception for all extraction errors."""

    pass


class UnsupportedUrlError(ExtractionError):
    """Raised when a URL matches none of the supported platforms."""

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Unsupported URL: {url}")


class BrowserSessionError(ExtractionError):
    """Raised when the browser process is unusable."""

    pass


class BrowserLaunchError(BrowserSessionError):
    """Raised when the headless browser fails to start."""

    pass


class NavigationError(ExtractionError):
    """Raised when the page cannot be loaded (network failure, HTTP 4xx/5xx)."""

    pass


class NavigationTimeoutError(NavigationError):
    """Raised when navigation does not settle within the navigation ceiling."""

    pass


class ContentNotReadyError(ExtractionError):
    """Raised when the content-ready marker never appears on the page."""

    pass


class PageEvaluationError(ExtractionError):
    """Raised when the in-page extraction script cannot run."""

    pass


class MediaDownloadError(ExtractionError):
    """Raised when a media asset cannot be fetched or stored."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to download {url}: {reason}")
