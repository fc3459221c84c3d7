"""Tests for extraction exceptions."""

from __future__ import annotations

import pytest

from clipvault.services.extractors.exceptions import (
    BrowserLaunchError,
    BrowserSessionError,
    ContentNotReadyError,
    ExtractionError,
    MediaDownloadError,
    NavigationError,
    NavigationTimeoutError,
    PageEvaluationError,
    UnsupportedUrlError,
)


class TestExceptionHierarchy:
    """Test that all exceptions inherit from ExtractionError."""

    @pytest.mark.parametrize(
        "exc_cls",
        [
            UnsupportedUrlError,
            BrowserSessionError,
            BrowserLaunchError,
            NavigationError,
            NavigationTimeoutError,
            ContentNotReadyError,
            PageEvaluationError,
            MediaDownloadError,
        ],
    )
    def test_inherits_from_extraction_error(self, exc_cls) -> None:
        assert issubclass(exc_cls, ExtractionError)

    def test_navigation_timeout_is_a_navigation_error(self) -> None:
        """Callers catching NavigationError also see timeouts."""
        assert issubclass(NavigationTimeoutError, NavigationError)

    def test_launch_error_is_a_session_error(self) -> None:
        assert issubclass(BrowserLaunchError, BrowserSessionError)

    def test_extraction_error_inherits_from_exception(self) -> None:
        assert issubclass(ExtractionError, Exception)


class TestExceptionMessages:
    """Test that exceptions carry useful context."""

    def test_unsupported_url_keeps_url(self) -> None:
        error = UnsupportedUrlError("https://example.com/x")
        assert error.url == "https://example.com/x"
        assert str(error) == "Unsupported URL: https://example.com/x"

    def test_media_download_error_keeps_url_and_reason(self) -> None:
        error = MediaDownloadError("https://cdn.example.com/a.jpg", "HTTP 403 Forbidden")
        assert error.url == "https://cdn.example.com/a.jpg"
        assert error.reason == "HTTP 403 Forbidden"
        assert "HTTP 403 Forbidden" in str(error)

    def test_navigation_timeout_with_message(self) -> None:
        error = NavigationTimeoutError("Navigation exceeded 30s")
        assert str(error) == "Navigation exceeded 30s"
