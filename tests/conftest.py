"""Shared pytest fixtures for extraction tests.

Playwright and HTTP are always mocked: no browser binaries or network access
are needed to run the suite.

Usage in new test files:
    async def test_something(extraction_config, mock_browser):
        browser, context, page = mock_browser
        page.evaluate.return_value = {...}
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from clipvault.services.extractors.base import ExtractionConfig


# ------------------------------------------------------------------
# Config fixtures
# ------------------------------------------------------------------


@pytest.fixture()
def upload_dir(tmp_path: Path) -> Path:
    """Provide a temporary upload root directory."""
    return tmp_path / "uploads"


@pytest.fixture()
def extraction_config(upload_dir: Path) -> ExtractionConfig:
    """ExtractionConfig writing media into the temporary upload root."""
    return ExtractionConfig(upload_dir=str(upload_dir))


# ------------------------------------------------------------------
# Playwright fixtures
# ------------------------------------------------------------------


@pytest.fixture()
def mock_browser() -> tuple[AsyncMock, AsyncMock, AsyncMock]:
    """Return (browser, context, page) mocks wired together.

    The page loads with HTTP 200 and its evaluate() returns an empty object
    until a test sets ``page.evaluate.return_value``.
    """
    mock_page = AsyncMock()
    mock_response = MagicMock()
    mock_response.status = 200
    mock_page.goto.return_value = mock_response
    mock_page.evaluate.return_value = {}

    mock_context = AsyncMock()
    mock_context.new_page.return_value = mock_page

    mock_browser = AsyncMock()
    mock_browser.new_context.return_value = mock_context
    return mock_browser, mock_context, mock_page


@pytest.fixture()
def mock_playwright(mock_browser) -> tuple[AsyncMock, AsyncMock]:
    """Return (context_manager, playwright) mocks launching ``mock_browser``.

    Patch ``playwright.async_api.async_playwright`` with
    ``return_value=context_manager``.
    """
    browser, _, _ = mock_browser
    playwright = AsyncMock()
    playwright.chromium.launch.return_value = browser

    # async_playwright() returns a context manager with async start()
    context_manager = AsyncMock()
    context_manager.start.return_value = playwright
    return context_manager, playwright


# ------------------------------------------------------------------
# HTTP helpers
# ------------------------------------------------------------------


def make_response(
    url: str,
    status_code: int = 200,
    content: bytes = b"media-bytes",
    content_type: str = "image/jpeg",
) -> httpx.Response:
    """Build a real httpx.Response bound to a GET request for ``url``."""
    return httpx.Response(
        status_code,
        content=content,
        headers={"content-type": content_type},
        request=httpx.Request("GET", url),
    )


@pytest.fixture()
def response_factory() -> Callable[..., httpx.Response]:
    """Expose make_response to tests."""
    return make_response


@pytest.fixture()
def http_responder() -> Callable[..., Callable]:
    """Return a factory for ``httpx.AsyncClient.send`` side effects.

    ``responder({url: response_or_exception})`` returns an async function
    that answers each URL with the mapped response or raises the mapped
    exception. Unmapped URLs get a 200 JPEG response.
    """

    def _factory(mapping: dict | None = None) -> Callable:
        mapping = mapping or {}

        async def _send(request, **kwargs):
            url = str(request.url)
            outcome = mapping.get(url)
            if isinstance(outcome, BaseException):
                raise outcome
            if outcome is None:
                return make_response(url)
            return outcome

        return _send

    return _factory
