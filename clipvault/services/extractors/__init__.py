"""Social content extraction engine.

Drives a headless Chromium (Playwright) to render douyin video pages and
xiaohongshu notes, reads their text fields and media URLs from the DOM, and
downloads the media under unique local file names.

Usage:
    from clipvault.services.extractors import ExtractionPipeline

    async with ExtractionPipeline() as pipeline:
        content = await pipeline.extract_from_url("https://www.douyin.com/video/1")
        if content is not None:
            print(content.title, content.video_path)

Note: Playwright browsers must be installed separately:
    playwright install chromium
"""

from clipvault.services.extractors.base import (
    AssetStatus,
    ExtractedContent,
    ExtractionConfig,
    ExtractionRequest,
    MediaAsset,
    MediaCandidate,
    MediaKind,
    Platform,
    RawFields,
)
from clipvault.services.extractors.browser import BrowserSessionManager, PageNavigator
from clipvault.services.extractors.detector import detect_platform
from clipvault.services.extractors.downloader import MediaDownloader
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
from clipvault.services.extractors.parsers import (
    ContentParser,
    ImageNoteParser,
    ShortVideoParser,
    get_parser,
)
from clipvault.services.extractors.pipeline import (
    ExtractionOutcome,
    ExtractionPipeline,
    ExtractionState,
)

__all__ = [
    # Data model
    "AssetStatus",
    "ExtractedContent",
    "ExtractionConfig",
    "ExtractionRequest",
    "MediaAsset",
    "MediaCandidate",
    "MediaKind",
    "Platform",
    "RawFields",
    # Components
    "BrowserSessionManager",
    "PageNavigator",
    "ContentParser",
    "ShortVideoParser",
    "ImageNoteParser",
    "get_parser",
    "MediaDownloader",
    "detect_platform",
    "ExtractionPipeline",
    "ExtractionOutcome",
    "ExtractionState",
    # Exceptions
    "ExtractionError",
    "UnsupportedUrlError",
    "BrowserSessionError",
    "BrowserLaunchError",
    "NavigationError",
    "NavigationTimeoutError",
    "ContentNotReadyError",
    "PageEvaluationError",
    "MediaDownloadError",
]
