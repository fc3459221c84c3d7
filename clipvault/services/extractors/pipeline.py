"""Extraction pipeline orchestrating browser, parser and downloader."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum

from clipvault.services.extractors.base import (
    AssetStatus,
    ExtractedContent,
    ExtractionConfig,
    ExtractionRequest,
    MediaAsset,
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
)
from clipvault.services.extractors.parsers import ContentParser, get_parser

logger = logging.getLogger(__name__)


class ExtractionState(str, Enum):
    IDLE = "idle"
    SESSION_READY = "session_ready"
    PAGE_LOADED = "page_loaded"
    CONTENT_READY = "content_ready"
    PARSED = "parsed"
    MEDIA_RESOLVED = "media_resolved"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ExtractionOutcome:
    """Result of one pipeline run.

    ``content`` is None unless ``state`` is COMPLETED. ``failed_at`` is the
    last state reached before failing and ``error`` the failure cause.
    """

    request: ExtractionRequest
    state: ExtractionState = ExtractionState.IDLE
    content: ExtractedContent | None = None
    failed_at: ExtractionState | None = None
    error: Exception | None = None
    history: list[ExtractionState] = field(default_factory=list)

    def advance(self, state: ExtractionState) -> None:
        logger.debug("Extraction %s: %s -> %s", self.request.url, self.state.value, state.value)
        self.history.append(self.state)
        self.state = state

    def fail(self, error: Exception) -> None:
        self.failed_at = self.state
        self.error = error
        self.advance(ExtractionState.FAILED)


class ExtractionPipeline:
    """Extract text fields and media from a douyin or xiaohongshu URL.

    One browser process is shared by all calls on the same pipeline and kept
    alive between calls; call close() (or use ``async with``) to release it.
    Each call gets its own browsing context, which is always closed before
    the call returns.

    Usage:
        async with ExtractionPipeline(config) as pipeline:
            content = await pipeline.extract_from_url(url)
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        *,
        session: BrowserSessionManager | None = None,
        navigator: PageNavigator | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.session = session or BrowserSessionManager(self.config)
        self.navigator = navigator or PageNavigator(self.config)

    @staticmethod
    def detect_url_type(url: str) -> Platform:
        """Return the platform of ``url``; raises UnsupportedUrlError."""
        return detect_platform(url)

    async def extract_from_url(
        self,
        url: str,
        platform: Platform | None = None,
        *,
        timeout: float | None = None,
    ) -> ExtractedContent | None:
        """Run the full extraction, downloading media.

        Args:
            url: Page URL.
            platform: Platform override; detected from the URL when omitted.
            timeout: Optional overall deadline in seconds.

        Returns:
            ExtractedContent, or None if the extraction failed.

        Raises:
            UnsupportedUrlError: If no platform is given and the URL is not
                recognised.
        """
        request = ExtractionRequest(url=url, platform=platform or detect_platform(url))
        if timeout is None:
            outcome = await self.run(request)
        else:
            try:
                outcome = await asyncio.wait_for(self.run(request), timeout)
            except asyncio.TimeoutError:
                logger.warning("Extraction of %s exceeded %ss deadline", url, timeout)
                return None
        return outcome.content

    async def preview_content(
        self,
        url: str,
        platform: Platform | None = None,
        *,
        timeout: float | None = None,
    ) -> ExtractedContent | None:
        """Same as extract_from_url; the caller simply does not persist it."""
        return await self.extract_from_url(url, platform, timeout=timeout)

    async def run(self, request: ExtractionRequest) -> ExtractionOutcome:
        """Drive one request through the extraction state machine.

        Never raises ExtractionError: failures end in the FAILED state.
        """
        outcome = ExtractionOutcome(request=request)
        parser = get_parser(request.platform)

        try:
            browser = await self.session.ensure_session()
            outcome.advance(ExtractionState.SESSION_READY)

            async with self.navigator.open_page(
                browser, request.url, parser.ready_selector
            ) as page:
                outcome.advance(ExtractionState.PAGE_LOADED)
                outcome.advance(ExtractionState.CONTENT_READY)

                fields = await parser.parse(page)
                outcome.advance(ExtractionState.PARSED)

                assets, warnings = await self._resolve_media(fields, parser)
                outcome.advance(ExtractionState.MEDIA_RESOLVED)

            outcome.content = self._assemble(request, fields, assets, warnings)
            outcome.advance(ExtractionState.COMPLETED)

        except ExtractionError as e:
            if isinstance(e, ContentNotReadyError):
                # Navigation succeeded before the marker wait failed
                outcome.advance(ExtractionState.PAGE_LOADED)
            outcome.fail(e)
            logger.warning(
                "Extraction failed for %s at %s: %s",
                request.url,
                outcome.failed_at.value,
                e,
            )
            if isinstance(e, BrowserSessionError) and not isinstance(e, BrowserLaunchError):
                # The browser process is gone; relaunch on the next call
                await self.session.close_session()
        except Exception as e:
            outcome.fail(e)
            logger.exception("Unexpected error extracting %s", request.url)

        return outcome

    async def _resolve_media(
        self, fields: RawFields, parser: ContentParser
    ) -> tuple[list[MediaAsset], list[str]]:
        """Download every candidate; returns (assets in discovery order, warnings).

        Raises:
            MediaDownloadError: If a required video cannot be downloaded.
        """
        downloader = MediaDownloader(
            self.config, file_prefix=parser.file_prefix, referer=parser.referer
        )
        warnings: list[str] = []

        # Video first, so a fatal video failure leaves no orphaned images
        video_asset: MediaAsset | None = None
        video = fields.video_candidate
        if video is not None:
            try:
                video_asset = await downloader.download(MediaKind.VIDEO, video.url)
            except MediaDownloadError as e:
                if parser.video_required:
                    raise
                logger.warning("Optional video download failed: %s", e)
                video_asset = MediaAsset(
                    source_url=video.url,
                    kind=MediaKind.VIDEO,
                    status=AssetStatus.FAILED,
                    error=e.reason,
                )

        semaphore = asyncio.Semaphore(self.config.max_concurrent_downloads)

        async def attempt(url: str) -> MediaAsset:
            async with semaphore:
                try:
                    return await downloader.download(MediaKind.IMAGE, url)
                except Exception as e:
                    # One broken image never fails the note or its siblings
                    logger.warning("Unexpected error downloading %s: %s", url, e)
                    return MediaAsset(
                        source_url=url,
                        kind=MediaKind.IMAGE,
                        status=AssetStatus.FAILED,
                        error=f"{type(e).__name__}: {e}",
                    )

        image_assets = await asyncio.gather(
            *(attempt(candidate.url) for candidate in fields.image_candidates)
        )

        assets = list(image_assets)
        if video_asset is not None:
            assets.append(video_asset)

        for asset in assets:
            if asset.status is AssetStatus.FAILED:
                warnings.append(
                    f"{asset.kind.value} download failed: {asset.source_url} ({asset.error})"
                )
        return assets, warnings

    def _assemble(
        self,
        request: ExtractionRequest,
        fields: RawFields,
        assets: list[MediaAsset],
        warnings: list[str],
    ) -> ExtractedContent:
        images = tuple(
            a.local_path for a in assets if a.kind is MediaKind.IMAGE and a.downloaded
        )
        video_path = next(
            (a.local_path for a in assets if a.kind is MediaKind.VIDEO and a.downloaded),
            None,
        )
        return ExtractedContent(
            title=fields.title,
            description=fields.description,
            author=fields.author,
            tags=fields.tags,
            images=images,
            video_path=video_path,
            platform=request.platform,
            source_url=request.url,
            assets=tuple(assets),
            warnings=tuple(warnings),
        )

    async def close(self) -> None:
        """Release the browser. Safe to call multiple times."""
        await self.session.close_session()

    async def __aenter__(self) -> ExtractionPipeline:
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - ensures cleanup."""
        await self.close()
