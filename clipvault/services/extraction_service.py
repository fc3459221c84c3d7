"""Entry points used by the persistence and API layers.

The persistence layer calls extract_and_save() with a ContentSink that
stores the result; preview_content() runs the same pipeline without a sink.
Both create a pipeline per call and close its browser afterwards unless the
caller passes a long-lived pipeline of its own.
"""

from __future__ import annotations

import inspect
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, AsyncIterator, Iterable, Protocol

from clipvault.services.extractors import (
    ExtractedContent,
    ExtractionConfig,
    ExtractionPipeline,
    ExtractionRequest,
    Platform,
    detect_platform,
)

logger = logging.getLogger(__name__)

UPLOAD_SUBDIRS = ("videos", "images", "thumbnails")
DEFAULT_TITLE = "Untitled"


class ExtractionFailedError(Exception):
    """Raised when extract_and_save gets no content from the pipeline.

    Error Code: EXTRACTION_FAILED
    """

    def __init__(self, url: str, platform: Platform) -> None:
        self.url = url
        self.platform = platform
        super().__init__(f"Failed to extract content from {platform.value}: {url}")


@dataclass(frozen=True)
class DetectionResult:
    platform: Platform
    url: str


class ContentSink(Protocol):
    """Protocol implemented by whatever persists extracted content.

    ``save`` may be a plain or an async method.
    """

    def save(self, request: ExtractionRequest, content: ExtractedContent) -> Any:
        ...


def ensure_upload_dirs(root: str | Path | None = None) -> Path:
    """Create the media subdirectories under the upload root."""
    if root is None:
        from clipvault.core.config import settings

        root = settings.upload_dir
    upload_root = Path(root)
    for subdir in UPLOAD_SUBDIRS:
        (upload_root / subdir).mkdir(parents=True, exist_ok=True)
    return upload_root


def detect_url_type(url: str) -> DetectionResult:
    """Detect the platform of ``url``; raises UnsupportedUrlError."""
    return DetectionResult(platform=detect_platform(url), url=url)


def merge_tags(extracted: Iterable[str], extra: Iterable[str]) -> tuple[str, ...]:
    """Extracted tags first, then caller tags, without duplicates."""
    merged: list[str] = []
    for tag in [*extracted, *extra]:
        tag = tag.strip()
        if tag and tag not in merged:
            merged.append(tag)
    return tuple(merged)


@asynccontextmanager
async def _pipeline_scope(
    pipeline: ExtractionPipeline | None,
) -> AsyncIterator[ExtractionPipeline]:
    if pipeline is not None:
        yield pipeline
        return
    async with ExtractionPipeline(ExtractionConfig.from_settings()) as owned:
        yield owned


async def preview_content(
    url: str,
    platform: Platform | None = None,
    *,
    pipeline: ExtractionPipeline | None = None,
    timeout: float | None = None,
) -> ExtractedContent | None:
    """Extract without persisting. Returns None when extraction fails."""
    async with _pipeline_scope(pipeline) as active:
        return await active.preview_content(url, platform, timeout=timeout)


async def extract_and_save(
    request: ExtractionRequest,
    sink: ContentSink,
    *,
    pipeline: ExtractionPipeline | None = None,
    timeout: float | None = None,
) -> Any:
    """Extract ``request.url`` and hand the result to ``sink``.

    1. Ensure upload directories exist
    2. Run the extraction pipeline
    3. Merge caller tags and default the title
    4. Return whatever ``sink.save`` returns

    Raises:
        ExtractionFailedError: If the pipeline produced no content.
    """
    ensure_upload_dirs(pipeline.config.upload_dir if pipeline else None)

    async with _pipeline_scope(pipeline) as active:
        content = await active.extract_from_url(
            request.url, request.platform, timeout=timeout
        )

    if content is None:
        logger.warning("Extraction returned no content for %s", request.url)
        raise ExtractionFailedError(request.url, request.platform)

    content = replace(
        content,
        title=content.title or DEFAULT_TITLE,
        tags=merge_tags(content.tags, request.extra_tags),
    )

    result = sink.save(request, content)
    if inspect.isawaitable(result):
        result = await result
    logger.info(
        "Saved %s content from %s (%d images, video=%s)",
        content.platform.value if content.platform else request.platform.value,
        request.url,
        len(content.images),
        bool(content.video_path),
    )
    return result
