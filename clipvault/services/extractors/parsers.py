"""Per-platform DOM parsers.

Each parser runs one ``page.evaluate`` call against the rendered page. The
script receives the parser's selectors as its argument and returns plain
JSON data (strings and lists only); no element handles leave the page.
Normalisation (fallback chains, tag cleanup, URL filtering) happens here in
Python so that missing elements degrade to empty values.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Protocol

from playwright.async_api import Error as PlaywrightError

from clipvault.services.extractors.base import (
    MediaCandidate,
    MediaKind,
    Platform,
    RawFields,
)
from clipvault.services.extractors.exceptions import PageEvaluationError

if TYPE_CHECKING:
    from playwright.async_api import Page

logger = logging.getLogger(__name__)


class ContentParser(Protocol):
    """Protocol implemented by every platform parser."""

    platform: Platform
    ready_selector: str  # Element whose presence means the page has rendered
    file_prefix: str  # Prefix for downloaded file names
    referer: str | None  # Referer header required by the platform's media host
    video_required: bool  # A failed video download voids the extraction

    async def parse(self, page: Page) -> RawFields:
        """Read fields and candidate media URLs from the rendered page.

        Raises:
            PageEvaluationError: If the extraction script cannot run at all.
        """
        ...


# ---------------------------------------------------------------------------
# Normalisation helpers
# ---------------------------------------------------------------------------


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def first_non_empty(values: Any) -> str:
    """Return the first non-empty string of a fallback chain."""
    if not isinstance(values, list):
        return _text(values)
    for value in values:
        text = _text(value)
        if text:
            return text
    return ""


def clean_tags(values: Any) -> tuple[str, ...]:
    """Strip one leading ``#`` from each tag, dropping empties."""
    if not isinstance(values, list):
        return ()
    tags = []
    for value in values:
        text = _text(value)
        if text.startswith("#"):
            text = text[1:].strip()
        if text:
            tags.append(text)
    return tuple(tags)


def normalize_media_url(value: Any) -> str | None:
    """Return an absolute http(s) URL, or None for unusable sources."""
    url = _text(value)
    if url.startswith("//"):
        url = f"https:{url}"
    if url.lower().startswith(("http://", "https://")):
        return url
    return None


def _unique_urls(values: Iterable[Any]) -> list[str]:
    seen: set[str] = set()
    urls = []
    for value in values:
        url = normalize_media_url(value)
        if url and url not in seen:
            seen.add(url)
            urls.append(url)
    return urls


def _video_url(video: Any) -> str | None:
    """Pick the playable URL of a serialized video element."""
    if not isinstance(video, dict):
        return None
    sources = video.get("sources") if isinstance(video.get("sources"), list) else []
    for value in [video.get("src"), *sources]:
        url = normalize_media_url(value)
        if url:
            return url
    return None


async def _evaluate(page: Page, script: str, arg: dict[str, Any]) -> dict[str, Any]:
    try:
        data = await page.evaluate(script, arg)
    except PlaywrightError as e:
        raise PageEvaluationError(f"In-page extraction failed: {e}") from e
    if not isinstance(data, dict):
        logger.warning("In-page extraction returned %s, expected an object", type(data).__name__)
        return {}
    return data


# ---------------------------------------------------------------------------
# Short-video platform
# ---------------------------------------------------------------------------

SHORT_VIDEO_SCRIPT = """
(sel) => {
  const textOf = (el) => (el && el.textContent ? el.textContent.trim() : '');
  const desc = document.querySelector(sel.description);
  const video = document.querySelector(sel.video);
  return {
    description: textOf(desc),
    author: textOf(document.querySelector(sel.author)),
    tags: desc ? Array.from(desc.querySelectorAll(sel.tag)).map(textOf) : [],
    video: video ? {
      src: video.currentSrc || video.src || '',
      sources: Array.from(video.querySelectorAll('source')).map((s) => s.src || ''),
    } : null,
  };
}
"""


class ShortVideoParser:
    """Parser for douyin video pages.

    Title and description both come from the caption element; tags are the
    hashtag anchors inside the caption. At most one video is returned.
    """

    platform = Platform.SHORT_VIDEO
    ready_selector = '[data-e2e="browse-video-desc"]'
    file_prefix = "douyin"
    referer: str | None = None
    video_required = True

    selectors = {
        "description": '[data-e2e="browse-video-desc"]',
        "author": '[data-e2e="browse-author-nickname"]',
        "tag": "a",
        "video": "video",
    }

    async def parse(self, page: Page) -> RawFields:
        data = await _evaluate(page, SHORT_VIDEO_SCRIPT, self.selectors)

        caption = _text(data.get("description"))
        # Mention anchors ("@user") share the caption with hashtags
        anchors = data.get("tags") if isinstance(data.get("tags"), list) else []
        tags = clean_tags([a for a in anchors if not _text(a).startswith("@")])

        candidates = []
        video_url = _video_url(data.get("video"))
        if video_url:
            candidates.append(MediaCandidate(MediaKind.VIDEO, video_url))

        return RawFields(
            title=caption,
            description=caption,
            author=_text(data.get("author")),
            tags=tags,
            candidate_media=tuple(candidates),
        )


# ---------------------------------------------------------------------------
# Image-note platform
# ---------------------------------------------------------------------------

IMAGE_NOTE_SCRIPT = """
(sel) => {
  const textOf = (el) => (el && el.textContent ? el.textContent.trim() : '');
  const chain = (selectors) => selectors.map((s) => textOf(document.querySelector(s)));
  const absolute = (value) => {
    if (!value) return '';
    try { return new URL(value, document.baseURI).href; } catch (e) { return ''; }
  };
  const video = document.querySelector(sel.video);
  return {
    title: chain(sel.title),
    description: chain(sel.description),
    author: chain(sel.author),
    images: Array.from(document.querySelectorAll(sel.images)).map((img) => ({
      src: img.src || '',
      dataSrc: absolute(img.getAttribute('data-src')),
    })),
    video: video ? {
      src: video.currentSrc || video.src || '',
      sources: Array.from(video.querySelectorAll('source')).map((s) => s.src || ''),
    } : null,
    tags: Array.from(document.querySelectorAll(sel.tags)).map(textOf),
  };
}
"""


class ImageNoteParser:
    """Parser for xiaohongshu note pages.

    Text fields use a fallback chain of selectors (first non-empty wins).
    Images come from the note body and the carousel, preferring the lazy-load
    ``data-src`` attribute over ``src``. The note's optional video is
    best-effort: its failure does not void the note.
    """

    platform = Platform.IMAGE_NOTE
    ready_selector = ".note-content"
    file_prefix = "xhs"
    referer: str | None = "https://www.xiaohongshu.com/"
    video_required = False

    selectors = {
        "title": [".note-content .title", '[data-testid="note-title"]'],
        "description": [".note-content .desc", '[data-testid="note-text"]'],
        "author": [".user-info .username", '[data-testid="user-nickname"]'],
        "images": ".note-content img, .swiper-slide img",
        "video": ".note-content video",
        "tags": ".note-tag, .hashtag",
    }

    async def parse(self, page: Page) -> RawFields:
        data = await _evaluate(page, IMAGE_NOTE_SCRIPT, self.selectors)

        images = data.get("images") if isinstance(data.get("images"), list) else []
        image_urls = _unique_urls(
            (img.get("dataSrc") or img.get("src")) if isinstance(img, dict) else None
            for img in images
        )
        candidates = [MediaCandidate(MediaKind.IMAGE, url) for url in image_urls]

        video_url = _video_url(data.get("video"))
        if video_url:
            candidates.append(MediaCandidate(MediaKind.VIDEO, video_url))

        return RawFields(
            title=first_non_empty(data.get("title")),
            description=first_non_empty(data.get("description")),
            author=first_non_empty(data.get("author")),
            tags=clean_tags(data.get("tags")),
            candidate_media=tuple(candidates),
        )


PARSERS: dict[Platform, type[ContentParser]] = {
    Platform.SHORT_VIDEO: ShortVideoParser,
    Platform.IMAGE_NOTE: ImageNoteParser,
}


def get_parser(platform: Platform) -> ContentParser:
    """Return a parser instance for ``platform``.

    Raises:
        ValueError: If no parser is registered for the platform.
    """
    parser_cls = PARSERS.get(platform)
    if parser_cls is None:
        raise ValueError(f"No parser registered for platform: {platform}")
    return parser_cls()
