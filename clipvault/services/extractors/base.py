"""Base types shared by the extraction engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from clipvault.core.config import Settings

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)


class Platform(str, Enum):
    """Supported source platforms."""

    SHORT_VIDEO = "douyin"
    IMAGE_NOTE = "xiaohongshu"


class MediaKind(str, Enum):
    VIDEO = "video"
    IMAGE = "image"


class AssetStatus(str, Enum):
    DOWNLOADED = "downloaded"
    FAILED = "failed"


@dataclass(frozen=True)
class ExtractionConfig:
    """Configuration for the extraction pipeline."""

    upload_dir: str = "./uploads"
    media_url_prefix: str = "/uploads"
    playwright_headless: bool = True
    navigation_timeout_seconds: float = 30
    content_ready_timeout_seconds: float = 10
    download_timeout_seconds: float = 60
    max_media_size_mb: int = 200
    max_concurrent_downloads: int = 1
    user_agent: str = DESKTOP_USER_AGENT
    viewport_width: int = 1366
    viewport_height: int = 768

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> ExtractionConfig:
        """Build a config from service settings (defaults to the global settings)."""
        if settings is None:
            from clipvault.core.config import settings as global_settings

            settings = global_settings
        return cls(
            upload_dir=settings.upload_dir,
            media_url_prefix=settings.media_url_prefix,
            playwright_headless=settings.playwright_headless,
            navigation_timeout_seconds=settings.navigation_timeout_seconds,
            content_ready_timeout_seconds=settings.content_ready_timeout_seconds,
            download_timeout_seconds=settings.download_timeout_seconds,
            max_media_size_mb=settings.max_media_size_mb,
            max_concurrent_downloads=settings.max_concurrent_downloads,
            user_agent=settings.user_agent,
        )


@dataclass(frozen=True)
class ExtractionRequest:
    """A single request to extract content from a URL."""

    url: str
    platform: Platform
    extra_tags: tuple[str, ...] = ()
    category_id: int | None = None  # Passed through to the persistence layer


@dataclass(frozen=True)
class MediaCandidate:
    """A media URL discovered in the rendered page."""

    kind: MediaKind
    url: str


@dataclass(frozen=True)
class RawFields:
    """Fields read from the rendered DOM, before any media is downloaded."""

    title: str = ""
    description: str = ""
    author: str = ""
    tags: tuple[str, ...] = ()
    candidate_media: tuple[MediaCandidate, ...] = ()

    @property
    def image_candidates(self) -> list[MediaCandidate]:
        return [c for c in self.candidate_media if c.kind is MediaKind.IMAGE]

    @property
    def video_candidate(self) -> MediaCandidate | None:
        for candidate in self.candidate_media:
            if candidate.kind is MediaKind.VIDEO:
                return candidate
        return None


@dataclass(frozen=True)
class MediaAsset:
    """Outcome of one download attempt."""

    source_url: str
    kind: MediaKind
    status: AssetStatus
    local_path: str | None = None  # Root-relative, e.g. /uploads/images/x.jpg
    error: str | None = None

    @property
    def downloaded(self) -> bool:
        return self.status is AssetStatus.DOWNLOADED


@dataclass(frozen=True)
class ExtractedContent:
    """Final result of a successful extraction.

    ``images`` holds only successfully downloaded images, in DOM discovery
    order. ``assets`` records every attempted download, including failures,
    so callers can tell "nothing discovered" apart from "everything failed".
    """

    title: str
    description: str
    author: str
    tags: tuple[str, ...]
    images: tuple[str, ...] = ()
    video_path: str | None = None
    platform: Platform | None = None
    source_url: str = ""
    assets: tuple[MediaAsset, ...] = ()
    warnings: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def content_type(self) -> str:
        """Return "video" when a video was downloaded, otherwise "image"."""
        return MediaKind.VIDEO.value if self.video_path else MediaKind.IMAGE.value

    @property
    def primary_media_path(self) -> str | None:
        """Main file for display: the first image, else the video."""
        if self.images:
            return self.images[0]
        return self.video_path

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-safe representation."""
        return {
            "title": self.title,
            "description": self.description,
            "author": self.author,
            "tags": list(self.tags),
            "images": list(self.images),
            "video_path": self.video_path,
            "platform": self.platform.value if self.platform else None,
            "source_url": self.source_url,
            "content_type": self.content_type,
            "assets": [
                {
                    "source_url": a.source_url,
                    "kind": a.kind.value,
                    "status": a.status.value,
                    "local_path": a.local_path,
                    "error": a.error,
                }
                for a in self.assets
            ],
            "warnings": list(self.warnings),
            "created_at": self.created_at.isoformat(),
        }
