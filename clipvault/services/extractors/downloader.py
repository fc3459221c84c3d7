"""Download media assets referenced by extracted pages."""

from __future__ import annotations

import logging
from pathlib import Path
from uuid import uuid4

import httpx

from clipvault.services.extractors.base import (
    AssetStatus,
    ExtractionConfig,
    MediaAsset,
    MediaKind,
)
from clipvault.services.extractors.exceptions import MediaDownloadError

logger = logging.getLogger(__name__)

MEDIA_SUBDIRS = {
    MediaKind.VIDEO: "videos",
    MediaKind.IMAGE: "images",
}

IMAGE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
    "image/avif": "avif",
}


def file_extension(kind: MediaKind, content_type: str) -> str:
    """Pick a file extension for a downloaded asset."""
    if kind is MediaKind.VIDEO:
        return "mp4"
    mime = content_type.split(";", 1)[0].strip().lower()
    return IMAGE_EXTENSIONS.get(mime, "jpg")


class MediaDownloader:
    """Fetch media bytes and store them under unique names.

    Files land in ``{upload_dir}/videos`` or ``{upload_dir}/images`` and are
    named ``{file_prefix}_{kind}_{token}.{ext}``. The returned paths are
    root-relative (``/uploads/images/...``) for serving as static files.

    Image failures are returned as FAILED assets. Video failures raise
    MediaDownloadError; the caller decides whether that is fatal.
    """

    def __init__(
        self,
        config: ExtractionConfig | None = None,
        *,
        file_prefix: str,
        referer: str | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self.file_prefix = file_prefix
        self.referer = referer

    @property
    def headers(self) -> dict[str, str]:
        headers = {"User-Agent": self.config.user_agent}
        if self.referer:
            headers["Referer"] = self.referer
        return headers

    async def download(self, kind: MediaKind, source_url: str) -> MediaAsset:
        """Download one asset.

        Returns:
            MediaAsset with DOWNLOADED status, or FAILED for images.

        Raises:
            MediaDownloadError: If a video cannot be downloaded.
        """
        try:
            local_path = await self._download(kind, source_url)
        except MediaDownloadError as e:
            if kind is MediaKind.VIDEO:
                raise
            logger.warning("Image download failed: %s", e)
            return MediaAsset(
                source_url=source_url,
                kind=kind,
                status=AssetStatus.FAILED,
                error=e.reason,
            )

        return MediaAsset(
            source_url=source_url,
            kind=kind,
            status=AssetStatus.DOWNLOADED,
            local_path=local_path,
        )

    async def _download(self, kind: MediaKind, url: str) -> str:
        content, content_type = await self._fetch(url)

        file_name = (
            f"{self.file_prefix}_{kind.value}_{uuid4().hex}"
            f".{file_extension(kind, content_type)}"
        )
        subdir = MEDIA_SUBDIRS[kind]
        target = Path(self.config.upload_dir) / subdir / file_name

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            raise MediaDownloadError(url, f"could not write {target}: {e}") from e

        logger.debug("Saved %s (%d bytes) from %s", target, len(content), url)
        prefix = self.config.media_url_prefix.rstrip("/")
        return f"{prefix}/{subdir}/{file_name}"

    async def _fetch(self, url: str) -> tuple[bytes, str]:
        """Fetch URL bytes, stopping as soon as the size ceiling is passed.

        Returns:
            Tuple of (content, content_type)

        Raises:
            MediaDownloadError: On invalid URLs, transport errors, non-success
                status or oversized responses.
        """
        max_bytes = self.config.max_media_size_mb * 1024 * 1024
        try:
            async with httpx.AsyncClient(
                timeout=self.config.download_timeout_seconds,
                follow_redirects=True,
            ) as client:
                request = client.build_request("GET", url, headers=self.headers)
                response = await client.send(request, stream=True)
                try:
                    response.raise_for_status()
                    declared = response.headers.get("content-length", "")
                    if declared.isdigit() and int(declared) > max_bytes:
                        raise MediaDownloadError(
                            url, f"size {declared} exceeds maximum {max_bytes}"
                        )
                    chunks: list[bytes] = []
                    received = 0
                    async for chunk in response.aiter_bytes():
                        received += len(chunk)
                        if received > max_bytes:
                            raise MediaDownloadError(
                                url, f"size {received} exceeds maximum {max_bytes}"
                            )
                        chunks.append(chunk)
                finally:
                    await response.aclose()
        except httpx.InvalidURL as e:
            raise MediaDownloadError(url, f"invalid URL: {e}") from e
        except httpx.TimeoutException as e:
            raise MediaDownloadError(url, f"timeout: {e}") from e
        except httpx.HTTPStatusError as e:
            raise MediaDownloadError(
                url, f"HTTP {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.RequestError as e:
            raise MediaDownloadError(url, f"network error: {e}") from e
        except httpx.HTTPError as e:
            raise MediaDownloadError(url, f"HTTP error: {e}") from e

        content = b"".join(chunks)
        if not content:
            raise MediaDownloadError(url, "empty response body")

        return content, response.headers.get("content-type", "")
