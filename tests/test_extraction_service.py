"""Tests for the extract-and-save / preview entry points."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from clipvault.services import extraction_service
from clipvault.services.extraction_service import (
    DEFAULT_TITLE,
    DetectionResult,
    ExtractionFailedError,
    ensure_upload_dirs,
    extract_and_save,
    merge_tags,
    preview_content,
)
from clipvault.services.extractors.base import (
    ExtractedContent,
    ExtractionConfig,
    ExtractionRequest,
    Platform,
)
from clipvault.services.extractors.exceptions import UnsupportedUrlError

XHS_URL = "https://www.xiaohongshu.com/explore/abc"


def _content(**overrides) -> ExtractedContent:
    values = dict(
        title="Note title",
        description="Body",
        author="Lin",
        tags=("travel", "food"),
        images=("/uploads/images/xhs_image_1.jpg",),
        platform=Platform.IMAGE_NOTE,
        source_url=XHS_URL,
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )
    values.update(overrides)
    return ExtractedContent(**values)


def _pipeline(content: ExtractedContent | None, upload_dir: Path) -> MagicMock:
    pipeline = MagicMock()
    pipeline.config = ExtractionConfig(upload_dir=str(upload_dir))
    pipeline.extract_from_url = AsyncMock(return_value=content)
    pipeline.preview_content = AsyncMock(return_value=content)
    return pipeline


class TestDetectUrlType:
    def test_returns_platform_and_url(self) -> None:
        result = extraction_service.detect_url_type(XHS_URL)

        assert result == DetectionResult(platform=Platform.IMAGE_NOTE, url=XHS_URL)

    def test_unsupported(self) -> None:
        with pytest.raises(UnsupportedUrlError):
            extraction_service.detect_url_type("https://example.com/watch?v=1")


class TestEnsureUploadDirs:
    def test_creates_all_subdirectories(self, tmp_path: Path) -> None:
        root = ensure_upload_dirs(tmp_path / "uploads")

        for subdir in ("videos", "images", "thumbnails"):
            assert (root / subdir).is_dir()

    def test_idempotent(self, tmp_path: Path) -> None:
        ensure_upload_dirs(tmp_path)
        ensure_upload_dirs(tmp_path)

        assert (tmp_path / "images").is_dir()


class TestMergeTags:
    def test_caller_tags_appended_without_duplicates(self) -> None:
        assert merge_tags(("travel", "food"), ("food", " summer ", "")) == (
            "travel",
            "food",
            "summer",
        )


class TestExtractAndSave:
    @pytest.mark.asyncio
    async def test_saves_merged_content(self, tmp_path: Path) -> None:
        pipeline = _pipeline(_content(), tmp_path)
        sink = MagicMock()
        sink.save.return_value = {"id": 7}
        request = ExtractionRequest(
            url=XHS_URL, platform=Platform.IMAGE_NOTE, extra_tags=("summer",), category_id=3
        )

        result = await extract_and_save(request, sink, pipeline=pipeline)

        assert result == {"id": 7}
        saved_request, saved_content = sink.save.call_args.args
        assert saved_request is request
        assert saved_content.tags == ("travel", "food", "summer")
        assert saved_content.title == "Note title"
        pipeline.extract_from_url.assert_awaited_once_with(
            XHS_URL, Platform.IMAGE_NOTE, timeout=None
        )
        assert (tmp_path / "thumbnails").is_dir()

    @pytest.mark.asyncio
    async def test_empty_title_defaults(self, tmp_path: Path) -> None:
        pipeline = _pipeline(_content(title=""), tmp_path)
        sink = MagicMock()

        await extract_and_save(
            ExtractionRequest(url=XHS_URL, platform=Platform.IMAGE_NOTE), sink, pipeline=pipeline
        )

        assert sink.save.call_args.args[1].title == DEFAULT_TITLE

    @pytest.mark.asyncio
    async def test_async_sink_is_awaited(self, tmp_path: Path) -> None:
        pipeline = _pipeline(_content(), tmp_path)
        sink = MagicMock()
        sink.save = AsyncMock(return_value="saved")

        result = await extract_and_save(
            ExtractionRequest(url=XHS_URL, platform=Platform.IMAGE_NOTE), sink, pipeline=pipeline
        )

        assert result == "saved"

    @pytest.mark.asyncio
    async def test_null_extraction_raises(self, tmp_path: Path) -> None:
        pipeline = _pipeline(None, tmp_path)
        sink = MagicMock()

        with pytest.raises(ExtractionFailedError) as exc_info:
            await extract_and_save(
                ExtractionRequest(url=XHS_URL, platform=Platform.IMAGE_NOTE),
                sink,
                pipeline=pipeline,
            )

        assert "xiaohongshu" in str(exc_info.value)
        sink.save.assert_not_called()

    @pytest.mark.asyncio
    async def test_owned_pipeline_is_closed(self, tmp_path: Path) -> None:
        owned = _pipeline(_content(), tmp_path)
        owned.__aenter__ = AsyncMock(return_value=owned)
        owned.__aexit__ = AsyncMock(return_value=None)
        sink = MagicMock()

        with patch.object(extraction_service, "ExtractionPipeline", return_value=owned):
            with patch.object(
                ExtractionConfig,
                "from_settings",
                return_value=ExtractionConfig(upload_dir=str(tmp_path)),
            ):
                with patch.object(extraction_service, "ensure_upload_dirs"):
                    await extract_and_save(
                        ExtractionRequest(url=XHS_URL, platform=Platform.IMAGE_NOTE), sink
                    )

        owned.__aexit__.assert_awaited_once()


class TestPreviewContent:
    @pytest.mark.asyncio
    async def test_returns_content_without_saving(self, tmp_path: Path) -> None:
        content = _content()
        pipeline = _pipeline(content, tmp_path)

        result = await preview_content(XHS_URL, pipeline=pipeline)

        assert result is content
        pipeline.preview_content.assert_awaited_once_with(XHS_URL, None, timeout=None)

    @pytest.mark.asyncio
    async def test_returns_none_on_failure(self, tmp_path: Path) -> None:
        pipeline = _pipeline(None, tmp_path)

        assert await preview_content(XHS_URL, pipeline=pipeline) is None


class TestExtractedContentSerialization:
    def test_to_dict_is_json_safe(self) -> None:
        import json

        data = _content().to_dict()

        assert json.loads(json.dumps(data)) == data
        assert data["platform"] == "xiaohongshu"
        assert data["content_type"] == "image"
        assert data["created_at"] == "2024-05-01T00:00:00+00:00"
