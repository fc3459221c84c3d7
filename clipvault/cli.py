"""Command-line preview and extraction.

Usage:
    python -m clipvault https://www.xiaohongshu.com/explore/abc
    python -m clipvault https://v.douyin.com/xyz --upload-dir ./media --timeout 90
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import replace

from clipvault.core.config import settings
from clipvault.services.extractors import (
    ExtractionConfig,
    ExtractionPipeline,
    Platform,
    UnsupportedUrlError,
    detect_platform,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_UNSUPPORTED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="clipvault",
        description="Extract a douyin video or xiaohongshu note and download its media.",
    )
    parser.add_argument("url", help="Page or share-link URL")
    parser.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        help="Skip URL detection and use this platform",
    )
    parser.add_argument("--upload-dir", help="Where to store media (default: UPLOAD_DIR)")
    parser.add_argument("--timeout", type=float, help="Overall deadline in seconds")
    parser.add_argument(
        "--headful", action="store_true", help="Show the browser window"
    )
    return parser


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.get_log_level_int(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )


async def _run(args: argparse.Namespace, config: ExtractionConfig) -> int:
    platform = Platform(args.platform) if args.platform else detect_platform(args.url)
    async with ExtractionPipeline(config) as pipeline:
        content = await pipeline.extract_from_url(args.url, platform, timeout=args.timeout)

    if content is None:
        logger.error("No content extracted from %s", args.url)
        return EXIT_FAILED

    print(json.dumps(content.to_dict(), ensure_ascii=False, indent=2))
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging()

    config = ExtractionConfig.from_settings(settings)
    if args.upload_dir:
        config = replace(config, upload_dir=args.upload_dir)
    if args.headful:
        config = replace(config, playwright_headless=False)

    try:
        return asyncio.run(_run(args, config))
    except UnsupportedUrlError as e:
        logger.error("%s", e)
        return EXIT_UNSUPPORTED
