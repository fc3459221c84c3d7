"""clipvault: extract notes and media from douyin and xiaohongshu pages."""

__version__ = "0.1.0"
