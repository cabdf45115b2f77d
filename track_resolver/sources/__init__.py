"""Platform-specific sources."""

from . import reddit, tiktok
from .base import BaseSource
from .reddit import RedditSource
from .tiktok import TikTokSource

__all__ = ["reddit", "tiktok", "BaseSource", "RedditSource", "TikTokSource"]
