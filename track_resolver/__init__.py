"""Track Resolver - playable media metadata for Reddit and TikTok videos."""

__version__ = "0.1.0"
