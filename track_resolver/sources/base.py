"""Base source class with common functionality."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from ..config import Config
from ..exceptions import UpstreamFailure
from ..http import HttpInterface, HttpInterfaceManager, is_success_with_content
from ..track import SourceTrack, TrackDescriptor

logger = logging.getLogger(__name__)


class BaseSource(ABC):
    """Base class for URL sources.

    A source recognizes URLs of one platform, resolves them into tracks and
    owns the HTTP pool its tracks use during playback.
    """

    name = ""

    def __init__(self, config: Optional[Config] = None):
        """Initialize base source.

        Args:
            config: Configuration object (defaults to the global config)
        """
        self.config = config or Config()
        self.http_manager = self.create_http_manager()

    def create_http_manager(self) -> HttpInterfaceManager:
        """Create the HTTP pool for this source."""
        return HttpInterfaceManager(
            user_agent=self.config.user_agent,
            timeout=self.config.http_timeout,
        )

    def get_http_interface(self) -> HttpInterface:
        """Borrow an HTTP interface, for resolving or for a playing track."""
        return self.http_manager.interface()

    @abstractmethod
    def load_item(self, url: str) -> Optional[SourceTrack]:
        """Resolve a URL into a track.

        Args:
            url: User-supplied URL

        Returns:
            Track, or None if this source does not recognize the URL

        Raises:
            ResolveError: If the URL is recognized but resolving failed
        """

    @abstractmethod
    def decode_track(self, descriptor: TrackDescriptor) -> SourceTrack:
        """Rebuild a track from its persisted descriptor."""

    def is_track_encodable(self, track: SourceTrack) -> bool:
        return True

    def encode_track(self, track: SourceTrack) -> Dict[str, Any]:
        """Source-specific payload stored next to the descriptor."""
        return {}

    def fetch_json(self, http: HttpInterface, url: str, description: str) -> Any:
        """GET a JSON document.

        Args:
            http: Borrowed HTTP interface
            url: API URL
            description: What is being fetched, for error messages

        Returns:
            Parsed JSON value

        Raises:
            UpstreamFailure: On I/O errors, unexpected status or invalid JSON
        """
        try:
            with http.get(url) as response:
                status = response.status_code
                if not is_success_with_content(status):
                    raise UpstreamFailure(
                        f"Unexpected response code from {description}: {status}"
                    )
                return response.json()
        except (requests.RequestException, ValueError) as e:
            raise UpstreamFailure(f"Failed to fetch {description}.", e) from e

    def shutdown(self):
        """Close the HTTP pool."""
        self.http_manager.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
