"""Main resolver that routes URLs to the matching source."""

import sys
from datetime import datetime
from typing import Any, Dict, List, Optional

from .config import Config
from .exceptions import ResolveError, Severity
from .sources import RedditSource, TikTokSource
from .sources.base import BaseSource
from .track import SourceTrack, TrackDescriptor

SOURCE_CLASSES = [RedditSource, TikTokSource]


class TrackResolver:
    """Main resolver class that routes to appropriate source handler."""

    def __init__(self, config: Config, sources: Optional[List[BaseSource]] = None):
        """Initialize resolver.

        Args:
            config: Configuration object
            sources: Sources to use instead of the enabled built-in ones
        """
        self.config = config

        if sources is None:
            sources = [
                source_class(config)
                for source_class in SOURCE_CLASSES
                if config.source_enabled(source_class.name)
            ]
        self.sources = list(sources)

    def register_source(self, source: BaseSource):
        """Add a source after the existing ones."""
        self.sources.append(source)

    def get_source(self, name: str) -> Optional[BaseSource]:
        for source in self.sources:
            if source.name == name:
                return source
        return None

    def load_item(self, url: str) -> Optional[SourceTrack]:
        """Resolve a URL with the first source that recognizes it.

        Args:
            url: User-supplied URL

        Returns:
            Track, or None if no source recognizes the URL

        Raises:
            ResolveError: If a source recognized the URL but failed
        """
        for source in self.sources:
            try:
                track = source.load_item(url)
            except ResolveError as e:
                self.report_failure(url, e)
                raise

            if track is not None:
                return track

        return None

    def report_failure(self, url: str, error: ResolveError):
        """Report a failed resolve.

        Common failures only get a warning. Suspicious ones are also written
        to the failure log since they usually mean an upstream API changed.
        """
        if error.severity is Severity.COMMON:
            print(f"⚠️ {error}", file=sys.stderr)
            return

        print(f"❌ {error}", file=sys.stderr)
        self.log_failure(url, str(error))

    def log_failure(self, url: str, error: str):
        """Log failed resolve.

        Args:
            url: URL that failed
            error: Error message
        """
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M")
        log_entry = f"{timestamp} | {url} | {error}\n"

        try:
            log_path = self.config.failed_log
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(log_path, "a") as f:
                f.write(log_entry)
        except OSError as e:
            print(f"⚠️ Failed to write failure log: {e}", file=sys.stderr)

    def encode_track(self, track: SourceTrack) -> Dict[str, Any]:
        """Serialize a track into its persisted envelope."""
        if not track.source.is_track_encodable(track):
            raise ValueError(f"Track from {track.source.name} cannot be encoded")

        return {
            "source": track.source.name,
            "info": track.descriptor.to_dict(),
            "payload": track.source.encode_track(track),
        }

    def decode_track(self, envelope: Dict[str, Any]) -> SourceTrack:
        """Rebuild a track from its persisted envelope.

        Raises:
            ValueError: If no registered source has the envelope's name
        """
        name = envelope.get("source", "")
        source = self.get_source(name)
        if source is None:
            raise ValueError(f"Unknown track source: {name!r}")

        return source.decode_track(TrackDescriptor.from_dict(envelope["info"]))

    def shutdown(self):
        """Close the HTTP pools of all sources."""
        for source in self.sources:
            source.shutdown()
