"""Track descriptors and playable source tracks."""

from __future__ import annotations

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, TypeVar

from .exceptions import ResolveError, UpstreamFailure

if TYPE_CHECKING:
    from .container import MpegContainer
    from .http import HttpInterface, PersistentHttpStream
    from .sources.base import BaseSource

T = TypeVar("T")

DURATION_UNKNOWN = 2**63 - 1
"""Duration value for tracks whose length the upstream API did not report."""


@dataclass(frozen=True)
class TrackDescriptor:
    """Metadata of a resolved track.

    Created once during URL resolution and never mutated. The same fields
    make up the persisted form of a track, sources add nothing to it.
    """

    title: str
    """Video title, empty when the API has none"""

    author: str
    """Uploader name, empty when the API has none"""

    duration_ms: int
    """Length in milliseconds, or DURATION_UNKNOWN"""

    identifier: str
    """Reddit video id or TikTok aweme id"""

    is_stream: bool
    """Always False for finite videos"""

    uri: str
    """Reddit: playable fallback URL. TikTok: canonical page URL (not streamed)"""

    thumbnail_url: str = ""
    """Preview image URL"""

    source_name: str = ""
    """Name of the source that produced the descriptor"""

    def __post_init__(self):
        if not self.identifier:
            raise ValueError("Track identifier must not be empty")
        if not isinstance(self.title, str) or not isinstance(self.author, str):
            raise ValueError("Track title and author must be strings")
        if self.duration_ms < 0:
            raise ValueError(f"Invalid track duration: {self.duration_ms}")

    @property
    def has_known_duration(self) -> bool:
        return self.duration_ms != DURATION_UNKNOWN

    def clone(self) -> TrackDescriptor:
        """Return an identical, independent copy."""
        return dataclasses.replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TrackDescriptor:
        """Rebuild a descriptor from its persisted fields.

        Args:
            data: Mapping produced by to_dict()

        Returns:
            TrackDescriptor
        """
        return cls(
            title=data.get("title") or "",
            author=data.get("author") or "",
            duration_ms=int(data.get("duration_ms", DURATION_UNKNOWN)),
            identifier=data["identifier"],
            is_stream=bool(data.get("is_stream", False)),
            uri=data.get("uri") or "",
            thumbnail_url=data.get("thumbnail_url") or "",
            source_name=data.get("source_name") or "",
        )


class SourceTrack(ABC):
    """A resolved track bound to the source that can play it."""

    load_failure_message = "Loading track failed."

    def __init__(self, descriptor: TrackDescriptor, source: BaseSource):
        """Initialize source track.

        Args:
            descriptor: Resolved track metadata
            source: Source that produced the track
        """
        self.descriptor = descriptor
        self.source = source

    @abstractmethod
    def open_stream(self, http: HttpInterface) -> PersistentHttpStream:
        """Open the media byte stream for playback.

        Args:
            http: Borrowed HTTP interface of the owning source

        Returns:
            Seekable stream positioned at the start of the media
        """

    def process(self, consumer: Callable[[MpegContainer], T]) -> T:
        """Open the media and hand it to a consumer.

        The stream is opened here, not at resolve time, and is closed once
        the consumer returns or raises.

        Args:
            consumer: Called with the container wrapping the open stream

        Returns:
            Whatever the consumer returns

        Raises:
            ResolveError: If the stream could not be opened or read
        """
        from .container import MpegContainer

        try:
            with self.source.get_http_interface() as http:
                with self.open_stream(http) as stream:
                    container = MpegContainer(
                        self.descriptor, stream, chunk_size=self.source.config.chunk_size
                    )
                    return consumer(container)
        except ResolveError:
            raise
        except OSError as e:
            raise UpstreamFailure(self.load_failure_message, e) from e

    def make_clone(self) -> SourceTrack:
        """Return an unconnected duplicate with the same descriptor."""
        return type(self)(self.descriptor.clone(), self.source)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(identifier={self.descriptor.identifier!r}, "
            f"title={self.descriptor.title!r})"
        )
