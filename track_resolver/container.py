"""MPEG-4 container handling for opened media streams."""

import io
import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

try:
    from mutagen import MutagenError
    from mutagen.mp4 import MP4
except ImportError:
    print("Error: mutagen not installed", file=sys.stderr)
    print("Install with: pip install mutagen", file=sys.stderr)
    sys.exit(1)

from .exceptions import UpstreamFailure
from .track import TrackDescriptor

DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass
class ContainerInfo:
    """Stream properties read from the MP4 atoms."""

    codec: str
    """Codec of the first audio track, e.g. 'mp4a.40.2'"""

    length_seconds: float
    """Length reported by the container"""

    bitrate: int
    """Bitrate in bits per second, 0 if unknown"""

    channels: int
    """Audio channel count"""

    sample_rate: int
    """Audio sample rate in Hz"""

    codec_description: str = ""
    """Human readable codec name"""


class MpegContainer:
    """MP4 media handed to a track consumer.

    Wraps the opened stream together with the descriptor of the track it
    belongs to. Decoding itself happens downstream.
    """

    def __init__(
        self,
        descriptor: TrackDescriptor,
        stream: BinaryIO,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        """Initialize container.

        Args:
            descriptor: Metadata of the track being played
            stream: Seekable binary stream positioned at the media start
            chunk_size: Default read size for iter_chunks()
        """
        self.descriptor = descriptor
        self.chunk_size = chunk_size
        if isinstance(stream, io.RawIOBase):
            stream = io.BufferedReader(stream)
        self.stream = stream
        self._info: Optional[ContainerInfo] = None

    def probe(self) -> ContainerInfo:
        """Read container properties and rewind the stream.

        Returns:
            ContainerInfo

        Raises:
            UpstreamFailure: If the media is not a readable MP4 container
        """
        if self._info is not None:
            return self._info

        start = self.stream.tell()
        try:
            info = MP4(self.stream).info
        except (MutagenError, OSError) as e:
            raise UpstreamFailure("Failed to read media container.", e) from e
        finally:
            self.stream.seek(start)

        self._info = ContainerInfo(
            codec=info.codec or "",
            length_seconds=float(info.length or 0.0),
            bitrate=int(info.bitrate or 0),
            channels=int(info.channels or 0),
            sample_rate=int(info.sample_rate or 0),
            codec_description=info.codec_description or "",
        )
        return self._info

    def iter_chunks(self, chunk_size: Optional[int] = None) -> Iterator[bytes]:
        """Yield raw media bytes from the current stream position."""
        chunk_size = chunk_size or self.chunk_size
        while True:
            chunk = self.stream.read(chunk_size)
            if not chunk:
                return
            yield chunk
