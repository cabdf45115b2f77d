"""Reddit video posts via the public post info API."""

import logging
import re
from typing import Optional

from ..exceptions import NotPlayableContent, UpstreamFailure
from ..formats import dig, duration_text_to_millis, safe_text
from ..http import HttpInterface, PersistentHttpStream
from ..track import DURATION_UNKNOWN, SourceTrack, TrackDescriptor
from .base import BaseSource

logger = logging.getLogger(__name__)

POST_URL_PATTERN = re.compile(
    r"^(?:https?://)?(?:old\.|www\.)?reddit\.com/r/\w+/\w+/([^/?#]+)(?:[/?#].*)?$"
)
VIDEO_URL_PATTERN = re.compile(r"^https?://v\.redd\.it/([^/]+)/.+")

API_URL = "https://api.reddit.com/api/info/?id=t3_"

# Reddit uses these keywords instead of an image URL
THUMBNAIL_PLACEHOLDERS = {
    "default": "https://www.reddit.com/static/noimage.png",
    "self": "https://www.reddit.com/static/self_default2.png",
    "nsfw": "https://www.reddit.com/static/nsfw2.png",
}


def resolve_thumbnail(thumbnail: str) -> str:
    """Map Reddit's thumbnail keywords to real image URLs."""
    return THUMBNAIL_PLACEHOLDERS.get(thumbnail, thumbnail)


class RedditTrack(SourceTrack):
    """Reddit video, played straight from its fallback URL."""

    load_failure_message = "Loading track from Reddit failed."

    def open_stream(self, http: HttpInterface) -> PersistentHttpStream:
        logger.debug("Starting Reddit track from URL: %s", self.descriptor.uri)
        return PersistentHttpStream(http, self.descriptor.uri)


class RedditSource(BaseSource):
    """Reddit post source."""

    name = "reddit"

    def load_item(self, url: str) -> Optional[RedditTrack]:
        match = POST_URL_PATTERN.match(url.strip())
        if not match:
            return None

        return self._load_track(match.group(1))

    def _load_track(self, post_id: str) -> RedditTrack:
        with self.get_http_interface() as http:
            data = self.fetch_json(http, API_URL + post_id, "video info")

        post = dig(data, "data", "children", 0, "data")
        return self._extract_track(post if isinstance(post, dict) else {})

    def _extract_track(self, data: dict) -> RedditTrack:
        """Build a track from the post object of the info response.

        Args:
            data: `data.children[0].data` of the API response

        Returns:
            RedditTrack
        """
        title = safe_text(data.get("title"))
        author = safe_text(data.get("author"))
        thumbnail_url = resolve_thumbnail(safe_text(data.get("thumbnail")))

        if data.get("secure_media") is None:
            raise NotPlayableContent("Reddit post does not contain a video.")

        video = dig(data, "secure_media", "reddit_video")
        if not isinstance(video, dict):
            video = {}
        fallback_url = safe_text(video.get("fallback_url"))

        match = VIDEO_URL_PATTERN.match(fallback_url)
        if not match:
            raise UpstreamFailure("Couldn't get playback url.")

        duration = video.get("duration")
        if duration is None:
            duration_ms = DURATION_UNKNOWN
        else:
            try:
                duration_ms = duration_text_to_millis(duration)
            except ValueError as e:
                raise UpstreamFailure("Couldn't read video duration.", e) from e

        descriptor = TrackDescriptor(
            title=title,
            author=author,
            duration_ms=duration_ms,
            identifier=match.group(1),
            is_stream=False,
            uri=fallback_url,
            thumbnail_url=thumbnail_url,
            source_name=self.name,
        )
        return RedditTrack(descriptor, self)

    def decode_track(self, descriptor: TrackDescriptor) -> RedditTrack:
        return RedditTrack(descriptor, self)
