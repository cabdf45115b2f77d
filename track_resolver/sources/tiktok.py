"""TikTok videos via the musical.ly aweme detail API."""

import logging
import re
from typing import Optional

import requests

from ..exceptions import NotPlayableContent, UpstreamFailure
from ..formats import as_int, dig, safe_text
from ..http import (
    HttpInterface,
    HttpInterfaceManager,
    PersistentHttpStream,
    get_redirect_location,
    is_redirect,
)
from ..track import DURATION_UNKNOWN, SourceTrack, TrackDescriptor
from .base import BaseSource

logger = logging.getLogger(__name__)

TRACK_URL_PATTERN = re.compile(r"^(?:https?://)?(?:www\.|m\.)?tiktok\.com/@[^/]+/video/(\d+)")
MOBILE_URL_PATTERN = re.compile(r"^(?:https?://)?vm\.tiktok\.com/\w+")

API_URL = "https://api2.musical.ly/aweme/v1/aweme/detail/?aweme_id="


class TikTokTrack(SourceTrack):
    """TikTok video.

    Only the aweme id is kept from resolving. Direct media URLs expire, so a
    fresh one is fetched from the detail API every time playback starts.
    """

    load_failure_message = "Loading track from TikTok failed."

    def load_playback_url(self, http: HttpInterface) -> str:
        """Fetch a current direct media URL for this video."""
        data = self.source.fetch_json(
            http, API_URL + self.descriptor.identifier, "tiktok api"
        )
        url = dig(data, "aweme_detail", "video", "play_addr", "url_list", 0)
        if not url:
            raise UpstreamFailure("Failed to get tiktok video playback url.")
        return safe_text(url)

    def open_stream(self, http: HttpInterface) -> PersistentHttpStream:
        playback_url = self.load_playback_url(http)
        logger.debug("Starting TikTok track from URL: %s", playback_url)
        return PersistentHttpStream(http, playback_url)


class TikTokSource(BaseSource):
    """TikTok video source.

    Requests are sent without following redirects so the Location of short
    vm.tiktok.com links can be read, and all sessions share one cookie jar
    since the detail API relies on cookies set by earlier responses.
    """

    name = "tiktok"

    def create_http_manager(self) -> HttpInterfaceManager:
        return HttpInterfaceManager(
            user_agent=self.config.user_agent,
            timeout=self.config.http_timeout,
            follow_redirects=False,
            shared_cookies=True,
        )

    def load_item(self, url: str) -> Optional[TikTokTrack]:
        url = url.strip()

        match = TRACK_URL_PATTERN.match(url)
        if match:
            return self._extract_from_api(match.group(1))

        if MOBILE_URL_PATTERN.match(url):
            return self._extract_from_api(self._get_real_id(url))

        return None

    def _get_real_url(self, url: str) -> Optional[str]:
        """Read where a short link redirects to, without following it."""
        if not re.match(r"^https?://", url):
            url = "https://" + url

        try:
            with self.get_http_interface() as http:
                with http.get(url, allow_redirects=False) as response:
                    if response.status_code >= 400:
                        raise UpstreamFailure(
                            f"Unexpected response code from tiktok short url: {response.status_code}"
                        )
                    if not is_redirect(response.status_code):
                        return None
                    return get_redirect_location(url, response)
        except requests.RequestException as e:
            raise UpstreamFailure("Failed to get real url of tiktok video.", e) from e

    def _get_real_id(self, url: str) -> str:
        real_url = self._get_real_url(url)
        match = TRACK_URL_PATTERN.match(real_url or "")
        if not match:
            raise NotPlayableContent("TikTok url is not a valid video.")
        return match.group(1)

    def _extract_from_api(self, aweme_id: str) -> TikTokTrack:
        with self.get_http_interface() as http:
            data = self.fetch_json(http, API_URL + aweme_id, "tiktok api")

        detail = dig(data, "aweme_detail")
        if not isinstance(detail, dict):
            raise NotPlayableContent("TikTok video is not available.")

        video = detail.get("video")
        if not isinstance(video, dict):
            video = {}
        author = detail.get("author")
        if not isinstance(author, dict):
            author = {}

        duration_ms = as_int(video.get("duration"), DURATION_UNKNOWN)
        if duration_ms < 0:
            duration_ms = DURATION_UNKNOWN

        descriptor = TrackDescriptor(
            title=safe_text(detail.get("desc")),
            author=safe_text(author.get("nickname")),
            duration_ms=duration_ms,
            identifier=aweme_id,
            is_stream=False,
            uri=f"https://www.tiktok.com/@{safe_text(author.get('unique_id'))}/video/{aweme_id}",
            thumbnail_url=safe_text(dig(video, "cover", "url_list", 0)),
            source_name=self.name,
        )
        return TikTokTrack(descriptor, self)

    def decode_track(self, descriptor: TrackDescriptor) -> TikTokTrack:
        return TikTokTrack(descriptor, self)
