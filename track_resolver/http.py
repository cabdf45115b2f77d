"""HTTP client handles and persistent media streams, built on requests."""

import io
import logging
import re
import sys
import threading
from typing import List, Optional
from urllib.parse import urljoin

try:
    import requests
    from requests.cookies import RequestsCookieJar
    from urllib3.exceptions import HTTPError as Urllib3HTTPError
except ImportError:
    print("Error: requests not installed", file=sys.stderr)
    print("Install with: pip install requests", file=sys.stderr)
    sys.exit(1)

logger = logging.getLogger(__name__)

REDIRECT_CODES = (301, 302, 303, 307, 308)

_CONTENT_RANGE_TOTAL = re.compile(r"^bytes\s+(?:\d+-\d+|\*)/(\d+)$")


def is_success_with_content(status_code: int) -> bool:
    """Check for a 2xx status that carries a body."""
    return 200 <= status_code < 300 and status_code != 204


def is_redirect(status_code: int) -> bool:
    return status_code in REDIRECT_CODES


def get_redirect_location(request_url: str, response: requests.Response) -> Optional[str]:
    """Get the absolute redirect target of a response.

    Args:
        request_url: URL the request was sent to
        response: Response that was not auto-followed

    Returns:
        Absolute Location URL, or None if the response has no Location header
    """
    location = response.headers.get("Location")
    if not location:
        return None
    return urljoin(request_url, location)


class HttpInterfaceManager:
    """Pool of requests sessions, one per thread.

    A session is created the first time a thread asks for an interface and
    is reused by later operations on that thread. Sessions are only closed
    by close().
    """

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: Optional[float] = None,
        follow_redirects: bool = True,
        shared_cookies: bool = False,
    ):
        """Initialize interface manager.

        Args:
            user_agent: User-Agent header for every request
            timeout: Request timeout in seconds (None = requests default)
            follow_redirects: Whether redirects are followed automatically
            shared_cookies: Share one cookie jar across all thread sessions
        """
        self.user_agent = user_agent
        self.timeout = timeout
        self.follow_redirects = follow_redirects
        self.cookies = RequestsCookieJar() if shared_cookies else None

        self._local = threading.local()
        self._lock = threading.Lock()
        self._sessions: List[requests.Session] = []
        self._closed = False

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        if self.user_agent:
            session.headers.update({"User-Agent": self.user_agent})
        if self.cookies is not None:
            session.cookies = self.cookies
        return session

    def _thread_session(self) -> requests.Session:
        session = getattr(self._local, "session", None)
        if session is None:
            session = self._create_session()
            self._local.session = session
            with self._lock:
                self._sessions.append(session)
        return session

    def interface(self) -> "HttpInterface":
        """Borrow an HTTP interface for the current thread.

        Use it as a context manager so it is released even on error.
        """
        if self._closed:
            raise RuntimeError("HTTP interface manager is closed")
        return HttpInterface(self, self._thread_session())

    def close(self):
        """Close every session created by this manager."""
        with self._lock:
            sessions, self._sessions = self._sessions, []
            self._closed = True
            self._local = threading.local()

        for session in sessions:
            session.close()


class HttpInterface:
    """A session borrowed from an HttpInterfaceManager for one operation."""

    def __init__(self, manager: HttpInterfaceManager, session: requests.Session):
        self.manager = manager
        self.session = session
        self.released = False

    def get(self, url: str, **kwargs) -> requests.Response:
        """Send a GET request with the manager's redirect and timeout policy.

        Args:
            url: Request URL
            **kwargs: Extra arguments for requests.Session.get

        Returns:
            Response (caller closes it)
        """
        if self.released:
            raise RuntimeError("HTTP interface used after release")

        kwargs.setdefault("allow_redirects", self.manager.follow_redirects)
        if self.manager.timeout is not None:
            kwargs.setdefault("timeout", self.manager.timeout)

        logger.debug("GET %s", url)
        return self.session.get(url, **kwargs)

    def close(self):
        """Release the interface; the session stays with its thread."""
        self.released = True

    def __enter__(self) -> "HttpInterface":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


class PersistentHttpStream(io.RawIOBase):
    """Seekable read-only stream over an HTTP resource.

    The connection is opened lazily on the first read. Seeking drops the
    connection and the next read reconnects with a Range request at the new
    position. A connection lost mid-read is reopened once at the current
    position.
    """

    def __init__(self, http: HttpInterface, url: str, content_length: Optional[int] = None):
        """Initialize persistent stream.

        Args:
            http: Borrowed HTTP interface to send requests with
            url: Media URL
            content_length: Total length in bytes, if already known
        """
        super().__init__()
        self.http = http
        self.url = url
        self._content_length = content_length
        self._position = 0
        self._response: Optional[requests.Response] = None

    @property
    def content_length(self) -> Optional[int]:
        return self._content_length

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._position

    def _connect(self) -> Optional[requests.Response]:
        headers = {}
        if self._position > 0:
            headers["Range"] = f"bytes={self._position}-"

        response = self.http.get(self.url, headers=headers, stream=True, allow_redirects=True)
        status = response.status_code

        if status == 416:
            # Requested range starts at or past the end
            response.close()
            if self._content_length is None:
                self._content_length = self._position
            return None

        if status not in (200, 206):
            response.close()
            raise OSError(f"Unexpected response code from media stream: {status}")

        self._update_length(response)

        if status == 200 and self._position > 0:
            self._skip(response, self._position)

        self._response = response
        return response

    def _update_length(self, response: requests.Response):
        content_range = response.headers.get("Content-Range", "")
        match = _CONTENT_RANGE_TOTAL.match(content_range.strip())
        if match:
            self._content_length = int(match.group(1))
            return

        length = response.headers.get("Content-Length")
        if length and length.isdigit():
            offset = self._position if response.status_code == 206 else 0
            self._content_length = offset + int(length)

    def _skip(self, response: requests.Response, count: int):
        """Discard bytes when the server ignored our Range header."""
        remaining = count
        try:
            while remaining > 0:
                data = response.raw.read(min(remaining, 64 * 1024))
                if not data:
                    break
                remaining -= len(data)
        except (OSError, Urllib3HTTPError, requests.RequestException) as e:
            response.close()
            raise OSError(f"Skipping to position {count} failed: {e}") from e

    def _disconnect(self):
        if self._response is not None:
            self._response.close()
            self._response = None

    def readinto(self, buffer) -> int:
        if self.closed:
            raise ValueError("I/O operation on closed stream")

        size = len(buffer)
        if size == 0:
            return 0
        if self._content_length is not None and self._position >= self._content_length:
            return 0

        data = b""
        for attempt in range(2):
            response = self._response or self._connect()
            if response is None:
                return 0

            try:
                data = response.raw.read(size)
                break
            except (OSError, Urllib3HTTPError, requests.RequestException) as e:
                self._disconnect()
                if attempt:
                    raise OSError(f"Reading media stream failed: {e}") from e
                logger.debug("Media stream dropped at %d, reconnecting: %s", self._position, e)

        count = len(data)
        buffer[:count] = data
        self._position += count

        if count == 0:
            self._disconnect()

        return count

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self._position + offset
        elif whence == io.SEEK_END:
            if self._content_length is None:
                self._response or self._connect()
            if self._content_length is None:
                raise OSError("Cannot seek from end of a stream with unknown length")
            target = self._content_length + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")

        if target < 0:
            raise ValueError(f"Negative seek position {target}")

        if target != self._position:
            self._disconnect()
            self._position = target

        return self._position

    def close(self):
        if not self.closed:
            self._disconnect()
        super().close()
