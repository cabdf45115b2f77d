"""Unit tests for the HTTP pool and persistent streams."""

import io
import threading
from unittest.mock import MagicMock, Mock

import pytest
from urllib3.exceptions import ProtocolError

from track_resolver.http import (
    HttpInterfaceManager,
    PersistentHttpStream,
    get_redirect_location,
    is_redirect,
    is_success_with_content,
)


def test_is_success_with_content():
    """Test status classification."""
    assert is_success_with_content(200)
    assert is_success_with_content(206)
    assert not is_success_with_content(204)
    assert not is_success_with_content(301)
    assert not is_success_with_content(404)
    assert not is_success_with_content(500)


def test_is_redirect():
    """Test redirect status detection."""
    assert is_redirect(301)
    assert is_redirect(302)
    assert not is_redirect(200)


def test_get_redirect_location(make_response):
    """Test absolute and relative Location headers."""
    absolute = make_response(301, headers={"Location": "https://www.tiktok.com/@a/video/1"})
    relative = make_response(302, headers={"Location": "/@a/video/2"})

    assert get_redirect_location("https://vm.tiktok.com/x/", absolute) == "https://www.tiktok.com/@a/video/1"
    assert get_redirect_location("https://vm.tiktok.com/x/", relative) == "https://vm.tiktok.com/@a/video/2"
    assert get_redirect_location("https://vm.tiktok.com/x/", make_response(200)) is None


class TestHttpInterfaceManager:
    """Test the thread-affine session pool."""

    def test_session_reused_on_same_thread(self, mock_session):
        """Test that one thread keeps its session."""
        manager = HttpInterfaceManager()

        with manager.interface() as first:
            pass
        with manager.interface() as second:
            pass

        assert first.session is second.session
        assert first.released

    def test_session_per_thread(self):
        """Test that threads get their own session."""
        manager = HttpInterfaceManager()
        sessions = []

        def borrow():
            with manager.interface() as http:
                sessions.append(http.session)

        borrow()
        thread = threading.Thread(target=borrow)
        thread.start()
        thread.join()

        assert len(sessions) == 2
        assert sessions[0] is not sessions[1]
        manager.close()

    def test_shared_cookies(self):
        """Test that sessions share one cookie jar when asked to."""
        manager = HttpInterfaceManager(shared_cookies=True)
        sessions = []

        def borrow():
            with manager.interface() as http:
                sessions.append(http.session)

        borrow()
        thread = threading.Thread(target=borrow)
        thread.start()
        thread.join()

        assert sessions[0].cookies is manager.cookies
        assert sessions[1].cookies is manager.cookies
        manager.close()

    def test_get_applies_policy(self, mock_session):
        """Test redirect, timeout and user agent settings."""
        manager = HttpInterfaceManager(user_agent="agent/1.0", timeout=3, follow_redirects=False)

        with manager.interface() as http:
            http.get("https://example.com/")

        mock_session.get.assert_called_once_with(
            "https://example.com/", allow_redirects=False, timeout=3
        )
        assert mock_session.headers["User-Agent"] == "agent/1.0"

    def test_get_allows_override(self, mock_session):
        """Test that callers can override the redirect policy."""
        manager = HttpInterfaceManager(follow_redirects=False)

        with manager.interface() as http:
            http.get("https://example.com/", allow_redirects=True)

        assert mock_session.get.call_args.kwargs["allow_redirects"] is True
        assert "timeout" not in mock_session.get.call_args.kwargs

    def test_released_interface_rejects_requests(self, mock_session):
        """Test that a released interface cannot be used."""
        manager = HttpInterfaceManager()
        with manager.interface() as http:
            pass

        with pytest.raises(RuntimeError):
            http.get("https://example.com/")

    def test_released_on_error(self, mock_session):
        """Test that the interface is released even on error."""
        manager = HttpInterfaceManager()

        with pytest.raises(KeyError):
            with manager.interface() as http:
                raise KeyError("boom")

        assert http.released

    def test_close(self, mock_session):
        """Test closing the pool."""
        manager = HttpInterfaceManager()
        with manager.interface():
            pass

        manager.close()

        mock_session.close.assert_called_once()
        with pytest.raises(RuntimeError):
            manager.interface()


class TestPersistentHttpStream:
    """Test seekable HTTP streams."""

    DATA = b"0123456789"

    def test_read_whole(self, make_response):
        """Test reading a resource from the start."""
        http = Mock()
        http.get.return_value = make_response(
            200, headers={"Content-Length": "10"}, body=self.DATA
        )

        with PersistentHttpStream(http, "https://cdn.example.com/v.mp4") as stream:
            assert stream.read() == self.DATA
            assert stream.content_length == 10
            assert stream.tell() == 10

        args, kwargs = http.get.call_args
        assert args == ("https://cdn.example.com/v.mp4",)
        assert kwargs["headers"] == {}
        assert kwargs["stream"] is True
        assert kwargs["allow_redirects"] is True

    def test_lazy_connect(self):
        """Test that nothing is requested before the first read."""
        http = Mock()
        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        stream.close()
        http.get.assert_not_called()

    def test_seek_reconnects_with_range(self, make_response):
        """Test that seeking reconnects at the new position."""
        first = make_response(200, headers={"Content-Length": "10"}, body=self.DATA)
        second = make_response(
            206, headers={"Content-Range": "bytes 5-9/10"}, body=self.DATA[5:]
        )
        http = Mock()
        http.get.side_effect = [first, second]

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        assert stream.read(3) == b"012"
        assert stream.seek(5) == 5
        first.close.assert_called_once()

        assert stream.read(5) == b"56789"
        assert http.get.call_args_list[1].kwargs["headers"] == {"Range": "bytes=5-"}
        assert stream.read(1) == b""

    def test_seek_from_end(self, make_response):
        """Test SEEK_END once the length is known."""
        first = make_response(200, headers={"Content-Length": "10"}, body=self.DATA)
        second = make_response(
            206, headers={"Content-Range": "bytes 8-9/10"}, body=self.DATA[8:]
        )
        http = Mock()
        http.get.side_effect = [first, second]

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        assert stream.seek(-2, io.SEEK_END) == 8
        assert stream.read() == b"89"

    def test_seek_negative_rejected(self):
        """Test that negative positions are rejected."""
        stream = PersistentHttpStream(Mock(), "https://cdn.example.com/v.mp4")
        with pytest.raises(ValueError):
            stream.seek(-1)

    def test_range_not_satisfiable_is_eof(self, make_response):
        """Test that 416 past the end reads as EOF."""
        http = Mock()
        http.get.return_value = make_response(416)

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        stream.seek(100)
        assert stream.read(10) == b""

    def test_error_status(self, make_response):
        """Test that unexpected statuses raise OSError."""
        http = Mock()
        http.get.return_value = make_response(403)

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        with pytest.raises(OSError):
            stream.read(10)

    def test_server_ignoring_range(self, make_response):
        """Test skipping forward when the server answers 200 to a Range request."""
        http = Mock()
        http.get.return_value = make_response(
            200, headers={"Content-Length": "10"}, body=self.DATA
        )

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        stream.seek(6)
        assert stream.read() == b"6789"

    def test_dropped_connection_while_skipping(self, make_response):
        """Test that a connection lost while skipping forward is an I/O error."""
        response = make_response(200, headers={"Content-Length": "10"})
        response.raw = MagicMock()
        response.raw.read.side_effect = ProtocolError("Connection broken", ConnectionResetError())
        http = Mock()
        http.get.return_value = response

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        stream.seek(6)
        with pytest.raises(OSError):
            stream.read(4)
        response.close.assert_called_once()

    def test_reconnect_after_dropped_connection(self, make_response):
        """Test resuming at the current position after a read error."""
        broken = make_response(200, headers={"Content-Length": "10"})
        broken.raw = MagicMock()
        broken.raw.read.side_effect = ConnectionResetError("reset by peer")
        resumed = make_response(200, headers={"Content-Length": "10"}, body=self.DATA)
        http = Mock()
        http.get.side_effect = [broken, resumed]

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        assert stream.read(4) == b"0123"
        broken.close.assert_called_once()
        assert http.get.call_count == 2

    def test_second_failure_raises(self, make_response):
        """Test that a connection failing twice is an error."""
        responses = []
        for _ in range(2):
            response = make_response(200, headers={"Content-Length": "10"})
            response.raw = MagicMock()
            response.raw.read.side_effect = ConnectionResetError("reset by peer")
            responses.append(response)
        http = Mock()
        http.get.side_effect = responses

        stream = PersistentHttpStream(http, "https://cdn.example.com/v.mp4")
        with pytest.raises(OSError):
            stream.read(4)

    def test_read_after_close(self):
        """Test that reading a closed stream fails."""
        stream = PersistentHttpStream(Mock(), "https://cdn.example.com/v.mp4")
        stream.close()
        with pytest.raises(ValueError):
            stream.read(1)
