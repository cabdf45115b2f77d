"""Shared pytest fixtures."""

import io
from unittest.mock import MagicMock, patch

import pytest
import yaml

from track_resolver.config import Config


@pytest.fixture(autouse=True)
def isolated_config(tmp_path):
    """Keep tests away from the user's config and reset the singleton."""
    Config.reset()
    with patch(
        "track_resolver.config.DEFAULT_CONFIG_PATH",
        tmp_path / "home-config" / "config.yaml",
    ):
        yield
    Config.reset()


@pytest.fixture
def temp_config_file(tmp_path):
    """Create a temporary config file."""
    config_path = tmp_path / "config.yaml"
    config_data = {
        "http": {"user_agent": "track-resolver-tests/1.0", "timeout": 5},
        "stream": {"chunk_size": 4},
        "sources": {"reddit": True, "tiktok": True},
        "failed_log": str(tmp_path / "failed.txt"),
    }
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def test_config(temp_config_file):
    """Create a Config instance for testing."""
    return Config(temp_config_file)


@pytest.fixture
def make_response():
    """Factory fixture for fake requests responses."""

    def _create(status_code=200, json_data=None, headers=None, body=b"", invalid_json=False):
        """Create a response usable as a context manager.

        Args:
            status_code: HTTP status
            json_data: Value returned by response.json()
            headers: Response headers
            body: Bytes served through response.raw
            invalid_json: Make response.json() raise ValueError
        """
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        response.__enter__.return_value = response
        response.__exit__.return_value = False
        response.raw = io.BytesIO(body)
        if invalid_json:
            response.json.side_effect = ValueError("Expecting value")
        else:
            response.json.return_value = json_data
        return response

    return _create


@pytest.fixture
def mock_session():
    """Replace requests.Session inside the HTTP pool."""
    with patch("track_resolver.http.requests.Session") as mock_session_class:
        session = MagicMock()
        session.headers = {}
        mock_session_class.return_value = session
        yield session


@pytest.fixture
def reddit_post():
    """Factory for Reddit info API payloads."""

    def _create(**overrides):
        post = {
            "title": "Cat learns to skateboard",
            "author": "skater_cat",
            "thumbnail": "https://b.thumbs.redditmedia.com/abc.jpg",
            "secure_media": {
                "reddit_video": {
                    "fallback_url": "https://v.redd.it/x7k2mq9/DASH_720.mp4?source=fallback",
                    "duration": 83,
                }
            },
        }
        post.update(overrides)
        return {"kind": "Listing", "data": {"children": [{"kind": "t3", "data": post}]}}

    return _create


@pytest.fixture
def tiktok_detail():
    """Factory for TikTok aweme detail payloads."""

    def _create(**overrides):
        detail = {
            "aweme_id": "7106594312292453675",
            "desc": "dance challenge #fyp",
            "author": {"nickname": "Dancer", "unique_id": "dancer.official"},
            "video": {
                "duration": 15232,
                "cover": {"url_list": ["https://p16.tiktokcdn.com/cover.jpeg"]},
                "play_addr": {"url_list": ["https://v16.tiktokcdn.com/video.mp4?sig=1"]},
            },
        }
        detail.update(overrides)
        return {"aweme_detail": detail, "status_code": 0}

    return _create
