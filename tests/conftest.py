"""
Shared test fixtures.
"""

import os
import sys

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from threadlink.app.relay import RangeRelay
from threadlink.app.resolver import PostResolver
from threadlink.app.tokens import MediaTokenizer
from threadlink.core.config import Settings
from threadlink.core.entities import ExtractedPost, MediaItem, MediaKind
from threadlink.web.server import EmbedServer

from fakes import BASE_URL, PHOTO_URL, THUMB_URL, VIDEO_URL, FakeExtractor, FakeNetwork


@pytest.fixture
def media_bytes():
    """1000 bytes with a recognisable pattern."""
    return (bytes(range(256)) * 4)[:1000]


@pytest.fixture
def tokenizer():
    return MediaTokenizer(BASE_URL)


@pytest.fixture
def video_post():
    return ExtractedPost(
        request_url="https://www.threads.net/@someone/post/ABC123",
        description="Look at this",
        author_name="Someone",
        media=(
            MediaItem.from_url(MediaKind.THUMBNAIL, THUMB_URL, "Video thumbnail"),
            MediaItem.from_url(MediaKind.VIDEO, VIDEO_URL),
        ),
    )


@pytest.fixture
def photo_post():
    return ExtractedPost(
        request_url="https://www.threads.net/@someone/post/ABC123",
        description="",
        media=(MediaItem.from_url(MediaKind.PHOTO, PHOTO_URL, "A red bicycle"),),
    )


@pytest.fixture
def make_server(tokenizer):
    """Factory: the ASGI app of an EmbedServer wired with fakes. A bare TestClient does not run the lifespan."""
    def _make(extractor=None, network=None, cache=None):
        extractor = extractor or FakeExtractor()
        network = network or FakeNetwork()
        resolver = PostResolver(extractor, tokenizer, cache=cache)
        relay = RangeRelay(network, tokenizer, user_agent="test-agent")
        return EmbedServer(resolver, relay, settings=Settings(base_url=BASE_URL)).app
    return _make
