"""
HttpNetworkAdapter against mocked origins.

Uses the `responses` library to mock requests.
"""

import pytest
import requests
import responses

from threadlink.core.errors import UpstreamGetFailure, UpstreamHeadFailure
from threadlink.infra.network.http import HttpNetworkAdapter

MEDIA_URL = "https://video.cdn.example/v/t16/clip.mp4?oh=00_AbC"


@pytest.fixture
def adapter():
    return HttpNetworkAdapter(user_agent="in-app-agent")


class TestHead:
    @responses.activate
    def test_returns_headers(self, adapter):
        responses.add(
            responses.HEAD,
            MEDIA_URL,
            status=200,
            content_type="video/mp4",
            headers={"Accept-Ranges": "bytes"}
        )

        headers = adapter.head(MEDIA_URL)

        assert headers["Content-Type"] == "video/mp4"
        assert headers["Accept-Ranges"] == "bytes"
        assert responses.calls[0].request.headers["User-Agent"] == "in-app-agent"

    @responses.activate
    def test_per_call_user_agent(self, adapter):
        responses.add(responses.HEAD, MEDIA_URL, status=200)

        adapter.head(MEDIA_URL, user_agent="other-agent")
        assert responses.calls[0].request.headers["User-Agent"] == "other-agent"

    @responses.activate
    def test_error_status(self, adapter):
        responses.add(responses.HEAD, MEDIA_URL, status=403)

        with pytest.raises(UpstreamHeadFailure, match="403"):
            adapter.head(MEDIA_URL)

    @responses.activate
    def test_connection_error(self, adapter):
        responses.add(responses.HEAD, MEDIA_URL, body=requests.exceptions.ConnectionError("refused"))

        with pytest.raises(UpstreamHeadFailure):
            adapter.head(MEDIA_URL)


class TestOpenStream:
    @responses.activate
    def test_ranged_get(self, adapter):
        responses.add(responses.GET, MEDIA_URL, status=206, body=b"x" * 100, content_type="video/mp4")

        resp = adapter.open_stream(MEDIA_URL, (100, 199))
        body = b"".join(resp.iter_content(chunk_size=16))
        resp.close()

        assert resp.status_code == 206
        assert body == b"x" * 100
        sent = responses.calls[0].request.headers
        assert sent["Range"] == "bytes=100-199"
        assert sent["User-Agent"] == "in-app-agent"

    @responses.activate
    def test_unranged_get(self, adapter):
        responses.add(responses.GET, MEDIA_URL, status=200, body=b"abc")

        resp = adapter.open_stream(MEDIA_URL)

        assert resp.status_code == 200
        assert "Range" not in responses.calls[0].request.headers
        assert b"".join(resp.iter_content(chunk_size=2)) == b"abc"

    @responses.activate
    def test_error_status(self, adapter):
        responses.add(responses.GET, MEDIA_URL, status=500)

        with pytest.raises(UpstreamGetFailure, match="500"):
            adapter.open_stream(MEDIA_URL, (0, 9))

    @responses.activate
    def test_timeout(self, adapter):
        responses.add(responses.GET, MEDIA_URL, body=requests.exceptions.Timeout())

        with pytest.raises(UpstreamGetFailure):
            adapter.open_stream(MEDIA_URL)
