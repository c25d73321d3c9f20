"""Range relay, through the HTTP surface and as units."""

import pytest
from fastapi.testclient import TestClient

from threadlink.app.relay import RangeNotSatisfiable, parse_range
from fakes import VIDEO_URL, FakeNetwork, get_failure, head_failure


@pytest.fixture
def relay_url(tokenizer):
    return tokenizer.mint(VIDEO_URL)


def _client(make_server, network):
    return TestClient(make_server(network=network))


class TestParseRange:
    def test_closed_range(self):
        assert parse_range("bytes=100-199", 1000) == (100, 199)

    def test_open_end_defaults_to_last_byte(self):
        assert parse_range("bytes=100-", 1000) == (100, 999)

    def test_end_clamped_to_length(self):
        assert parse_range("bytes=900-5000", 1000) == (900, 999)

    def test_suffix(self):
        assert parse_range("bytes=-100", 1000) == (900, 999)
        assert parse_range("bytes=-5000", 1000) == (0, 999)

    @pytest.mark.parametrize("header", [None, "", "items=0-1", "bytes=0-1,5-6", "bytes=abc", "bytes=-"])
    def test_ignored(self, header):
        assert parse_range(header, 1000) is None

    @pytest.mark.parametrize("header", ["bytes=1000-", "bytes=200-100", "bytes=-0"])
    def test_unsatisfiable(self, header):
        with pytest.raises(RangeNotSatisfiable):
            parse_range(header, 1000)


class TestRangedRequest:
    def test_partial_content(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        resp = _client(make_server, network).get(relay_url, headers={"Range": "bytes=100-199"})

        assert resp.status_code == 206
        assert resp.headers["content-range"] == "bytes 100-199/1000"
        assert resp.headers["content-length"] == "100"
        assert resp.headers["accept-ranges"] == "bytes"
        assert resp.headers["content-type"] == "video/mp4"
        assert resp.content == media_bytes[100:200]

    def test_upstream_sees_decoded_url_and_same_range(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        _client(make_server, network).get(relay_url, headers={"Range": "bytes=100-199"})

        assert network.head_calls == [(VIDEO_URL, "test-agent")]
        assert network.get_calls == [(VIDEO_URL, (100, 199), "test-agent")]

    def test_open_ended_range(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        resp = _client(make_server, network).get(relay_url, headers={"Range": "bytes=900-"})

        assert resp.status_code == 206
        assert resp.headers["content-range"] == "bytes 900-999/1000"
        assert resp.headers["content-length"] == "100"
        assert resp.content == media_bytes[900:]

    def test_origin_ignoring_range_is_cut_locally(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes, ignore_range=True)
        resp = _client(make_server, network).get(relay_url, headers={"Range": "bytes=100-199"})

        assert resp.status_code == 206
        assert resp.content == media_bytes[100:200]

    def test_unsatisfiable(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        resp = _client(make_server, network).get(relay_url, headers={"Range": "bytes=5000-"})

        assert resp.status_code == 416
        assert resp.headers["content-range"] == "bytes */1000"
        assert network.get_calls == []

    def test_upstream_closed_after_stream(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        _client(make_server, network).get(relay_url, headers={"Range": "bytes=0-9"})

        assert len(network.opened) == 1
        assert network.opened[0].closed


class TestFullRequest:
    def test_ok(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        resp = _client(make_server, network).get(relay_url)

        assert resp.status_code == 200
        assert resp.headers["content-length"] == "1000"
        assert resp.headers["accept-ranges"] == "bytes"
        assert resp.headers["content-type"] == "video/mp4"
        assert resp.content == media_bytes
        assert network.get_calls == [(VIDEO_URL, None, "test-agent")]

    def test_garbage_range_served_whole(self, make_server, relay_url, media_bytes):
        network = FakeNetwork(media_bytes)
        resp = _client(make_server, network).get(relay_url, headers={"Range": "bytes=0-1,5-6"})

        assert resp.status_code == 200
        assert resp.content == media_bytes

    def test_large_body_streams_in_chunks(self, make_server, relay_url):
        body = b"\x00\x01" * (200 * 1024)
        network = FakeNetwork(body)
        resp = _client(make_server, network).get(relay_url)

        assert resp.status_code == 200
        assert resp.content == body


class TestFailures:
    def test_head_failure_is_502_without_detail(self, make_server, relay_url):
        network = FakeNetwork(b"x" * 10, head_error=head_failure())
        resp = _client(make_server, network).get(relay_url, headers={"Range": "bytes=0-1"})

        assert resp.status_code == 502
        assert resp.text == "Error downloading file"
        assert "internal-origin" not in resp.text
        assert network.get_calls == []

    def test_get_failure_before_headers(self, make_server, relay_url):
        network = FakeNetwork(b"x" * 10, get_error=get_failure())
        resp = _client(make_server, network).get(relay_url)

        assert resp.status_code == 502
        assert resp.text == "Error downloading file"

    def test_malformed_token(self, make_server):
        resp = _client(make_server, FakeNetwork()).get("/media_download?___pathname=%2Fv.mp4&___t=1&0.mp4")

        assert resp.status_code == 400
        assert resp.text == "Malformed media token"

    def test_mid_stream_failure_closes_upstream(self, make_server, relay_url):
        network = FakeNetwork(b"\x07" * (300 * 1024), chunk_fail_after=64 * 1024)
        client = _client(make_server, network)

        with pytest.raises(Exception):
            client.get(relay_url)

        assert network.opened[0].closed
