import logging
import re
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Iterator, Optional, Tuple

from fastapi.concurrency import iterate_in_threadpool, run_in_threadpool

from threadlink.app.tokens import MediaTokenizer
from threadlink.core.errors import MalformedTokenError, UpstreamError, UpstreamHeadFailure
from threadlink.core.interfaces import NetworkAdapter

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

_RANGE_RE = re.compile(r"^\s*bytes\s*=\s*(\d*)\s*-\s*(\d*)\s*$", re.IGNORECASE)


class RangeNotSatisfiable(Exception):
    pass


def parse_range(header: Optional[str], length: int) -> Optional[Tuple[int, int]]:
    """
    Resolve a single `bytes=` range against a known length.

    Returns inclusive (start, end), or None when the header is absent or not
    something we serve ranged (multiple ranges, other units, garbage).
    Raises RangeNotSatisfiable when the range lies outside the resource.
    """
    if not header:
        return None
    m = _RANGE_RE.match(header)
    if not m:
        return None

    first, last = m.group(1), m.group(2)
    if not first and not last:
        return None

    if not first:
        # Suffix form: last N bytes
        suffix = int(last)
        if suffix == 0 or length == 0:
            raise RangeNotSatisfiable(header)
        return max(length - suffix, 0), length - 1

    start = int(first)
    end = int(last) if last else length - 1
    end = min(end, length - 1)
    if start >= length or start > end:
        raise RangeNotSatisfiable(header)
    return start, end


@dataclass
class RelayResult:
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[AsyncIterator[bytes]] = None
    text: str = ""


def _slice(chunks: Iterator[bytes], skip: int, take: int) -> Iterator[bytes]:
    """Drop `skip` bytes then yield exactly `take` bytes."""
    for chunk in chunks:
        if take <= 0:
            break
        if skip:
            if len(chunk) <= skip:
                skip -= len(chunk)
                continue
            chunk = chunk[skip:]
            skip = 0
        if len(chunk) > take:
            chunk = chunk[:take]
        take -= len(chunk)
        yield chunk


class RangeRelay:
    """Streams a tokenized media URL from its origin, replaying the client's Range."""

    def __init__(self, network: NetworkAdapter, tokenizer: MediaTokenizer, user_agent: Optional[str] = None):
        self.network = network
        self.tokenizer = tokenizer
        self.user_agent = user_agent

    async def relay(self, relay_url: str, range_header: Optional[str] = None) -> RelayResult:
        try:
            file_url = self.tokenizer.decode(relay_url)
        except MalformedTokenError as e:
            logger.warning(f"Rejected relay URL {relay_url}: {e}")
            return RelayResult(status_code=400, text="Malformed media token")

        logger.info(f"Relaying {file_url} (Range: {range_header})")

        try:
            length, content_type = await self._content_info(file_url)
        except UpstreamError as e:
            logger.error(f"HEAD failed for {file_url}: {e}")
            return RelayResult(status_code=502, text="Error downloading file")

        try:
            byte_range = parse_range(range_header, length)
        except RangeNotSatisfiable:
            return RelayResult(
                status_code=416,
                headers={"Content-Range": f"bytes */{length}", "Accept-Ranges": "bytes"},
                text="Requested range not satisfiable"
            )

        try:
            upstream = await run_in_threadpool(
                self.network.open_stream, file_url, byte_range, self.user_agent
            )
        except UpstreamError as e:
            logger.error(f"GET failed for {file_url}: {e}")
            return RelayResult(status_code=502, text="Error downloading file")

        headers = {"Accept-Ranges": "bytes"}
        if content_type:
            headers["Content-Type"] = content_type

        if byte_range is None:
            headers["Content-Length"] = str(length)
            chunks = upstream.iter_content(chunk_size=CHUNK_SIZE)
            return RelayResult(status_code=200, headers=headers, body=self._pipe(upstream, chunks, file_url))

        start, end = byte_range
        size = end - start + 1
        headers["Content-Range"] = f"bytes {start}-{end}/{length}"
        headers["Content-Length"] = str(size)

        chunks = upstream.iter_content(chunk_size=CHUNK_SIZE)
        if upstream.status_code == 200:
            # Origin ignored the Range; cut the window out locally.
            chunks = _slice(chunks, start, size)
        else:
            chunks = _slice(chunks, 0, size)

        return RelayResult(status_code=206, headers=headers, body=self._pipe(upstream, chunks, file_url))

    async def _content_info(self, file_url: str) -> Tuple[int, Optional[str]]:
        headers = await run_in_threadpool(self.network.head, file_url, self.user_agent)
        headers = {k.lower(): v for k, v in headers.items()}

        length = headers.get("content-length", "")
        if not str(length).isdigit():
            raise UpstreamHeadFailure("Missing Content-Length")
        return int(length), headers.get("content-type")

    async def _pipe(self, upstream, chunks: Iterator[bytes], file_url: str) -> AsyncIterator[bytes]:
        """
        Pull upstream chunks one at a time off the event loop.

        The upstream response is closed however the pipe ends, including
        cancellation when the client disconnects.
        """
        sent = 0
        try:
            async for chunk in iterate_in_threadpool(chunks):
                sent += len(chunk)
                yield chunk
        except Exception:
            logger.exception(f"Stream aborted after {sent} bytes: {file_url}")
            raise
        finally:
            upstream.close()
