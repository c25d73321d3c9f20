import logging
from typing import Dict, Optional, Tuple

import requests

from threadlink.core.errors import UpstreamGetFailure, UpstreamHeadFailure
from threadlink.core.interfaces import NetworkAdapter

logger = logging.getLogger(__name__)


class HttpNetworkAdapter(NetworkAdapter):
    def __init__(self, user_agent: Optional[str] = None, timeout: Tuple[int, int] = (10, 30)):
        self.user_agent = user_agent
        self.timeout = timeout
        self.session = requests.Session()

    def _headers(self, user_agent: Optional[str], byte_range: Optional[Tuple[int, int]] = None) -> dict:
        headers = {}
        ua = user_agent or self.user_agent
        if ua:
            headers["User-Agent"] = ua
        if byte_range is not None:
            start, end = byte_range
            headers["Range"] = f"bytes={start}-{end}"
        return headers

    def head(self, url: str, user_agent: Optional[str] = None) -> Dict[str, str]:
        try:
            resp = self.session.head(url, headers=self._headers(user_agent), timeout=self.timeout, allow_redirects=True)
        except requests.exceptions.RequestException as e:
            raise UpstreamHeadFailure(f"Connection failed: {e}") from e

        if resp.status_code >= 400:
            raise UpstreamHeadFailure(f"HTTP {resp.status_code}")

        return dict(resp.headers)

    def open_stream(self, url: str, byte_range: Optional[Tuple[int, int]] = None, user_agent: Optional[str] = None) -> requests.Response:
        try:
            resp = self.session.get(
                url,
                headers=self._headers(user_agent, byte_range),
                stream=True,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamGetFailure(f"Connection failed: {e}") from e

        if resp.status_code not in (200, 206):
            resp.close()
            raise UpstreamGetFailure(f"HTTP {resp.status_code}")

        logger.debug(f"Upstream GET {resp.status_code} range={byte_range}")
        return resp

    def close(self):
        self.session.close()
