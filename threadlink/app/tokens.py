"""
Relay tokens.

A remote media URL is folded into the query string of a same-origin
`/media_download` URL: the remote query parameters are kept as they are and
the host and path travel in reserved keys. Decoding reverses this. A remote
parameter whose key collides with a reserved name does not survive the trip.
"""
import random
import time
from typing import List, Tuple
from urllib.parse import parse_qsl, urlencode, urlsplit

from threadlink.core.errors import MalformedTokenError

HOST_KEY = "___host"
PATHNAME_KEY = "___pathname"
SCHEME_KEY = "___scheme"
NONCE_KEY = "___t"
EXTENSION_HINT = "0.mp4"

RESERVED_KEYS = (HOST_KEY, PATHNAME_KEY, SCHEME_KEY, NONCE_KEY, EXTENSION_HINT)

RELAY_PATH = "/media_download"


def generate_nonce() -> str:
    """Epoch millis followed by three random digits."""
    return f"{int(time.time() * 1000)}{random.randint(0, 999):03d}"


class MediaTokenizer:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def encode(self, remote_url: str) -> List[Tuple[str, str]]:
        parts = urlsplit(remote_url)
        if not parts.netloc:
            raise ValueError(f"Not an absolute URL: {remote_url}")

        params = parse_qsl(parts.query, keep_blank_values=True)
        params.append((HOST_KEY, parts.netloc))
        params.append((PATHNAME_KEY, parts.path or "/"))
        if parts.scheme and parts.scheme != "https":
            params.append((SCHEME_KEY, parts.scheme))
        return params

    def mint(self, remote_url: str) -> str:
        """Relay URL with a fresh nonce and the cosmetic extension segment."""
        params = self.encode(remote_url)
        params.append((NONCE_KEY, generate_nonce()))
        return f"{self.base_url}{RELAY_PATH}?{urlencode(params)}&{EXTENSION_HINT}"

    def decode(self, relay_url: str) -> str:
        params = parse_qsl(urlsplit(relay_url).query, keep_blank_values=True)
        found = dict(params)

        host = found.get(HOST_KEY)
        if not host:
            raise MalformedTokenError(f"Missing {HOST_KEY}")

        scheme = found.get(SCHEME_KEY) or "https"
        pathname = found.get(PATHNAME_KEY) or "/"
        rest = [(k, v) for k, v in params if k not in RESERVED_KEYS]

        url = f"{scheme}://{host}{pathname}"
        if rest:
            url += f"?{urlencode(rest)}"
        return url
