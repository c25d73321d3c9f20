from abc import ABC, abstractmethod
from typing import Dict, Iterator, Mapping, Optional, Tuple


class UpstreamResponse(ABC):
    """An open streaming response from the media origin."""
    status_code: int
    headers: Mapping[str, str]

    @abstractmethod
    def iter_content(self, chunk_size: int) -> Iterator[bytes]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


class NetworkAdapter(ABC):
    @abstractmethod
    def head(self, url: str, user_agent: Optional[str] = None) -> Dict[str, str]:
        """Returns the response headers. Raises UpstreamHeadFailure."""
        pass

    @abstractmethod
    def open_stream(self, url: str, byte_range: Optional[Tuple[int, int]] = None, user_agent: Optional[str] = None) -> UpstreamResponse:
        """Starts a GET, optionally ranged (inclusive bounds). Raises UpstreamGetFailure."""
        pass
