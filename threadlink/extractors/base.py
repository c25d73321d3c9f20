from abc import ABC, abstractmethod

from threadlink.core.entities import ExtractedPost


class BaseExtractor(ABC):
    """
    Abstract base class for post extractors.

    CRITICAL BOUNDARIES:
    - Extractors ONLY read post data from a page.
    - Extractors do NOT download media content.
    - Extractors do NOT decide how a post is presented.
    """

    @abstractmethod
    def supports(self, url: str) -> bool:
        """
        Check if this extractor supports the given URL.

        Args:
            url: The URL to check.

        Returns:
            True if supported, False otherwise.
        """
        pass

    @abstractmethod
    async def extract(self, url: str) -> ExtractedPost:
        """
        Extract structured post data from the given URL.

        Args:
            url: The post URL.

        Returns:
            ExtractedPost: possibly with every optional field absent.

        Raises:
            ExtractionError: when a bounded page step times out.
        """
        pass
