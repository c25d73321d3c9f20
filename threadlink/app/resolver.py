import logging
from dataclasses import dataclass
from typing import Optional

from threadlink.app import embed
from threadlink.app.tokens import MediaTokenizer
from threadlink.core.entities import DEFAULT_PLATFORM_HOST, ExtractedPost, PostReference
from threadlink.core.errors import ExtractionError
from threadlink.extractors.base import BaseExtractor
from threadlink.infra.persistence.cache import TtlCache

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    """Either a redirect for clients that get no embed, or the embed document."""
    redirect_url: Optional[str] = None
    html: Optional[str] = None


class PostResolver:
    """
    Builds the embed response for a post.

    Only the chat client's own fetcher and in-app browser get an embed;
    everybody else is sent to the canonical post.
    """

    def __init__(self, extractor: BaseExtractor, tokenizer: MediaTokenizer,
                 client_marker: str = "Telegram", platform_host: str = DEFAULT_PLATFORM_HOST,
                 cache: Optional[TtlCache] = None):
        self.extractor = extractor
        self.tokenizer = tokenizer
        self.client_marker = client_marker
        self.platform_host = platform_host
        self.cache = cache

    def is_embed_client(self, user_agent: Optional[str]) -> bool:
        return bool(user_agent) and self.client_marker in user_agent

    async def resolve(self, account: str, post_id: str, user_agent: Optional[str]) -> Resolution:
        ref = PostReference(account=account, post_id=post_id, platform_host=self.platform_host)
        logger.info(f"User Agent: {user_agent}")

        if not self.is_embed_client(user_agent):
            return Resolution(redirect_url=ref.url)

        post = await self._fetch(ref)
        return Resolution(html=self.render(ref, post))

    async def _fetch(self, ref: PostReference) -> ExtractedPost:
        if self.cache is not None:
            cached = self.cache.get(ref.url)
            if cached:
                logger.debug(f"Cache hit: {ref.url}")
                return ExtractedPost.from_dict(cached)

        try:
            post = await self.extractor.extract(ref.url)
        except ExtractionError as e:
            logger.warning(f"Extraction degraded for {ref.url}: {e}")
            return ExtractedPost(request_url=ref.url)

        logger.info(f"Parsed {ref.url}: {post.to_dict()}")
        if self.cache is not None and not post.is_empty:
            await self.cache.add(ref.url, post.to_dict())
        return post

    def render(self, ref: PostReference, post: ExtractedPost) -> str:
        title = f"Thread from {ref.account}"
        video = post.first_video
        photo = post.video_poster if video else post.first_photo

        text = post.description if post.description and post.description.strip() else None
        if text is None:
            text = (photo.alt_text if photo else None) or ""

        if video:
            video_url = self.tokenizer.mint(video.remote_url)
            logger.info(f"videoEncodedUrl: {video_url}")
            return embed.render_video_card(
                title, text, ref.url, video_url,
                thumbnail_url=photo.remote_url if photo else None
            )

        if photo:
            return embed.render_image_card(title, text, ref.url, photo.remote_url)

        return embed.render_text_card(title, text, ref.url)
