from pathlib import Path
from typing import Optional

from threadlink.app.relay import RangeRelay
from threadlink.app.resolver import PostResolver
from threadlink.app.tokens import MediaTokenizer
from threadlink.core.config import Settings
from threadlink.extractors.threads.extractor import ThreadsExtractor
from threadlink.infra.network.http import HttpNetworkAdapter
from threadlink.infra.persistence.cache import TtlCache
from threadlink.web.server import EmbedServer


def get_project_root() -> Path:
    """Get the project root directory (where the threadlink package is located)."""
    return Path(__file__).resolve().parent.parent


def create_container(settings: Optional[Settings] = None) -> dict:
    # 1. Config
    settings = settings or Settings.from_env(dotenv_path=get_project_root() / ".env")

    # 2. Infra
    network = HttpNetworkAdapter(user_agent=settings.user_agent)
    cache = TtlCache(settings.cache_file) if settings.cache_file else None

    # 3. Services
    extractor = ThreadsExtractor(user_agent=settings.user_agent)
    tokenizer = MediaTokenizer(settings.base_url)
    relay = RangeRelay(network, tokenizer, user_agent=settings.user_agent)
    resolver = PostResolver(
        extractor,
        tokenizer,
        client_marker=settings.client_marker,
        platform_host=settings.platform_host,
        cache=cache,
    )

    # 4. Interface
    server = EmbedServer(resolver, relay, settings=settings, extractor=extractor, cache=cache)

    return {
        "settings": settings,
        "network": network,
        "cache": cache,
        "extractor": extractor,
        "tokenizer": tokenizer,
        "relay": relay,
        "resolver": resolver,
        "server": server,
    }
