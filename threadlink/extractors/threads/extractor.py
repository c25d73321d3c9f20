import asyncio
import logging
import re
import time
from enum import Enum
from typing import Optional
from urllib.parse import urlsplit

from playwright.async_api import async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from threadlink.core.config import IN_APP_USER_AGENT
from threadlink.core.entities import Engagement, ExtractedPost, MediaItem, MediaKind
from threadlink.core.errors import (
    ExtractionError, ExtractorStateError, IdleTimeout, NavigationTimeout, SelectorTimeout
)
from ..base import BaseExtractor
from .script import COUNTER_LABELS, EXTRACT_POST_JS, LIVE_POST_SELECTOR

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--disable-gpu",
    "--window-size=430,932",
]

VIEWPORT = {"width": 430, "height": 932}

_COUNT_RE = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*([KkMm])?")
_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}

_KINDS = {
    "photo": MediaKind.PHOTO,
    "video": MediaKind.VIDEO,
    "thumbnail": MediaKind.THUMBNAIL,
}


class ExtractorState(str, Enum):
    UNSTARTED = "unstarted"
    STARTED = "started"
    CLOSED = "closed"


def parse_count(text: Optional[str]) -> int:
    """Turn a rendered counter ("1,204", "3.4K", "2M") into an int. Absent -> 0."""
    if not text:
        return 0
    m = _COUNT_RE.search(text)
    if not m:
        return 0
    value = float(m.group(1).replace(",", ""))
    suffix = (m.group(2) or "").lower()
    return int(round(value * _MULTIPLIERS.get(suffix, 1)))


def author_from_title(title: Optional[str]) -> Optional[str]:
    """First whitespace token of the page title. Never guessed when absent."""
    if not title:
        return None
    tokens = title.split()
    return tokens[0] if tokens else None


def build_post(url: str, payload: Optional[dict]) -> ExtractedPost:
    """Normalise the in-page payload into an ExtractedPost."""
    if not payload:
        return ExtractedPost(request_url=url)

    counters = payload.get("engagement") or {}
    engagement = Engagement(
        like_count=parse_count(counters.get("like")),
        reply_count=parse_count(counters.get("reply")),
        repost_count=parse_count(counters.get("repost")),
        share_count=parse_count(counters.get("share")),
    )

    media = []
    seen = set()
    for item in payload.get("media") or []:
        kind = _KINDS.get(item.get("kind"))
        remote_url = item.get("url")
        if not kind or not remote_url or remote_url in seen:
            continue
        seen.add(remote_url)
        media.append(MediaItem.from_url(kind, remote_url, item.get("alt")))

    return ExtractedPost(
        request_url=url,
        description=payload.get("description"),
        author_name=author_from_title(payload.get("title")),
        profile_image_url=payload.get("profileImageUrl"),
        created_at=payload.get("createdAt"),
        engagement=engagement,
        media=tuple(media),
    )


class NetworkTracker:
    """
    Counts a page's in-flight requests so a fresh quiet period can be awaited.

    Attach before navigation: a request that started earlier would otherwise
    finish without ever having been counted.
    """

    def __init__(self, page, poll_interval: float = 0.05):
        self.page = page
        self.poll_interval = poll_interval
        self.in_flight = 0
        self._last_change = time.monotonic()

    def attach(self):
        self.page.on("request", self._on_request)
        self.page.on("requestfinished", self._on_done)
        self.page.on("requestfailed", self._on_done)

    def detach(self):
        self.page.remove_listener("request", self._on_request)
        self.page.remove_listener("requestfinished", self._on_done)
        self.page.remove_listener("requestfailed", self._on_done)

    def _on_request(self, request):
        self.in_flight += 1
        self._last_change = time.monotonic()

    def _on_done(self, request):
        self.in_flight = max(0, self.in_flight - 1)
        self._last_change = time.monotonic()

    async def wait_for_quiet(self, idle_ms: int, timeout_ms: int):
        """Wait until no request has been in flight for `idle_ms`. Raises asyncio.TimeoutError."""
        self._last_change = time.monotonic()
        idle = idle_ms / 1000

        async def _quiet():
            while self.in_flight or time.monotonic() - self._last_change < idle:
                await asyncio.sleep(self.poll_interval)

        await asyncio.wait_for(_quiet(), timeout_ms / 1000)


class ThreadsExtractor(BaseExtractor):
    """
    Renders Threads post pages in one shared headless Chromium.

    Lifecycle: UNSTARTED -> start() -> STARTED -> close() -> CLOSED.
    Every parse() gets its own browser context, closed whatever the outcome.
    """

    def __init__(self, user_agent: str = IN_APP_USER_AGENT,
                 navigation_timeout: int = 30_000, idle_timeout: int = 5_000,
                 settle_time: int = 1_000, selector_timeout: int = 10_000):
        self.user_agent = user_agent
        self.navigation_timeout = navigation_timeout
        self.idle_timeout = idle_timeout
        self.settle_time = settle_time
        self.selector_timeout = selector_timeout

        self._state = ExtractorState.UNSTARTED
        self._lock = asyncio.Lock()
        self._playwright = None
        self._browser = None
        self._active = 0

    @property
    def state(self) -> ExtractorState:
        return self._state

    @property
    def active_pages(self) -> int:
        return self._active

    def supports(self, url: str) -> bool:
        host = urlsplit(url).netloc.lower()
        return host.endswith("threads.net") or host.endswith("threads.com")

    async def start(self):
        async with self._lock:
            if self._state == ExtractorState.STARTED:
                return
            logger.info("Launching Chromium...")
            self._playwright = await async_playwright().start()
            try:
                self._browser = await self._playwright.chromium.launch(headless=True, args=BROWSER_ARGS)
            except Exception:
                await self._playwright.stop()
                self._playwright = None
                raise
            self._state = ExtractorState.STARTED

    async def close(self):
        async with self._lock:
            browser, self._browser = self._browser, None
            playwright, self._playwright = self._playwright, None
            was_started = self._state != ExtractorState.UNSTARTED
            self._state = ExtractorState.CLOSED
            try:
                if browser:
                    await browser.close()
            finally:
                if playwright:
                    await playwright.stop()
            if was_started:
                logger.info("Browser closed")

    async def extract(self, url: str) -> ExtractedPost:
        return await self.parse(url)

    async def parse(self, url: str) -> ExtractedPost:
        if self._state != ExtractorState.STARTED:
            raise ExtractorStateError(f"Extractor is {self._state.value}; call start() first")

        context = await self._browser.new_context(
            user_agent=self.user_agent,
            viewport=VIEWPORT,
            is_mobile=True,
        )
        self._active += 1
        try:
            page = await context.new_page()
            await self._load(page, url)
            post = await self._extract(page, url)
        finally:
            self._active -= 1
            await context.close()

        logger.debug(f"Parsed {url}: {len(post.media)} media item(s)")
        return post

    async def _load(self, page, url: str):
        tracker = NetworkTracker(page)
        tracker.attach()
        try:
            try:
                await page.goto(url, wait_until="networkidle", timeout=self.navigation_timeout)
            except PlaywrightTimeoutError as e:
                raise NavigationTimeout(f"Navigation exceeded {self.navigation_timeout} ms: {url}") from e
            except PlaywrightError as e:
                raise ExtractionError(f"Navigation failed: {url}: {e}") from e

            # Post content streams in after the first idle.
            try:
                await tracker.wait_for_quiet(self.settle_time, self.idle_timeout)
            except asyncio.TimeoutError as e:
                raise IdleTimeout(
                    f"Network did not settle within {self.idle_timeout} ms "
                    f"({tracker.in_flight} request(s) in flight): {url}"
                ) from e

            try:
                await page.wait_for_selector(LIVE_POST_SELECTOR, timeout=self.selector_timeout)
            except PlaywrightTimeoutError as e:
                raise SelectorTimeout(f"No live post container within {self.selector_timeout} ms: {url}") from e
        finally:
            tracker.detach()

    async def _extract(self, page, url: str) -> ExtractedPost:
        try:
            payload = await page.evaluate(EXTRACT_POST_JS, COUNTER_LABELS)
            return build_post(url, payload)
        except (PlaywrightError, AttributeError, TypeError, ValueError) as e:
            logger.error(f"Extraction failed for {url}: {e}")
            return ExtractedPost(request_url=url)
