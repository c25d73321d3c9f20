import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse, RedirectResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from threadlink.app.relay import RangeRelay
from threadlink.app.resolver import PostResolver
from threadlink.core.config import Settings
from threadlink.infra.persistence.cache import TtlCache

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


class EmbedServer:
    def __init__(self, resolver: PostResolver, relay: RangeRelay, settings: Optional[Settings] = None,
                 extractor=None, cache: Optional[TtlCache] = None):
        self.resolver = resolver
        self.relay = relay
        self.settings = settings or Settings()
        self.extractor = extractor
        self.cache = cache
        self._server = None

        self.app = FastAPI(title="threadlink", lifespan=self._lifespan)
        self.app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")
        self._setup_routes()

    @asynccontextmanager
    async def _lifespan(self, app: FastAPI):
        if self.cache is not None:
            await self.cache.load()
            self.cache.start(
                window_ms=int(self.settings.cache_window * 1000),
                interval=self.settings.cache_interval
            )
        if self.extractor is not None:
            await self.extractor.start()
        try:
            yield
        finally:
            if self.extractor is not None:
                await self.extractor.close()
            if self.cache is not None:
                await self.cache.stop()

    def _setup_routes(self):
        @self.app.get("/")
        async def root():
            return FileResponse(STATIC_DIR / "index.html")

        @self.app.get("/ping")
        async def ping():
            return {"status": "ok"}

        @self.app.get("/media_download")
        async def media_download(request: Request):
            full_url = str(request.url)
            logger.info(f"fullUrl: {full_url}")
            try:
                result = await self.relay.relay(full_url, request.headers.get("range"))
            except Exception:
                logger.exception(f"Download error: {full_url}")
                return PlainTextResponse("Error downloading file", status_code=500)

            if result.body is None:
                return PlainTextResponse(result.text, status_code=result.status_code, headers=result.headers)
            return StreamingResponse(result.body, status_code=result.status_code, headers=result.headers)

        @self.app.get("/{account}/post/{post_id}")
        async def post_embed(account: str, post_id: str, request: Request):
            try:
                resolution = await self.resolver.resolve(account, post_id, request.headers.get("user-agent"))
            except Exception:
                logger.exception(f"Error resolving {account}/post/{post_id}")
                return PlainTextResponse("Error fetching thread", status_code=500)

            if resolution.redirect_url:
                return RedirectResponse(resolution.redirect_url, status_code=301)
            return HTMLResponse(resolution.html)

    def run_server(self):
        """Run the server (blocking)."""
        config = uvicorn.Config(
            self.app,
            host=self.settings.host,
            port=self.settings.port,
            log_level=self.settings.log_level.lower(),
        )
        self._server = uvicorn.Server(config)
        logger.info(f"Server running at http://localhost:{self.settings.port}")
        self._server.run()

    def stop(self):
        """Stop the server."""
        if self._server:
            self._server.should_exit = True
