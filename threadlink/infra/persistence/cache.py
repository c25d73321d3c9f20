import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_expired(entry: Any, now: int, window_ms: int) -> bool:
    """Entries without a numeric timestamp can never be aged, so they count as expired."""
    timestamp = entry.get("timestamp") if isinstance(entry, dict) else None
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        return True
    return now - timestamp > window_ms


class TtlCache:
    """
    Key-value store persisted as one JSON object: key -> {value, timestamp}.

    The whole file is rewritten on every mutation. Expiry is only enforced by
    sweep(), which can run on its own schedule via start()/stop(). Loads,
    saves and sweeps share one lock so a sweep never interleaves with a write.
    """

    def __init__(self, file_path: Path, clock: Callable[[], int] = _now_ms):
        self.file_path = Path(file_path)
        self.map: Dict[str, Dict[str, Any]] = {}
        self._clock = clock
        self._lock = asyncio.Lock()
        self._sweeper: Optional[asyncio.Task] = None

    def get(self, key: str) -> Any:
        entry = self.map.get(key)
        return entry.get("value") if isinstance(entry, dict) else None

    def get_timestamp(self, key: str) -> Optional[int]:
        entry = self.map.get(key)
        return entry.get("timestamp") if isinstance(entry, dict) else None

    def __len__(self) -> int:
        return len(self.map)

    async def add(self, key: str, value: Any):
        async with self._lock:
            self.map[key] = {"value": value, "timestamp": self._clock()}
            await self._write()

    async def load(self):
        async with self._lock:
            logger.debug(f"Loading cache from {self.file_path}...")
            if not self.file_path.exists():
                logger.warning(f"File {self.file_path} does not exist. Initializing empty map.")
                return
            data = await asyncio.to_thread(self.file_path.read_text, encoding="utf-8")
            self.map.update(json.loads(data))
            logger.debug(f"Cache loaded: {len(self.map)}")

    async def save(self):
        async with self._lock:
            await self._write()

    async def _write(self):
        logger.debug(f"Saving cache to {self.file_path}...")
        payload = json.dumps(self.map)
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(self.file_path.write_text, payload, encoding="utf-8")
        logger.debug(f"Cache saved: {len(self.map)}")

    async def sweep(self, window_ms: int) -> int:
        """Evict entries older than `window_ms`. Returns the number removed."""
        async with self._lock:
            before = len(self.map)
            now = self._clock()
            expired = [k for k, entry in self.map.items() if _is_expired(entry, now, window_ms)]
            for key in expired:
                del self.map[key]
            await self._write()
            logger.info(f"Cache cleaned: {before} -> {len(self.map)}")
            return len(expired)

    def start(self, window_ms: int = 60 * 60 * 1000, interval: float = 60 * 60):
        """Schedule sweep(window_ms) every `interval` seconds on the running loop."""
        if self._sweeper and not self._sweeper.done():
            return

        async def _run():
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.sweep(window_ms)
                except Exception:
                    logger.exception("Cache sweep failed")

        self._sweeper = asyncio.create_task(_run())

    async def stop(self):
        if not self._sweeper:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
