import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

# Facebook's iOS in-app browser. The post pages serve simplified markup to
# this client class and the media CDN accepts it for HEAD/GET.
IN_APP_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 18_1 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Mobile/22B83 [FBAN/FBIOS;FBAV/450.0.0.38.108;FBBV/564431005;"
    "FBDV/iPhone17,1;FBMD/iPhone;FBSN/iOS;FBSV/18.1;FBSS/3;FBID/phone;FBLC/en_GB;"
    "FBOP/5;FBRV/567052743]"
)


@dataclass
class Settings:
    """
    Process configuration.
    Sourced from the environment, optionally seeded from a `.env` file.
    """
    port: int = 3000
    host: str = "0.0.0.0"
    base_url: str = "http://localhost:3000"
    platform_host: str = "www.threads.net"
    client_marker: str = "Telegram"
    cache_file: Optional[Path] = None
    cache_window: float = 3600.0    # seconds
    cache_interval: float = 3600.0  # seconds
    log_level: str = "INFO"
    user_agent: str = IN_APP_USER_AGENT

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, dotenv_path: Optional[Path] = None) -> 'Settings':
        if environ is None:
            load_dotenv(dotenv_path=dotenv_path)
            environ = os.environ

        port = int(environ.get("PORT") or 3000)
        cache_file = environ.get("CACHE_FILE")

        return cls(
            port=port,
            host=environ.get("HOST") or "0.0.0.0",
            base_url=(environ.get("BASE_URL") or f"http://localhost:{port}").rstrip("/"),
            platform_host=environ.get("PLATFORM_HOST") or "www.threads.net",
            client_marker=environ.get("CLIENT_MARKER") or "Telegram",
            cache_file=Path(cache_file) if cache_file else None,
            cache_window=float(environ.get("CACHE_WINDOW") or 3600),
            cache_interval=float(environ.get("CACHE_INTERVAL") or 3600),
            log_level=(environ.get("LOG_LEVEL") or "INFO").upper(),
        )
