from dataclasses import dataclass
from typing import Any, Optional, Tuple
from urllib.parse import urlsplit

DEFAULT_URL = "http://localhost:8080/"
TIMING_TOKEN = "~SERVER_NOTES~"

@dataclass(frozen=True)
class ServerConfig:
    """Immutable settings for one LocalWebServer instance."""
    handler: Any
    url: str = DEFAULT_URL
    file_prefix: Optional[str] = None
    file_root: str = ""
    timing_token: Optional[str] = TIMING_TOKEN
    quiet_suffixes: Tuple[str, ...] = ("favicon.ico",)
    poll_interval: float = 0.1
    stop_grace: float = 0.05
    chunk_size: int = 32 * 1024

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme.lower()

    @property
    def host(self) -> str:
        host = urlsplit(self.url).hostname
        if not host:
            raise ValueError(f"bind URL has no host: {self.url!r}")
        return host

    @property
    def port(self) -> int:
        # urlsplit raises ValueError for out-of-range or non-numeric ports
        port = urlsplit(self.url).port
        return 80 if port is None else port

    @property
    def path_prefix(self) -> str:
        path = urlsplit(self.url).path or "/"
        return path if path.endswith("/") else path + "/"

    def bind_address(self) -> Tuple[str, int]:
        """Validated (host, port) pair; ValueError when the URL cannot be bound."""
        if self.scheme != "http":
            raise ValueError(f"only http:// bind URLs are supported: {self.url!r}")
        return self.host, self.port

    def is_file_request(self, path: str) -> bool:
        return bool(self.file_prefix) and path.startswith(self.file_prefix)
