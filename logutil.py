import inspect
import logging
import threading
import traceback
from datetime import datetime
from functools import wraps
from typing import List, Tuple

SHUTDOWN_MARKER = "thread exit or an application request"

def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(message)s",
    )

def safe_run(fn):
    """Decorator to trap and log all exceptions inside thread targets."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except Exception as e:  # noqa: BLE001
            logging.error("Unhandled error in %s: %s", fn.__name__, e)
            logging.debug("".join(traceback.format_exception(type(e), e, e.__traceback__)))
    return wrapper

class ShutdownNoise(Exception):
    """Raised or logged when a listener goes away because it was asked to."""

def _is_shutdown(exc: BaseException) -> bool:
    return isinstance(exc, ShutdownNoise) or SHUTDOWN_MARKER in str(exc)

class LogBuffer:
    """
    In-memory, thread-safe log of timestamped lines.

    Lines look like ``WebServer [2026-10-19 14:03:11.204] GET /index`` and are
    mirrored to the root logger. Messages ending in one of ``quiet_suffixes``
    are dropped entirely.
    """

    def __init__(self, quiet_suffixes: Tuple[str, ...] = ("favicon.ico",), name: str = "WebServer"):
        self.quiet_suffixes = tuple(quiet_suffixes)
        self.name = name
        self._lines: List[str] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._lines)

    def log(self, message: str, level: int = logging.INFO) -> None:
        if message.endswith(self.quiet_suffixes):
            return
        stamp = datetime.now().isoformat(sep=" ", timespec="milliseconds")
        line = f"{self.name} [{stamp}] {message}"
        with self._lock:
            self._lines.append(line)
        logging.log(level, "%s: %s", self.name, message)

    def log_exception(self, exc: BaseException) -> None:
        if _is_shutdown(exc):
            detail = str(exc) or type(exc).__name__
            self.log(f"{self.name} thread has ended ({detail})")
            return
        frame = inspect.currentframe()
        caller = frame.f_back.f_code.co_name if frame and frame.f_back else "<unknown>"
        del frame
        text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
        self.log(f"EXCEPTION thrown by {caller}:\n   {text}", level=logging.ERROR)

    def get_log(self, clear: bool = False) -> str:
        with self._lock:
            text = "\n".join(self._lines)
            if clear:
                self._lines.clear()
        return text

    def lines(self) -> List[str]:
        with self._lock:
            return list(self._lines)

    def clear(self) -> None:
        with self._lock:
            self._lines.clear()
