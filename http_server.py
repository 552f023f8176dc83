import logging
import mimetypes
import os
import sys
import threading
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import unquote, urlsplit

from config import DEFAULT_URL, ServerConfig
from logutil import LogBuffer, ShutdownNoise, safe_run
from pages import PageRequest, apply_timing_notes, as_page_source

class BindError(OSError):
    """The bind URL is invalid or its address could not be bound."""

class ListenerClosed(ShutdownNoise):
    """The accept loop ended because stop() was requested."""

class _Listener(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True

    def __init__(self, address, web):
        self.web = web
        super().__init__(address, _RequestHandler)

    def handle_error(self, request, client_address):
        # anything that escaped the per-request handler; the socket is still
        # closed by shutdown_request() afterwards
        self.web.log.log_exception(sys.exc_info()[1])

class _RequestHandler(BaseHTTPRequestHandler):
    server_version = "LocalWebServer/1.0"
    protocol_version = "HTTP/1.1"

    def log_message(self, fmt, *args):
        logging.debug("HTTP: " + fmt % args)

    def _begin(self, status, length, content_type=None):
        self.send_response(status)
        if content_type:
            self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(length))
        self.send_header("Connection", "close")
        self.end_headers()
        self._headers_sent = True

    def _send_status(self, status):
        self._begin(status, 0)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length > 0 else b""

    def _send_file(self, local_path):
        web = self.server.web
        if not os.path.isfile(local_path):
            self._send_status(HTTPStatus.NOT_FOUND)
            return
        logging.debug("SERVING FILE: %s", local_path)
        try:
            f = open(local_path, "rb")
        except FileNotFoundError:
            self._send_status(HTTPStatus.NOT_FOUND)
            return
        with f:
            size = os.fstat(f.fileno()).st_size
            ctype = mimetypes.guess_type(local_path)[0] or "application/octet-stream"
            self._begin(HTTPStatus.OK, size, ctype)
            if self.command == "HEAD":
                return
            while True:
                chunk = f.read(web.config.chunk_size)
                if not chunk:
                    break
                self.wfile.write(chunk)

    def _send_page(self, path, query, started):
        web = self.server.web
        request = PageRequest(
            method=self.command,
            path=path,
            query=query,
            headers=dict(self.headers.items()),
            body=self._read_body(),
            client_address=self.client_address,
        )
        html = web.page_source.render(request)
        html = apply_timing_notes(html, web.config.timing_token, time.perf_counter() - started)
        data = html.encode("utf-8")
        self._begin(HTTPStatus.OK, len(data), "text/html; charset=utf-8")
        if self.command != "HEAD":
            self.wfile.write(data)

    def _dispatch(self):
        started = time.perf_counter()
        web = self.server.web
        cfg = web.config
        self.close_connection = True
        self._headers_sent = False
        target = self.path
        if not target.startswith("/"):
            # absolute-form target: http://host:port/path?query
            parts = urlsplit(target)
            target = (parts.path or "/") + (f"?{parts.query}" if parts.query else "")
        path, _, query = target.partition("?")
        web.log.log(f"{self.command} {target}")
        try:
            if not (path.startswith(cfg.path_prefix) or path + "/" == cfg.path_prefix):
                self._send_status(HTTPStatus.NOT_FOUND)
            elif cfg.is_file_request(path):
                self._send_file(web.resolve_file(path))
            else:
                self._send_page(path, query, started)
        except (BrokenPipeError, ConnectionResetError) as e:
            # client went away mid-response; nothing left to tell it
            web.log.log_exception(e)
        except Exception as e:  # noqa: BLE001
            web.log.log_exception(e)
            if not self._headers_sent:
                try:
                    self._send_status(HTTPStatus.INTERNAL_SERVER_ERROR)
                except OSError as write_error:
                    web.log.log_exception(write_error)

    def __getattr__(self, name):
        # every method, including extension ones, goes through _dispatch
        if name.startswith("do_"):
            return self._dispatch
        raise AttributeError(name)

class LocalWebServer:
    """
    Embedded HTTP server for a local browser UI.

    Paths under ``file_prefix`` are streamed from disk; every other path is
    rendered by ``handler`` (a PageSource or a callable taking a PageRequest).
    The server starts listening as soon as it is constructed unless
    ``autostart`` is False.

    The file path join is not sandboxed: ``..`` segments and absolute paths
    after the prefix reach anywhere on disk. Bind to localhost only.
    """

    def __init__(self, handler, url: str = DEFAULT_URL, file_prefix=None, file_root: str = "",
                 autostart: bool = True, **tuning):
        self._setup(ServerConfig(handler=handler, url=url, file_prefix=file_prefix,
                                 file_root=file_root, **tuning))
        if autostart:
            self.start()

    @classmethod
    def from_config(cls, config: ServerConfig, autostart: bool = True) -> "LocalWebServer":
        server = cls.__new__(cls)
        server._setup(config)
        if autostart:
            server.start()
        return server

    def _setup(self, config: ServerConfig) -> None:
        self.config = config
        self.page_source = as_page_source(config.handler)
        self.log = LogBuffer(config.quiet_suffixes)
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._httpd = None
        self._thread = None
        self._bound_port = None

    def __repr__(self):
        state = "listening" if self.listening else "stopped"
        return f"<LocalWebServer {self.url} {state}>"

    def __enter__(self):
        if not self.listening:
            self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    @property
    def listening(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def port(self) -> int:
        return self._bound_port if self._bound_port is not None else self.config.port

    @property
    def url(self) -> str:
        """Bind URL with the port actually in use once the server has bound."""
        if self._bound_port is None:
            return self.config.url
        return f"http://{self.config.host}:{self._bound_port}{self.config.path_prefix}"

    def resolve_file(self, path: str) -> str:
        """Map a request path under the file prefix to a local filesystem path."""
        remainder = unquote(path[len(self.config.file_prefix):])
        if self.config.file_root:
            return os.path.join(self.config.file_root, remainder)
        return remainder

    def start(self) -> None:
        with self._lock:
            if self.listening:
                return
            self._release()
            try:
                host, port = self.config.bind_address()
                if self._bound_port is not None:
                    port = self._bound_port
                httpd = _Listener((host, port), self)
            except (OSError, ValueError) as e:
                self.log.log(f"WebServer failed to listen on {self.config.url}: {e}", level=logging.ERROR)
                raise BindError(f"cannot listen on {self.config.url}: {e}") from e
            httpd.timeout = self.config.poll_interval
            self._httpd = httpd
            self._bound_port = httpd.server_address[1]
            self._stop_event = threading.Event()
            self._thread = threading.Thread(
                target=self._accept_loop, args=(httpd, self._stop_event),
                name=f"webserver-accept-{self._bound_port}", daemon=True,
            )
            self._thread.start()
        self.log.log(f"WebServer is listening for requests on {self.url}")

    def stop(self) -> None:
        with self._lock:
            if self._httpd is None:
                return
            self._stop_event.set()
            if self._thread is not None:
                self._thread.join(timeout=self.config.poll_interval + 1.0)
            time.sleep(self.config.stop_grace)
            self._release()
        self.log.log(f"WebServer stopped listening to requests on: {self.url}")

    def _release(self) -> None:
        if self._httpd is not None:
            self._httpd.server_close()
        self._httpd = None
        self._thread = None

    @safe_run
    def _accept_loop(self, httpd, stop_event) -> None:
        try:
            while not stop_event.is_set():
                httpd.handle_request()
        except Exception as e:  # noqa: BLE001
            if not stop_event.is_set():
                httpd.server_close()
                self.log.log_exception(e)
                raise
            closed = ListenerClosed("listener closed")
            closed.__cause__ = e
            self.log.log_exception(closed)
            return
        self.log.log_exception(ListenerClosed("listener closed"))

    def get_log(self, clear: bool = False) -> str:
        return self.log.get_log(clear)

    def clear_log(self) -> None:
        self.log.clear()
