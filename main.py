#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Local web server for desktop UIs
- Pages: rendered by a PageSource (here a status page showing the server log)
- Files: streamed from --fs-root for any path under --fs-prefix
- Stops on SIGINT / SIGTERM

The file prefix maps request paths straight onto the disk with no
containment check. Keep the bind URL on localhost.
"""

import argparse
import html
import logging
import signal
import sys
import threading

from config import DEFAULT_URL, TIMING_TOKEN, ServerConfig
from http_server import BindError, LocalWebServer
from logutil import setup_logging
from pages import PageRequest, PageSource

class StatusPage(PageSource):
    """Shows the current request and the server log."""

    def __init__(self):
        self.server = None

    def render(self, request: PageRequest) -> str:
        log_text = self.server.get_log() if self.server is not None else ""
        return (
            "<html><head><title>LocalWebServer</title></head><body>"
            f"<h1>{html.escape(request.method)} {html.escape(request.path_and_query)}</h1>"
            f"<pre>{html.escape(log_text)}</pre>"
            f"<p><i>{TIMING_TOKEN}</i></p>"
            "</body></html>"
        )

def main():
    ap = argparse.ArgumentParser(description="Embedded HTTP server for local browser UIs")
    ap.add_argument("--url", dest="url", default=DEFAULT_URL, help="Bind URL (scheme://host:port/prefix/)")
    ap.add_argument("--fs-prefix", dest="file_prefix", default=None,
                    help="URL prefix served from disk, e.g. /fs/ (unsandboxed)")
    ap.add_argument("--fs-root", dest="file_root", default="", help="Local directory the file prefix maps to")
    ap.add_argument("--log-level", dest="log_level", default="INFO")
    args = ap.parse_args()

    setup_logging(args.log_level)

    page = StatusPage()
    cfg = ServerConfig(handler=page, url=args.url, file_prefix=args.file_prefix, file_root=args.file_root)
    try:
        server = LocalWebServer.from_config(cfg)
    except BindError as e:
        logging.error("%s", e)
        sys.exit(2)
    page.server = server

    if cfg.file_prefix:
        logging.info("Serving files under %s from %r", cfg.file_prefix, cfg.file_root or "<absolute paths>")

    stop_event = threading.Event()

    def _stop(sig, _):
        logging.info("Signal %s received, shutting down...", sig)
        stop_event.set()

    for s in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(s, _stop)
        except (ValueError, OSError):
            pass

    try:
        while not stop_event.is_set() and server.listening:
            stop_event.wait(0.5)
    finally:
        server.stop()
        logging.info("Server stopped.")

if __name__ == "__main__":
    main()
