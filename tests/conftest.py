import http.client
import socket

import pytest

from http_server import LocalWebServer

@pytest.fixture
def serve():
    """Factory starting a LocalWebServer on a free localhost port; stopped on teardown."""
    servers = []

    def _serve(handler, url="http://127.0.0.1:0/", **kwargs):
        kwargs.setdefault("poll_interval", 0.05)
        kwargs.setdefault("stop_grace", 0.01)
        server = LocalWebServer(handler, url=url, **kwargs)
        servers.append(server)
        return server

    yield _serve
    for server in servers:
        server.stop()

def fetch(server, path, method="GET", body=None, headers=None):
    """Issue one request and return (status, headers, body)."""
    conn = http.client.HTTPConnection("127.0.0.1", server.port, timeout=5)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        resp = conn.getresponse()
        data = resp.read()
        return resp.status, dict(resp.getheaders()), data
    finally:
        conn.close()

def raw_request(server, data):
    """Send raw bytes and read until the server closes the connection."""
    chunks = []
    with socket.create_connection(("127.0.0.1", server.port), timeout=5) as sock:
        sock.sendall(data)
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)
