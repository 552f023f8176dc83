import pytest

from config import ServerConfig

def page(request):
    return ""

def test_defaults():
    cfg = ServerConfig(handler=page)
    assert cfg.url == "http://localhost:8080/"
    assert cfg.host == "localhost"
    assert cfg.port == 8080
    assert cfg.path_prefix == "/"
    assert cfg.timing_token == "~SERVER_NOTES~"
    assert cfg.chunk_size == 32 * 1024

def test_url_parts():
    cfg = ServerConfig(handler=page, url="HTTP://127.0.0.1:9000/ui")
    assert cfg.scheme == "http"
    assert cfg.bind_address() == ("127.0.0.1", 9000)
    assert cfg.path_prefix == "/ui/"

def test_port_defaults_to_80():
    assert ServerConfig(handler=page, url="http://localhost/").port == 80

@pytest.mark.parametrize("url", ["https://localhost:8443/", "ftp://localhost/", "localhost:8080", "http://:8080/"])
def test_unbindable_urls(url):
    with pytest.raises(ValueError):
        ServerConfig(handler=page, url=url).bind_address()

def test_frozen():
    cfg = ServerConfig(handler=page)
    with pytest.raises(AttributeError):
        cfg.url = "http://localhost:9000/"

def test_file_request_needs_prefix():
    assert not ServerConfig(handler=page).is_file_request("/fs/a.txt")
    cfg = ServerConfig(handler=page, file_prefix="/fs/")
    assert cfg.is_file_request("/fs/a.txt")
    assert not cfg.is_file_request("/fsx/a.txt")
    assert not cfg.is_file_request("/index")
