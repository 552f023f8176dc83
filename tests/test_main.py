from main import StatusPage
from pages import PageRequest

class FakeServer:
    def get_log(self, clear=False):
        return "WebServer [2026-10-19 10:00:00.000] GET /<script>"

def test_status_page_escapes_and_carries_timing_token():
    page = StatusPage()
    page.server = FakeServer()
    html = page.render(PageRequest("GET", "/<b>", "x=1&y=2"))
    assert "<h1>GET /&lt;b&gt;?x=1&amp;y=2</h1>" in html
    assert "GET /&lt;script&gt;" in html
    assert "~SERVER_NOTES~" in html

def test_status_page_without_server():
    html = StatusPage().render(PageRequest("GET", "/"))
    assert "<pre></pre>" in html
