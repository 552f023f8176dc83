"""
Page sources: what the web server asks for HTML when a request is not a file.

A page source takes a PageRequest and returns an HTML string. Subclass
PageSource, or hand the server any callable with the same shape and it will
be wrapped by as_page_source().
"""

from dataclasses import dataclass, field
from typing import Callable, Mapping, Optional, Tuple

@dataclass(frozen=True)
class PageRequest:
    method: str
    path: str
    query: str = ""
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: Optional[Tuple[str, int]] = None

    @property
    def path_and_query(self) -> str:
        return f"{self.path}?{self.query}" if self.query else self.path

class PageSource:
    """Produces a response body from a request descriptor."""

    def render(self, request: PageRequest) -> str:
        raise NotImplementedError

    def __call__(self, request: PageRequest) -> str:
        return self.render(request)

class CallablePage(PageSource):
    def __init__(self, fn: Callable[[PageRequest], str]):
        self.fn = fn

    def render(self, request: PageRequest) -> str:
        return self.fn(request)

    def __repr__(self) -> str:
        return f"CallablePage({getattr(self.fn, '__name__', self.fn)!r})"

def as_page_source(handler) -> PageSource:
    if isinstance(handler, PageSource):
        return handler
    if callable(handler):
        return CallablePage(handler)
    raise TypeError(f"handler must be a PageSource or callable, got {type(handler).__name__}")

def timing_note(elapsed_s: float) -> str:
    return f"Webpage served in {elapsed_s * 1000:.3f} ms."

def apply_timing_notes(html: str, token: Optional[str], elapsed_s: float) -> str:
    """Replace every ``token`` in ``html`` with the elapsed-time note."""
    if not token or token not in html:
        return html
    return html.replace(token, timing_note(elapsed_s))
