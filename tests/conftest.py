from typing import Callable, Dict, List, Optional, Tuple

import pytest
from starlette.requests import Request

from rest_args.models import RequestContext


def build_request(
    method: str = "GET",
    path: str = "/",
    query: str = "",
    headers: Optional[Dict[str, str]] = None,
    body: bytes = b"",
    chunks: Optional[List[bytes]] = None,
    content_length: bool = True,
    extra_headers: Optional[List[Tuple[str, str]]] = None,
) -> Request:
    """Build a Starlette request the way an ASGI server would hand it over."""
    headers = dict(headers or {})
    parts = chunks if chunks is not None else ([body] if body else [])
    if parts and content_length and chunks is None:
        headers.setdefault("content-length", str(len(body)))
    if chunks is not None:
        headers.setdefault("transfer-encoding", "chunked")

    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "headers": [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in [*headers.items(), *(extra_headers or [])]],
        "scheme": "http",
        "server": ("testserver", 80),
    }
    messages = [
        {"type": "http.request", "body": part, "more_body": i < len(parts) - 1}
        for i, part in enumerate(parts)
    ] or [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return Request(scope, receive)


@pytest.fixture
def make_context() -> Callable[..., RequestContext]:
    def factory(**kwargs) -> RequestContext:
        return RequestContext(build_request(**kwargs))

    return factory


@pytest.fixture
def untouchable_context() -> RequestContext:
    """A request whose body stream fails the test if it is ever read."""
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/",
        "query_string": b"",
        "headers": [(b"content-type", b"application/json"), (b"content-length", b"2")],
    }

    async def receive():
        raise AssertionError("request body stream must not be read")

    return RequestContext(Request(scope, receive))
