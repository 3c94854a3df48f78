"""
Shared fixtures for httpaudit tests.
"""

import io
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple

import pytest
import structlog
from structlog.testing import LogCapture


@pytest.fixture
def log_capture() -> LogCapture:
    return LogCapture()


@pytest.fixture
def audit_logger(log_capture):
    """Explicit logger whose entries land in ``log_capture.entries``."""
    return structlog.wrap_logger(
        structlog.PrintLogger(io.StringIO()),
        processors=[log_capture],
    )


def entries_for(log_capture: LogCapture, event: str) -> List[Dict[str, Any]]:
    return [entry for entry in log_capture.entries if entry["event"] == event]


class FakeBody:
    """Single-use async body that records whether it was closed."""

    def __init__(self, segments: Sequence[bytes], fail_after: Optional[int] = None,
                 close_error: Optional[Exception] = None):
        self._segments = list(segments)
        self._fail_after = fail_after
        self._close_error = close_error
        self.reads = 0
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> bytes:
        if self._fail_after is not None and self.reads >= self._fail_after:
            raise OSError("connection reset by peer")
        if not self._segments:
            raise StopAsyncIteration
        self.reads += 1
        return self._segments.pop(0)

    async def aclose(self) -> None:
        if self._close_error is not None:
            raise self._close_error
        self.closed = True


async def iter_segments(segments: Sequence[bytes]) -> AsyncIterator[bytes]:
    """Single-use async body over fixed segments."""
    for segment in segments:
        yield segment


def make_scope(
    method: str = "GET",
    path: str = "/",
    query: bytes = b"",
    headers: Sequence[Tuple[bytes, bytes]] = (),
    scheme: str = "http",
    http_version: str = "1.1",
    state: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": http_version,
        "method": method,
        "scheme": scheme,
        "path": path,
        "raw_path": path.encode("latin-1"),
        "query_string": query,
        "root_path": "",
        "headers": list(headers),
        "client": ("203.0.113.7", 52100),
        "server": ("api.example.com", 443 if scheme == "https" else 80),
    }
    if state is not None:
        scope["state"] = state
    return scope


def make_receive(segments: Sequence[bytes]):
    """ASGI receive channel delivering ``segments`` then http.disconnect."""
    messages = [
        {"type": "http.request", "body": segment, "more_body": i < len(segments) - 1}
        for i, segment in enumerate(segments)
    ] or [{"type": "http.request", "body": b"", "more_body": False}]

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    return receive


async def echo_app(scope, receive, send):
    """Raw ASGI app returning the request body it read."""
    body = b""
    while True:
        message = await receive()
        body += message.get("body", b"")
        if not message.get("more_body", False):
            break
    await send({
        "type": "http.response.start",
        "status": 200,
        "headers": [(b"content-type", b"application/octet-stream"),
                    (b"content-length", str(len(body)).encode())],
    })
    await send({"type": "http.response.body", "body": body})


class SendCollector:
    def __init__(self):
        self.messages: List[Dict[str, Any]] = []

    async def __call__(self, message):
        self.messages.append(message)

    @property
    def status(self) -> int:
        return self.messages[0]["status"]

    @property
    def body(self) -> bytes:
        return b"".join(m.get("body", b"") for m in self.messages if m["type"] == "http.response.body")
