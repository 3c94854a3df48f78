"""
Live Request Adapter
====================
Exposes an in-flight ASGI request the way the capture pipeline reads it:
protocol, transport metadata, header multi-maps and a replaceable body
stream.
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

from starlette.requests import ClientDisconnect
from starlette.types import Message, Receive, Scope

from .capture.body import NO_BODY, ReplayBody, is_chunked
from .capture.headers import HeaderMap, header_map_from_raw, header_tokens


@dataclass
class LiveRequest:
    """An incoming request as seen by the capture pipeline."""
    method: str = "GET"
    proto: str = "HTTP/1.1"
    proto_major: int = 1
    proto_minor: int = 1
    tls: bool = False
    host: str = ""
    path: str = "/"
    raw_query: str = ""
    fragment: str = ""
    headers: HeaderMap = field(default_factory=dict)
    trailers: HeaderMap = field(default_factory=dict)
    content_length: int = 0
    transfer_encoding: List[str] = field(default_factory=list)
    close: bool = False
    remote_addr: str = ""
    request_uri: str = ""
    body: Any = NO_BODY
    context: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_scope(cls, scope: Scope, receive: Receive) -> "LiveRequest":
        """Adapt an ASGI HTTP scope and its receive channel."""
        headers = header_map_from_raw(scope.get("headers") or [])
        proto, major, minor = _parse_http_version(scope.get("http_version", "1.1"))

        transfer_encoding = header_tokens(headers.get("Transfer-Encoding", []))
        chunked = is_chunked(transfer_encoding)
        content_length = _content_length(headers, chunked, major)

        # Host moves to its own field and leaves the header map
        host_values = headers.pop("Host", None)
        host = host_values[0] if host_values else _format_address(scope.get("server"))

        path = scope.get("path", "/")
        raw_query = (scope.get("query_string") or b"").decode("latin-1")
        raw_path = scope.get("raw_path")
        request_uri = raw_path.split(b"?", 1)[0].decode("latin-1") if raw_path else path
        if raw_query:
            request_uri = f"{request_uri}?{raw_query}"

        if chunked or content_length != 0:
            body = stream_from_receive(receive)
        else:
            body = NO_BODY

        state = scope.get("state")
        return cls(
            method=scope.get("method", "GET"),
            proto=proto,
            proto_major=major,
            proto_minor=minor,
            tls=_has_tls(scope),
            host=host,
            path=path,
            raw_query=raw_query,
            headers=headers,
            content_length=content_length,
            transfer_encoding=transfer_encoding,
            close=_wants_close(headers, major, minor),
            remote_addr=_format_address(scope.get("client")),
            request_uri=request_uri,
            body=body,
            context=dict(state) if isinstance(state, dict) else {},
        )


async def stream_from_receive(receive: Receive) -> AsyncIterator[bytes]:
    """Single-use body stream over an ASGI receive channel."""
    while True:
        message = await receive()
        if message["type"] == "http.request":
            chunk = message.get("body", b"")
            if chunk:
                yield chunk
            if not message.get("more_body", False):
                return
        elif message["type"] == "http.disconnect":
            raise ClientDisconnect()


def receive_from_body(body: Any, receive: Receive) -> Callable[[], Awaitable[Message]]:
    """
    Build a receive channel that replays a buffered body, then defers to the
    real channel (so the application still sees ``http.disconnect``).
    """
    pending = list(body.segments) if isinstance(body, ReplayBody) else []
    finished = False

    async def replay() -> Message:
        nonlocal finished
        if finished:
            return await receive()
        if len(pending) > 1:
            return {"type": "http.request", "body": pending.pop(0), "more_body": True}
        finished = True
        chunk = pending.pop(0) if pending else b""
        return {"type": "http.request", "body": chunk, "more_body": False}

    return replay


def _parse_http_version(version: str) -> Tuple[str, int, int]:
    major_text, _, minor_text = (version or "1.1").partition(".")
    try:
        major = int(major_text)
        minor = int(minor_text) if minor_text else 0
    except ValueError:
        major, minor = 1, 1
    return f"HTTP/{major}.{minor}", major, minor


def _content_length(headers: HeaderMap, chunked: bool, major: int = 1) -> int:
    # -1 marks an unknown length
    if chunked:
        return -1
    values = headers.get("Content-Length")
    if not values:
        # HTTP/2 and later frame bodies without either header
        return -1 if major >= 2 else 0
    try:
        length = int(values[0].strip())
    except ValueError:
        return -1
    return length if length >= 0 else -1


def _wants_close(headers: HeaderMap, major: int, minor: int) -> bool:
    tokens = header_tokens(headers.get("Connection", []))
    if "close" in tokens:
        return True
    if major == 1 and minor == 0:
        return "keep-alive" not in tokens
    return False


def _has_tls(scope: Scope) -> bool:
    extensions = scope.get("extensions") or {}
    if extensions.get("tls") is not None:
        return True
    return scope.get("scheme") in ("https", "wss")


def _format_address(address: Optional[Tuple[str, Optional[int]]]) -> str:
    if not address:
        return ""
    host, port = address[0], address[1]
    if ":" in host:
        host = f"[{host}]"
    if port is None:
        return host
    return f"{host}:{port}"
