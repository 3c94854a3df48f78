"""
Body Replication & Rendering
============================
Reads a single-use request body exactly once, hands back two equivalent
replayable streams, and renders a textual copy of the body that keeps the
chunked framing the message arrived with.

A body stream is any async iterator of ``bytes`` segments (an optional
``aclose()`` coroutine closes it), which is what Starlette's
``Request.stream()`` and :func:`httpaudit.request.stream_from_receive` yield.
"""

import io
from typing import Any, List, Optional, Sequence, Tuple

from ..exceptions import BodyCloseError, BodyReadError
from .chunked import CRLF, ChunkedWriter

# Text encoding of the rendered body; surrogateescape keeps non-UTF-8 bytes
# recoverable with ``text.encode("utf-8", "surrogateescape")``.
BODY_ENCODING = "utf-8"
BODY_ERRORS = "surrogateescape"


class _NoBody:
    """Sentinel stream for a message that carries no body at all."""

    def __aiter__(self) -> "_NoBody":
        return self

    async def __anext__(self) -> bytes:
        raise StopAsyncIteration

    async def aclose(self) -> None:
        return None

    async def read(self) -> bytes:
        return b""

    def replay(self) -> "_NoBody":
        return self

    def __repr__(self) -> str:
        return "NO_BODY"


NO_BODY = _NoBody()


class ReplayBody:
    """
    In-memory body stream over an already-buffered set of segments.

    Each instance yields its segments once, like the network stream it
    replaces. ``replay()`` hands out a fresh, unread stream over the same
    buffer.
    """

    def __init__(self, segments: Sequence[bytes]):
        self._segments: Tuple[bytes, ...] = tuple(segments)
        self._index = 0
        self._closed = False

    def __aiter__(self) -> "ReplayBody":
        return self

    async def __anext__(self) -> bytes:
        if self._closed or self._index >= len(self._segments):
            raise StopAsyncIteration
        segment = self._segments[self._index]
        self._index += 1
        return segment

    async def read(self) -> bytes:
        """Read everything that is left."""
        return b"".join([segment async for segment in self])

    async def aclose(self) -> None:
        self._closed = True

    def replay(self) -> "ReplayBody":
        return ReplayBody(self._segments)

    @property
    def segments(self) -> Tuple[bytes, ...]:
        return self._segments

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return sum(len(segment) for segment in self._segments)

    def __repr__(self) -> str:
        return f"ReplayBody(segments={len(self._segments)}, size={len(self)})"


async def drain_body(body: Any) -> Tuple[Any, Any]:
    """
    Read all of ``body`` into memory and return two equivalent streams.

    ``NO_BODY`` (and ``None``) come back unchanged on both sides so callers
    can keep comparing against the sentinel by identity.

    Raises:
        BodyReadError: reading failed; ``error.body`` is the original stream
        BodyCloseError: closing the drained stream failed
    """
    if body is NO_BODY or body is None:
        return body, body

    segments: List[bytes] = []
    try:
        async for segment in body:
            if segment:
                segments.append(bytes(segment))
    except Exception as e:
        raise BodyReadError(f"reading body: {e}", body=body) from e

    aclose = getattr(body, "aclose", None)
    if aclose is not None:
        try:
            await aclose()
        except Exception as e:
            raise BodyCloseError(f"closing body: {e}", body=body) from e

    return ReplayBody(segments), ReplayBody(segments)


def is_chunked(transfer_encoding: Optional[Sequence[str]]) -> bool:
    """True when the first transfer coding is ``chunked``."""
    return bool(transfer_encoding) and transfer_encoding[0] == "chunked"


async def copy_body(body: Any, chunked: bool) -> bytes:
    """Copy a body stream into bytes, re-applying chunk framing when asked."""
    buf = io.BytesIO()
    if body is None:
        return b""

    dest = ChunkedWriter(buf) if chunked else buf
    try:
        async for segment in body:
            dest.write(segment)
    finally:
        if chunked:
            dest.close()
            buf.write(CRLF)
    return buf.getvalue()


async def render_body_bytes(request: Any) -> bytes:
    """
    Render ``request.body`` as it appeared on the wire and restore a fresh
    stream on the request for the real handler.

    ``request`` is any object with ``body`` and ``transfer_encoding``
    attributes (normally a :class:`httpaudit.request.LiveRequest`).
    """
    # On failure request.body keeps the original, partly read stream
    capture_copy, handler_copy = await drain_body(request.body)

    try:
        return await copy_body(capture_copy, is_chunked(request.transfer_encoding))
    finally:
        request.body = handler_copy


async def render_body(request: Any) -> str:
    """Textual form of :func:`render_body_bytes`."""
    raw = await render_body_bytes(request)
    return raw.decode(BODY_ENCODING, BODY_ERRORS)
