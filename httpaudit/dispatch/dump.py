"""
Raw Request Dump
================
Renders a live request in HTTP/1.x wire format, independent of the
snapshot builder.
"""

import io
from typing import Any

from ..capture.body import BODY_ENCODING, BODY_ERRORS, render_body_bytes
from ..capture.headers import HeaderMap

# Headers written separately or not at all
EXCLUDED_DUMP_HEADERS = frozenset({"Host", "Transfer-Encoding", "Trailer"})


def _write_headers(buf: io.StringIO, headers: HeaderMap, skip_connection: bool) -> None:
    for key in sorted(headers):
        if key in EXCLUDED_DUMP_HEADERS or (skip_connection and key == "Connection"):
            continue
        for value in headers[key]:
            # Newlines inside values would break the framing
            value = value.replace("\r", " ").replace("\n", " ").strip()
            buf.write(f"{key}: {value}\r\n")


async def dump_request(request: Any, include_body: bool = False) -> str:
    """
    Return the request line, headers and (optionally) body as sent on the wire.

    When the body is included it is read through the body renderer, so
    ``request.body`` is left holding an unread copy of the same bytes.

    Raises:
        BodyCaptureError: the body stream failed while being buffered
    """
    buf = io.StringIO()
    request_uri = request.request_uri or request.path or "/"
    buf.write(
        f"{request.method or 'GET'} {request_uri} "
        f"HTTP/{request.proto_major}.{request.proto_minor}\r\n"
    )

    absolute_uri = request_uri.startswith(("http://", "https://"))
    if not absolute_uri and request.host:
        buf.write(f"Host: {request.host}\r\n")

    if request.transfer_encoding:
        buf.write(f"Transfer-Encoding: {','.join(request.transfer_encoding)}\r\n")
    if request.close:
        buf.write("Connection: close\r\n")

    _write_headers(buf, request.headers, skip_connection=request.close)
    buf.write("\r\n")

    if include_body:
        raw = await render_body_bytes(request)
        buf.write(raw.decode(BODY_ENCODING, BODY_ERRORS))

    return buf.getvalue()
