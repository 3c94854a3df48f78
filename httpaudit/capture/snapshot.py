"""
Request Snapshot Builder
========================
Assembles the request side of an audit record from a live request.
"""

from typing import Any, Iterable, Optional, Tuple

import structlog

from ..context import get_request_id
from ..exceptions import CaptureError
from ..models import AuditRecord, MessageRole, MessageSnapshot
from .body import render_body
from .headers import header_map_from_raw, header_tokens, serialize_headers
from .hostport import split_host_port


class SnapshotBuilder:
    """
    Captures request snapshots.

    Capture either attaches a complete snapshot to the record or raises a
    ``CaptureError``; partial snapshots are never attached.
    """

    def __init__(self, logger: Optional[Any] = None):
        self.logger = logger or structlog.get_logger(__name__)

    async def capture(self, record: AuditRecord, request: Any) -> MessageSnapshot:
        """
        Populate ``record`` from ``request``.

        Only ``request.body`` is touched on the request: it is replaced with
        an unread copy of the original bytes.

        Raises:
            MalformedHostError: the Host value cannot be split
            HeaderSerializationError: headers or trailers are not text
            BodyCaptureError: the body stream failed while being buffered
        """
        try:
            host, port = split_host_port(request.host)
            scheme = "https" if request.tls else "http"
            header_text = serialize_headers(request.headers)
            trailer_text = serialize_headers(request.trailers)
            body_text = await render_body(request)
        except CaptureError as e:
            self.logger.error(
                "request_capture_failed",
                error=str(e),
                error_type=type(e).__name__,
                method=request.method,
                path=request.path,
            )
            raise

        snapshot = MessageSnapshot(
            role=MessageRole.REQUEST,
            protocol=request.proto,
            protocol_major=request.proto_major,
            protocol_minor=request.proto_minor,
            method=request.method,
            scheme=scheme,
            host=host,
            port=port,
            path=request.path,
            query=request.raw_query,
            fragment=request.fragment,
            header=header_text,
            body=body_text,
            content_length=request.content_length,
            transfer_encoding=",".join(request.transfer_encoding),
            close=request.close,
            trailer=trailer_text,
            remote_address=request.remote_addr,
            request_uri=request.request_uri,
        )
        record.attach_request(snapshot, get_request_id(request.context))
        return snapshot


def build_response_snapshot(
    request: Any,
    raw_headers: Iterable[Tuple[bytes, bytes]],
) -> MessageSnapshot:
    """
    Snapshot the response start line metadata (no body) for ``request``.

    Raises:
        HeaderSerializationError: the response headers are not text
    """
    headers = header_map_from_raw(raw_headers)
    transfer_encoding = header_tokens(headers.get("Transfer-Encoding", []))
    content_length = -1
    if headers.get("Content-Length") and not transfer_encoding:
        try:
            content_length = int(headers["Content-Length"][0])
        except ValueError:
            content_length = -1
    connection = header_tokens(headers.get("Connection", []))

    return MessageSnapshot(
        role=MessageRole.RESPONSE,
        protocol=request.proto,
        protocol_major=request.proto_major,
        protocol_minor=request.proto_minor,
        header=serialize_headers(headers),
        content_length=content_length,
        transfer_encoding=",".join(transfer_encoding),
        close="close" in connection or request.close,
    )
