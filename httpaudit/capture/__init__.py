"""
Request Capture
===============
Body-preserving capture of an in-flight request into an audit snapshot.
"""

# Re-export all public APIs
from .body import NO_BODY, ReplayBody, drain_body, is_chunked, render_body, render_body_bytes
from .chunked import ChunkedWriter
from .headers import canonical_header_key, header_map_from_raw, parse_headers, serialize_headers
from .hostport import split_host_port
from .snapshot import SnapshotBuilder, build_response_snapshot

__all__ = [
    # Body
    "NO_BODY",
    "ReplayBody",
    "drain_body",
    "is_chunked",
    "render_body",
    "render_body_bytes",
    "ChunkedWriter",
    # Headers
    "canonical_header_key",
    "header_map_from_raw",
    "parse_headers",
    "serialize_headers",
    # Host
    "split_host_port",
    # Snapshot
    "SnapshotBuilder",
    "build_response_snapshot",
]
