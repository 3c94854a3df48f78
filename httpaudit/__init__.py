"""
httpaudit
=========
HTTP request auditing middleware: captures a structured snapshot of each
request without disturbing it and dispatches the snapshot to configurable
sinks.
"""

__version__ = "0.1.0"

# Capture
from httpaudit.capture import (
    NO_BODY,
    ReplayBody,
    SnapshotBuilder,
    drain_body,
    render_body,
    serialize_headers,
    split_host_port,
)

# Dispatch
from httpaudit.dispatch import AuditDispatcher, dump_request

# Models & config
from httpaudit.models import AuditRecord, MessageRole, MessageSnapshot
from httpaudit.config import AuditOptions, ConsoleOptions, RawDumpOptions
from httpaudit.context import bind_request_id, get_request_id
from httpaudit.request import LiveRequest

# Middleware
from httpaudit.middleware import AuditMiddleware, setup_audit

# Exceptions
from httpaudit.exceptions import (
    HTTPAuditError,
    CaptureError,
    MalformedHostError,
    HeaderSerializationError,
    BodyCaptureError,
    BodyReadError,
    BodyCloseError,
    DispatchError,
    RecordStateError,
    ConfigurationError,
)

__all__ = [
    "__version__",
    # Capture
    "NO_BODY",
    "ReplayBody",
    "SnapshotBuilder",
    "drain_body",
    "render_body",
    "serialize_headers",
    "split_host_port",
    # Dispatch
    "AuditDispatcher",
    "dump_request",
    # Models & config
    "AuditRecord",
    "MessageRole",
    "MessageSnapshot",
    "AuditOptions",
    "ConsoleOptions",
    "RawDumpOptions",
    "bind_request_id",
    "get_request_id",
    "LiveRequest",
    # Middleware
    "AuditMiddleware",
    "setup_audit",
    # Exceptions
    "HTTPAuditError",
    "CaptureError",
    "MalformedHostError",
    "HeaderSerializationError",
    "BodyCaptureError",
    "BodyReadError",
    "BodyCloseError",
    "DispatchError",
    "RecordStateError",
    "ConfigurationError",
]
