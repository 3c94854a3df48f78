"""
HTTP Audit Exceptions
=====================
Exception classes for request capture and audit dispatch.
"""

from typing import Any, Optional


class HTTPAuditError(Exception):
    """Base exception for all httpaudit errors."""
    pass


class CaptureError(HTTPAuditError):
    """Raised when a request snapshot cannot be captured."""
    pass


class MalformedHostError(CaptureError):
    """Raised when the Host value cannot be split into host and port."""

    def __init__(self, hostport: str, reason: str):
        self.hostport = hostport
        self.reason = reason
        super().__init__(f"address {hostport!r}: {reason}")


class HeaderSerializationError(CaptureError):
    """Raised when a header map holds keys or values that are not text."""
    pass


class BodyCaptureError(CaptureError):
    """
    Raised when the body stream fails while being replicated.

    ``body`` is the original stream, possibly partly drained, so the caller
    can hand it to the application unchanged.
    """

    def __init__(self, message: str, body: Any = None):
        self.body = body
        super().__init__(message)


class BodyReadError(BodyCaptureError):
    """Raised when reading the body stream fails."""
    pass


class BodyCloseError(BodyCaptureError):
    """Raised when closing the drained body stream fails."""
    pass


class DispatchError(HTTPAuditError):
    """Raised when a dispatch route fails to write its output."""

    def __init__(self, route: str, cause: Optional[BaseException] = None):
        self.route = route
        self.cause = cause
        super().__init__(f"dispatch route '{route}' failed: {cause}")


class RecordStateError(HTTPAuditError):
    """Raised when an audit record is populated out of order or twice."""
    pass


class ConfigurationError(HTTPAuditError):
    """Raised when audit options cannot be parsed."""
    pass
