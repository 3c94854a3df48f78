"""
Audit Models
=============
Data models for captured HTTP messages and audit records.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from .exceptions import RecordStateError


class MessageRole(str, Enum):
    """Which side of the exchange a snapshot describes."""
    REQUEST = "request"
    RESPONSE = "response"


@dataclass(frozen=True)
class MessageSnapshot:
    """Read-only capture of one HTTP message."""
    role: MessageRole
    protocol: str = ""
    protocol_major: int = 0
    protocol_minor: int = 0
    method: str = ""
    scheme: str = ""
    host: str = ""
    port: str = ""
    path: str = ""
    query: str = ""
    fragment: str = ""
    header: str = ""
    body: str = ""
    content_length: int = -1  # -1 = unknown
    transfer_encoding: str = ""
    close: bool = False
    trailer: str = ""
    remote_address: str = ""
    request_uri: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        d = asdict(self)
        d.pop("role")
        d["request_method"] = d.pop("method")
        return d


@dataclass
class AuditRecord:
    """
    One request/response cycle.

    The request snapshot is attached once before the handler runs; the
    response side is filled in by ``finish`` after it returns.
    """
    request_id: str = ""
    time_started: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    time_finished: Optional[datetime] = None
    response_code: int = 0
    request: Optional[MessageSnapshot] = None
    response: Optional[MessageSnapshot] = None

    @classmethod
    def begin(cls, request_id: str = "") -> "AuditRecord":
        return cls(request_id=request_id, time_started=datetime.now(timezone.utc))

    def attach_request(self, snapshot: MessageSnapshot, request_id: str) -> None:
        if self.request is not None:
            raise RecordStateError("request snapshot already attached")
        if snapshot.role is not MessageRole.REQUEST:
            raise RecordStateError(f"expected a request snapshot, got {snapshot.role.value}")
        self.request = snapshot
        self.request_id = request_id

    def finish(self, response_code: int, response: Optional[MessageSnapshot] = None) -> None:
        if self.time_finished is not None:
            raise RecordStateError("audit record already finished")
        self.time_finished = datetime.now(timezone.utc)
        self.response_code = response_code
        self.response = response

    @property
    def finished(self) -> bool:
        return self.time_finished is not None

    @property
    def duration(self) -> timedelta:
        if self.time_finished is None:
            return timedelta(0)
        return max(self.time_finished - self.time_started, timedelta(0))

    @property
    def duration_ms(self) -> int:
        return int(self.duration.total_seconds() * 1000)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "request_id": self.request_id,
            "time_started": self.time_started.isoformat(),
            "time_finished": self.time_finished.isoformat() if self.time_finished else None,
            "time_in_millis": self.duration_ms,
            "response_code": self.response_code,
            "request": self.request.to_dict() if self.request else None,
            "response": self.response.to_dict() if self.response else None,
        }
