"""
Dispatch Policy Engine
======================
Decides which routes an audit record is sent to and which optional fields
each route includes.

Routes run in a fixed order:
1. raw dump   - wire-format request dump to an auxiliary text stream
2. console    - one structured log entry per request

When the raw dump route is enabled it takes precedence: the console route
is skipped for that pass even if it is enabled too.
"""

import sys
import threading
from typing import Any, List, Optional, TextIO

import structlog

from ..config import AuditOptions
from ..exceptions import DispatchError, RecordStateError
from ..models import AuditRecord
from .dump import dump_request

ROUTE_RAW_DUMP = "raw_dump"
ROUTE_CONSOLE = "console"

DUMP_BANNER = "httpaudit raw request dump:\n"
CONSOLE_EVENT = "Request Received"

# Serializes dump writes so concurrent requests never interleave
_dump_lock = threading.Lock()


class AuditDispatcher:
    """
    Runs the configured dispatch routes for finished audit records.

    Args:
        options: Dispatch configuration; routes without configuration are off
        logger: structlog logger the console route writes to
        dump_stream: Text stream for raw dumps (default: stdout at write time)
    """

    def __init__(
        self,
        options: Optional[AuditOptions] = None,
        logger: Optional[Any] = None,
        dump_stream: Optional[TextIO] = None,
    ):
        self.options = options or AuditOptions()
        self.logger = logger or structlog.get_logger(__name__)
        self.dump_stream = dump_stream

    async def dispatch(self, record: AuditRecord, request: Any) -> List[str]:
        """
        Send ``record`` to every enabled route.

        ``request`` is only read by the raw dump route; its body must be an
        unread stream (the middleware hands over a fresh replay).

        Returns:
            Names of the routes that ran

        Raises:
            DispatchError: a route failed to write (already logged)
            RecordStateError: the record has no request snapshot
        """
        if record.request is None:
            raise RecordStateError("cannot dispatch a record without a request snapshot")

        if self.options.raw_dump.enable:
            await self._run_raw_dump(request)
            return [ROUTE_RAW_DUMP]

        routes: List[str] = []
        if self.options.console.enable:
            self._run_console(record)
            routes.append(ROUTE_CONSOLE)
        return routes

    async def _run_raw_dump(self, request: Any) -> None:
        try:
            dump = await dump_request(request, self.options.raw_dump.include_body)
            stream = self.dump_stream or sys.stdout
            with _dump_lock:
                stream.write(DUMP_BANNER + dump)
                stream.flush()
        except Exception as e:
            self._route_failed(ROUTE_RAW_DUMP, e)

    def _run_console(self, record: AuditRecord) -> None:
        snapshot = record.request
        options = self.options.console
        try:
            log = self.logger
            # All header key:value pairs as JSON
            if options.include_header:
                log = log.bind(header_json=snapshot.header)
            if options.include_body:
                log = log.bind(body=snapshot.body)

            log.info(
                CONSOLE_EVENT,
                request_id=record.request_id,
                method=snapshot.method,
                scheme=snapshot.scheme,
                host=snapshot.host,
                port=snapshot.port,
                path=snapshot.path,
                protocol=snapshot.protocol,
                proto_major=snapshot.protocol_major,
                proto_minor=snapshot.protocol_minor,
                content_length=snapshot.content_length,
                transfer_encoding=snapshot.transfer_encoding,
                close=snapshot.close,
                remote_addr=snapshot.remote_address,
                request_uri=snapshot.request_uri,
            )
        except Exception as e:
            self._route_failed(ROUTE_CONSOLE, e)

    def _route_failed(self, route: str, error: Exception) -> None:
        self.logger.error(
            "audit_dispatch_failed",
            route=route,
            error=str(error),
            error_type=type(error).__name__,
        )
        raise DispatchError(route, error) from error
