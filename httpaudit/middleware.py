"""
Request Audit Middleware
========================
ASGI middleware that snapshots every request before the application sees
it and dispatches the finished audit record after the response is sent.

Auditing is a pure side channel: capture or dispatch failures are logged
and the request is served exactly as it would be without the middleware.

Usage:
    from httpaudit import AuditMiddleware, AuditOptions
    from httpaudit.logging import create_logger

    app.add_middleware(
        AuditMiddleware,
        options=AuditOptions.from_env(),
        logger=create_logger("smsly-sms"),
    )
"""

from typing import Any, List, Optional, TextIO, Tuple

import structlog
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .capture.body import ReplayBody
from .capture.snapshot import SnapshotBuilder, build_response_snapshot
from .config import AuditOptions
from .dispatch.engine import AuditDispatcher
from .exceptions import CaptureError, DispatchError
from .models import AuditRecord
from .request import LiveRequest, receive_from_body


class AuditMiddleware:
    """
    Pure ASGI audit middleware.

    Args:
        app: The wrapped ASGI application
        options: Dispatch options (default: read from HTTPAUDIT_* env vars)
        logger: structlog logger used by every route and for diagnostics
        dump_stream: Text stream for the raw dump route (default: stdout)
    """

    def __init__(
        self,
        app: ASGIApp,
        options: Optional[AuditOptions] = None,
        logger: Optional[Any] = None,
        dump_stream: Optional[TextIO] = None,
    ):
        self.app = app
        self.options = options if options is not None else AuditOptions.from_env()
        self.logger = logger or structlog.get_logger(__name__)
        self.builder = SnapshotBuilder(self.logger)
        self.dispatcher = AuditDispatcher(self.options, self.logger, dump_stream)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        # Skip excluded paths, and all capture work when nothing would be emitted
        if scope.get("path", "") in self.options.exclude_paths or not self.options.any_enabled:
            await self.app(scope, receive, send)
            return

        request = LiveRequest.from_scope(scope, receive)
        record = AuditRecord.begin()

        captured = True
        try:
            await self.builder.capture(record, request)
        except CaptureError:
            # Already logged by the builder; serve the request unaudited
            captured = False

        body = request.body
        if isinstance(body, ReplayBody):
            app_receive = receive_from_body(body, receive)
        else:
            app_receive = receive

        status_code = 500
        response_headers: List[Tuple[bytes, bytes]] = []

        async def send_wrapper(message: Message) -> None:
            nonlocal status_code, response_headers
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                response_headers = list(message.get("headers", []))
            await send(message)

        try:
            await self.app(scope, app_receive, send_wrapper)
        finally:
            if captured:
                await self._finish(record, request, body, status_code, response_headers)

    async def _finish(
        self,
        record: AuditRecord,
        request: LiveRequest,
        body: Any,
        status_code: int,
        response_headers: List[Tuple[bytes, bytes]],
    ) -> None:
        record.finish(status_code, build_response_snapshot(request, response_headers))

        # The application consumed its copy; the dump route gets a fresh one
        request.body = body.replay() if isinstance(body, ReplayBody) else body

        try:
            await self.dispatcher.dispatch(record, request)
        except DispatchError as e:
            self.logger.warning(
                "request_audit_not_dispatched",
                route=e.route,
                request_id=record.request_id,
                path=request.path,
            )


def setup_audit(
    app: Any,
    options: Optional[AuditOptions] = None,
    logger: Optional[Any] = None,
    dump_stream: Optional[TextIO] = None,
) -> None:
    """
    Install the audit middleware on a Starlette or FastAPI application.

    Example:
        from httpaudit.middleware import setup_audit

        app = FastAPI()
        setup_audit(app)  # Uses HTTPAUDIT_* env vars
    """
    options = options if options is not None else AuditOptions.from_env()
    app.add_middleware(
        AuditMiddleware,
        options=options,
        logger=logger,
        dump_stream=dump_stream,
    )
    (logger or structlog.get_logger(__name__)).info(
        "request_audit_configured",
        raw_dump=options.raw_dump.enable,
        console=options.console.enable,
        excluded_paths=len(options.exclude_paths),
    )
