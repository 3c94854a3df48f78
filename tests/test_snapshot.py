"""
Tests for the request snapshot builder and audit models.
"""

import pytest

from httpaudit.capture.body import NO_BODY
from httpaudit.capture.headers import parse_headers
from httpaudit.capture.snapshot import SnapshotBuilder, build_response_snapshot
from httpaudit.context import bind_request_id
from httpaudit.exceptions import (
    BodyReadError,
    HeaderSerializationError,
    MalformedHostError,
    RecordStateError,
)
from httpaudit.models import AuditRecord, MessageRole, MessageSnapshot
from httpaudit.request import LiveRequest

from conftest import FakeBody, entries_for, iter_segments


def make_request(**overrides) -> LiveRequest:
    values = dict(
        method="POST",
        tls=True,
        host="api.example.com:8443",
        path="/v1/items",
        raw_query="page=2",
        headers={"Content-Type": ["application/json"], "Content-Length": ["7"]},
        content_length=7,
        remote_addr="203.0.113.7:52100",
        request_uri="/v1/items?page=2",
        body=iter_segments([b'{"a":1}']),
        context={"request_id": "req-123"},
    )
    values.update(overrides)
    return LiveRequest(**values)


class TestSnapshotBuilder:
    """Tests for request capture."""

    @pytest.mark.asyncio
    async def test_capture_populates_snapshot(self, audit_logger):
        record = AuditRecord.begin()
        request = make_request()

        snapshot = await SnapshotBuilder(audit_logger).capture(record, request)

        assert record.request is snapshot
        assert record.request_id == "req-123"
        assert snapshot.role is MessageRole.REQUEST
        assert snapshot.scheme == "https"
        assert snapshot.method == "POST"
        assert snapshot.host == "api.example.com"
        assert snapshot.port == "8443"
        assert snapshot.path == "/v1/items"
        assert snapshot.query == "page=2"
        assert snapshot.protocol == "HTTP/1.1"
        assert snapshot.body == '{"a":1}'
        assert snapshot.content_length == 7
        assert snapshot.remote_address == "203.0.113.7:52100"
        assert snapshot.request_uri == "/v1/items?page=2"
        assert parse_headers(snapshot.header) == request.headers
        assert snapshot.trailer == "{}"

    @pytest.mark.asyncio
    async def test_plain_http_scheme(self, audit_logger):
        record = AuditRecord.begin()

        snapshot = await SnapshotBuilder(audit_logger).capture(record, make_request(tls=False))

        assert snapshot.scheme == "http"

    @pytest.mark.asyncio
    async def test_host_without_port(self, audit_logger):
        record = AuditRecord.begin()

        snapshot = await SnapshotBuilder(audit_logger).capture(
            record, make_request(host="example.com")
        )

        assert snapshot.host == "example.com"
        assert snapshot.port == ""

    @pytest.mark.asyncio
    async def test_transfer_encoding_joined(self, audit_logger):
        record = AuditRecord.begin()
        request = make_request(
            transfer_encoding=["gzip", "chunked"],
            content_length=-1,
            body=iter_segments([b"x"]),
        )

        snapshot = await SnapshotBuilder(audit_logger).capture(record, request)

        assert snapshot.transfer_encoding == "gzip,chunked"
        assert snapshot.content_length == -1

    @pytest.mark.asyncio
    async def test_handler_body_restored(self, audit_logger):
        request = make_request()

        await SnapshotBuilder(audit_logger).capture(AuditRecord.begin(), request)

        assert await request.body.read() == b'{"a":1}'

    @pytest.mark.asyncio
    async def test_request_id_from_context_var(self, audit_logger):
        record = AuditRecord.begin()

        with bind_request_id("ctx-42"):
            await SnapshotBuilder(audit_logger).capture(record, make_request(context={}))

        assert record.request_id == "ctx-42"

    @pytest.mark.asyncio
    async def test_malformed_host_aborts_capture(self, audit_logger, log_capture):
        """A bad Host aborts capture before the body is touched."""
        record = AuditRecord.begin()
        original = FakeBody([b"untouched"])
        request = make_request(host="a:b:c", body=original)

        with pytest.raises(MalformedHostError):
            await SnapshotBuilder(audit_logger).capture(record, request)

        assert record.request is None
        assert request.body is original
        assert original.reads == 0
        failures = entries_for(log_capture, "request_capture_failed")
        assert len(failures) == 1
        assert failures[0]["error_type"] == "MalformedHostError"
        assert failures[0]["log_level"] == "error"

    @pytest.mark.asyncio
    async def test_bad_header_aborts_capture(self, audit_logger):
        record = AuditRecord.begin()
        request = make_request(headers={"X-Raw": [b"bytes"]})

        with pytest.raises(HeaderSerializationError):
            await SnapshotBuilder(audit_logger).capture(record, request)

        assert record.request is None

    @pytest.mark.asyncio
    async def test_body_failure_aborts_capture(self, audit_logger):
        record = AuditRecord.begin()
        original = FakeBody([b"part", b"rest"], fail_after=1)

        with pytest.raises(BodyReadError):
            await SnapshotBuilder(audit_logger).capture(record, make_request(body=original))

        assert record.request is None

    @pytest.mark.asyncio
    async def test_no_body_request(self, audit_logger):
        request = make_request(method="GET", body=NO_BODY, content_length=0)

        snapshot = await SnapshotBuilder(audit_logger).capture(AuditRecord.begin(), request)

        assert snapshot.body == ""
        assert request.body is NO_BODY


class TestResponseSnapshot:
    def test_response_metadata(self):
        request = make_request()

        snapshot = build_response_snapshot(
            request,
            [(b"content-type", b"application/json"), (b"content-length", b"12")],
        )

        assert snapshot.role is MessageRole.RESPONSE
        assert snapshot.content_length == 12
        assert parse_headers(snapshot.header) == {
            "Content-Type": ["application/json"],
            "Content-Length": ["12"],
        }

    def test_chunked_response_has_unknown_length(self):
        snapshot = build_response_snapshot(make_request(), [(b"transfer-encoding", b"chunked")])

        assert snapshot.content_length == -1
        assert snapshot.transfer_encoding == "chunked"


class TestAuditRecord:
    """Tests for audit record lifecycle."""

    def test_duration_not_negative(self):
        record = AuditRecord.begin("req-1")
        record.finish(204)

        assert record.duration.total_seconds() >= 0
        assert record.duration_ms >= 0
        assert record.response_code == 204

    def test_unfinished_duration_is_zero(self):
        assert AuditRecord.begin().duration_ms == 0

    def test_finish_twice_rejected(self):
        record = AuditRecord.begin()
        record.finish(200)

        with pytest.raises(RecordStateError):
            record.finish(500)

    def test_attach_twice_rejected(self):
        record = AuditRecord.begin()
        record.attach_request(MessageSnapshot(role=MessageRole.REQUEST), "req-1")

        with pytest.raises(RecordStateError):
            record.attach_request(MessageSnapshot(role=MessageRole.REQUEST), "req-2")

    def test_attach_rejects_response_snapshot(self):
        with pytest.raises(RecordStateError):
            AuditRecord.begin().attach_request(MessageSnapshot(role=MessageRole.RESPONSE), "r")

    def test_snapshot_is_frozen(self):
        snapshot = MessageSnapshot(role=MessageRole.REQUEST, method="GET")

        with pytest.raises(AttributeError):
            snapshot.method = "POST"

    def test_to_dict_field_names(self):
        record = AuditRecord.begin("req-9")
        record.attach_request(
            MessageSnapshot(role=MessageRole.REQUEST, method="PUT", remote_address="1.2.3.4:5"),
            "req-9",
        )
        record.finish(201)

        data = record.to_dict()

        assert data["request_id"] == "req-9"
        assert data["response_code"] == 201
        assert data["time_in_millis"] >= 0
        assert data["request"]["request_method"] == "PUT"
        assert data["request"]["remote_address"] == "1.2.3.4:5"
        assert "role" not in data["request"]
        assert data["response"] is None
