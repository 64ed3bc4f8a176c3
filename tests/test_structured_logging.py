"""Tests for JSON log formatting and request ID tracking."""
import json
import logging

from drug_check.structured_logging import (
    JSONFormatter,
    RequestIdFilter,
    get_logger,
    log_request,
    mask_ip,
    set_request_id,
    setup_logging,
)


def _record(message, **attrs):
    record = logging.LogRecord("api", logging.INFO, __file__, 1, message, None, None)
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_basic_fields(self):
        data = json.loads(JSONFormatter().format(_record("hello", request_id="req-1")))
        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["service"] == "drug-check"
        assert data["request_id"] == "req-1"

    def test_fields_inlined_and_japanese_kept(self):
        line = JSONFormatter().format(_record("照合", fields={"drugs": 2}))
        assert "照合" in line
        assert json.loads(line)["drugs"] == 2

    def test_no_request_id(self):
        data = json.loads(JSONFormatter().format(_record("hello")))
        assert "request_id" not in data


class TestServiceLogger:

    def test_kwargs_become_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger="api-test"):
            get_logger("api-test").info("done", duration_ms=1.5)
        assert caplog.records[0].fields == {"duration_ms": 1.5}
        assert caplog.records[0].getMessage() == "done"

    def test_exception_keeps_exc_info(self, caplog):
        with caplog.at_level(logging.INFO, logger="api-test"):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                get_logger("api-test").exception("failed", endpoint="verify")
        record = caplog.records[0]
        assert record.exc_info is not None
        assert record.fields == {"endpoint": "verify"}

    def test_log_request_level_by_status(self, caplog):
        with caplog.at_level(logging.INFO, logger="http"):
            log_request("POST", "/verify", 200, 12.346, client_ip="10.1.2.3")
            log_request("POST", "/verify", 500, 1.0)
        ok, failed = caplog.records
        assert ok.levelno == logging.INFO
        assert ok.fields["client_ip"] == "10.1.xxx.xxx"
        assert ok.fields["duration_ms"] == 12.35
        assert failed.levelno == logging.ERROR


class TestRequestId:

    def test_filter_attaches_current_id(self):
        set_request_id("abc123")
        record = _record("x")
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == "abc123"

    def test_generated_id(self):
        assert len(set_request_id()) == 8


class TestSetupLogging:

    def test_installs_single_json_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(level="DEBUG", use_json=True)
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert root.level == logging.DEBUG
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


class TestMaskIp:

    def test_ipv4(self):
        assert mask_ip("192.168.1.20") == "192.168.xxx.xxx"

    def test_other(self):
        assert mask_ip("::1") == "xxx"
