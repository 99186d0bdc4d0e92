"""
Tests for structured logging infrastructure.

Tests:
- Logger configuration (JSON and console)
- Request context propagation
- Alert payload summarization
- Operation context timing
- Endpoint normalization for request metrics
"""

import pytest

from alertcluster.observability.logging import (
    OperationContext,
    RequestContext,
    add_request_context,
    configure_logging,
    get_logger,
    get_request_id,
    get_trace_id,
    summarize_alert_payloads,
)
from alertcluster.observability.logging_middleware import normalize_endpoint


def test_configure_logging_json_output():
    """Test that JSON logging can be configured."""
    configure_logging(log_level="INFO", json_output=True, colorized=False)

    logger = get_logger("test")
    logger.info("clusters served", clusters=3, total_count=3)


def test_configure_logging_console_output():
    """Test that console logging can be configured."""
    configure_logging(log_level="DEBUG", json_output=False, colorized=False)

    logger = get_logger("test")
    logger.debug("cache miss", eps=0.3, min_samples=2)
    logger.warning("slow clustering run", latency_ms=812.4)


def test_request_context():
    """Test request context propagation and reset."""
    with RequestContext(request_id="req_123", trace_id="trace_abc"):
        assert get_request_id() == "req_123"
        assert get_trace_id() == "trace_abc"

    assert get_request_id() is None
    assert get_trace_id() is None


def test_request_context_auto_generation():
    """Test that request_id and trace_id are auto-generated."""
    with RequestContext():
        assert get_request_id().startswith("req_")
        assert get_trace_id().startswith("trace_")


def test_nested_request_contexts():
    with RequestContext(request_id="req1"):
        with RequestContext(request_id="req2"):
            assert get_request_id() == "req2"
        assert get_request_id() == "req1"


def test_add_request_context_processor():
    with RequestContext(request_id="req_9", trace_id="trace_9"):
        event = add_request_context(None, "info", {"event": "x"})

    assert event["request_id"] == "req_9"
    assert event["trace_id"] == "trace_9"


def test_add_request_context_outside_request():
    event = add_request_context(None, "info", {"event": "x"})

    assert "request_id" not in event


class TestPayloadSummary:
    """Test suite for summarize_alert_payloads."""

    def test_dict_payload_reduced_to_keys(self):
        data = {"src_ip": "10.0.0.7", "user": "alice", "rule": "brute-force"}

        event = summarize_alert_payloads(None, "info", {"event": "x", "data": data})

        assert event["data"] == "<payload: 3 keys [rule, src_ip, user]>"
        assert "alice" not in event["data"]

    def test_many_keys_truncated(self):
        data = {f"field_{i}": i for i in range(8)}

        event = summarize_alert_payloads(None, "info", {"payload": data})

        assert event["payload"].startswith("<payload: 8 keys [field_0, field_1")
        assert event["payload"].endswith(", ...]>")

    def test_long_string_payload_previewed(self):
        raw = "x" * 200

        event = summarize_alert_payloads(None, "info", {"alert_data": raw})

        assert event["alert_data"] == "x" * 64 + "... <200 chars>"

    def test_short_string_payload_kept(self):
        event = summarize_alert_payloads(None, "info", {"data": "ping"})

        assert event["data"] == "ping"

    def test_other_fields_untouched(self):
        event = summarize_alert_payloads(None, "info", {"cluster_id": "swift-eagle-1a2b3c4d"})

        assert event["cluster_id"] == "swift-eagle-1a2b3c4d"


class TestOperationContext:
    """Test suite for OperationContext."""

    def test_records_duration(self):
        configure_logging(log_level="INFO", json_output=False, colorized=False)

        with OperationContext("dbscan", alerts=10) as operation:
            pass

        assert operation.duration_seconds >= 0.0

    def test_exception_propagates(self):
        configure_logging(log_level="INFO", json_output=False, colorized=False)

        with pytest.raises(ValueError):
            with OperationContext("dbscan", alerts=10):
                raise ValueError("bad embedding")


class TestNormalizeEndpoint:
    """Test suite for metric endpoint normalization."""

    def test_cluster_alerts_path(self):
        assert (
            normalize_endpoint("/api/v1/clusters/swift-eagle-1a2b3c4d/alerts")
            == "/api/v1/clusters/{cluster_id}/alerts"
        )

    def test_cluster_list_unchanged(self):
        assert normalize_endpoint("/api/v1/clusters") == "/api/v1/clusters"
