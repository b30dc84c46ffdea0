"""
Tests for log sanitizing and the request-id aware formatter.
"""
import logging
from keyauth.core.logging_config import RequestIDFormatter
from keyauth.core.logging_utils import (
    MASK,
    mask_headers,
    mask_sensitive_data,
    partial_mask,
    sanitize_log_message,
)


class TestMasking:
    """Tests for secret masking."""

    def test_api_key_fully_masked(self):
        """API keys should be masked completely."""
        masked = mask_sensitive_data({"api": "api_abcdefghijklmnop", "action": "validate_key"})

        assert masked["api"] == MASK
        assert masked["action"] == "validate_key"

    def test_license_key_partially_masked(self):
        """License keys should keep only the last characters."""
        masked = mask_sensitive_data({"key": "PRO-ABC123"})

        assert masked["key"] == "******C123"

    def test_hwid_list_partially_masked(self):
        """Each hwid in a list should be partially masked."""
        masked = mask_sensitive_data({"hwids": ["HWID-0001", "HWID-0002"]})

        assert masked["hwids"] == ["*****0001", "*****0002"]

    def test_short_values_fully_masked(self):
        """Short values should be masked completely."""
        assert partial_mask("abc") == MASK

    def test_nested_structures(self):
        """Masking should reach nested dicts and lists."""
        masked = mask_sensitive_data({"payload": [{"api_key": "secret", "name": "App"}]})

        assert masked["payload"][0]["api_key"] == MASK
        assert masked["payload"][0]["name"] == "App"

    def test_request_id_never_masked(self):
        """Request ids should never be masked."""
        masked = mask_sensitive_data({"request_id": "req-1"})

        assert masked["request_id"] == "req-1"

    def test_mask_headers(self):
        """Authorization headers should be masked."""
        masked = mask_headers({"Authorization": "Bearer x", "Content-Type": "application/json"})

        assert masked["Authorization"] == MASK
        assert masked["Content-Type"] == "application/json"


class TestSanitizeLogMessage:
    """Tests for message formatting."""

    def test_plain_message(self):
        """Message without context should be unchanged."""
        assert sanitize_log_message("Key created") == "Key created"

    def test_context_and_request_id(self):
        """Context should be masked and the request id appended last."""
        message = sanitize_log_message("Key created", Api="api_secret", RequestID="req-1")

        assert message == f"Key created | Api: {MASK} | RequestID: req-1"


class TestRequestIDFormatter:
    """Tests for request id extraction in log records."""

    def _record(self, msg: str) -> logging.LogRecord:
        return logging.LogRecord("keyauth", logging.INFO, __file__, 1, msg, None, None)

    def test_request_id_moved_to_column(self):
        """Request id should move from the message to its own column."""
        output = RequestIDFormatter().format(self._record("Key created | RequestID: req-1"))

        assert "[req-1]" in output
        assert output.endswith("Key created")

    def test_system_marker_without_request(self):
        """Records outside a request should be marked SYSTEM."""
        output = RequestIDFormatter().format(self._record("Startup"))

        assert "[SYSTEM]" in output
