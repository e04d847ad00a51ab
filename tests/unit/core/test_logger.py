import json
import logging

import pytest
from telemetry_zabbix.core.config import Settings
from telemetry_zabbix.core.logger import RedactingFilter, configure_logging, get_logger


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


class TestLogger:
    """Test logger functionality."""

    def test_get_logger_returns_namespaced_logger(self):
        """Test that get_logger returns a logger under the package namespace."""
        logger = get_logger("reporter")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "telemetry_zabbix.reporter"

    def test_get_logger_propagation_enabled(self):
        """Test that logger propagation is enabled."""
        assert get_logger("test_propagation").propagate is True

    def test_get_logger_same_name_returns_same_instance(self):
        """Test that calling get_logger with same name returns same instance."""
        assert get_logger("same_name") is get_logger("same_name")


class TestRedactingFilter:
    """Test message-level redaction."""

    def test_sensitive_message_is_replaced(self):
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1, "token=%s", ("abc",), None
        )

        assert RedactingFilter(["token"]).filter(record) is True
        assert record.getMessage() == "[REDACTED SENSITIVE LOG CONTENT]"

    def test_other_messages_pass_unchanged(self):
        record = logging.LogRecord(
            "test", logging.INFO, __file__, 1, "processed %d values", (3,), None
        )

        RedactingFilter(["token"]).filter(record)

        assert record.getMessage() == "processed 3 values"


class TestConfigureLogging:
    """Test opt-in JSON logging setup."""

    def test_installs_json_handler_with_redaction(self, restore_root_logger, capsys):
        config = Settings(app_log_level="DEBUG", otel_service_name="reporter-test")

        configure_logging(config, force=True)

        root = restore_root_logger
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert any(isinstance(f, RedactingFilter) for f in root.handlers[0].filters)

        get_logger("dispatch").warning("batch_send_failed", extra={"reason": "timeout"})
        line = capsys.readouterr().err.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["service"] == "reporter-test"
        assert payload["logger"] == "telemetry_zabbix.dispatch"
        assert payload["reason"] == "timeout"
