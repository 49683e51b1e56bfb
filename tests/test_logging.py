"""
Tests for logging configuration.
"""
import io
import json
import logging

import pytest

from cloud_billing.core.logging import StructuredFormatter, setup_logging


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers, level = root_logger.handlers[:], root_logger.level
    yield
    root_logger.handlers = handlers
    root_logger.setLevel(level)


class TestStructuredFormatter:
    """Test JSON log output."""

    def test_includes_extra_fields(self):
        record = logging.LogRecord(
            "cloud_billing.core.billing", logging.INFO, __file__, 10,
            "Recorded calculation %s", (1,), None
        )
        record.instance_type = "e2-standard-2"
        record.cost = 50.91876

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "INFO"
        assert data["message"] == "Recorded calculation 1"
        assert data["instance_type"] == "e2-standard-2"
        assert data["cost"] == 50.91876
        assert "user_id" not in data


class TestSetupLogging:
    """Test root logger configuration."""

    def test_structured_output(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(level="debug", structured=True, stream=stream)

        logging.getLogger("cloud_billing.test").debug("hello", extra={"user_id": "alice"})

        data = json.loads(stream.getvalue().strip())
        assert data["message"] == "hello"
        assert data["user_id"] == "alice"

    def test_plain_output(self, restore_root_logger):
        stream = io.StringIO()
        setup_logging(level="WARNING", stream=stream)

        logger = logging.getLogger("cloud_billing.test")
        logger.info("hidden")
        logger.warning("shown")

        output = stream.getvalue()
        assert "hidden" not in output
        assert "cloud_billing.test - WARNING - shown" in output
