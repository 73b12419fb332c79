"""
Unit tests for structured logging and Prometheus metrics.
"""

import io
import json
import logging

import pytest

from labor_import.observability import metrics
from labor_import.observability.logger import CustomJsonFormatter, log_operation, setup_logger


def sample(name: str, **labels) -> float:
    return metrics.REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.mark.unit
class TestMetrics:
    """Tests for metric helpers"""

    def test_record_run_is_rendered(self):
        before = sample("labor_import_runs_total", status="partial")

        metrics.record_run("partial", 0.42, imported=8, skipped=1, errored=1)

        assert sample("labor_import_runs_total", status="partial") == before + 1
        output = metrics.generate_metrics().decode()
        assert 'labor_import_runs_total{status="partial"}' in output
        assert "labor_import_duration_seconds_bucket" in output
        assert 'labor_import_rows_total{outcome="imported"}' in output

    def test_zero_counts_are_not_recorded(self):
        before = sample("labor_import_detail_writes_total", operation="update")

        metrics.record_detail_writes("update", 0)
        metrics.record_detail_writes("update", 3)

        assert sample("labor_import_detail_writes_total", operation="update") == before + 3

    def test_row_error_codes(self):
        before = sample("labor_import_row_errors_total", code="MISSING_NAME")

        metrics.record_row_error("MISSING_NAME")

        assert sample("labor_import_row_errors_total", code="MISSING_NAME") == before + 1

    def test_content_type(self):
        assert metrics.get_content_type().startswith("text/plain")


@pytest.mark.unit
class TestLogging:
    """Tests for the JSON formatter and log_operation"""

    def test_json_formatter_fields(self):
        stream = io.StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(CustomJsonFormatter(
            fmt="%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"
        ))
        logger = logging.getLogger("tests.observability.formatter")
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False

        logger.info("Row skipped", extra={"row": 12, "project_id": "p-1"})

        record = json.loads(stream.getvalue())
        assert record["message"] == "Row skipped"
        assert record["level"] == "INFO"
        assert record["logger"] == "tests.observability.formatter"
        assert record["function"] == "test_json_formatter_fields"
        assert record["row"] == 12
        assert record["project_id"] == "p-1"
        assert record["timestamp"]
        assert "thread_id" in record

    def test_setup_logger_replaces_handlers(self):
        logger = setup_logger("tests.observability.setup", level="debug", format_type="text")
        logger = setup_logger("tests.observability.setup", level="WARNING", format_type="json")

        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, CustomJsonFormatter)
        assert logger.level == logging.WARNING
        assert logger.propagate is False

    def test_log_operation_success(self, caplog):
        logger = logging.getLogger("tests.observability.operation")

        with caplog.at_level(logging.INFO, logger="tests.observability.operation"):
            with log_operation("Import labor file", logger=logger, file_name="week3.xlsx") as op:
                assert op.elapsed >= 0

        start, done = caplog.records
        assert start.getMessage() == "Starting: Import labor file"
        assert done.status == "success"
        assert done.file_name == "week3.xlsx"
        assert done.duration_seconds >= 0

    def test_log_operation_failure_propagates(self, caplog):
        logger = logging.getLogger("tests.observability.failure")

        with caplog.at_level(logging.INFO, logger="tests.observability.failure"):
            with pytest.raises(RuntimeError):
                with log_operation("Undo labor import", logger=logger):
                    raise RuntimeError("boom")

        failed = caplog.records[-1]
        assert failed.levelno == logging.ERROR
        assert failed.status == "error"
        assert failed.error_type == "RuntimeError"
        assert failed.error_message == "boom"

    def test_elapsed_before_enter_is_zero(self):
        assert log_operation("noop", logger=logging.getLogger("tests.observability.idle")).elapsed == 0.0
