"""
Unit tests for structured logging.
"""

import json
import logging
import sys
from decimal import Decimal

import pytest

from mrf_loader.common.logging_config import (
    PerformanceTracker,
    StructuredFormatter,
    clear_run_id,
    run_id_ctx,
    set_run_id,
    setup_logging,
)


def _record(message="Processed batch 1/1", level=logging.INFO, **attrs):
    record = logging.LogRecord(
        name="mrf_loader.ingest.orchestrator",
        level=level,
        pathname=__file__,
        lineno=10,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in attrs.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def no_run_id():
    clear_run_id()
    yield
    clear_run_id()


class TestStructuredFormatter:
    def test_standard_fields(self):
        data = json.loads(StructuredFormatter().format(_record()))

        assert data["level"] == "INFO"
        assert data["logger"] == "mrf_loader.ingest.orchestrator"
        assert data["message"] == "Processed batch 1/1"
        assert data["timestamp"].endswith("Z")
        assert "run_id" not in data

    def test_includes_run_id(self):
        set_run_id("run-42")

        data = json.loads(StructuredFormatter().format(_record()))

        assert data["run_id"] == "run-42"

    def test_merges_extra_fields(self):
        record = _record(extra_fields={"service_count": 3, "rate": Decimal("1.50")})

        data = json.loads(StructuredFormatter().format(record))

        assert data["service_count"] == 3
        assert data["rate"] == "1.50"

    def test_includes_exception(self):
        try:
            raise ValueError("bad batch")
        except ValueError:
            record = _record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        data = json.loads(StructuredFormatter().format(record))

        assert "ValueError: bad batch" in data["exception"]


class TestRunId:
    def test_generated_when_missing(self):
        run_id = set_run_id()

        assert run_id
        assert run_id_ctx.get() == run_id

    def test_clear(self):
        set_run_id("run-1")
        clear_run_id()

        assert run_id_ctx.get() is None


class TestPerformanceTracker:
    def test_records_duration(self, caplog):
        logger = logging.getLogger("test.performance")

        with caplog.at_level(logging.INFO, logger="test.performance"):
            with PerformanceTracker("write_batch", logger, log_level=logging.INFO, batch_index=2) as tracker:
                pass

        assert tracker.duration_seconds is not None
        completed = [r for r in caplog.records if r.getMessage().startswith("write_batch took")]
        assert completed[0].extra_fields["batch_index"] == 2
        assert "duration_ms" in completed[0].extra_fields

    def test_logs_and_propagates_failure(self, caplog):
        logger = logging.getLogger("test.performance")

        with caplog.at_level(logging.ERROR, logger="test.performance"):
            with pytest.raises(RuntimeError):
                with PerformanceTracker("write_batch", logger):
                    raise RuntimeError("connection reset")

        failed = [r for r in caplog.records if r.levelno == logging.ERROR]
        assert failed[0].extra_fields["error_type"] == "RuntimeError"


def test_setup_logging_installs_single_handler():
    root = logging.getLogger()
    saved = root.handlers[:], root.level
    try:
        setup_logging("debug", json_format=True)
        setup_logging("warning", json_format=True)

        assert root.level == logging.WARNING
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, StructuredFormatter)
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])
