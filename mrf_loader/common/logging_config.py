"""
Logging setup for ingestion runs.

Every record emitted while a run is active carries that run's id, so the
lines of one `mrf-loader ingest` invocation can be pulled out of a shared
log stream. JSON output is the default; `--text-logs` switches to plain
lines for interactive use.
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Optional

run_id_ctx: ContextVar[Optional[str]] = ContextVar("run_id", default=None)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record; `extra={"extra_fields": {...}}` is merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        run_id = run_id_ctx.get()
        if run_id:
            entry["run_id"] = run_id

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            entry.update(record.extra_fields)

        # Decimal rates and dates are rendered as strings
        return json.dumps(entry, default=str)


class PerformanceTracker:
    """
    Time a block and log its outcome.

    Usage:
        with PerformanceTracker("write_batch", logger, batch_index=3):
            writer.write_batch(services)

    The duration is logged at `log_level` on success and at ERROR with the
    exception type on failure. Exceptions are never suppressed.
    """

    def __init__(self, operation: str, logger: logging.Logger,
                 log_level: int = logging.DEBUG, **extra_fields):
        self.operation = operation
        self.logger = logger
        self.log_level = log_level
        self.extra_fields = extra_fields
        self.started: Optional[float] = None
        self.duration_seconds: Optional[float] = None

    def __enter__(self):
        self.started = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration_seconds = time.perf_counter() - self.started
        fields = {
            "operation": self.operation,
            "duration_ms": round(self.duration_seconds * 1000, 2),
            **self.extra_fields,
        }

        if exc_type is None:
            self.logger.log(self.log_level, f"{self.operation} took {fields['duration_ms']} ms",
                            extra={"extra_fields": fields})
        else:
            fields["error_type"] = exc_type.__name__
            fields["error"] = str(exc_val)
            self.logger.error(f"{self.operation} failed after {fields['duration_ms']} ms",
                              extra={"extra_fields": fields})
        return False


def setup_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """Replace the root handlers with a single stderr handler."""
    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    root_logger.addHandler(handler)

    # SQL echo is controlled by DB_ECHO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.WARNING)


def set_run_id(run_id: Optional[str] = None) -> str:
    """Tag subsequent records with `run_id` (a new uuid4 if omitted)."""
    run_id = run_id or str(uuid.uuid4())
    run_id_ctx.set(run_id)
    return run_id


def clear_run_id() -> None:
    run_id_ctx.set(None)
