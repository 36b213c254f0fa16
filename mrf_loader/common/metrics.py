"""
Prometheus metrics for ingestion runs.

Provides counters, histograms, and gauges for tracking:
- Batches committed and failed
- Services and negotiated rates written
- Files processed
- Batch write duration

Ingestion is an offline job, so metrics are written to a textfile for the
node exporter instead of being scraped over HTTP.
"""

import time
from functools import wraps
from typing import Callable, Union
from pathlib import Path

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    write_to_textfile,
)

# Create a global registry
REGISTRY = CollectorRegistry()

# ========== Counters ==========

batches_total = Counter(
    "mrf_ingest_batches_total",
    "Total number of batches attempted",
    ["status"],  # committed/failed
    registry=REGISTRY,
)

services_written_total = Counter(
    "mrf_ingest_services_written_total",
    "Total number of service rows committed",
    registry=REGISTRY,
)

rates_written_total = Counter(
    "mrf_ingest_rates_written_total",
    "Total number of negotiated rate rows committed",
    registry=REGISTRY,
)

files_processed_total = Counter(
    "mrf_ingest_files_total",
    "Total number of input files processed",
    ["status"],  # success/decode_error/write_error
    registry=REGISTRY,
)

batch_retries_total = Counter(
    "mrf_ingest_batch_retries_total",
    "Total number of transient batch failures that were retried",
    registry=REGISTRY,
)

# ========== Histograms ==========

batch_duration_seconds = Histogram(
    "mrf_ingest_batch_duration_seconds",
    "Time to write and commit one batch",
    buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
    registry=REGISTRY,
)

# ========== Gauges ==========

last_run_success = Gauge(
    "mrf_ingest_last_run_success",
    "1 if the last ingestion run completed, 0 if it failed",
    registry=REGISTRY,
)

last_run_timestamp_seconds = Gauge(
    "mrf_ingest_last_run_timestamp_seconds",
    "Unix time at which the last ingestion run finished",
    registry=REGISTRY,
)


# ========== Metric Decorators ==========

def track_batch_write(func: Callable):
    """
    Decorator to track batch write duration and outcome.

    The wrapped function must return an object with `services_written`
    and `rates_written` attributes.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception:
            batches_total.labels(status="failed").inc()
            raise
        finally:
            batch_duration_seconds.observe(time.time() - start_time)

        batches_total.labels(status="committed").inc()
        services_written_total.inc(result.services_written)
        rates_written_total.inc(result.rates_written)
        return result

    return wrapper


def record_run_outcome(success: bool) -> None:
    last_run_success.set(1 if success else 0)
    last_run_timestamp_seconds.set_to_current_time()


def write_metrics(path: Union[str, Path]) -> None:
    """Write current metrics to a textfile-collector file (atomically)."""
    write_to_textfile(str(path), REGISTRY)
