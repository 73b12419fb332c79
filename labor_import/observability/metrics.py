"""
Prometheus metrics for the labor import pipeline

All collectors live on a module-level registry so tests and the CLI can
render them without touching the global default registry.
"""
import os
from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()


# =======================
# RUN METRICS
# =======================

import_runs_total = Counter(
    name="labor_import_runs_total",
    documentation="Import runs by final status",
    labelnames=["status"],  # success, partial, failed, duplicate
    registry=REGISTRY,
)

import_duration_seconds = Histogram(
    name="labor_import_duration_seconds",
    documentation="Wall-clock time of one import run in seconds",
    buckets=[0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)

# =======================
# ROW METRICS
# =======================

import_rows_total = Counter(
    name="labor_import_rows_total",
    documentation="Candidate rows by outcome",
    labelnames=["outcome"],  # imported, updated, skipped, errored
    registry=REGISTRY,
)

import_row_errors_total = Counter(
    name="labor_import_row_errors_total",
    documentation="Row diagnostics by code",
    labelnames=["code"],
    registry=REGISTRY,
)

# =======================
# WAREHOUSE METRICS
# =======================

detail_writes_total = Counter(
    name="labor_import_detail_writes_total",
    documentation="Detail lines written to the warehouse",
    labelnames=["operation"],  # insert, update
    registry=REGISTRY,
)

workers_created_total = Counter(
    name="labor_import_workers_created_total",
    documentation="Placeholder worker records created by imports",
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """Render the registry in Prometheus text format."""
    return generate_latest(REGISTRY)


def get_content_type() -> str:
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def record_run(
    status: str,
    duration: float,
    imported: int = 0,
    updated: int = 0,
    skipped: int = 0,
    errored: int = 0,
) -> None:
    """
    Record the counters for one finished run

    Args:
        status: Final status label
        duration: Run duration in seconds
        imported: Detail lines inserted
        updated: Detail lines updated
        skipped: Rows skipped
        errored: Error diagnostics recorded
    """
    import_runs_total.labels(status=status).inc()
    import_duration_seconds.observe(duration)

    for outcome, count in (
        ("imported", imported),
        ("updated", updated),
        ("skipped", skipped),
        ("errored", errored),
    ):
        if count:
            import_rows_total.labels(outcome=outcome).inc(count)


def record_row_error(code: str) -> None:
    import_row_errors_total.labels(code=code).inc()


def record_detail_writes(operation: str, count: int) -> None:
    if count:
        detail_writes_total.labels(operation=operation).inc(count)


def record_workers_created(count: int) -> None:
    if count:
        workers_created_total.inc(count)
