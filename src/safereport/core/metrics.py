"""Prometheus metrics for SafeReport.

Business metrics that complement the auto-instrumented HTTP metrics
provided by ``prometheus-fastapi-instrumentator``.

All metrics use the ``safereport_`` prefix.
"""

import logging

from fastapi import FastAPI
from prometheus_client import Counter, Histogram
from prometheus_fastapi_instrumentator import Instrumentator

from safereport.configs.system import TracingConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Intake conversation metrics
# ---------------------------------------------------------------------------

INTAKE_TURNS_TOTAL = Counter(
    "safereport_intake_turns_total",
    "Intake turns processed, by outcome",
    ["outcome"],  # "continued" | "completed" | "rejected" | "failed"
)

INTAKE_SUMMARIES_TOTAL = Counter(
    "safereport_intake_summaries_total",
    "Intake summaries produced, by trigger",
    ["trigger"],  # "turn_limit" | "explicit"
)

# ---------------------------------------------------------------------------
# Completion provider metrics
# ---------------------------------------------------------------------------

COMPLETION_REQUESTS_TOTAL = Counter(
    "safereport_completion_requests_total",
    "Completion requests, by mode and outcome",
    ["mode", "outcome"],  # outcome: "ok" | error code
)

COMPLETION_LATENCY_SECONDS = Histogram(
    "safereport_completion_latency_seconds",
    "Latency of completion provider calls",
    ["mode"],
    buckets=(0.25, 0.5, 1, 2, 5, 10, 20, 30, 60, 120),
)

# ---------------------------------------------------------------------------
# Incident metrics
# ---------------------------------------------------------------------------

INCIDENTS_CREATED_TOTAL = Counter(
    "safereport_incidents_created_total",
    "Incidents reported, by type",
    ["type"],
)

INCIDENT_STATUS_CHANGES_TOTAL = Counter(
    "safereport_incident_status_changes_total",
    "Incident status transitions, by target status",
    ["status"],
)

EVIDENCE_UPLOADS_TOTAL = Counter(
    "safereport_evidence_uploads_total",
    "Evidence uploads, by result",
    ["result"],  # "ok" | "too_large" | "unsupported_type"
)


def setup_metrics(app: FastAPI, tracing: TracingConfig) -> None:
    """Attach HTTP instrumentation and the ``/metrics`` endpoint to *app*."""
    Instrumentator(
        should_instrument_requests_inprogress=True,
        excluded_handlers=tracing.excluded_urls,
    ).instrument(app).expose(app, endpoint="/metrics")

    logger.info("Prometheus metrics initialised")
