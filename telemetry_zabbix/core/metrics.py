"""Prometheus self-metrics for the reporter."""

from shared.metrics import get_counter, get_gauge, get_histogram

_SERVICE = "telemetry_zabbix"

# Ingestion
EVENTS_REPORTED_TOTAL = get_counter(
    "events_reported_total",
    "Measurements accepted into the aggregation store.",
    _SERVICE,
)
METRIC_ERRORS_TOTAL = get_counter(
    "metric_errors_total",
    "Metric evaluations that raised (measurement, tags, keep/drop, collector).",
    _SERVICE,
)

# Flushing
FLUSHES_TOTAL = get_counter("flushes_total", "Batch windows flushed.", _SERVICE)
VALUES_SENT_TOTAL = get_counter(
    "values_sent_total", "Item values in batches the Zabbix server answered for.", _SERVICE
)
VALUES_REJECTED_TOTAL = get_counter(
    "values_rejected_total", "Item values the Zabbix server reported as failed.", _SERVICE
)
TRANSPORT_ERRORS_TOTAL = get_counter(
    "transport_errors_total", "Batches dropped because sending failed.", _SERVICE
)
FLUSH_LATENCY_SECONDS = get_histogram(
    "flush_latency_seconds",
    "Time spent extracting and sending one batch.",
    _SERVICE,
)

# Batch window
PENDING_ENTRIES = get_gauge(
    "pending_entries",
    "Aggregation entries waiting for the next flush, across running reporters.",
    _SERVICE,
)
