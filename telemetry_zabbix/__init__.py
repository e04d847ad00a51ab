"""Zabbix reporter for in-process metric events.

Metrics are declared with the constructors below, events are emitted with
``execute`` and a running ``ZabbixReporter`` aggregates them and ships one
batch per window to a Zabbix trapper.
"""

from telemetry_zabbix.domain.definitions import (
    MetricDefinition,
    MetricKind,
    counter_metric,
    last_value_metric,
    sum_metric,
    summary_metric,
)
from telemetry_zabbix.events.registry import attach, detach, execute, list_handlers
from telemetry_zabbix.services.reporter import ZabbixReporter

__version__ = "0.3.1"

__all__ = [
    "MetricDefinition",
    "MetricKind",
    "ZabbixReporter",
    "attach",
    "counter_metric",
    "detach",
    "execute",
    "last_value_metric",
    "list_handlers",
    "sum_metric",
    "summary_metric",
]
