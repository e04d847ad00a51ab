import pytest
from pydantic import ValidationError
from telemetry_zabbix.domain.definitions import (
    MetricKind,
    counter_metric,
    group_by_event,
    last_value_metric,
    sum_metric,
    summary_metric,
)


def test_name_defaults_event_name_and_measurement():
    metric = sum_metric("http.request.latency")

    assert metric.kind is MetricKind.SUM
    assert metric.name == ("http", "request", "latency")
    assert metric.event_name == ("http", "request")
    assert metric.measurement == "latency"
    assert metric.key_prefix == "http.request.latency"
    assert metric.tags == ()


def test_explicit_event_name_and_measurement():
    metric = summary_metric(
        "db.query.avg",
        event_name=["repo", "query"],
        measurement="duration",
        unit="millisecond",
    )

    assert metric.event_name == ("repo", "query")
    assert metric.measurement == "duration"
    assert metric.unit == "millisecond"


def test_single_segment_name_needs_event_name():
    with pytest.raises(ValueError, match="event name prefix"):
        counter_metric("requests")

    metric = counter_metric("requests", event_name="http.request")
    assert metric.event_name == ("http", "request")


@pytest.mark.parametrize("name", ["vm.memory-total", "vm..total", "vm.memory total"])
def test_invalid_names_are_rejected(name):
    with pytest.raises(ValidationError, match="invalid metric name"):
        sum_metric(name)


def test_definitions_are_frozen():
    metric = sum_metric("vm.memory.total")

    with pytest.raises(ValidationError):
        metric.unit = "byte"


def test_keep_and_drop_are_exclusive():
    with pytest.raises(ValueError, match="keep or drop"):
        sum_metric("vm.memory.total", keep=lambda m: True, drop=lambda m: False)


def test_drop_is_negated_keep():
    metric = sum_metric("vm.memory.total", drop=lambda m: m.get("device") == "dev2")

    assert metric.keeps({"device": "dev1"})
    assert not metric.keeps({"device": "dev2"})


def test_without_keep_every_event_is_kept():
    assert sum_metric("vm.memory.total").keeps({})


def test_measurement_key_lookup():
    metric = sum_metric("vm.memory.total")

    assert metric.extract_measurement({"total": 42}, {}) == 42
    assert metric.extract_measurement({"other": 42}, {}) is None


def test_measurement_function_of_measurements():
    metric = sum_metric("vm.memory.total", measurement=lambda m: m["total"] * 2)

    assert metric.extract_measurement({"total": 21}, {"ignored": True}) == 42


def test_measurement_function_of_measurements_and_metadata():
    metric = sum_metric(
        "vm.memory.total",
        measurement=lambda measurements, metadata: measurements["total"] * metadata["scale"],
    )

    assert metric.extract_measurement({"total": 2}, {"scale": 10}) == 20


def test_resolved_tags_are_restricted_to_declared_names():
    metric = sum_metric(
        "http.request.latency",
        tags=["host", "method"],
        tag_values=lambda metadata: {**metadata, "host": metadata["host"].upper()},
    )

    assert metric.resolve_tags({"host": "web1", "status": 200}) == {"host": "WEB1"}


def test_group_by_event():
    memory_total = sum_metric("vm.memory.total")
    memory_count = counter_metric("vm.memory.count", event_name="vm.memory")
    latency = last_value_metric("http.request.latency")

    groups = group_by_event([memory_total, latency, memory_count])

    assert groups == {
        ("vm", "memory"): [memory_total, memory_count],
        ("http", "request"): [latency],
    }
