"""Metric definitions: what to aggregate, from which event, under which tags.

A definition is built once at startup and never changes. The four
constructors mirror the supported aggregation kinds::

    counter_metric("vm.memory.total")            # counts events
    sum_metric("http.request.latency", tags=["host"])
    summary_metric("db.query.duration")          # running average
    last_value_metric("vm.memory.binary")        # every value, timestamped

Names are dotted paths. Unless given explicitly, the event name is every
segment but the last and the measurement is the last segment.
"""

import inspect
import re
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, field_validator

NAME_SEGMENT_RE = re.compile(r"^[a-zA-Z0-9_]+$")

Metadata = Mapping[str, Any]
Measurements = Mapping[str, Any]
Measurement = Union[str, Callable[..., Any]]
NameLike = Union[str, Sequence[str]]


class MetricKind(str, Enum):
    COUNTER = "counter"
    SUM = "sum"
    SUMMARY = "summary"
    LAST_VALUE = "last_value"


def normalize_name(name: NameLike) -> tuple[str, ...]:
    """Split a dotted name, or coerce a segment sequence, into a tuple."""
    if isinstance(name, str):
        return tuple(name.split("."))
    return tuple(str(segment) for segment in name)


def _identity(metadata: Metadata) -> Metadata:
    return metadata


@lru_cache(maxsize=None)
def _takes_metadata(fn: Callable[..., Any]) -> bool:
    try:
        params = inspect.signature(fn).parameters.values()
    except (TypeError, ValueError):  # builtins without a signature
        return False
    positional = [
        p
        for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
    ]
    return len(positional) >= 2 or any(p.kind == p.VAR_POSITIONAL for p in params)


class MetricDefinition(BaseModel):
    """Immutable description of one aggregated metric."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: MetricKind
    name: tuple[str, ...]
    event_name: tuple[str, ...]
    measurement: Measurement
    tags: tuple[str, ...] = ()
    tag_values: Callable[[Metadata], Metadata] = _identity
    keep: Optional[Callable[[Metadata], bool]] = None
    unit: Optional[str] = None
    description: Optional[str] = None

    @field_validator("name", "event_name", mode="before")
    @classmethod
    def _split_dotted(cls, value: Any) -> Any:
        if isinstance(value, (str, list, tuple)):
            return normalize_name(value)
        return value

    @field_validator("name")
    @classmethod
    def _validate_name(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value or not all(NAME_SEGMENT_RE.match(segment) for segment in value):
            raise ValueError(f"invalid metric name {'.'.join(value)!r}")
        return value

    @field_validator("event_name")
    @classmethod
    def _validate_event_name(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("event name must have at least one segment")
        return value

    @property
    def key_prefix(self) -> str:
        return ".".join(self.name)

    def keeps(self, metadata: Metadata) -> bool:
        return True if self.keep is None else bool(self.keep(metadata))

    def extract_measurement(self, measurements: Measurements, metadata: Metadata) -> Any:
        if callable(self.measurement):
            if _takes_metadata(self.measurement):
                return self.measurement(measurements, metadata)
            return self.measurement(measurements)
        return measurements.get(self.measurement)

    def resolve_tags(self, metadata: Metadata) -> dict[str, Any]:
        """Tag values for this event, restricted to the declared tag names."""
        values = self.tag_values(metadata)
        return {tag: values[tag] for tag in self.tags if tag in values}


def _negate(predicate: Callable[[Metadata], bool]) -> Callable[[Metadata], bool]:
    def keep(metadata: Metadata) -> bool:
        return not predicate(metadata)

    return keep


def _build(
    kind: MetricKind,
    name: NameLike,
    *,
    event_name: Optional[NameLike] = None,
    measurement: Optional[Measurement] = None,
    tags: Iterable[str] = (),
    tag_values: Optional[Callable[[Metadata], Metadata]] = None,
    keep: Optional[Callable[[Metadata], bool]] = None,
    drop: Optional[Callable[[Metadata], bool]] = None,
    unit: Optional[str] = None,
    description: Optional[str] = None,
) -> MetricDefinition:
    segments = normalize_name(name)
    if keep is not None and drop is not None:
        raise ValueError("only one of keep or drop may be given")
    if drop is not None:
        keep = _negate(drop)
    if event_name is None:
        if len(segments) < 2:
            raise ValueError(
                f"metric name {'.'.join(segments)!r} needs an event name prefix"
            )
        event_name = segments[:-1]
    if measurement is None:
        measurement = segments[-1]

    fields: dict[str, Any] = {
        "kind": kind,
        "name": segments,
        "event_name": normalize_name(event_name),
        "measurement": measurement,
        "tags": tuple(tags),
        "keep": keep,
        "unit": unit,
        "description": description,
    }
    if tag_values is not None:
        fields["tag_values"] = tag_values
    return MetricDefinition(**fields)


def counter_metric(name: NameLike, **options: Any) -> MetricDefinition:
    """Count events; the measurement value is ignored."""
    return _build(MetricKind.COUNTER, name, **options)


def sum_metric(name: NameLike, **options: Any) -> MetricDefinition:
    return _build(MetricKind.SUM, name, **options)


def summary_metric(name: NameLike, **options: Any) -> MetricDefinition:
    """Running average of the measurement over the batch window."""
    return _build(MetricKind.SUMMARY, name, **options)


def last_value_metric(name: NameLike, **options: Any) -> MetricDefinition:
    """Every measurement of the window, each sent with its own timestamp."""
    return _build(MetricKind.LAST_VALUE, name, **options)


def group_by_event(
    definitions: Iterable[MetricDefinition],
) -> dict[tuple[str, ...], list[MetricDefinition]]:
    groups: dict[tuple[str, ...], list[MetricDefinition]] = {}
    for definition in definitions:
        groups.setdefault(definition.event_name, []).append(definition)
    return groups
