"""Aggregation strategies, one per MetricKind.

Every collector is stateless; the accumulator it returns is owned by the
aggregation store entry and replaced on each update.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple

from telemetry_zabbix.domain.definitions import MetricDefinition, MetricKind

Timestamp = Optional[int]
TimestampedValue = Tuple[Any, Timestamp]
# newest cell first; None terminates the chain
ValueChain = Optional[Tuple[TimestampedValue, "ValueChain"]]


class Collector(ABC):
    kind: MetricKind
    # True when extract() yields (value, timestamp) pairs
    timestamped: bool = False

    @abstractmethod
    def init(self, value: Any, timestamp: Timestamp) -> Any:
        """Accumulator for the first value of a window."""

    @abstractmethod
    def update(self, accumulator: Any, value: Any, timestamp: Timestamp) -> Any:
        """Accumulator after one more value."""

    @abstractmethod
    def extract(self, accumulator: Any) -> Sequence[Any]:
        """Values to emit for this accumulator."""


class CounterCollector(Collector):
    kind = MetricKind.COUNTER

    def init(self, value: Any, timestamp: Timestamp) -> int:
        return 1

    def update(self, accumulator: int, value: Any, timestamp: Timestamp) -> int:
        return accumulator + 1

    def extract(self, accumulator: int) -> List[int]:
        return [accumulator]


class SumCollector(Collector):
    kind = MetricKind.SUM

    def init(self, value: Any, timestamp: Timestamp) -> Any:
        return value

    def update(self, accumulator: Any, value: Any, timestamp: Timestamp) -> Any:
        return accumulator + value

    def extract(self, accumulator: Any) -> List[Any]:
        return [accumulator]


class AverageCollector(Collector):
    """Running mean kept as ``(mean, count)``.

    The mean is recomputed from the previous mean and count rather than from
    a stored total, so results depend on arrival order in the last bits.
    """

    kind = MetricKind.SUMMARY

    def init(self, value: Any, timestamp: Timestamp) -> Tuple[Any, int]:
        return (value, 1)

    def update(
        self, accumulator: Tuple[Any, int], value: Any, timestamp: Timestamp
    ) -> Tuple[float, int]:
        prev_value, prev_n = accumulator
        n = prev_n + 1
        return ((prev_value * prev_n + value) / n, n)

    def extract(self, accumulator: Tuple[Any, int]) -> List[Any]:
        value, _ = accumulator
        return [value]


class RawListCollector(Collector):
    """Every value of the window, newest first, with its own timestamp.

    The accumulator is a chain of ``((value, timestamp), rest)`` cells ending
    in ``None``, so prepending a value never copies the earlier ones.
    """

    kind = MetricKind.LAST_VALUE
    timestamped = True

    def init(self, value: Any, timestamp: Timestamp) -> ValueChain:
        return ((value, timestamp), None)

    def update(
        self,
        accumulator: ValueChain,
        value: Any,
        timestamp: Timestamp,
    ) -> ValueChain:
        return ((value, timestamp), accumulator)

    def extract(self, accumulator: ValueChain) -> List[TimestampedValue]:
        values = []
        while accumulator is not None:
            head, accumulator = accumulator
            values.append(head)
        return values


COLLECTORS: dict[MetricKind, Collector] = {
    c.kind: c
    for c in (CounterCollector(), SumCollector(), AverageCollector(), RawListCollector())
}


def collector_for(kind: MetricKind) -> Collector:
    return COLLECTORS[kind]


def init(metric: MetricDefinition, value: Any, timestamp: Timestamp) -> Any:
    return collector_for(metric.kind).init(value, timestamp)


def update(
    metric: MetricDefinition, accumulator: Any, value: Any, timestamp: Timestamp
) -> Any:
    return collector_for(metric.kind).update(accumulator, value, timestamp)


def extract(metric: MetricDefinition, accumulator: Any) -> Sequence[Any]:
    return collector_for(metric.kind).extract(accumulator)
