"""Aggregation store and batch-window state.

``EngineState`` is the reporter actor's whole state. The actor owns its
``data`` mapping and folds values into it in place; anything handed out of
the actor is a ``copy()``. A flush replaces the state with an empty one. A
batch timer exists exactly when ``data`` is non-empty.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, MutableMapping, Optional, Tuple

from telemetry_zabbix.domain.definitions import MetricDefinition

from .collectors import Timestamp, collector_for


@dataclass(frozen=True)
class AggregationEntry:
    metric: MetricDefinition
    accumulator: Any


@dataclass(frozen=True)
class EngineState:
    data: MutableMapping[str, AggregationEntry] = field(default_factory=dict)
    batch_timer: Optional[asyncio.TimerHandle] = None

    @property
    def idle(self) -> bool:
        return not self.data

    def copy(self) -> "EngineState":
        return EngineState(data=dict(self.data), batch_timer=self.batch_timer)


def aggregate(
    data: MutableMapping[str, AggregationEntry],
    key: str,
    metric: MetricDefinition,
    value: Any,
    timestamp: Timestamp,
) -> AggregationEntry:
    """Fold ``value`` into ``key``'s entry of ``data`` and return the new entry.

    ``data`` is left untouched when the collector raises.
    """
    collector = collector_for(metric.kind)
    entry = data.get(key)
    if entry is None:
        accumulator = collector.init(value, timestamp)
    else:
        accumulator = collector.update(entry.accumulator, value, timestamp)
    data[key] = entry = AggregationEntry(metric, accumulator)
    return entry


def emissions(
    data: Mapping[str, AggregationEntry], batch_timestamp: int
) -> Iterator[Tuple[str, Any, Timestamp]]:
    """Yield ``(key, value, timestamp)`` for every value to send.

    Last-value entries carry their own per-value timestamps; every other kind
    is stamped with the flush time.
    """
    for key, entry in data.items():
        collector = collector_for(entry.metric.kind)
        for extracted in collector.extract(entry.accumulator):
            if collector.timestamped:
                value, timestamp = extracted
                yield key, value, timestamp
            else:
                yield key, extracted, batch_timestamp
