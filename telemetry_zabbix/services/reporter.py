"""Zabbix reporter: aggregates metric events and sends them in batches.

The reporter is a single asyncio actor. Event handlers (which may run on
any thread) only evaluate the metric definitions and post ``_Report``
messages; the actor task owns the aggregation state and is the only thing
that touches it. The first value landing in an empty store schedules one
flush ``zabbix_batch_window_size_ms`` later; the flush sends everything
collected so far in a single Zabbix request and resets the state, whatever
the server answered.

Usage::

    metrics = [sum_metric("http.request.latency", tags=["host"])]
    async with ZabbixReporter(metrics):
        execute("http.request", {"latency": 200}, {"host": "localhost"})
"""

from __future__ import annotations

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Mapping, Optional

from opentelemetry import trace
from telemetry_zabbix.core.config import Settings
from telemetry_zabbix.core.config import settings as default_settings
from telemetry_zabbix.core.logger import get_logger
from telemetry_zabbix.core.metrics import (
    EVENTS_REPORTED_TOTAL,
    FLUSH_LATENCY_SECONDS,
    FLUSHES_TOTAL,
    METRIC_ERRORS_TOTAL,
    PENDING_ENTRIES,
)
from telemetry_zabbix.domain.definitions import (
    NAME_SEGMENT_RE,
    MetricDefinition,
    MetricKind,
    group_by_event,
)
from telemetry_zabbix.events.registry import EventName, HandlerRegistry
from telemetry_zabbix.events.registry import registry as default_registry
from telemetry_zabbix.infrastructure.zabbix.protocol import item_value
from telemetry_zabbix.infrastructure.zabbix.sender import Transport, ZabbixSender
from telemetry_zabbix.metrics.key_builder import build_key
from telemetry_zabbix.metrics.store import EngineState, aggregate, emissions

from .dispatch import deliver

logger = get_logger("reporter")
tracer = trace.get_tracer(__name__)

HANDLER_NAMESPACE = "ZabbixReporter"


def _unix_time() -> int:
    return int(time.time())


@dataclass(frozen=True)
class _Report:
    key: str
    value: Any
    metric: MetricDefinition
    timestamp: int


@dataclass(frozen=True)
class _Snapshot:
    future: asyncio.Future


class _Flush:
    pass


class _Stop:
    pass


_FLUSH = _Flush()
_STOP = _Stop()


def validate_metric_names(metrics: Iterable[MetricDefinition]) -> None:
    for metric in metrics:
        if not metric.name or not all(
            NAME_SEGMENT_RE.match(str(segment)) for segment in metric.name
        ):
            raise ValueError(f"invalid metric name {metric.name!r}")


class ZabbixReporter:
    def __init__(
        self,
        metrics: Iterable[MetricDefinition],
        *,
        settings: Optional[Settings] = None,
        transport: Optional[Transport] = None,
        registry: Optional[HandlerRegistry] = None,
    ):
        if metrics is None:
            raise ValueError(f"the metrics argument is required by {type(self).__name__}")
        metrics = list(metrics)
        validate_metric_names(metrics)

        self.settings = settings or default_settings
        self.instance_id = uuid.uuid4().hex
        self.metrics = tuple(metrics)
        self._groups = group_by_event(metrics)
        self._transport = transport or ZabbixSender.from_settings(self.settings)
        self._registry = registry or default_registry

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None
        self._state = EngineState()

    # ----- lifecycle -------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def event_names(self) -> list[EventName]:
        return list(self._groups)

    def handler_id(self, event_name: EventName) -> Hashable:
        return (HANDLER_NAMESPACE, event_name, self.instance_id)

    def handler_ids(self) -> list[Hashable]:
        return [self.handler_id(event_name) for event_name in self._groups]

    async def start(self) -> None:
        if self._task is not None:
            raise RuntimeError("reporter already started")
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._state = EngineState()
        self._task = asyncio.create_task(
            self._run(), name=f"zabbix-reporter-{self.instance_id[:8]}"
        )
        for event_name, definitions in self._groups.items():
            self._registry.attach(
                self.handler_id(event_name),
                event_name,
                self._handle_event,
                tuple(definitions),
            )
        logger.info(
            "reporter_started",
            extra={
                "instance_id": self.instance_id,
                "events": [".".join(e) for e in self._groups],
                "zabbix_host": self.settings.zabbix_host,
                "zabbix_port": self.settings.zabbix_port,
                "batch_window_ms": self.settings.zabbix_batch_window_size_ms,
            },
        )

    async def stop(self) -> None:
        """Detach handlers and stop the actor; unsent aggregates are dropped."""
        if self._task is None:
            return
        for event_name in self._groups:
            self._registry.detach(self.handler_id(event_name))
        self._post(_STOP)
        try:
            await self._task
        finally:
            self._task = None
        logger.info("reporter_stopped", extra={"instance_id": self.instance_id})

    async def __aenter__(self) -> "ZabbixReporter":
        await self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    async def snapshot(self) -> EngineState:
        """State after every message posted before this call was handled."""
        if self._loop is None or not self.running:
            return self._state.copy()
        future = self._loop.create_future()
        self._post(_Snapshot(future))
        return await future

    # ----- emitter side ----------------------------------------------------

    def _handle_event(
        self,
        event_name: EventName,
        measurements: Mapping[str, Any],
        metadata: Mapping[str, Any],
        definitions: tuple[MetricDefinition, ...],
    ) -> None:
        timestamp = _unix_time()
        for metric in definitions:
            try:
                if not metric.keeps(metadata):
                    continue
                value = metric.extract_measurement(measurements, metadata)
                if value is None and metric.kind is not MetricKind.COUNTER:
                    logger.debug(
                        "measurement_missing",
                        extra={"metric": metric.key_prefix, "event_name": event_name},
                    )
                    continue
                key = build_key(metric, metadata)
                self._post(_Report(key, value, metric, timestamp))
            except Exception as e:  # noqa: BLE001
                METRIC_ERRORS_TOTAL.inc()
                logger.exception(
                    "metric_format_failed: could not format metric %r",
                    metric,
                    extra={"metric": metric.key_prefix, "error": str(e)},
                )

    def _post(self, message: Any) -> None:
        # Thread-safe and FIFO with respect to every other posted message
        self._loop.call_soon_threadsafe(self._queue.put_nowait, message)

    # ----- actor side ------------------------------------------------------

    async def _run(self) -> None:
        while True:
            message = await self._queue.get()
            if message is _STOP:
                self._abandon_window()
                return
            try:
                self._state = await self._handle(self._state, message)
            except Exception as e:  # noqa: BLE001
                logger.exception(
                    "reporter_message_failed",
                    extra={"message_type": type(message).__name__, "error": str(e)},
                )

    async def _handle(self, state: EngineState, message: Any) -> EngineState:
        if isinstance(message, _Report):
            return self._on_report(state, message)
        if message is _FLUSH:
            return await self._on_flush(state)
        if isinstance(message, _Snapshot):
            if not message.future.done():
                message.future.set_result(state.copy())
            return state
        logger.warning("unexpected_message", extra={"message_type": type(message).__name__})
        return state

    def _on_report(self, state: EngineState, report: _Report) -> EngineState:
        new_entry = report.key not in state.data
        try:
            aggregate(state.data, report.key, report.metric, report.value, report.timestamp)
        except Exception as e:  # noqa: BLE001
            METRIC_ERRORS_TOTAL.inc()
            logger.exception(
                "metric_aggregation_failed",
                extra={"key": report.key, "value": repr(report.value), "error": str(e)},
            )
            return state
        EVENTS_REPORTED_TOTAL.inc()
        if new_entry:
            PENDING_ENTRIES.inc()

        if state.batch_timer is not None:
            return state
        batch_timer = self._loop.call_later(
            self.settings.batch_window_seconds, self._post, _FLUSH
        )
        return EngineState(data=state.data, batch_timer=batch_timer)

    async def _on_flush(self, state: EngineState) -> EngineState:
        if state.idle:
            return EngineState()
        batch_timestamp = _unix_time()
        hostname = self.settings.zabbix_hostname
        timestamping = self.settings.zabbix_timestamping
        FLUSHES_TOTAL.inc()
        PENDING_ENTRIES.dec(len(state.data))
        try:
            with tracer.start_as_current_span("zabbix.flush") as span:
                with FLUSH_LATENCY_SECONDS.time():
                    values = [
                        item_value(hostname, key, value, timestamp if timestamping else None)
                        for key, value, timestamp in emissions(state.data, batch_timestamp)
                    ]
                    span.set_attribute("zabbix.values", len(values))
                    status = await deliver(self._transport, values, batch_timestamp)
                span.set_attribute("zabbix.delivery_status", status.value)
        except Exception as e:  # noqa: BLE001
            logger.exception(
                "batch_flush_failed",
                extra={"entries": len(state.data), "error": str(e)},
            )
        return EngineState()

    def _abandon_window(self) -> None:
        state = self._state
        if state.batch_timer is not None:
            state.batch_timer.cancel()
        if state.data:
            PENDING_ENTRIES.dec(len(state.data))
            logger.info(
                "reporter_discarding_unsent",
                extra={"entries": len(state.data), "instance_id": self.instance_id},
            )
        self._state = EngineState()
