"""In-process event handler registry.

Instrumented code emits ``(event_name, measurements, metadata)`` through
``execute``; reporters ``attach`` handlers to the event names they care
about. A handler that raises is logged and detached so one faulty
subscriber cannot keep failing inside the emitter's call path.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Hashable, Mapping, Optional, Sequence, Union

from telemetry_zabbix.core.logger import get_logger

logger = get_logger("events")

EventName = tuple[str, ...]
EventNameLike = Union[str, Sequence[str]]
HandlerFunction = Callable[[EventName, Mapping[str, Any], Mapping[str, Any], Any], None]


class HandlerExistsError(ValueError):
    """A handler with the same id is already attached."""


def normalize_event_name(event_name: EventNameLike) -> EventName:
    if isinstance(event_name, str):
        return tuple(event_name.split("."))
    return tuple(str(segment) for segment in event_name)


@dataclass(frozen=True)
class Handler:
    id: Hashable
    event_name: EventName
    function: HandlerFunction
    config: Any = None


class HandlerRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._handlers: dict[Hashable, Handler] = {}

    def attach(
        self,
        handler_id: Hashable,
        event_name: EventNameLike,
        function: HandlerFunction,
        config: Any = None,
    ) -> Handler:
        handler = Handler(handler_id, normalize_event_name(event_name), function, config)
        with self._lock:
            if handler_id in self._handlers:
                raise HandlerExistsError(f"handler {handler_id!r} is already attached")
            self._handlers[handler_id] = handler
        logger.debug(
            "handler_attached",
            extra={"handler_id": repr(handler_id), "event_name": handler.event_name},
        )
        return handler

    def detach(self, handler_id: Hashable) -> bool:
        with self._lock:
            removed = self._handlers.pop(handler_id, None)
        return removed is not None

    def list_handlers(self, event_prefix: EventNameLike = ()) -> list[Handler]:
        prefix = normalize_event_name(event_prefix) if event_prefix else ()
        with self._lock:
            handlers = list(self._handlers.values())
        return [h for h in handlers if h.event_name[: len(prefix)] == prefix]

    def execute(
        self,
        event_name: EventNameLike,
        measurements: Mapping[str, Any],
        metadata: Optional[Mapping[str, Any]] = None,
    ) -> None:
        name = normalize_event_name(event_name)
        metadata = metadata if metadata is not None else {}
        with self._lock:
            handlers = [h for h in self._handlers.values() if h.event_name == name]
        for handler in handlers:
            try:
                handler.function(name, measurements, metadata, handler.config)
            except Exception as e:  # noqa: BLE001
                logger.exception(
                    "handler_failed_detaching",
                    extra={"handler_id": repr(handler.id), "event_name": name, "error": str(e)},
                )
                self.detach(handler.id)


registry = HandlerRegistry()


def attach(
    handler_id: Hashable,
    event_name: EventNameLike,
    function: HandlerFunction,
    config: Any = None,
) -> Handler:
    return registry.attach(handler_id, event_name, function, config)


def detach(handler_id: Hashable) -> bool:
    return registry.detach(handler_id)


def list_handlers(event_prefix: EventNameLike = ()) -> list[Handler]:
    return registry.list_handlers(event_prefix)


def execute(
    event_name: EventNameLike,
    measurements: Mapping[str, Any],
    metadata: Optional[Mapping[str, Any]] = None,
) -> None:
    registry.execute(event_name, measurements, metadata)
