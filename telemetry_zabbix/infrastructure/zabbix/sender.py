from __future__ import annotations

import asyncio
import contextlib
import errno
from typing import Optional, Protocol, Sequence

from telemetry_zabbix.core.config import Settings
from telemetry_zabbix.core.logger import get_logger

from .protocol import ItemValue, ProtocolError, SendResult, encode_request, parse_info, read_frame

logger = get_logger("zabbix.sender")


class TransportError(Exception):
    """Sending a batch failed before the server could account for it."""

    def __init__(self, reason: str, detail: Optional[str] = None):
        super().__init__(detail or reason)
        self.reason = reason
        self.detail = detail


class Transport(Protocol):
    async def send_values(
        self, values: Sequence[ItemValue], clock: Optional[int] = None
    ) -> SendResult: ...


def _reason_for(exc: OSError) -> str:
    if exc.errno in errno.errorcode:
        return errno.errorcode[exc.errno].lower()
    return type(exc).__name__.lower()


class ZabbixSender:
    """Zabbix trapper client: one TCP connection per batch."""

    def __init__(self, host: str = "127.0.0.1", port: int = 10051, timeout: float = 5.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    @classmethod
    def from_settings(cls, config: Settings) -> "ZabbixSender":
        return cls(
            host=config.zabbix_host,
            port=config.zabbix_port,
            timeout=config.zabbix_send_timeout_seconds,
        )

    async def send_values(
        self, values: Sequence[ItemValue], clock: Optional[int] = None
    ) -> SendResult:
        """Send ``values`` and return the server's accounting.

        Raises TransportError for connection/I-O failures, timeouts, malformed
        answers and non-success responses.
        """
        frame = encode_request(values, clock)
        try:
            response = await asyncio.wait_for(self._exchange(frame), self.timeout)
        # TimeoutError subclasses OSError on 3.11+, match it first
        except asyncio.TimeoutError as exc:
            raise TransportError("timeout", f"no answer within {self.timeout}s") from exc
        except asyncio.IncompleteReadError as exc:
            raise TransportError("closed", "connection closed mid-frame") from exc
        except ProtocolError as exc:
            raise TransportError("invalid_response", str(exc)) from exc
        except OSError as exc:
            raise TransportError(_reason_for(exc), str(exc)) from exc

        status = response.get("response")
        if status != "success":
            raise TransportError(f"response_{status}", response.get("info"))
        try:
            return parse_info(response.get("info", ""))
        except ProtocolError as exc:
            raise TransportError("invalid_response", str(exc)) from exc

    async def _exchange(self, frame: bytes) -> dict:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(frame)
            await writer.drain()
            response = await read_frame(reader)
            logger.debug(
                "zabbix_response_received",
                extra={"host": self.host, "port": self.port, "response": response},
            )
            return response
        finally:
            writer.close()
            with contextlib.suppress(OSError):
                await writer.wait_closed()
