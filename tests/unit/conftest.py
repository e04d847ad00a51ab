import asyncio

import pytest
from telemetry_zabbix.core.config import Settings
from telemetry_zabbix.events.registry import HandlerRegistry
from telemetry_zabbix.infrastructure.zabbix.protocol import SendResult
from telemetry_zabbix.services.reporter import ZabbixReporter


class RecordingTransport:
    """Stand-in for ZabbixSender that records every batch."""

    def __init__(self):
        self.calls = []
        self.result = SendResult(processed=1, failed=0, total=1, seconds_spent=0.000055)
        self.error = None

    async def send_values(self, values, clock=None):
        self.calls.append((list(values), clock))
        if self.error is not None:
            raise self.error
        return self.result


async def wait_until(predicate, timeout=1.0, interval=0.005):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def handler_registry():
    """Registry isolated from the process-wide default."""
    return HandlerRegistry()


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def make_reporter(handler_registry, transport):
    """Build reporters wired to the isolated registry and recording transport."""

    def _make(metrics, **overrides):
        config = Settings(
            **{
                "zabbix_batch_window_size_ms": 10,
                "zabbix_hostname": "myhost",
                **overrides,
            }
        )
        return ZabbixReporter(
            metrics, settings=config, transport=transport, registry=handler_registry
        )

    return _make


@pytest.fixture
def wait():
    return wait_until
