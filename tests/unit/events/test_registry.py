import logging

import pytest
from telemetry_zabbix.events.registry import HandlerExistsError, HandlerRegistry


@pytest.fixture
def registry():
    return HandlerRegistry()


def test_execute_calls_handlers_for_event(registry):
    received = []
    registry.attach("h1", "vm.memory", lambda *args: received.append(args), config="cfg")

    registry.execute(["vm", "memory"], {"total": 1}, {"device": "dev1"})
    registry.execute("vm.cpu", {"total": 1})

    assert received == [(("vm", "memory"), {"total": 1}, {"device": "dev1"}, "cfg")]


def test_missing_metadata_is_empty_mapping(registry):
    received = []
    registry.attach("h1", "vm.memory", lambda name, m, md, cfg: received.append(md))

    registry.execute("vm.memory", {"total": 1})

    assert received == [{}]


def test_duplicate_handler_id_is_rejected(registry):
    registry.attach("h1", "vm.memory", lambda *args: None)

    with pytest.raises(HandlerExistsError):
        registry.attach("h1", "vm.cpu", lambda *args: None)


def test_detach(registry):
    received = []
    registry.attach("h1", "vm.memory", lambda *args: received.append(args))

    assert registry.detach("h1") is True
    assert registry.detach("h1") is False
    registry.execute("vm.memory", {"total": 1})

    assert received == []


def test_list_handlers_by_prefix(registry):
    registry.attach("memory", "vm.memory", lambda *args: None)
    registry.attach("cpu", "vm.cpu", lambda *args: None)
    registry.attach("http", "http.request", lambda *args: None)

    assert {h.id for h in registry.list_handlers("vm")} == {"memory", "cpu"}
    assert {h.id for h in registry.list_handlers()} == {"memory", "cpu", "http"}
    assert [h.event_name for h in registry.list_handlers(["http"])] == [("http", "request")]


def test_failing_handler_is_logged_and_detached(registry, caplog):
    caplog.set_level(logging.ERROR)
    received = []

    def broken(*args):
        raise RuntimeError("boom")

    registry.attach("broken", "vm.memory", broken)
    registry.attach("healthy", "vm.memory", lambda *args: received.append(args))

    registry.execute("vm.memory", {"total": 1})
    registry.execute("vm.memory", {"total": 2})

    assert [h.id for h in registry.list_handlers()] == ["healthy"]
    assert len(received) == 2
    assert "handler_failed_detaching" in caplog.text
