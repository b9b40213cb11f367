# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio

import pytest

from connections.factory import ConnectionFactory
from connections.record import ConnectionSpec
from connections.reestablish import reestablish_connections
from connections.registry import ConnectionRegistry
from coordinator.errors import ReestablishFailure

from fakes import FakeConnector, FakeHandle, events_of, wait_until


def specs(*names: str) -> tuple[ConnectionSpec, ...]:
    return tuple(
        ConnectionSpec(id=name, endpoint=f"wss://{name}.test/", subprotocol="sync.v1")
        for name in names
    )


@pytest.mark.asyncio
async def test_reopens_every_spec_under_same_id(captured_log: list[str]):
    connector = FakeConnector()
    registry = ConnectionRegistry()
    factory = ConnectionFactory(registry=registry, connector=connector)

    records = await reestablish_connections(factory=factory, specs=specs("c1", "c2", "c3"))

    assert {r.id for r in records} == {"c1", "c2", "c3"}
    assert {r.id for r in registry.snapshot()} == {"c1", "c2", "c3"}
    assert all(sub == "sync.v1" for (_, sub, _) in connector.opened)
    assert [m["metric"] for m in events_of(captured_log, "METRIC_TIMER")] == ["reestablish_duration"]


@pytest.mark.asyncio
async def test_already_tracked_ids_are_skipped():
    connector = FakeConnector()
    registry = ConnectionRegistry()
    factory = ConnectionFactory(registry=registry, connector=connector)
    factory.track_transport(endpoint="wss://c1.test/", subprotocol=None, transport=FakeHandle(), record_id="c1")

    records = await reestablish_connections(factory=factory, specs=specs("c1", "c2"))

    assert [r.id for r in records] == ["c2"]
    assert connector.attempts == ["wss://c2.test/"]


@pytest.mark.asyncio
async def test_nothing_to_reopen():
    factory = ConnectionFactory(registry=ConnectionRegistry(), connector=FakeConnector())

    assert await reestablish_connections(factory=factory, specs=()) == ()


@pytest.mark.asyncio
async def test_first_failure_raises_and_cancels_pending(captured_log: list[str]):
    connector = FakeConnector(
        fail_endpoints={"wss://c2.test/"},
        slow_endpoints={"wss://c2.test/", "wss://c3.test/"},
    )
    registry = ConnectionRegistry()
    factory = ConnectionFactory(registry=registry, connector=connector)

    attempt = asyncio.create_task(
        reestablish_connections(factory=factory, specs=specs("c1", "c2", "c3"))
    )
    await wait_until(lambda: "c1" in registry)
    connector.release("wss://c2.test/")

    with pytest.raises(ReestablishFailure) as exc:
        await attempt

    assert exc.value.record_id == "c2"
    assert "ConnectionRefusedError" in exc.value.reason

    # c1 opened and stays tracked for the caller's rollback; c3 never opened
    assert {r.id for r in registry.snapshot()} == {"c1"}
    assert connector.handles_for("wss://c3.test/") == []

    failed = events_of(captured_log, "REESTABLISH_ATTEMPT_FAILED")
    assert failed[0]["record_id"] == "c2"
    assert failed[0]["cancelled"] == 1
