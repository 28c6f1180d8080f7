from __future__ import annotations

import asyncio
from types import SimpleNamespace
from typing import Any

import pytest

import pyinode._mqtt as mqtt_module
from pyinode._mqtt import MqttConnection
from pyinode.config import MqttSettings

SETTINGS = MqttSettings(host="broker.local", topic="ble/hci", username="gw", password="pw", tls=True)


class FakeClient:
    instances: list[FakeClient] = []

    def __init__(self, **kwargs: Any) -> None:
        self.kwargs = kwargs
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        FakeClient.instances.append(self)

    def __getattr__(self, name: str) -> Any:
        def record(*args: Any, **_kwargs: Any) -> None:
            self.calls.append((name, args))

        return record


@pytest.mark.asyncio
async def test_message_is_delivered_on_loop() -> None:
    connection = MqttConnection(SETTINGS, loop=asyncio.get_running_loop())
    received: list[bytes] = []
    connection.subscribe(received.append)

    connection._on_message(None, None, SimpleNamespace(topic="ble/hci", payload=b"\x04\x3e"))  # type: ignore[arg-type]
    assert received == []

    await asyncio.sleep(0)
    assert received == [b"\x04\x3e"]


@pytest.mark.asyncio
async def test_unsubscribe_and_failing_listener() -> None:
    connection = MqttConnection(SETTINGS, loop=asyncio.get_running_loop())
    received: list[bytes] = []

    def broken(_payload: bytes) -> None:
        raise RuntimeError("boom")

    connection.subscribe(broken)
    unsubscribe = connection.subscribe(received.append)

    connection._on_message(None, None, SimpleNamespace(topic="t", payload=b"a"))  # type: ignore[arg-type]
    await asyncio.sleep(0)
    unsubscribe()
    unsubscribe()
    connection._on_message(None, None, SimpleNamespace(topic="t", payload=b"b"))  # type: ignore[arg-type]
    await asyncio.sleep(0)

    assert received == [b"a"]


@pytest.mark.asyncio
async def test_start_and_stop(monkeypatch: pytest.MonkeyPatch) -> None:
    FakeClient.instances.clear()
    monkeypatch.setattr(mqtt_module.mqtt, "Client", FakeClient)
    connection = MqttConnection(SETTINGS, loop=asyncio.get_running_loop())

    connection.start()

    (client,) = FakeClient.instances
    names = [name for name, _ in client.calls]
    assert ("username_pw_set", ("gw", "pw")) in client.calls
    assert "tls_set" in names
    assert ("connect", ("broker.local", 1883)) in client.calls
    assert names[-1] == "loop_start"
    assert connection.is_running

    connection.stop()

    assert connection.is_running is False
    assert [name for name, _ in client.calls][-2:] == ["disconnect", "loop_stop"]


@pytest.mark.asyncio
async def test_on_connect_subscribes_topic() -> None:
    connection = MqttConnection(SETTINGS, loop=asyncio.get_running_loop())
    client = FakeClient()

    connection._on_connect(client, None, None, SimpleNamespace(value=0), None)  # type: ignore[arg-type]
    connection._on_connect(client, None, None, SimpleNamespace(value=5), None)  # type: ignore[arg-type]

    assert client.calls == [("subscribe", ("ble/hci",))]
