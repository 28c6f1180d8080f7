"""MQTT-backed connection.

BLE-to-MQTT bridges publish every HCI packet the radio receives as one
message, raw or as hex text.  :class:`MqttConnection` subscribes to such a
topic and hands message payloads to gateway listeners on an asyncio loop.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any, cast

import paho.mqtt.client as mqtt

from pyinode.config import MqttSettings

DataListener = Callable[[bytes], None]


class MqttConnection:
    """Threaded paho-mqtt client delivering message payloads onto an asyncio loop.

    Listeners always run on *loop*, never on the paho network thread, so
    the gateway is only ever touched from one thread.
    """

    def __init__(
        self,
        settings: MqttSettings,
        *,
        loop: asyncio.AbstractEventLoop,
        logger: logging.Logger | None = None,
    ) -> None:
        self._settings = settings
        self._loop = loop
        self._logger = logger or logging.getLogger(__name__)
        self._listeners: list[DataListener] = []
        self._client: mqtt.Client | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        """Whether the MQTT network loop is running."""
        return self._running

    def subscribe(self, on_data: DataListener) -> Callable[[], None]:
        self._listeners.append(on_data)

        def unsubscribe() -> None:
            if on_data in self._listeners:
                self._listeners.remove(on_data)

        return unsubscribe

    def start(self) -> None:
        """Connect to the broker and subscribe to the configured topic."""
        self.stop()
        settings = self._settings
        self._logger.debug(
            "MQTT connection start requested host=%s port=%s topic=%s",
            settings.host,
            settings.port,
            settings.topic,
        )

        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=settings.client_id,
        )
        client.enable_logger(self._logger)
        if settings.username is not None:
            client.username_pw_set(settings.username, settings.password)
        if settings.tls:
            client.tls_set()

        client.on_connect = self._on_connect
        client.on_message = self._on_message
        client.on_disconnect = self._on_disconnect

        client.connect(settings.host, settings.port, keepalive=settings.keepalive)
        client.loop_start()

        self._client = client
        self._running = True
        self._logger.debug("MQTT network loop started")

    def stop(self) -> None:
        """Disconnect and stop the network loop if running."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def _on_connect(
        self,
        client: mqtt.Client,
        _userdata: Any,
        _flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if reason_code.value != 0:
            self._logger.warning("MQTT connect failed: %s", reason_code)
            return
        self._logger.debug("MQTT connected, subscribing topic=%s", self._settings.topic)
        client.subscribe(self._settings.topic, qos=0)

    def _on_message(self, _client: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
        payload = bytes(msg.payload)
        self._logger.debug("Received PUBLISH topic=%s bytes=%d", msg.topic, len(payload))
        self._loop.call_soon_threadsafe(self._deliver, payload)

    def _on_disconnect(
        self,
        _client: mqtt.Client,
        _userdata: Any,
        _disconnect_flags: Any,
        reason_code: Any,
        _properties: Any,
    ) -> None:
        if self._running:
            self._logger.debug("MQTT disconnected: %s", reason_code)

    def _deliver(self, payload: bytes) -> None:
        for listener in list(self._listeners):
            try:
                listener(payload)
            except Exception:
                self._logger.debug("MQTT data listener failed", exc_info=True)
