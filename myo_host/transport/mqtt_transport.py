from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Any, Callable, Optional, Set

import paho.mqtt.client as mqtt

from myo_host.core.errors import TransportError
from myo_host.core.settings import ConnectionConfig
from .base_transport import BaseTransport

log = logging.getLogger(__name__)

QOS_AT_MOST_ONCE = 0


def _default_client(client_id: str) -> mqtt.Client:
    return mqtt.Client(
        mqtt.CallbackAPIVersion.VERSION2,
        client_id=client_id,
        clean_session=True,
        reconnect_on_failure=False,
    )


class MqttTransport(BaseTransport):
    """
    MQTT transport built on paho-mqtt:
      - blocking socket connect runs in the default executor
      - paho's network thread (loop_start) delivers callbacks
      - every callback is re-posted onto the asyncio loop with
        call_soon_threadsafe, so handlers only ever run on the loop
      - no automatic reconnect; a dropped link is reported once via
        the connection-lost handler
    """

    def __init__(self, client_factory: Optional[Callable[[str], Any]] = None) -> None:
        super().__init__()
        self._client_factory = client_factory or _default_client
        self._client: Optional[Any] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._connack: Optional[asyncio.Future] = None
        self._closing = False
        self._pending: Set[asyncio.Task] = set()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def connect(self, config: ConnectionConfig) -> None:
        if self._client is not None:
            await self.disconnect()

        loop = asyncio.get_running_loop()
        self._loop = loop
        self._closing = False
        self._connack = loop.create_future()

        client = self._client_factory(config.client_id)
        client.on_connect = self._mqtt_on_connect
        client.on_disconnect = self._mqtt_on_disconnect
        client.on_message = self._mqtt_on_message
        self._client = client

        log.info("connecting to %s:%s as %s", config.host, config.port, config.client_id)
        try:
            await loop.run_in_executor(
                None, partial(client.connect, config.host, config.port, config.keepalive_s)
            )
        except (OSError, ValueError) as e:
            await self.disconnect()
            raise TransportError(f"cannot reach {config.host}:{config.port}: {e}") from e
        except asyncio.CancelledError:
            await self.disconnect()
            raise

        client.loop_start()
        try:
            await asyncio.wait_for(self._connack, timeout=config.connect_timeout_s)
        except asyncio.TimeoutError as e:
            await self.disconnect()
            raise TransportError(
                f"no CONNACK from {config.host}:{config.port} within {config.connect_timeout_s}s"
            ) from e
        except (TransportError, asyncio.CancelledError):
            await self.disconnect()
            raise

    async def disconnect(self) -> None:
        client = self._client
        self._client = None
        self._closing = True
        if self._connack is not None and not self._connack.done():
            self._connack.cancel()
        if client is None:
            return

        try:
            client.disconnect()
        except Exception as e:
            log.warning("MQTT disconnect failed: %s", e)

        loop = asyncio.get_running_loop()
        try:
            # loop_stop() joins the network thread
            await loop.run_in_executor(None, client.loop_stop)
        except Exception as e:
            log.warning("MQTT loop_stop failed: %s", e)

    async def subscribe(self, topic: str) -> None:
        client = self._require_client(topic)
        result, _mid = client.subscribe(topic, qos=QOS_AT_MOST_ONCE)
        if result != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"subscribe to '{topic}' failed: {mqtt.error_string(result)}", topic=topic
            )
        log.debug("subscribed to %s", topic)

    async def publish(self, topic: str, payload: str) -> None:
        client = self._require_client(topic)
        info = client.publish(topic, payload, qos=QOS_AT_MOST_ONCE)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise TransportError(
                f"publish to '{topic}' failed: {mqtt.error_string(info.rc)}", topic=topic
            )
        log.debug("published %r to %s", payload, topic)

    def _require_client(self, topic: str) -> Any:
        if self._client is None:
            raise TransportError("MQTT client is not connected", topic=topic)
        return self._client

    # ------------------------------------------------------------------
    # paho callbacks (network thread)
    # ------------------------------------------------------------------

    def _post(self, fn: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None:
            return
        try:
            loop.call_soon_threadsafe(fn, *args)
        except RuntimeError:
            # loop already closed during shutdown
            log.debug("dropping MQTT callback %s: event loop closed", getattr(fn, "__name__", fn))

    def _mqtt_on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        self._post(self._resolve_connack, reason_code)

    def _mqtt_on_disconnect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if self._closing:
            return
        self._post(self._lost, TransportError(f"connection lost: {reason_code}"))

    def _mqtt_on_message(self, client, userdata, message) -> None:
        try:
            payload = message.payload.decode("utf-8")
        except UnicodeDecodeError:
            log.warning("dropping non-UTF-8 payload on %s", message.topic)
            return
        self._post(self._handle_message, message.topic, payload)

    # ------------------------------------------------------------------
    # loop-side handlers
    # ------------------------------------------------------------------

    def _resolve_connack(self, reason_code: Any) -> None:
        fut = self._connack
        if fut is None or fut.done():
            return
        if getattr(reason_code, "is_failure", False):
            fut.set_exception(TransportError(f"broker refused connection: {reason_code}"))
        else:
            fut.set_result(None)

    def _lost(self, error: TransportError) -> None:
        if self._closing:
            return
        fut = self._connack
        if fut is None:
            return
        if not fut.done():
            fut.set_exception(error)
            return
        # paho follows a refused CONNACK with on_disconnect; connect() reports that one
        if fut.cancelled() or fut.exception() is not None:
            return

        log.warning("MQTT %s", error)
        self._spawn(self.disconnect())
        self._handle_connection_lost(error)

    def _spawn(self, coro) -> None:
        loop = self._loop
        if loop is None:
            coro.close()
            return
        task = loop.create_task(coro)
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                log.error("MQTT teardown after connection loss failed: %r", t.exception())

        task.add_done_callback(_done)
