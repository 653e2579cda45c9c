# myo_host/core/bridge.py

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, List, Optional, Protocol, Set, Tuple, Union

from .errors import TransportError
from .event_bus import EventBus
from .events import (
    ConnectionState,
    ConnectionStateChanged,
    RawMessage,
    TelemetrySampleAdded,
)
from .messages import BusTopic, INBOUND_TOPICS, Topic
from .router import MessageRouter
from .settings import ConnectionConfig
from myo_host.telemetry.buffer import TelemetryBuffer
from myo_host.telemetry.models import TelemetrySample
from myo_host.transport.base_transport import BaseTransport

log = logging.getLogger(__name__)


class BridgeListener(Protocol):
    """The three callbacks a consumer implements to follow the bridge."""

    def on_connected(self) -> None: ...
    def on_disconnected(self, error: Optional[BaseException]) -> None: ...
    def on_message(self, topic: str, payload: str) -> None: ...


@dataclass(frozen=True)
class _Outbound:
    kind: str            # "publish" | "subscribe"
    topic: str
    payload: str = ""


class MessagingBridge:
    """
    Owns one transport connection:

      - connection lifecycle (DISCONNECTED -> CONNECTING -> CONNECTED)
      - subscriptions to the inbound topics after every connect
      - a FIFO outbound queue drained by a single worker task
      - inbound routing through MessageRouter into the TelemetryBuffer
        and onto the EventBus

    Every public method must be called on the event loop thread; that loop
    is the single writer for connection state and the outbound queue.
    Nothing here raises across the public boundary except
    ConfigurationError from connect().
    """

    def __init__(
        self,
        transport: BaseTransport,
        buffer: TelemetryBuffer,
        bus: Optional[EventBus] = None,
        config: Optional[ConnectionConfig] = None,
        router: Optional[MessageRouter] = None,
        drain_timeout_s: float = 2.0,
    ) -> None:
        self.transport = transport
        self.buffer = buffer
        self.bus = bus or EventBus()
        self.router = router or MessageRouter(channel_count=len(buffer.channels))
        self._config = config or ConnectionConfig()
        self.drain_timeout_s = float(drain_timeout_s)

        self._state = ConnectionState.DISCONNECTED
        self._listeners: List[BridgeListener] = []
        self._transport_open = False

        self._connect_task: Optional[asyncio.Task] = None
        self._teardown_task: Optional[asyncio.Task] = None
        self._outbox: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

        # Stats
        self.published = 0
        self.publish_failures = 0
        self.dropped = 0

        self.transport.set_message_handler(self._on_transport_message)
        self.transport.set_connection_lost_handler(self._on_connection_lost)

        self.router.register(Topic.SENSOR, self._on_sample)
        self.router.register(
            Topic.CLASS_OUTPUT, lambda ev: self.bus.publish(BusTopic.CLASSIFICATION, ev)
        )
        self.router.register(
            Topic.STATE, lambda ev: self.bus.publish(BusTopic.DEVICE_STATE, ev)
        )

    # ---------- Introspection ----------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    def add_listener(self, listener: BridgeListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: BridgeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ---------- Lifecycle ----------

    def connect(self, host: Optional[str] = None, port: Optional[Any] = None) -> asyncio.Task:
        """
        Start connecting; returns the background task.

        host/port replace the stored defaults when given. Invalid values
        raise ConfigurationError before the transport is touched. Transport
        failures end up as a DISCONNECTED event carrying the cause.
        """
        config = self._config.with_overrides(host, port)
        loop = asyncio.get_running_loop()
        self._config = config

        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        self._begin_teardown()

        self._set_state(ConnectionState.CONNECTING)
        self._connect_task = loop.create_task(self._run_connect(config))
        return self._connect_task

    def disconnect(self) -> None:
        """
        Drop the connection now. Always ends DISCONNECTED and always reports
        it; the transport is only torn down if a session is actually open.

        Messages accepted while connected are still sent before the
        transport closes (bounded by drain_timeout_s); anything published
        from here on is dropped.
        """
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
        self._connect_task = None
        self._begin_teardown()

        self._set_state(ConnectionState.DISCONNECTED)

    async def aclose(self) -> None:
        """Disconnect and wait for the transport to finish tearing down."""
        self.disconnect()
        if self._teardown_task is not None:
            await asyncio.gather(self._teardown_task, return_exceptions=True)
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run_connect(self, config: ConnectionConfig) -> None:
        if self._teardown_task is not None and not self._teardown_task.done():
            await asyncio.gather(self._teardown_task, return_exceptions=True)

        try:
            await self.transport.connect(config)
        except TransportError as e:
            log.error("connect to %s:%s failed: %s", config.host, config.port, e)
            self._set_state(ConnectionState.DISCONNECTED, e)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.exception("transport raised unexpectedly during connect")
            self._set_state(ConnectionState.DISCONNECTED, TransportError(str(e)))
            return

        log.info("connected to %s:%s", config.host, config.port)
        self._transport_open = True
        self._state = ConnectionState.CONNECTED
        self._start_worker()

        for topic in INBOUND_TOPICS:
            # the link can drop while a subscribe is in flight
            if self._state is not ConnectionState.CONNECTED:
                return
            await self._send_now(_Outbound("subscribe", topic.value))

        if self._state is not ConnectionState.CONNECTED:
            return
        self._set_state(ConnectionState.CONNECTED)

    def _begin_teardown(self) -> None:
        worker, outbox = self._detach_worker()
        if not self._transport_open:
            self._discard(worker, outbox)
            return
        self._transport_open = False
        self._teardown_task = self._spawn(self._teardown(worker, outbox), "transport teardown")

    async def _teardown(self, worker: Optional[asyncio.Task], outbox: Optional[asyncio.Queue]) -> None:
        if outbox is not None:
            try:
                await asyncio.wait_for(outbox.join(), timeout=self.drain_timeout_s)
            except asyncio.TimeoutError:
                log.warning("outbound queue not drained within %.1fs", self.drain_timeout_s)
        self._discard(worker, outbox)

        try:
            await self.transport.disconnect()
        except TransportError as e:
            log.warning("transport teardown reported: %s", e)
        log.info("disconnected")

    # ---------- Outgoing ----------

    def publish(self, topic: Union[Topic, str], message: str) -> None:
        """Fire-and-forget publish; failures are logged, never raised."""
        self._enqueue(_Outbound("publish", _topic_name(topic), message))

    def subscribe(self, topic: Union[Topic, str]) -> None:
        """Fire-and-forget subscribe; failures are logged, never raised."""
        self._enqueue(_Outbound("subscribe", _topic_name(topic)))

    async def flush(self) -> None:
        """Wait until everything queued so far has been handed to the transport."""
        outbox = self._outbox
        if outbox is not None:
            await outbox.join()

    def _enqueue(self, item: _Outbound) -> None:
        if self._state is not ConnectionState.CONNECTED or self._outbox is None:
            self.dropped += 1
            log.warning("not connected; dropping %s to '%s' %r", item.kind, item.topic, item.payload)
            return
        self._outbox.put_nowait(item)

    def _start_worker(self) -> None:
        self._outbox = asyncio.Queue()
        self._worker = asyncio.get_running_loop().create_task(self._drain_outbox(self._outbox))

    def _detach_worker(self) -> Tuple[Optional[asyncio.Task], Optional[asyncio.Queue]]:
        """Unhook the current queue so new publishes are refused; the worker keeps running."""
        worker, outbox = self._worker, self._outbox
        self._worker = None
        self._outbox = None
        return worker, outbox

    def _discard(self, worker: Optional[asyncio.Task], outbox: Optional[asyncio.Queue]) -> None:
        if worker is not None:
            worker.cancel()
        if outbox is None:
            return

        discarded = 0
        while True:
            try:
                outbox.get_nowait()
            except asyncio.QueueEmpty:
                break
            outbox.task_done()
            discarded += 1
        if discarded:
            self.dropped += discarded
            log.warning("discarded %d queued outbound message(s)", discarded)

    async def _drain_outbox(self, outbox: asyncio.Queue) -> None:
        while True:
            item = await outbox.get()
            try:
                await self._send_now(item)
            finally:
                outbox.task_done()

    async def _send_now(self, item: _Outbound) -> None:
        try:
            if item.kind == "subscribe":
                await self.transport.subscribe(item.topic)
            else:
                await self.transport.publish(item.topic, item.payload)
                self.published += 1
        except TransportError as e:
            self.publish_failures += 1
            log.error("%s to '%s' failed: %s", item.kind, item.topic, e)
        except asyncio.CancelledError:
            raise
        except Exception:
            self.publish_failures += 1
            log.exception("%s to '%s' failed", item.kind, item.topic)

    # ---------- Incoming data path ----------

    def _on_transport_message(self, topic: str, payload: str) -> None:
        self.router.route(topic, payload)

        self.bus.publish(BusTopic.BRIDGE_MESSAGE, RawMessage(topic=topic, payload=payload))
        for listener in list(self._listeners):
            try:
                listener.on_message(topic, payload)
            except Exception:
                log.exception("listener on_message failed")

    def _on_sample(self, sample: TelemetrySample) -> None:
        self.buffer.append(sample)
        self.bus.publish(
            BusTopic.TELEMETRY_SAMPLE,
            TelemetrySampleAdded(timestamp=sample.timestamp, channel_values=sample.channel_values),
        )

    def _on_connection_lost(self, error: Optional[BaseException]) -> None:
        if self._state is ConnectionState.DISCONNECTED:
            return
        log.error("connection lost: %s", error)
        self._transport_open = False
        self._discard(*self._detach_worker())
        self._set_state(ConnectionState.DISCONNECTED, error)

    # ---------- State reporting ----------

    def _set_state(self, state: ConnectionState, error: Optional[BaseException] = None) -> None:
        self._state = state
        self.bus.publish(BusTopic.CONNECTION_STATE, ConnectionStateChanged(state, error))

        for listener in list(self._listeners):
            try:
                if state is ConnectionState.CONNECTED:
                    listener.on_connected()
                elif state is ConnectionState.DISCONNECTED:
                    listener.on_disconnected(error)
            except Exception:
                log.exception("listener state callback failed")

    def _spawn(self, coro: Awaitable[None], what: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)

        def _done(t: asyncio.Task) -> None:
            self._tasks.discard(t)
            if not t.cancelled() and t.exception() is not None:
                log.error("%s failed: %r", what, t.exception())

        task.add_done_callback(_done)
        return task


def _topic_name(topic: Union[Topic, str]) -> str:
    return topic.value if isinstance(topic, Topic) else str(topic)
