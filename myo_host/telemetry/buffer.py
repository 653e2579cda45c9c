# telemetry/buffer.py
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict, Optional, Sequence

from myo_host.core.event_bus import EventBus
from myo_host.core.messages import BusTopic
from .models import ChannelPoint, TelemetrySample, TelemetrySnapshot

DEFAULT_CAPACITY = 100
DEFAULT_CHANNELS = ("voltage0", "voltage1")


class TelemetryBuffer:
    """
    Fixed-capacity rolling history, one deque per channel.

    Written by the bridge on the event loop, read by chart code from any
    thread. Every mutation and every snapshot holds the same lock, so a
    reader never sees one channel updated and another not.
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        channels: Sequence[str] = DEFAULT_CHANNELS,
        bus: Optional[EventBus] = None,
    ) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        if not channels:
            raise ValueError("at least one channel is required")

        self._capacity = int(capacity)
        self._channels = tuple(channels)
        self._bus = bus
        self._lock = threading.Lock()
        self._data: Dict[str, Deque[ChannelPoint]] = {
            name: deque(maxlen=self._capacity) for name in self._channels
        }

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def channels(self) -> tuple:
        return self._channels

    def __len__(self) -> int:
        with self._lock:
            return len(self._data[self._channels[0]])

    def append(self, sample: TelemetrySample) -> None:
        """Append one value per channel; the oldest point drops out at capacity."""
        if sample.arity != len(self._channels):
            raise ValueError(
                f"sample has {sample.arity} values, buffer has {len(self._channels)} channels"
            )
        with self._lock:
            for name, value in zip(self._channels, sample.channel_values):
                # deque(maxlen=...) evicts from the left before appending
                self._data[name].append(ChannelPoint(sample.timestamp, value))

    def clear(self) -> None:
        with self._lock:
            for d in self._data.values():
                d.clear()
        if self._bus is not None:
            self._bus.publish(BusTopic.TELEMETRY_CLEARED, None)

    def snapshot(self) -> TelemetrySnapshot:
        with self._lock:
            channels = {name: tuple(d) for name, d in self._data.items()}
        return TelemetrySnapshot(capacity=self._capacity, channels=channels)

    def latest(self) -> Optional[TelemetrySample]:
        """Most recent sample, rebuilt from the channel heads."""
        with self._lock:
            first = self._data[self._channels[0]]
            if not first:
                return None
            ts = first[-1].timestamp
            values = tuple(self._data[name][-1].value for name in self._channels)
        return TelemetrySample(timestamp=ts, channel_values=values)
