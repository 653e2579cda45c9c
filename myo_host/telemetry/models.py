# telemetry/models.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np


@dataclass(frozen=True)
class TelemetrySample:
    """One timestamped reading across every sensor channel."""
    timestamp: float                 # time.time() at arrival
    channel_values: Tuple[float, ...]

    @property
    def arity(self) -> int:
        return len(self.channel_values)


@dataclass(frozen=True)
class ChannelPoint:
    timestamp: float
    value: float


@dataclass(frozen=True)
class TelemetrySnapshot:
    """
    Read-only copy of a TelemetryBuffer.

    channels maps channel name -> points, oldest first.
    """
    capacity: int
    channels: Dict[str, Tuple[ChannelPoint, ...]]

    def __len__(self) -> int:
        for points in self.channels.values():
            return len(points)
        return 0

    def values(self, channel: str) -> Tuple[float, ...]:
        return tuple(p.value for p in self.channels[channel])

    def as_arrays(self) -> Dict[str, Tuple[np.ndarray, np.ndarray]]:
        """
        Chart-friendly form: channel -> (timestamps, values) float64 arrays.
        """
        out: Dict[str, Tuple[np.ndarray, np.ndarray]] = {}
        for name, points in self.channels.items():
            ts = np.fromiter((p.timestamp for p in points), dtype=float, count=len(points))
            vs = np.fromiter((p.value for p in points), dtype=float, count=len(points))
            out[name] = (ts, vs)
        return out


__all__ = [
    "TelemetrySample",
    "ChannelPoint",
    "TelemetrySnapshot",
]
