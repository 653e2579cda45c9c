# myo_host/core/events.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .grasp import GraspType


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class ConnectionStateChanged:
    state: ConnectionState
    error: Optional[BaseException] = None

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionState.CONNECTED


@dataclass(frozen=True)
class TelemetrySampleAdded:
    timestamp: float
    channel_values: Tuple[float, ...]


@dataclass(frozen=True)
class ClassificationReceived:
    grasp: GraspType
    raw: str
    resolved_by_default: bool = False


@dataclass(frozen=True)
class DeviceStateNotice:
    text: str


@dataclass(frozen=True)
class RawMessage:
    topic: str
    payload: str


@dataclass(frozen=True)
class WorkflowRejected:
    action: str
    reason: str
