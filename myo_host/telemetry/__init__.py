from .buffer import TelemetryBuffer
from .models import ChannelPoint, TelemetrySample, TelemetrySnapshot
from .parser import parse_sensor_payload

__all__ = [
    "TelemetryBuffer",
    "ChannelPoint",
    "TelemetrySample",
    "TelemetrySnapshot",
    "parse_sensor_payload",
]
