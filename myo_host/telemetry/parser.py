import math
import time
from typing import Optional

from myo_host.core.errors import ParseError
from myo_host.core.messages import Topic
from .models import TelemetrySample


def _parse_float(field: str, payload: str) -> float:
    try:
        value = float(field.strip())
    except ValueError:
        raise ParseError(Topic.SENSOR.value, payload, f"not a number: {field!r}") from None
    if not math.isfinite(value):
        raise ParseError(Topic.SENSOR.value, payload, f"non-finite value: {field!r}")
    return value


def parse_sensor_payload(
    payload: str,
    channel_count: int = 2,
    timestamp: Optional[float] = None,
) -> TelemetrySample:
    """
    Parse a `sensor` payload into a TelemetrySample.

    Accepts:
      "-0.19,1.12"   one value per channel
      "3.0"          legacy single-value form; copied into every channel

    Anything else raises ParseError.
    """
    ts = time.time() if timestamp is None else timestamp
    fields = payload.split(",")

    if len(fields) == 1:
        value = _parse_float(fields[0], payload)
        return TelemetrySample(timestamp=ts, channel_values=(value,) * channel_count)

    if len(fields) != channel_count:
        raise ParseError(
            Topic.SENSOR.value,
            payload,
            f"expected 1 or {channel_count} values, got {len(fields)}",
        )

    values = tuple(_parse_float(f, payload) for f in fields)
    return TelemetrySample(timestamp=ts, channel_values=values)
