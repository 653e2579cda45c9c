"""Host-side core for a myoelectric prosthetic controller: MQTT bridge, telemetry buffer, calibration sequencer."""

__version__ = "0.3.0"
