# myo_host/core/runtime.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .bridge import MessagingBridge
from .event_bus import EventBus
from .settings import HostSettings

from ..logger.logger import Logger, configure_logging
from ..modules.workflow import WorkflowController
from ..telemetry.buffer import TelemetryBuffer
from ..transport.base_transport import BaseTransport
from ..transport.mqtt_transport import MqttTransport


@dataclass
class HostRuntime:
    """
    Process-scoped wiring:
      - One EventBus shared by everything.
      - One TelemetryBuffer, one MessagingBridge over one transport.
      - One WorkflowController that the UI talks to.

    Build it once at startup and hand references to whoever needs them.
    """
    settings: HostSettings
    bus: EventBus
    buffer: TelemetryBuffer
    bridge: MessagingBridge
    workflow: WorkflowController
    logger: Optional[Logger] = None

    async def close(self) -> None:
        self.workflow.cancel_calibration()
        self.workflow.end_evaluation()
        await self.bridge.aclose()
        if self.logger is not None:
            self.logger.close()


def build_runtime(
    profile: str = "default",
    *,
    settings: Optional[HostSettings] = None,
    transport: Optional[BaseTransport] = None,
    setup_logging: bool = True,
) -> HostRuntime:
    """
    Build the runtime for a host profile.

    This:
      - Loads HostSettings for the profile (unless given).
      - Configures the myo_host logger tree.
      - Creates EventBus, TelemetryBuffer, MessagingBridge, WorkflowController.

    Connecting is left to the caller (workflow.connect()).
    """
    settings = settings or HostSettings.load(profile)
    logger = configure_logging(settings.logging) if setup_logging else None

    bus = EventBus()
    buffer = TelemetryBuffer(
        capacity=settings.telemetry.capacity,
        channels=settings.telemetry.channels,
        bus=bus,
    )
    bridge = MessagingBridge(
        transport or MqttTransport(),
        buffer,
        bus=bus,
        config=settings.broker.to_connection_config(),
    )
    workflow = WorkflowController(bridge, bus, settings.calibration)

    return HostRuntime(
        settings=settings,
        bus=bus,
        buffer=buffer,
        bridge=bridge,
        workflow=workflow,
        logger=logger,
    )
