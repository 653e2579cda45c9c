import pytest
import pytest_asyncio

from helpers import CapturingBus, settle
from fakes.fake_mqtt_transport import FakeMqttTransport

from myo_host.core.bridge import MessagingBridge
from myo_host.core.settings import ConnectionConfig
from myo_host.telemetry.buffer import TelemetryBuffer


def pytest_addoption(parser):
    parser.addoption(
        "--run-broker",
        action="store_true",
        default=False,
        help="Run tests that need a live MQTT broker",
    )
    parser.addoption(
        "--broker-host",
        action="store",
        default="127.0.0.1",
        help="MQTT broker host for broker tests",
    )
    parser.addoption(
        "--broker-port",
        action="store",
        default=1883,
        type=int,
        help="MQTT broker port for broker tests",
    )


def pytest_collection_modifyitems(config, items):
    """Skip broker tests unless --run-broker is specified."""
    if not config.getoption("--run-broker"):
        skip_broker = pytest.mark.skip(reason="Need --run-broker option to run broker tests")
        for item in items:
            if "broker" in item.keywords:
                item.add_marker(skip_broker)


# ============== Fixtures ==============

@pytest.fixture(scope="session")
def broker_config(request) -> ConnectionConfig:
    return ConnectionConfig(
        host=request.config.getoption("--broker-host"),
        port=request.config.getoption("--broker-port"),
    )


@pytest.fixture
def bus() -> CapturingBus:
    return CapturingBus()


@pytest.fixture
def transport() -> FakeMqttTransport:
    return FakeMqttTransport()


@pytest.fixture
def buffer(bus) -> TelemetryBuffer:
    return TelemetryBuffer(bus=bus)


@pytest.fixture
def bridge(transport, buffer, bus) -> MessagingBridge:
    return MessagingBridge(transport, buffer, bus=bus, config=ConnectionConfig(host="127.0.0.1"))


@pytest_asyncio.fixture
async def connected_bridge(bridge):
    """Bridge connected to the fake transport; torn down after the test."""
    await bridge.connect()
    await settle()
    yield bridge
    await bridge.aclose()
