import pytest

from myo_host.core.errors import ConfigurationError
from myo_host.core.settings import (
    ConnectionConfig,
    DEFAULT_HOST,
    DEFAULT_PORT,
    HostSettings,
    TelemetrySettings,
    process_client_id,
    validate_port,
)

_ENV = ("MYO_BROKER_HOST", "MYO_BROKER_PORT", "MYO_LOG_LEVEL", "MYO_LOG_CONSOLE")


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in _ENV:
        monkeypatch.delenv(key, raising=False)


def test_default_profile_matches_builtin_defaults():
    s = HostSettings.load()
    assert (s.broker.host, s.broker.port) == (DEFAULT_HOST, DEFAULT_PORT)
    assert s.telemetry.capacity == 100
    assert s.telemetry.channels == ("voltage0", "voltage1")
    assert s.calibration.repetitions == 10
    assert s.calibration.tick_interval_s == 1.0
    assert s.logging.level_no == 20


def test_local_profile():
    s = HostSettings.load("local")
    assert s.broker.host == "127.0.0.1"
    assert s.logging.console is True


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("MYO_BROKER_HOST", "192.168.1.20")
    monkeypatch.setenv("MYO_BROKER_PORT", "8883")
    monkeypatch.setenv("MYO_LOG_LEVEL", "debug")
    monkeypatch.setenv("MYO_LOG_CONSOLE", "yes")

    s = HostSettings.load()
    cfg = s.broker.to_connection_config()

    assert (cfg.host, cfg.port) == ("192.168.1.20", 8883)
    assert s.logging.level_no == 10
    assert s.logging.console is True


def test_bad_env_port(monkeypatch):
    monkeypatch.setenv("MYO_BROKER_PORT", "eighty")
    with pytest.raises(ConfigurationError):
        HostSettings.load()


def test_missing_profile():
    with pytest.raises(ConfigurationError):
        HostSettings.load("does_not_exist")


def test_unknown_key_in_profile(tmp_path):
    p = tmp_path / "host_profile_x.yaml"
    p.write_text("broker:\n  host: 1.2.3.4\n  colour: blue\n")
    with pytest.raises(ConfigurationError):
        HostSettings.load(path=p)


def test_partial_profile_fills_defaults(tmp_path):
    p = tmp_path / "host_profile_x.yaml"
    p.write_text("broker:\n  port: 1999\n")
    s = HostSettings.load(path=p)
    assert s.broker.port == 1999
    assert s.broker.host == DEFAULT_HOST
    assert s.telemetry.capacity == 100


@pytest.mark.parametrize("port, expected", [(1, 1), (65535, 65535), ("1883", 1883), (" 42 ", 42)])
def test_validate_port_accepts(port, expected):
    assert validate_port(port) == expected


@pytest.mark.parametrize("port", [0, 65536, -1, "", "12a", "1883.0", 1.5, None, False])
def test_validate_port_rejects(port):
    with pytest.raises(ConfigurationError):
        validate_port(port)


@pytest.mark.parametrize("host", ["", "   ", "bad host", None])
def test_connection_config_rejects_bad_host(host):
    with pytest.raises(ConfigurationError):
        ConnectionConfig(host=host)


def test_with_overrides_keeps_unset_fields():
    base = ConnectionConfig(host="10.0.0.1", port=1884)
    assert base.with_overrides() == base
    assert base.with_overrides(port="2000").port == 2000
    assert base.with_overrides(host="10.0.0.2").port == 1884


def test_client_id_is_stable_for_the_process():
    assert process_client_id() == process_client_id()
    assert ConnectionConfig().client_id == process_client_id()
    assert process_client_id().startswith("myo_host_")


@pytest.mark.parametrize("kwargs", [{"channels": ()}, {"channels": ("a", "b", "c")}, {"capacity": 0}])
def test_telemetry_settings_validation(kwargs):
    with pytest.raises(ConfigurationError):
        TelemetrySettings(**kwargs)
