import pytest

from myo_host.core.errors import ParseError
from myo_host.telemetry.parser import parse_sensor_payload


def test_two_channel_payload():
    s = parse_sensor_payload("1.5,-2.25", timestamp=10.0)
    assert s.channel_values == (1.5, -2.25)
    assert s.timestamp == 10.0
    assert s.arity == 2


def test_whitespace_around_fields_is_accepted():
    s = parse_sensor_payload(" -0.19 , 1.12 ")
    assert s.channel_values == (-0.19, 1.12)


def test_single_value_is_copied_into_every_channel():
    s = parse_sensor_payload("3.0")
    assert s.channel_values == (3.0, 3.0)

    one = parse_sensor_payload("3.0", channel_count=1)
    assert one.channel_values == (3.0,)


def test_timestamp_defaults_to_wall_clock(monkeypatch):
    import time as _time
    monkeypatch.setattr(_time, "time", lambda: 1234.5)
    assert parse_sensor_payload("1,2").timestamp == 1234.5


@pytest.mark.parametrize("payload", ["abc", "", "1.0,x", "1,2,3", "nan", "1.0,inf"])
def test_malformed_payloads_raise_parse_error(payload):
    with pytest.raises(ParseError) as exc:
        parse_sensor_payload(payload)
    assert exc.value.topic == "sensor"
    assert exc.value.payload == payload
