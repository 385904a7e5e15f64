import argparse
import json

from streamdvr.entity import ChannelConfig, ChannelInfo, Config, Event


def _args(**overrides):
    values = dict(
        username="alice",
        admin_username="admin",
        admin_password="password",
        framerate=60,
        resolution=720,
        pattern="videos/{{.Username}}",
        max_duration=5,
        max_filesize=100,
        port="9090",
        interval=2,
        cookies="",
        user_agent="agent/1.0",
        domain="https://example.com/",
    )
    values.update(overrides)
    return argparse.Namespace(**values)


def test_event_values_match_wire_names():
    assert Event("update") is Event.UPDATE
    assert Event("log") is Event.LOG


def test_channel_config_keys():
    conf = ChannelConfig(username="alice")
    assert set(conf.to_dict()) == {
        "is_paused",
        "username",
        "framerate",
        "resolution",
        "pattern",
        "max_duration",
        "max_filesize",
        "created_at",
    }


def test_channel_config_json_round_trip():
    conf = ChannelConfig(
        username="bob",
        is_paused=True,
        framerate=60,
        resolution=1080,
        pattern="videos/{{.Username}}",
        max_duration=30,
        max_filesize=500,
        created_at=1700000000,
    )
    restored = ChannelConfig.from_dict(json.loads(json.dumps(conf.to_dict())))
    assert restored == conf


def test_channel_config_from_dict_defaults_and_ignores_extra():
    conf = ChannelConfig.from_dict({"username": "carol", "unknown": 1})
    assert conf == ChannelConfig(username="carol")


def test_config_from_args_converts_minutes():
    config = Config.from_args(_args(), "2.0.2")
    assert config.version == "2.0.2"
    assert config.max_duration == 5 * 60
    assert config.max_filesize == 100
    assert config.username == "alice"
    assert config.port == "9090"
    assert config.user_agent == "agent/1.0"
    assert config.domain == "https://example.com/"


def test_config_from_args_zero_duration_stays_zero():
    config = Config.from_args(_args(max_duration=0), "1")
    assert config.max_duration == 0


def test_channel_info_logs_not_shared():
    first = ChannelInfo(username="a")
    second = ChannelInfo(username="b")
    first.logs.append("line")
    assert second.logs == []