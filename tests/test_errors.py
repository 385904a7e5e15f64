import pytest

from streamdvr.errors import (
    AgeVerificationError,
    ChannelExistsError,
    ChannelNotFoundError,
    ChannelOfflineError,
    ChannelPausedError,
    ChannelStoppedError,
    CloudflareBlockedError,
    DvrError,
    PrivateStreamError,
)


@pytest.mark.parametrize(
    "cls, message",
    [
        (ChannelExistsError, "channel exists"),
        (ChannelNotFoundError, "channel not found"),
        (CloudflareBlockedError, "blocked by Cloudflare; try with `-cookies` and `-user-agent`"),
        (AgeVerificationError, "age verification required; try with `-cookies` and `-user-agent`"),
        (ChannelOfflineError, "channel offline"),
        (PrivateStreamError, "channel went offline or private"),
        (ChannelPausedError, "channel paused"),
        (ChannelStoppedError, "channel stopped"),
    ],
)
def test_default_messages(cls, message):
    err = cls()
    assert str(err) == message
    assert isinstance(err, DvrError)


def test_custom_message_overrides_default():
    err = PrivateStreamError("forbidden: gone")
    assert str(err) == "forbidden: gone"


def test_caught_through_base_class():
    err = ChannelOfflineError()
    assert str(err) == "channel offline"
    with pytest.raises(DvrError) as excinfo:
        raise err
    assert excinfo.value is err
    assert str(excinfo.value) == "channel offline"


def test_distinct_types_do_not_overlap():
    paused = ChannelPausedError()
    stopped = ChannelStoppedError()
    assert str(paused) == "channel paused"
    assert str(stopped) == "channel stopped"
    assert not issubclass(ChannelPausedError, ChannelStoppedError)
    assert not issubclass(ChannelStoppedError, ChannelPausedError)
    assert issubclass(ChannelPausedError, DvrError)
    assert issubclass(ChannelStoppedError, DvrError)