"""Exceptions raised while monitoring and recording channels."""

from __future__ import annotations


class DvrError(Exception):
    """Base class for all recorder errors."""

    default_message = "recorder error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class ChannelExistsError(DvrError):
    default_message = "channel exists"


class ChannelNotFoundError(DvrError):
    default_message = "channel not found"


class CloudflareBlockedError(DvrError):
    default_message = "blocked by Cloudflare; try with `-cookies` and `-user-agent`"


class AgeVerificationError(DvrError):
    default_message = "age verification required; try with `-cookies` and `-user-agent`"


class ChannelOfflineError(DvrError):
    default_message = "channel offline"


class PrivateStreamError(DvrError):
    default_message = "channel went offline or private"


class ChannelPausedError(DvrError):
    default_message = "channel paused"


class ChannelStoppedError(DvrError):
    default_message = "channel stopped"