"""Configuration and channel data shared across the recorder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_PATTERN = (
    "videos/{{.Username}}_{{.Year}}-{{.Month}}-{{.Day}}_"
    "{{.Hour}}-{{.Minute}}-{{.Second}}{{if .Sequence}}_{{.Sequence}}{{end}}"
)
DEFAULT_DOMAIN = "https://chaturbate.com/"


class Event(str, Enum):
    """Kinds of events a channel publishes."""

    UPDATE = "update"
    LOG = "log"


@dataclass
class ChannelConfig:
    """Persisted settings of a single channel."""

    username: str = ""
    is_paused: bool = False
    framerate: int = 0
    resolution: int = 0
    pattern: str = ""
    max_duration: int = 0
    max_filesize: int = 0
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-ready mapping used in the channels file."""
        return {
            "is_paused": self.is_paused,
            "username": self.username,
            "framerate": self.framerate,
            "resolution": self.resolution,
            "pattern": self.pattern,
            "max_duration": self.max_duration,
            "max_filesize": self.max_filesize,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChannelConfig":
        """Build a config from a mapping; unknown keys are ignored, missing ones default."""
        return cls(
            username=str(data.get("username", "")),
            is_paused=bool(data.get("is_paused", False)),
            framerate=int(data.get("framerate", 0)),
            resolution=int(data.get("resolution", 0)),
            pattern=str(data.get("pattern", "")),
            max_duration=int(data.get("max_duration", 0)),
            max_filesize=int(data.get("max_filesize", 0)),
            created_at=int(data.get("created_at", 0)),
        )


@dataclass
class Config:
    """Application-wide settings; cookies and user agent may change at runtime."""

    version: str = ""
    username: str = ""
    admin_username: str = ""
    admin_password: str = ""
    framerate: int = 30
    resolution: int = 1080
    pattern: str = DEFAULT_PATTERN
    max_duration: int = 0
    max_filesize: int = 0
    port: str = "8080"
    interval: int = 3
    cookies: str = ""
    user_agent: str = ""
    domain: str = DEFAULT_DOMAIN

    @classmethod
    def from_args(cls, args: Any, version: str) -> "Config":
        """Build the configuration from parsed command-line arguments."""
        return cls(
            version=version,
            username=args.username,
            admin_username=args.admin_username,
            admin_password=args.admin_password,
            framerate=args.framerate,
            resolution=args.resolution,
            pattern=args.pattern,
            max_duration=args.max_duration * 60,
            max_filesize=args.max_filesize,
            port=str(args.port),
            interval=args.interval,
            cookies=args.cookies,
            user_agent=args.user_agent,
            domain=args.domain,
        )


@dataclass
class ChannelInfo:
    """Snapshot of a channel's state for display."""

    is_online: bool = False
    is_paused: bool = False
    username: str = ""
    duration: str = ""
    filesize: str = ""
    filename: str = ""
    streamed_at: str = ""
    max_duration: str = ""
    max_filesize: str = ""
    created_at: int = 0
    logs: list[str] = field(default_factory=list)
    global_config: Config | None = None