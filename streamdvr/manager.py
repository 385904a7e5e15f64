"""Registry of channels, their persistence on disk, and event broadcasting."""

from __future__ import annotations

import json
import logging
import queue
import threading
from pathlib import Path
from typing import Any

from .channel import Channel
from .entity import ChannelConfig, ChannelInfo, Config, Event
from .errors import ChannelExistsError

logger = logging.getLogger(__name__)

CHANNELS_FILE = "channels.json"


class EventBroker:
    """Fans out ``(event, data)`` pairs to every current subscriber."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[queue.Queue[tuple[str, str]]] = []

    def subscribe(self) -> queue.Queue[tuple[str, str]]:
        """Register a new subscriber and return the queue it receives events on."""
        subscriber: queue.Queue[tuple[str, str]] = queue.Queue()
        with self._lock:
            self._subscribers.append(subscriber)
        return subscriber

    def unsubscribe(self, queue: queue.Queue[tuple[str, str]]) -> None:
        """Stop delivering events to ``queue``."""
        with self._lock:
            try:
                self._subscribers.remove(queue)
            except ValueError:
                pass

    def publish(self, event: str, data: str) -> None:
        """Deliver an event to all subscribers; nothing is kept for later ones."""
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            subscriber.put((event, data))


def _info_payload(info: ChannelInfo) -> dict[str, Any]:
    return {
        "is_online": info.is_online,
        "is_paused": info.is_paused,
        "username": info.username,
        "duration": info.duration,
        "filesize": info.filesize,
        "filename": info.filename,
        "streamed_at": info.streamed_at,
        "max_duration": info.max_duration,
        "max_filesize": info.max_filesize,
        "created_at": info.created_at,
        "logs": list(info.logs),
    }


class Manager:
    """Owns the channels, saves their settings and publishes their events."""

    def __init__(self, config: Config, conf_dir: str | Path = "./conf") -> None:
        self.config = config
        self.conf_dir = Path(conf_dir)
        self.broker = EventBroker()
        self.channels: dict[str, Channel] = {}
        self._lock = threading.RLock()

    @property
    def _channels_path(self) -> Path:
        return self.conf_dir / CHANNELS_FILE

    def _new_channel(self, conf: ChannelConfig) -> Channel:
        return Channel(conf, self.config, self.publish)

    def _start(self, channel: Channel, start_seq: int) -> None:
        threading.Thread(target=channel.resume, args=(start_seq,), daemon=True).start()

    def save_config(self) -> None:
        """Write the settings of every channel to the channels file."""
        with self._lock:
            configs = [channel.config.to_dict() for channel in self.channels.values()]
        self.conf_dir.mkdir(parents=True, exist_ok=True)
        self._channels_path.write_text(json.dumps(configs), encoding="utf-8")

    def load_config(self) -> None:
        """Restore channels from the channels file and resume the unpaused ones.

        A missing file is not an error. Channels are resumed one second apart.
        """
        try:
            raw = self._channels_path.read_bytes()
        except FileNotFoundError:
            return
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise ValueError(f"unmarshal: {exc}") from exc
        if data is None:
            data = []
        if not isinstance(data, list):
            raise ValueError("unmarshal: channels file does not hold a list")

        for index, item in enumerate(data):
            if item is None:
                continue
            if not isinstance(item, dict):
                raise ValueError("unmarshal: channel entry is not an object")
            conf = ChannelConfig.from_dict(item)
            channel = self._new_channel(conf)
            with self._lock:
                self.channels[conf.username] = channel
            if conf.is_paused:
                channel.info("channel was paused, waiting for resume")
                continue
            self._start(channel, index)

    def create_channel(self, conf: ChannelConfig, should_save: bool = False) -> None:
        """Add a channel and start monitoring it; raises ChannelExistsError on duplicates."""
        with self._lock:
            if conf.username in self.channels:
                raise ChannelExistsError(f"channel {conf.username} already exists")
            channel = self._new_channel(conf)
            self.channels[conf.username] = channel
        self._start(channel, 0)
        if should_save:
            self.save_config()

    def stop_channel(self, username: str) -> None:
        """Stop and remove a channel; unknown names are ignored."""
        with self._lock:
            channel = self.channels.get(username)
            if channel is None:
                return
            channel.stop()
            del self.channels[username]
        self.save_config()

    def pause_channel(self, username: str) -> None:
        """Pause a channel; unknown names are ignored."""
        with self._lock:
            channel = self.channels.get(username)
        if channel is None:
            return
        channel.pause()
        self.save_config()

    def resume_channel(self, username: str) -> None:
        """Resume a paused channel; unknown names are ignored."""
        with self._lock:
            channel = self.channels.get(username)
        if channel is None:
            return
        channel.config.is_paused = False
        self._start(channel, 0)
        self.save_config()

    def channel_info(self) -> list[ChannelInfo]:
        """Snapshots of all channels, most recently created first."""
        with self._lock:
            channels = list(self.channels.values())
        infos = [channel.export_info() for channel in channels]
        infos.sort(key=lambda info: info.created_at, reverse=True)
        return infos

    def publish(self, event: Event | str, info: ChannelInfo) -> None:
        """Broadcast a channel's state (``<name>-info``) or logs (``<name>-log``)."""
        if event == Event.UPDATE:
            self.broker.publish(f"{info.username}-info", json.dumps(_info_payload(info)))
        elif event == Event.LOG:
            self.broker.publish(f"{info.username}-log", "\n".join(info.logs))