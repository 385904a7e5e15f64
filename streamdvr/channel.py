"""A monitored channel: polling for streams and writing segments to files."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from typing import Any, BinaryIO

from .chaturbate import Client
from .entity import ChannelConfig, ChannelInfo, Config, Event
from .errors import ChannelOfflineError, ChannelPausedError, CloudflareBlockedError
from .formatting import format_duration, format_filesize
from .pattern import Pattern, render_pattern
from .request import Req

logger = logging.getLogger(__name__)

MAX_LOGS = 100

Publisher = Callable[[Event, ChannelInfo], None]


class Channel:
    """State and recording loop of one channel."""

    def __init__(
        self,
        config: ChannelConfig,
        global_config: Config,
        publish: Publisher | None = None,
    ) -> None:
        self.config = config
        self.global_config = global_config
        self._publish = publish
        self.is_online = False
        self.streamed_at = 0
        self.duration = 0.0
        self.filesize = 0
        self.sequence = 0
        self.logs: list[str] = []
        self.file: BinaryIO | None = None
        self._lock = threading.RLock()
        self._stop_event = threading.Event()

    def _emit(self, event: Event) -> None:
        if self._publish is not None:
            self._publish(event, self.export_info())

    def _log(self, level: str, message: str) -> None:
        entry = f"{time.strftime('%H:%M')} [{level}] {message}"
        with self._lock:
            self.logs.append(entry)
            del self.logs[:-MAX_LOGS]
            self._emit(Event.LOG)
        logger.log(
            logging.ERROR if level == "ERROR" else logging.INFO,
            "[%s] %s",
            self.config.username,
            message,
        )

    def info(self, message: str) -> None:
        """Record an informational message and publish the logs."""
        self._log("INFO", message)

    def error(self, message: str) -> None:
        """Record an error message and publish the logs."""
        self._log("ERROR", message)

    def update(self) -> None:
        """Publish the current channel state."""
        with self._lock:
            self._emit(Event.UPDATE)

    def export_info(self) -> ChannelInfo:
        """Return a display snapshot of the channel."""
        filename = self.file.name if self.file is not None else ""
        streamed_at = ""
        if self.streamed_at:
            streamed_at = time.strftime("%Y-%m-%d %H:%M AM", time.localtime(self.streamed_at))
        return ChannelInfo(
            is_online=self.is_online,
            is_paused=self.config.is_paused,
            username=self.config.username,
            max_duration=format_duration(float(self.config.max_duration * 60)),
            max_filesize=format_filesize(self.config.max_filesize * 1024 * 1024),
            streamed_at=streamed_at,
            created_at=self.config.created_at,
            duration=format_duration(self.duration),
            filesize=format_filesize(self.filesize),
            filename=str(filename),
            logs=list(self.logs),
            global_config=self.global_config,
        )

    def pause(self) -> None:
        """Stop monitoring and mark the channel paused."""
        self._stop_event.set()
        self.config.is_paused = True
        self.sequence = 0
        self.is_online = False
        self.update()
        self.info("channel paused")

    def stop(self) -> None:
        """Stop monitoring the channel."""
        self._stop_event.set()
        self.info("channel stopped")

    def resume(self, start_seq: int) -> None:
        """Unpause, wait ``start_seq`` seconds, then monitor until stopped."""
        self.config.is_paused = False
        self.update()
        self.info("channel resumed")
        time.sleep(start_seq)
        self.monitor()

    def _on_retry(self, exc: Exception) -> None:
        interval = self.global_config.interval
        if isinstance(exc, ChannelOfflineError):
            self.info(f"channel is offline, try again in {interval} min(s)")
        elif isinstance(exc, CloudflareBlockedError):
            self.info(
                "channel was blocked by Cloudflare; try with `-cookies` and `-user-agent`? "
                f"try again in {interval} min(s)"
            )
        else:
            self.error(f"on retry: {exc}: retrying in {interval} min(s)")

    def monitor(self) -> None:
        """Record the channel whenever it is live, until paused or stopped."""
        client = Client(self.global_config)
        req = Req(self.global_config)
        self.info(f"starting to record `{self.config.username}`")

        stop = threading.Event()
        self._stop_event = stop
        failure: Exception | None = None

        while not stop.is_set():
            try:
                self.record_stream(client, req)
            except ChannelPausedError as exc:
                failure = exc
                break
            except Exception as exc:
                if stop.is_set():
                    break
                self._on_retry(exc)
                if stop.wait(self.global_config.interval * 60):
                    break

        if failure is not None:
            self.error(f"record stream: {failure}")
        try:
            self.cleanup()
        except OSError as exc:
            self.error(f"cleanup canceled channel: {exc}")

    def record_stream(self, client: Any, req: Req) -> None:
        """Find the live stream, open a file and write its segments until stopped."""
        try:
            stream = client.get_stream(self.config.username)
        except Exception:
            self.is_online = False
            raise
        self.is_online = True
        self.streamed_at = int(time.time())

        self.next_file()

        playlist = stream.get_playlist(req, self.config.resolution, self.config.framerate)
        self.info(
            f"stream quality - resolution {playlist.resolution}p "
            f"(target: {self.config.resolution}p), framerate {playlist.framerate}fps "
            f"(target: {self.config.framerate}fps)"
        )
        playlist.watch_segments(req, self.handle_segment, self._stop_event)

    def handle_segment(self, data: bytes, duration: float) -> None:
        """Append a segment to the current file, switching files when limits are reached."""
        if self.config.is_paused:
            raise ChannelPausedError()
        if self.file is None:
            raise OSError("write file: no file is open")

        self.file.write(data)
        self.filesize += len(data)
        self.duration += duration
        self.info(
            f"duration: {format_duration(self.duration)}, "
            f"filesize: {format_filesize(self.filesize)}"
        )
        self.update()

        if self.should_switch_file():
            self.next_file()
            self.info(f"max filesize or duration exceeded, new file created: {self.file.name}")

    def next_file(self) -> None:
        """Close the current file and open the next one in the sequence."""
        self.cleanup()
        filename = self.generate_filename()
        self.create_new_file(filename)
        self.sequence += 1

    def cleanup(self) -> None:
        """Flush and close the current file, deleting it if nothing was written."""
        if self.file is None:
            return
        try:
            self.file.flush()
            os.fsync(self.file.fileno())
            self.file.close()
            if self.filesize <= 0:
                os.remove(self.file.name)
            self.file = None
        finally:
            self.filesize = 0
            self.duration = 0.0

    def generate_filename(self) -> str:
        """Render the configured pattern for the current stream and sequence."""
        pattern = Pattern.from_timestamp(self.config.username, self.streamed_at, self.sequence)
        return render_pattern(self.config.pattern, pattern)

    def create_new_file(self, filename: str) -> None:
        """Open ``filename`` + ``.ts`` for appending, creating directories as needed."""
        os.makedirs(os.path.dirname(filename) or ".", exist_ok=True)
        self.file = open(filename + ".ts", "ab")

    def should_switch_file(self) -> bool:
        """Whether the current file has reached the configured size or duration."""
        max_filesize_bytes = self.config.max_filesize * 1024 * 1024
        max_duration_seconds = self.config.max_duration * 60
        return (self.config.max_duration > 0 and self.duration >= max_duration_seconds) or (
            self.config.max_filesize > 0 and self.filesize >= max_filesize_bytes
        )