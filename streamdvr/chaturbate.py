"""Locating a channel's HLS stream and following its segments."""

from __future__ import annotations

import json
import re
import string
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from .entity import Config
from .errors import ChannelOfflineError
from .formatting import segment_seq
from .m3u8 import MasterPlaylist, MediaPlaylist, PlaylistDecodeError, decode
from .request import Req

ROOM_DOSSIER_RE = re.compile(r'window\.initialRoomDossier = "(.*?)"')
_UNICODE_ESCAPE_RE = re.compile(r"\\u(.{0,4})", re.DOTALL)

PLAYLIST_SUFFIX = "playlist.m3u8"
SEGMENT_FETCH_ATTEMPTS = 3
SEGMENT_RETRY_DELAY = 0.6
POLL_INTERVAL = 1.0

WatchHandler = Callable[[bytes, float], None]


def _decode_unicode_escapes(text: str) -> str:
    def replace(match: re.Match[str]) -> str:
        digits = match.group(1)
        if len(digits) != 4 or any(c not in string.hexdigits for c in digits):
            raise ValueError("failed to decode unicode: invalid escape")
        code = int(digits, 16)
        if 0xD800 <= code <= 0xDFFF:
            raise ValueError("failed to decode unicode: surrogate escape")
        return chr(code)

    return _UNICODE_ESCAPE_RE.sub(replace, text)


@dataclass
class Stream:
    """An HLS stream source of a channel."""

    hls_source: str

    def get_playlist(self, req: Req, resolution: int, framerate: int) -> "Playlist":
        """Fetch the variant closest to the given resolution and framerate."""
        return fetch_playlist(req, self.hls_source, resolution, framerate)


class Client:
    """Looks up channels on the configured site."""

    def __init__(self, config: Config, req: Req | None = None) -> None:
        self.config = config
        self.req = req if req is not None else Req(config)

    def get_stream(self, username: str) -> Stream:
        """Return the stream of ``username``; raises ChannelOfflineError when offline."""
        return fetch_stream(self.req, self.config.domain, username)


def fetch_stream(req: Req, domain: str, username: str) -> Stream:
    """Fetch the channel page and extract its stream source."""
    body = req.get(f"{domain}{username}")
    if PLAYLIST_SUFFIX not in body:
        raise ChannelOfflineError()
    return parse_stream(body)


def parse_stream(body: str) -> Stream:
    """Extract the HLS source URL from a channel page body."""
    match = ROOM_DOSSIER_RE.search(body)
    if match is None:
        raise ValueError("room dossier not found")
    source = _decode_unicode_escapes(match.group(1))
    try:
        room = json.loads(source)
    except ValueError as exc:
        raise ValueError(f"failed to parse JSON: {exc}") from exc
    if room is None:
        return Stream(hls_source="")
    if not isinstance(room, dict):
        raise ValueError("failed to parse JSON: room dossier is not an object")
    hls_source = ""
    for key, value in room.items():
        if key.casefold() != "hls_source" or value is None:
            continue
        if not isinstance(value, str):
            raise ValueError("failed to parse JSON: hls_source is not a string")
        hls_source = value
    return Stream(hls_source=hls_source)


def fetch_playlist(req: Req, hls_source: str, resolution: int, framerate: int) -> "Playlist":
    """Fetch the master playlist and pick the best matching variant."""
    if not hls_source:
        raise ValueError("HLS source is empty")
    resp = req.get(hls_source)
    return parse_playlist(resp, hls_source, resolution, framerate)


def parse_playlist(resp: str, hls_source: str, resolution: int, framerate: int) -> "Playlist":
    """Decode a master playlist and pick the best matching variant."""
    playlist = decode(resp)
    if not isinstance(playlist, MasterPlaylist):
        raise PlaylistDecodeError("invalid master playlist format")
    return pick_playlist(playlist, hls_source, resolution, framerate)


@dataclass
class Resolution:
    """Variant URLs of one resolution, keyed by framerate."""

    width: int
    framerate: dict[int, str] = field(default_factory=dict)


_ATOI_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)


def pick_playlist(
    master: MasterPlaylist, base_url: str, resolution: int, framerate: int
) -> "Playlist":
    """Select the variant matching ``resolution``, else the highest one below it.

    The requested framerate is used when available, otherwise the first one listed.
    """
    resolutions: dict[int, Resolution] = {}
    for variant in master.variants:
        parts = variant.resolution.split("x")
        if len(parts) != 2:
            continue
        if not _ATOI_RE.fullmatch(parts[1]):
            raise ValueError(f"parse resolution: invalid height {parts[1]!r}")
        width = int(parts[1])
        rate = 60 if "FPS:60.0" in variant.name else 30
        resolutions.setdefault(width, Resolution(width=width)).framerate[rate] = variant.uri

    chosen = resolutions.get(resolution)
    if chosen is None:
        candidates = [r for r in resolutions.values() if r.width < resolution]
        chosen = max(candidates, key=lambda r: r.width, default=None)
    if chosen is None:
        raise LookupError("resolution not found")

    final_framerate = framerate
    playlist_url = chosen.framerate.get(framerate)
    if playlist_url is None:
        final_framerate, playlist_url = next(iter(chosen.framerate.items()))

    root_url = base_url.removesuffix(PLAYLIST_SUFFIX)
    return Playlist(
        playlist_url=root_url + playlist_url,
        root_url=root_url,
        resolution=chosen.width,
        framerate=final_framerate,
    )


def _fetch_segment(req: Req, url: str, stop_event: threading.Event) -> bytes | None:
    for attempt in range(SEGMENT_FETCH_ATTEMPTS):
        if attempt and stop_event.wait(SEGMENT_RETRY_DELAY):
            return None
        if stop_event.is_set():
            return None
        try:
            return req.get_bytes(url)
        except Exception:
            continue
    return None


@dataclass
class Playlist:
    """The chosen variant playlist of a stream."""

    playlist_url: str
    root_url: str
    resolution: int
    framerate: int

    def watch_segments(
        self,
        req: Req,
        handler: WatchHandler,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Poll the playlist and hand each new segment to ``handler``.

        Runs until ``stop_event`` is set; errors from fetching the playlist or
        from the handler propagate. A segment that cannot be fetched after
        several attempts is skipped along with the rest of that poll.
        """
        stop = stop_event if stop_event is not None else threading.Event()
        last_seq = -1
        while not stop.is_set():
            playlist = decode(req.get(self.playlist_url))
            if not isinstance(playlist, MediaPlaylist):
                raise PlaylistDecodeError("cast to media playlist")

            for segment in playlist.segments:
                seq = segment_seq(segment.uri)
                if seq == -1 or seq <= last_seq:
                    continue
                last_seq = seq
                data = _fetch_segment(req, f"{self.root_url}{segment.uri}", stop)
                if data is None:
                    break
                handler(data, segment.duration)

            stop.wait(POLL_INTERVAL)