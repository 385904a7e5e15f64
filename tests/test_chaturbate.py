import threading

import pytest

from streamdvr import chaturbate
from streamdvr.chaturbate import (
    Client,
    Playlist,
    Stream,
    fetch_playlist,
    fetch_stream,
    parse_playlist,
    parse_stream,
    pick_playlist,
)
from streamdvr.entity import Config
from streamdvr.errors import ChannelOfflineError
from streamdvr.m3u8 import PlaylistDecodeError, decode

BASE_URL = "https://edge.example.com/live-hls/amlst:someone/playlist.m3u8"
ROOT_URL = "https://edge.example.com/live-hls/amlst:someone/"

MASTER = """#EXTM3U
#EXT-X-VERSION:6
#EXT-X-STREAM-INF:BANDWIDTH=5128000,RESOLUTION=1920x1080,FRAME-RATE=60.0,NAME="FPS:60.0"
chunklist_1080_60.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=2928000,RESOLUTION=1920x1080,FRAME-RATE=30.0,NAME="FPS:30.0"
chunklist_1080_30.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=1628000,RESOLUTION=1280x720,NAME="FPS:30.0"
chunklist_720_30.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=628000,RESOLUTION=640x360,NAME="FPS:60.0"
chunklist_360_60.m3u8
"""

PAGE = (
    "<html><script>window.initialRoomDossier = "
    r'"{\u0022hls_source\u0022: \u0022' + BASE_URL + r'\u0022}"'
    ";</script></html>"
)

EMPTY_MEDIA = "#EXTM3U\n#EXT-X-TARGETDURATION:2\n"


def media(*numbers):
    lines = ["#EXTM3U", "#EXT-X-TARGETDURATION:2"]
    for n in numbers:
        lines += ["#EXTINF:2.0,", f"media_{n}.ts"]
    return "\n".join(lines) + "\n"


class FakeReq:
    def __init__(self, pages=(), blobs=None, stop=None):
        self.pages = list(pages)
        self.blobs = blobs or {}
        self.stop = stop
        self.urls = []
        self.byte_urls = []

    def get(self, url):
        self.urls.append(url)
        page = self.pages.pop(0)
        if not self.pages and self.stop is not None:
            self.stop.set()
        return page

    def get_bytes(self, url):
        self.byte_urls.append(url)
        value = self.blobs[url]
        if isinstance(value, Exception):
            raise value
        return value


def test_parse_stream_decodes_unicode_escapes():
    assert parse_stream(PAGE).hls_source == BASE_URL


def test_parse_stream_without_dossier():
    with pytest.raises(ValueError):
        parse_stream("<html>nothing here</html>")


def test_parse_stream_with_invalid_json():
    with pytest.raises(ValueError):
        parse_stream('window.initialRoomDossier = "{not json"')


def test_parse_stream_with_bad_escape():
    with pytest.raises(ValueError):
        parse_stream(r'window.initialRoomDossier = "{\u00zz}"')


def test_parse_stream_missing_source_is_empty():
    assert parse_stream('window.initialRoomDossier = "{}"').hls_source == ""


def test_fetch_stream_offline_without_playlist():
    req = FakeReq(pages=["<html>offline</html>"])
    with pytest.raises(ChannelOfflineError):
        fetch_stream(req, "https://stream.example.com/", "alice")
    assert req.urls == ["https://stream.example.com/alice"]


def test_client_get_stream_uses_configured_domain():
    req = FakeReq(pages=[PAGE])
    client = Client(Config(domain="https://stream.example.com/"), req)
    stream = client.get_stream("alice")
    assert stream.hls_source == BASE_URL
    assert req.urls == ["https://stream.example.com/alice"]


def test_pick_exact_resolution_and_framerate():
    playlist = pick_playlist(decode(MASTER), BASE_URL, 1080, 60)
    assert playlist == Playlist(
        playlist_url=ROOT_URL + "chunklist_1080_60.m3u8",
        root_url=ROOT_URL,
        resolution=1080,
        framerate=60,
    )


def test_pick_falls_back_to_highest_lower_resolution():
    playlist = pick_playlist(decode(MASTER), BASE_URL, 900, 30)
    assert playlist.resolution == 720
    assert playlist.playlist_url == ROOT_URL + "chunklist_720_30.m3u8"


def test_pick_above_all_takes_the_highest():
    playlist = pick_playlist(decode(MASTER), BASE_URL, 4000, 30)
    assert playlist.resolution == 1080
    assert playlist.playlist_url == ROOT_URL + "chunklist_1080_30.m3u8"


def test_pick_falls_back_to_available_framerate():
    playlist = pick_playlist(decode(MASTER), BASE_URL, 360, 30)
    assert playlist.framerate == 60
    assert playlist.playlist_url == ROOT_URL + "chunklist_360_60.m3u8"


def test_pick_below_all_resolutions_fails():
    with pytest.raises(LookupError):
        pick_playlist(decode(MASTER), BASE_URL, 240, 30)


def test_pick_skips_malformed_and_rejects_bad_height():
    text = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1,RESOLUTION=oops\nx.m3u8\n"
    with pytest.raises(LookupError):
        pick_playlist(decode(text), BASE_URL, 1080, 30)
    bad = "#EXTM3U\n#EXT-X-STREAM-INF:BANDWIDTH=1,RESOLUTION=10xabc\nx.m3u8\n"
    with pytest.raises(ValueError):
        pick_playlist(decode(bad), BASE_URL, 1080, 30)


def test_parse_playlist_rejects_media_playlist():
    with pytest.raises(PlaylistDecodeError):
        parse_playlist(media(1), BASE_URL, 1080, 30)


def test_fetch_playlist_requires_source():
    with pytest.raises(ValueError):
        fetch_playlist(FakeReq(), "", 1080, 30)


def test_stream_get_playlist_fetches_master():
    req = FakeReq(pages=[MASTER])
    playlist = Stream(hls_source=BASE_URL).get_playlist(req, 720, 30)
    assert req.urls == [BASE_URL]
    assert playlist.resolution == 720


def make_playlist():
    return Playlist(
        playlist_url=ROOT_URL + "chunklist_720_30.m3u8",
        root_url=ROOT_URL,
        resolution=720,
        framerate=30,
    )


def test_watch_segments_hands_over_each_new_segment_once(monkeypatch):
    monkeypatch.setattr(chaturbate, "POLL_INTERVAL", 0)
    stop = threading.Event()
    blobs = {ROOT_URL + f"media_{n}.ts": f"seg{n}".encode() for n in (1, 2, 3)}
    req = FakeReq(pages=[media(1, 2), media(2, 3), EMPTY_MEDIA], blobs=blobs, stop=stop)
    received = []
    make_playlist().watch_segments(req, lambda data, dur: received.append((data, dur)), stop)
    assert received == [(b"seg1", 2.0), (b"seg2", 2.0), (b"seg3", 2.0)]
    assert len(req.urls) == 3


def test_watch_segments_propagates_handler_errors(monkeypatch):
    monkeypatch.setattr(chaturbate, "POLL_INTERVAL", 0)
    req = FakeReq(pages=[media(1), EMPTY_MEDIA], blobs={ROOT_URL + "media_1.ts": b"x"})

    def handler(data, duration):
        raise RuntimeError("disk full")

    with pytest.raises(RuntimeError, match="disk full"):
        make_playlist().watch_segments(req, handler, threading.Event())


def test_watch_segments_retries_then_skips_failed_segment(monkeypatch):
    monkeypatch.setattr(chaturbate, "POLL_INTERVAL", 0)
    monkeypatch.setattr(chaturbate, "SEGMENT_RETRY_DELAY", 0)
    stop = threading.Event()
    failing = ROOT_URL + "media_1.ts"
    blobs = {failing: OSError("boom"), ROOT_URL + "media_2.ts": b"two"}
    req = FakeReq(pages=[media(1, 2), media(1, 2, 3), EMPTY_MEDIA], stop=stop, blobs=blobs)
    blobs[ROOT_URL + "media_3.ts"] = b"three"
    received = []
    make_playlist().watch_segments(req, lambda data, dur: received.append(data), stop)
    assert req.byte_urls.count(failing) == 3
    assert received == [b"three"]


def test_watch_segments_rejects_master_playlist():
    req = FakeReq(pages=[MASTER, EMPTY_MEDIA])
    with pytest.raises(PlaylistDecodeError):
        make_playlist().watch_segments(req, lambda data, dur: None, threading.Event())


def test_watch_segments_ignores_unnumbered_segments(monkeypatch):
    monkeypatch.setattr(chaturbate, "POLL_INTERVAL", 0)
    stop = threading.Event()
    page = "#EXTM3U\n#EXT-X-TARGETDURATION:2\n#EXTINF:2.0,\nintro.ts\n"
    req = FakeReq(pages=[page, EMPTY_MEDIA], stop=stop)
    received = []
    make_playlist().watch_segments(req, lambda data, dur: received.append(data), stop)
    assert received == []
    assert req.byte_urls == []