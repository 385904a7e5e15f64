"""Web interface: channel list, controls and live updates over server-sent events."""

from __future__ import annotations

import base64
import hmac
import html
import json
import logging
import queue
import re
import string
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from urllib.parse import parse_qs, quote, unquote, urlsplit

from .entity import ChannelConfig, ChannelInfo, Config
from .errors import DvrError
from .manager import Manager

logger = logging.getLogger(__name__)

AUTH_REALM = 'Basic realm="Authorization Required"'
KEEPALIVE_INTERVAL = 15.0

_INT_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)
_CONTROL_RE = re.compile(r"/(stop|pause|resume)_channel/([^/]+)")

_INDEX_TEMPLATE = string.Template(
    """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Chaturbate DVR $version</title>
</head>
<body>
<h1>Chaturbate DVR <small>$version</small></h1>
<form method="post" action="/create_channel">
  <label>Usernames (comma separated) <input name="username" required></label>
  <label>Framerate <input name="framerate" type="number" value="$framerate" required></label>
  <label>Resolution <input name="resolution" type="number" value="$resolution" required></label>
  <label>Pattern <input name="pattern" value="$pattern" required></label>
  <label>Max duration (minutes) <input name="max_duration" type="number" value="$max_duration"></label>
  <label>Max filesize (MB) <input name="max_filesize" type="number" value="$max_filesize"></label>
  <button type="submit">Add channel</button>
</form>
<form method="post" action="/update_config">
  <label>Cookies <input name="cookies" value="$cookies"></label>
  <label>User-Agent <input name="user_agent" value="$user_agent"></label>
  <button type="submit">Save settings</button>
</form>
$channels
<script>
var USERNAMES = $usernames;
var source = new EventSource("/updates");
USERNAMES.forEach(function (name) {
  var card = document.getElementById("channel-" + name);
  if (!card) { return; }
  source.addEventListener(name + "-info", function (e) {
    var info = JSON.parse(e.data);
    info.status = info.is_paused ? "paused" : (info.is_online ? "online" : "offline");
    card.querySelectorAll("[data-field]").forEach(function (el) {
      var value = info[el.getAttribute("data-field")];
      el.textContent = value == null ? "" : String(value);
    });
  });
  source.addEventListener(name + "-log", function (e) {
    card.querySelector("[data-logs]").textContent = e.data;
  });
});
</script>
</body>
</html>
"""
)


def _form_value(form: dict[str, list[str]], name: str) -> str:
    values = form.get(name)
    return values[0] if values else ""


def _form_int(form: dict[str, list[str]], name: str, required: bool) -> int:
    raw = _form_value(form, name)
    value = 0
    if raw:
        if not _INT_RE.fullmatch(raw):
            raise ValueError(f"bind: invalid integer for {name}: {raw!r}")
        value = int(raw)
    if required and value == 0:
        raise ValueError(f"bind: {name} is required")
    return value


def parse_create_channel_form(body: str) -> list[ChannelConfig]:
    """Parse the channel creation form into one config per comma-separated username."""
    form = parse_qs(body, keep_blank_values=True)
    username = _form_value(form, "username")
    if not username:
        raise ValueError("bind: username is required")
    framerate = _form_int(form, "framerate", required=True)
    resolution = _form_int(form, "resolution", required=True)
    pattern = _form_value(form, "pattern")
    if not pattern:
        raise ValueError("bind: pattern is required")
    max_duration = _form_int(form, "max_duration", required=False)
    max_filesize = _form_int(form, "max_filesize", required=False)
    created_at = int(time.time())
    return [
        ChannelConfig(
            username=name,
            is_paused=False,
            framerate=framerate,
            resolution=resolution,
            pattern=pattern,
            max_duration=max_duration,
            max_filesize=max_filesize,
            created_at=created_at,
        )
        for name in username.split(",")
    ]


def check_basic_auth(header: str | None, username: str, password: str) -> bool:
    """Whether an Authorization header carries exactly these Basic credentials."""
    if not header:
        return False
    encoded = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return hmac.compare_digest(header.encode(), f"Basic {encoded}".encode())


def _status_text(info: ChannelInfo) -> str:
    if info.is_paused:
        return "paused"
    return "online" if info.is_online else "offline"


def _render_channel(info: ChannelInfo) -> str:
    name = html.escape(info.username)
    path_name = html.escape(quote(info.username, safe=""))
    toggle = "resume" if info.is_paused else "pause"

    def field(key: str, value: str) -> str:
        return f'<span data-field="{key}">{html.escape(value)}</span>'

    return (
        f'<section class="channel" id="channel-{name}">\n'
        f"  <h2>{name} {field('status', _status_text(info))}</h2>\n"
        "  <dl>\n"
        f"    <dt>Filename</dt><dd>{field('filename', info.filename)}</dd>\n"
        f"    <dt>Streamed at</dt><dd>{field('streamed_at', info.streamed_at)}</dd>\n"
        f"    <dt>Duration</dt><dd>{field('duration', info.duration)}"
        f" / {field('max_duration', info.max_duration)}</dd>\n"
        f"    <dt>Filesize</dt><dd>{field('filesize', info.filesize)}"
        f" / {field('max_filesize', info.max_filesize)}</dd>\n"
        "  </dl>\n"
        f'  <form method="post" action="/{toggle}_channel/{path_name}">'
        f"<button>{toggle.capitalize()}</button></form>\n"
        f'  <form method="post" action="/stop_channel/{path_name}">'
        "<button>Stop</button></form>\n"
        f"  <pre data-logs>{html.escape(chr(10).join(info.logs))}</pre>\n"
        "</section>"
    )


def _render_index(config: Config, channels: list[ChannelInfo]) -> str:
    cards = "\n".join(_render_channel(info) for info in channels) or "<p>No channels yet.</p>"
    usernames = json.dumps([info.username for info in channels]).replace("<", "\\u003c")
    return _INDEX_TEMPLATE.substitute(
        version=html.escape(config.version),
        framerate=config.framerate,
        resolution=config.resolution,
        pattern=html.escape(config.pattern),
        max_duration=config.max_duration // 60,
        max_filesize=config.max_filesize,
        cookies=html.escape(config.cookies),
        user_agent=html.escape(config.user_agent),
        channels=cards,
        usernames=usernames,
    )


def _format_event(event: str, data: str) -> bytes:
    lines = [f"event: {event}\n"]
    lines.extend(f"data: {line}\n" for line in data.split("\n"))
    lines.append("\n")
    return "".join(lines).encode("utf-8")


class _DvrServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, address: tuple[str, int], manager: Manager, config: Config) -> None:
        self.manager = manager
        self.config = config
        super().__init__(address, _RequestHandler)


class _RequestHandler(BaseHTTPRequestHandler):
    server: _DvrServer

    def log_message(self, format: str, *args: object) -> None:
        logger.info("%s - %s", self.address_string(), format % args)

    def _send_body(self, status: int, content_type: str, body: str) -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.end_headers()
        self.wfile.write(payload)

    def _send_status(self, status: HTTPStatus) -> None:
        self._send_body(status, "text/plain; charset=utf-8", f"{status.value} {status.phrase}")

    def _redirect_home(self) -> None:
        self.send_response(HTTPStatus.FOUND)
        self.send_header("Location", "/")
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _authorized(self) -> bool:
        config = self.server.config
        if not (config.admin_username and config.admin_password):
            return True
        header = self.headers.get("Authorization")
        if check_basic_auth(header, config.admin_username, config.admin_password):
            return True
        self.send_response(HTTPStatus.UNAUTHORIZED)
        self.send_header("WWW-Authenticate", AUTH_REALM)
        self.send_header("Content-Length", "0")
        self.end_headers()
        return False

    def _read_body(self) -> str:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        return self.rfile.read(length).decode("utf-8", errors="replace") if length > 0 else ""

    def do_GET(self) -> None:
        if not self._authorized():
            return
        path = urlsplit(self.path).path
        if path == "/":
            page = _render_index(self.server.config, self.server.manager.channel_info())
            self._send_body(HTTPStatus.OK, "text/html; charset=utf-8", page)
        elif path == "/updates":
            self._stream_updates()
        else:
            self._send_status(HTTPStatus.NOT_FOUND)

    def do_POST(self) -> None:
        if not self._authorized():
            return
        path = urlsplit(self.path).path
        body = self._read_body()
        manager = self.server.manager

        if path == "/update_config":
            form = parse_qs(body, keep_blank_values=True)
            self.server.config.cookies = _form_value(form, "cookies")
            self.server.config.user_agent = _form_value(form, "user_agent")
            self._redirect_home()
            return

        if path == "/create_channel":
            try:
                configs = parse_create_channel_form(body)
            except ValueError as exc:
                logger.warning("create channel: %s", exc)
                self._send_status(HTTPStatus.BAD_REQUEST)
                return
            for conf in configs:
                try:
                    manager.create_channel(conf, True)
                except (DvrError, OSError) as exc:
                    logger.warning("create channel: %s", exc)
            self._redirect_home()
            return

        match = _CONTROL_RE.fullmatch(path)
        if match is None:
            self._send_status(HTTPStatus.NOT_FOUND)
            return
        action = {
            "stop": manager.stop_channel,
            "pause": manager.pause_channel,
            "resume": manager.resume_channel,
        }[match.group(1)]
        try:
            action(unquote(match.group(2)))
        except (DvrError, OSError) as exc:
            logger.warning("%s channel: %s", match.group(1), exc)
        self._redirect_home()

    def _stream_updates(self) -> None:
        broker = self.server.manager.broker
        subscriber = broker.subscribe()
        try:
            self.send_response(HTTPStatus.OK)
            self.send_header("Content-Type", "text/event-stream")
            self.send_header("Cache-Control", "no-cache")
            self.end_headers()
            self.wfile.flush()
            while True:
                try:
                    event, data = subscriber.get(timeout=KEEPALIVE_INTERVAL)
                except queue.Empty:
                    self.wfile.write(b": keepalive\n\n")
                else:
                    self.wfile.write(_format_event(event, data))
                self.wfile.flush()
        except (BrokenPipeError, ConnectionResetError, ConnectionAbortedError):
            pass
        finally:
            broker.unsubscribe(subscriber)


def create_server(
    manager: Manager, config: Config, host: str = "", port: int = 8080
) -> ThreadingHTTPServer:
    """Create (but do not start) the web server bound to ``host:port``."""
    return _DvrServer((host, port), manager, config)