"""Command-line entry point: record one channel or serve the web interface."""

from __future__ import annotations

import argparse
import logging
import sys
import threading

from .entity import DEFAULT_DOMAIN, DEFAULT_PATTERN, ChannelConfig, Config
from .errors import DvrError
from .manager import Manager
from .web import create_server

VERSION = "2.0.2"
PROG = "chaturbate-dvr"


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser with every option and its default."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Record your favorite Chaturbate streams automatically.",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s version {VERSION}")
    parser.add_argument("-u", "--username", default="", help="The username of the channel to record")
    parser.add_argument(
        "--admin-username", default="", help="Username for web authentication (optional)"
    )
    parser.add_argument(
        "--admin-password", default="", help="Password for web authentication (optional)"
    )
    parser.add_argument("--framerate", type=int, default=30, help="Desired framerate (FPS)")
    parser.add_argument(
        "--resolution", type=int, default=1080, help="Desired resolution (e.g., 1080 for 1080p)"
    )
    parser.add_argument(
        "--pattern", default=DEFAULT_PATTERN, help="Template for naming recorded videos"
    )
    parser.add_argument(
        "--max-duration",
        type=int,
        default=0,
        help="Split video into segments every N minutes ('0' to disable)",
    )
    parser.add_argument(
        "--max-filesize",
        type=int,
        default=0,
        help="Split video into segments every N MB ('0' to disable)",
    )
    parser.add_argument("-p", "--port", default="8080", help="Port for the web interface and API")
    parser.add_argument(
        "--interval", type=int, default=3, help="Check if the channel is online every N minutes"
    )
    parser.add_argument(
        "--cookies",
        default="",
        help="Cookies to use in the request (format: key=value; key2=value2)",
    )
    parser.add_argument("--user-agent", default="", help="Custom User-Agent for the request")
    parser.add_argument("--domain", default=DEFAULT_DOMAIN, help="Chaturbate domain to use")
    return parser


def _serve(manager: Manager, config: Config, port_text: str) -> int:
    try:
        port = int(port_text)
    except ValueError:
        print(f"error: invalid port: {port_text!r}", file=sys.stderr)
        return 1
    print(f"👋 Visit http://localhost:{port_text} to use the Web UI\n\n")
    try:
        manager.load_config()
    except (OSError, ValueError) as exc:
        print(f"error: load config: {exc}", file=sys.stderr)
        return 1
    try:
        server = create_server(manager, config, "", port)
    except (OSError, OverflowError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the recorder; returns the process exit code."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)5s %(message)s")
    print(f"{PROG} {VERSION}\n")

    config = Config.from_args(args, VERSION)
    manager = Manager(config)

    if not config.username:
        return _serve(manager, config, args.port)

    try:
        manager.create_channel(
            ChannelConfig(
                is_paused=False,
                username=args.username,
                framerate=args.framerate,
                resolution=args.resolution,
                pattern=args.pattern,
                max_duration=args.max_duration,
                max_filesize=args.max_filesize,
            ),
            False,
        )
    except (DvrError, OSError) as exc:
        print(f"error: create channel: {exc}", file=sys.stderr)
        return 1

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())