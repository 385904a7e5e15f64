"""HTTP access with the headers and checks the stream site requires."""

from __future__ import annotations

import warnings

import requests

from .entity import Config
from .errors import AgeVerificationError, CloudflareBlockedError, PrivateStreamError

REQUEST_TIMEOUT = 10.0

_CLOUDFLARE_MARKER = b"<title>Just a moment...</title>"
_AGE_MARKER = b"Verify your age"


def parse_cookies(cookie_str: str) -> dict[str, str]:
    """Parse ``key=value; key2=value2`` into a mapping, skipping malformed pairs."""
    cookies: dict[str, str] = {}
    for pair in cookie_str.split(";"):
        key, sep, value = pair.strip().partition("=")
        if sep:
            cookies[key.strip()] = value.strip()
    return cookies


def build_headers(config: Config) -> dict[str, str]:
    """Return the request headers derived from the current configuration."""
    headers = {"X-Requested-With": "XMLHttpRequest"}
    if config.user_agent:
        headers["User-Agent"] = config.user_agent
    if config.cookies:
        cookies = parse_cookies(config.cookies)
        if cookies:
            headers["Cookie"] = "; ".join(f"{k}={v}" for k, v in cookies.items())
    return headers


class Req:
    """HTTP client that skips TLS verification and detects blocking pages."""

    def __init__(self, config: Config, session: requests.Session | None = None) -> None:
        self.config = config
        self.session = session if session is not None else requests.Session()

    def get(self, url: str) -> str:
        """GET ``url`` and return the body as text."""
        return self.get_bytes(url).decode("utf-8", errors="replace")

    def get_bytes(self, url: str) -> bytes:
        """GET ``url`` and return the raw body.

        Raises CloudflareBlockedError, AgeVerificationError or PrivateStreamError
        when the response shows the request was refused.
        """
        with warnings.catch_warnings():
            warnings.filterwarnings("ignore", message="Unverified HTTPS request")
            resp = self.session.get(
                url,
                headers=build_headers(self.config),
                timeout=REQUEST_TIMEOUT,
                verify=False,
            )
        body = resp.content
        if _CLOUDFLARE_MARKER in body:
            raise CloudflareBlockedError()
        if _AGE_MARKER in body:
            raise AgeVerificationError()
        if resp.status_code == 403:
            raise PrivateStreamError(f"forbidden: {PrivateStreamError.default_message}")
        return body