"""Human-readable formatting helpers and segment name parsing."""

from __future__ import annotations

import re

_SEGMENT_RE = re.compile(r"_(\d+)\.ts\Z", re.ASCII)
_INT64_MAX = 2**63 - 1

_KB = 1024
_MB = _KB * 1024
_GB = _MB * 1024


def _trunc_divmod(a: int, b: int) -> tuple[int, int]:
    """Integer division and remainder that truncate toward zero."""
    q = abs(a) // b
    if a < 0:
        q = -q
    return q, a - q * b


def format_duration(duration: float) -> str:
    """Format a duration in seconds as h:mm:ss, or "" for zero."""
    if duration == 0:
        return ""
    total = int(duration)
    hours, rest = _trunc_divmod(total, 3600)
    minutes, _ = _trunc_divmod(rest, 60)
    _, seconds = _trunc_divmod(total, 60)
    return f"{hours}:{minutes:02d}:{seconds:02d}"


def format_filesize(filesize: int) -> str:
    """Format a byte count as bytes, KB, MB or GB, or "" for zero."""
    if filesize == 0:
        return ""
    if filesize >= _GB:
        return f"{filesize / _GB:.2f} GB"
    if filesize >= _MB:
        return f"{filesize / _MB:.2f} MB"
    if filesize >= _KB:
        return f"{filesize / _KB:.2f} KB"
    return f"{filesize} bytes"


def segment_seq(filename: str) -> int:
    """Return the sequence number of a segment named like ``..._123.ts``, or -1."""
    match = _SEGMENT_RE.search(filename)
    if match is None:
        return -1
    number = int(match.group(1))
    if number > _INT64_MAX:
        return -1
    return number