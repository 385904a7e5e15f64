"""A small HLS (M3U8) playlist decoder for master and media playlists."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

_ATTRIBUTE_RE = re.compile(r'([A-Z0-9-]+)=("[^"]*"|[^,]*)')


class PlaylistDecodeError(ValueError):
    """Raised when a playlist cannot be decoded."""


@dataclass
class Variant:
    """A variant stream listed in a master playlist."""

    uri: str = ""
    bandwidth: int = 0
    average_bandwidth: int = 0
    resolution: str = ""
    codecs: str = ""
    name: str = ""
    frame_rate: float = 0.0
    iframe: bool = False


@dataclass
class MasterPlaylist:
    """A playlist that lists variant streams."""

    variants: list[Variant] = field(default_factory=list)
    version: int = 0


@dataclass
class MediaSegment:
    """One media segment of a media playlist."""

    uri: str = ""
    duration: float = 0.0
    title: str = ""
    sequence: int = 0


@dataclass
class MediaPlaylist:
    """A playlist of media segments."""

    segments: list[MediaSegment] = field(default_factory=list)
    target_duration: float = 0.0
    media_sequence: int = 0
    version: int = 0
    closed: bool = False


def _parse_attributes(text: str) -> dict[str, str]:
    attrs: dict[str, str] = {}
    for match in _ATTRIBUTE_RE.finditer(text):
        value = match.group(2)
        if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        attrs[match.group(1)] = value
    return attrs


def _to_int(value: str, what: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise PlaylistDecodeError(f"invalid {what}: {value!r}") from exc


def _to_float(value: str, what: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise PlaylistDecodeError(f"invalid {what}: {value!r}") from exc


def _variant_from_attributes(attrs: dict[str, str], iframe: bool) -> Variant:
    variant = Variant(iframe=iframe)
    if "BANDWIDTH" in attrs:
        variant.bandwidth = _to_int(attrs["BANDWIDTH"], "BANDWIDTH")
    if "AVERAGE-BANDWIDTH" in attrs:
        variant.average_bandwidth = _to_int(attrs["AVERAGE-BANDWIDTH"], "AVERAGE-BANDWIDTH")
    if "FRAME-RATE" in attrs:
        variant.frame_rate = _to_float(attrs["FRAME-RATE"], "FRAME-RATE")
    variant.resolution = attrs.get("RESOLUTION", "")
    variant.codecs = attrs.get("CODECS", "")
    variant.name = attrs.get("NAME", "")
    if iframe:
        variant.uri = attrs.get("URI", "")
    return variant


def decode(text: str) -> MasterPlaylist | MediaPlaylist:
    """Decode playlist text into a master or a media playlist."""
    lines = [line.strip() for line in text.splitlines()]
    lines = [line for line in lines if line]
    if not lines or not lines[0].startswith("#EXTM3U"):
        raise PlaylistDecodeError("#EXTM3U absent")

    master = MasterPlaylist()
    media = MediaPlaylist()
    is_master = False
    is_media = False
    pending_variant: Variant | None = None
    pending_segment: MediaSegment | None = None
    version = 0

    for line in lines[1:]:
        if line.startswith("#EXT-X-STREAM-INF:"):
            is_master = True
            pending_variant = _variant_from_attributes(
                _parse_attributes(line.partition(":")[2]), iframe=False
            )
        elif line.startswith("#EXT-X-I-FRAME-STREAM-INF:"):
            is_master = True
            master.variants.append(
                _variant_from_attributes(_parse_attributes(line.partition(":")[2]), iframe=True)
            )
        elif line.startswith("#EXTINF:"):
            is_media = True
            duration, _, title = line.partition(":")[2].partition(",")
            pending_segment = MediaSegment(
                duration=_to_float(duration.strip(), "EXTINF duration"), title=title.strip()
            )
        elif line.startswith("#EXT-X-TARGETDURATION:"):
            is_media = True
            media.target_duration = _to_float(line.partition(":")[2], "EXT-X-TARGETDURATION")
        elif line.startswith("#EXT-X-MEDIA-SEQUENCE:"):
            is_media = True
            media.media_sequence = _to_int(line.partition(":")[2], "EXT-X-MEDIA-SEQUENCE")
        elif line.startswith("#EXT-X-ENDLIST"):
            is_media = True
            media.closed = True
        elif line.startswith("#EXT-X-VERSION:"):
            version = _to_int(line.partition(":")[2], "EXT-X-VERSION")
        elif line.startswith("#"):
            continue
        elif pending_variant is not None:
            pending_variant.uri = line
            master.variants.append(pending_variant)
            pending_variant = None
        elif pending_segment is not None:
            pending_segment.uri = line
            pending_segment.sequence = media.media_sequence + len(media.segments)
            media.segments.append(pending_segment)
            pending_segment = None

    if is_master and is_media:
        raise PlaylistDecodeError("playlist mixes master and media tags")
    if is_master:
        master.version = version
        return master
    if is_media:
        media.version = version
        return media
    raise PlaylistDecodeError("can't detect playlist type")