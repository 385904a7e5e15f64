"""Filename patterns in the ``{{.Field}}`` / ``{{if .Field}}...{{end}}`` template syntax."""

from __future__ import annotations

import re
import time
from dataclasses import dataclass, field
from typing import Union

_ACTION_RE = re.compile(r"\{\{(-\s)?\s*(.*?)\s*(\s-)?\}\}", re.DOTALL)
_FIELD_RE = re.compile(r"\.([A-Za-z_][A-Za-z0-9_]*)")
_IF_RE = re.compile(r"if\s+(.+)", re.DOTALL)

_FIELDS = {
    "Username": "username",
    "Year": "year",
    "Month": "month",
    "Day": "day",
    "Hour": "hour",
    "Minute": "minute",
    "Second": "second",
    "Sequence": "sequence",
}

_HTML_ESCAPES = {
    "\0": "\ufffd",
    '"': "&#34;",
    "&": "&amp;",
    "'": "&#39;",
    "+": "&#43;",
    "<": "&lt;",
    ">": "&gt;",
}


class PatternError(ValueError):
    """Raised when a filename pattern cannot be parsed or rendered."""


@dataclass
class Pattern:
    """Values available to a filename pattern."""

    username: str = ""
    year: str = ""
    month: str = ""
    day: str = ""
    hour: str = ""
    minute: str = ""
    second: str = ""
    sequence: int = 0

    @classmethod
    def from_timestamp(cls, username: str, timestamp: float, sequence: int) -> "Pattern":
        """Build pattern values from a Unix timestamp in local time."""
        t = time.localtime(timestamp)
        return cls(
            username=username,
            year=f"{t.tm_year:04d}",
            month=f"{t.tm_mon:02d}",
            day=f"{t.tm_mday:02d}",
            hour=f"{t.tm_hour:02d}",
            minute=f"{t.tm_min:02d}",
            second=f"{t.tm_sec:02d}",
            sequence=sequence,
        )


@dataclass
class _Field:
    name: str


@dataclass
class _If:
    name: str
    body: list["_Node"] = field(default_factory=list)
    orelse: list["_Node"] = field(default_factory=list)


_Node = Union[str, _Field, _If]


@dataclass
class _Frame:
    node: _If
    in_else: bool = False

    @property
    def target(self) -> list[_Node]:
        return self.node.orelse if self.in_else else self.node.body


def _field_name(arg: str) -> str:
    match = _FIELD_RE.fullmatch(arg.strip())
    if match is None:
        raise PatternError(f"filename pattern error: unsupported expression {arg!r}")
    return match.group(1)


def _parse(template: str) -> list[_Node]:
    root: list[_Node] = []
    frames: list[_Frame] = []
    pos = 0
    trim_next = False

    def current() -> list[_Node]:
        return frames[-1].target if frames else root

    while True:
        start = template.find("{{", pos)
        text = template[pos:] if start == -1 else template[pos:start]
        if trim_next:
            text = text.lstrip()
        if start == -1:
            if text:
                current().append(text)
            break
        match = _ACTION_RE.match(template, start)
        if match is None:
            raise PatternError("filename pattern error: unclosed action")
        if match.group(1):
            text = text.rstrip()
        if text:
            current().append(text)
        trim_next = bool(match.group(3))
        pos = match.end()

        action = match.group(2).strip()
        if action.startswith("/*") and action.endswith("*/"):
            continue
        if action == "end":
            if not frames:
                raise PatternError("filename pattern error: unexpected {{end}}")
            frames.pop()
        elif action == "else":
            if not frames or frames[-1].in_else:
                raise PatternError("filename pattern error: unexpected {{else}}")
            frames[-1].in_else = True
        elif (if_match := _IF_RE.fullmatch(action)) is not None:
            node = _If(_field_name(if_match.group(1)))
            current().append(node)
            frames.append(_Frame(node))
        else:
            current().append(_Field(_field_name(action)))

    if frames:
        raise PatternError("filename pattern error: unexpected EOF, missing {{end}}")
    return root


def _lookup(pattern: Pattern, name: str) -> str | int:
    attr = _FIELDS.get(name)
    if attr is None:
        raise PatternError(f"template execution error: can't evaluate field {name}")
    return getattr(pattern, attr)


def _escape(value: str) -> str:
    return "".join(_HTML_ESCAPES.get(ch, ch) for ch in value)


def _render(nodes: list[_Node], pattern: Pattern) -> str:
    parts: list[str] = []
    for node in nodes:
        if isinstance(node, str):
            parts.append(node)
        elif isinstance(node, _Field):
            parts.append(_escape(str(_lookup(pattern, node.name))))
        else:
            branch = node.body if _lookup(pattern, node.name) else node.orelse
            parts.append(_render(branch, pattern))
    return "".join(parts)


def render_pattern(template: str, pattern: Pattern) -> str:
    """Render ``template`` with the values of ``pattern``; values are HTML-escaped."""
    return _render(_parse(template), pattern)