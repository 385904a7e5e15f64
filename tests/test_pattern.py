import datetime

import pytest

from streamdvr.entity import DEFAULT_PATTERN
from streamdvr.pattern import Pattern, PatternError, render_pattern


def _sample(sequence=0, username="alice"):
    return Pattern(
        username=username,
        year="2024",
        month="01",
        day="02",
        hour="03",
        minute="04",
        second="05",
        sequence=sequence,
    )


def test_default_pattern_without_sequence():
    assert render_pattern(DEFAULT_PATTERN, _sample()) == "videos/alice_2024-01-02_03-04-05"


def test_default_pattern_with_sequence():
    assert render_pattern(DEFAULT_PATTERN, _sample(sequence=2)) == "videos/alice_2024-01-02_03-04-05_2"


def test_values_are_html_escaped():
    assert render_pattern("{{.Username}}", _sample(username="a&b")) == "a&amp;b"


def test_plain_text_is_unchanged():
    assert render_pattern("static/name", _sample()) == "static/name"


def test_else_branch_taken_for_zero_sequence():
    tpl = "{{if .Sequence}}yes{{else}}no{{end}}"
    assert render_pattern(tpl, _sample(sequence=0)) == "no"
    assert render_pattern(tpl, _sample(sequence=1)) == "yes"


def test_trim_markers_remove_whitespace():
    assert render_pattern("a   {{- .Year -}}   b", _sample()) == "a2024b"


def test_comment_renders_nothing():
    assert render_pattern("x{{/* note */}}y", _sample()) == "xy"


@pytest.mark.parametrize(
    "template",
    ["{{.Username", "{{if .Sequence}}x", "x{{end}}", "{{else}}", "{{if .Year}}a{{else}}b{{else}}c{{end}}", "{{Username}}"],
)
def test_malformed_templates_raise(template):
    with pytest.raises(PatternError):
        render_pattern(template, _sample())


def test_unknown_field_raises():
    with pytest.raises(PatternError, match="Nope"):
        render_pattern("{{.Nope}}", _sample())


def test_from_timestamp_matches_local_time():
    ts = 1_700_000_000
    p = Pattern.from_timestamp("bob", ts, 3)
    dt = datetime.datetime.fromtimestamp(ts)
    assert p.username == "bob"
    assert p.sequence == 3
    assert int(p.year) == dt.year
    assert int(p.month) == dt.month
    assert int(p.day) == dt.day
    assert int(p.hour) == dt.hour
    assert int(p.minute) == dt.minute
    assert int(p.second) == dt.second
    assert all(len(v) == 2 for v in (p.month, p.day, p.hour, p.minute, p.second))
    assert len(p.year) == 4