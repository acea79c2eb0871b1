"""Unit tests for the UI's SSE reader."""

from __future__ import annotations

from unittest.mock import MagicMock

from ui.lib.sse import layout_events, parse_sse_lines


def test_parses_events_and_skips_comments():
    lines = [
        ": ping",
        "event: frame",
        'data: {"tick": 1}',
        "",
        "data:plain",
        "",
    ]
    assert list(parse_sse_lines(lines)) == [("frame", '{"tick": 1}'), ("message", "plain")]


def test_multiline_data_and_trailing_event():
    lines = ["event: note", "data: a", "data:  b", "id: 7"]
    assert list(parse_sse_lines(lines)) == [("note", "a\n b")]


def test_layout_events_decode_and_stop_at_done():
    response = MagicMock()
    response.iter_lines.return_value = iter([
        "event: frame", 'data: {"tick": 1, "alpha": 0.9}', "",
        "event: done", 'data: {"ticks": 1}', "",
        "event: frame", 'data: {"tick": 2}', "",
    ])
    assert list(layout_events(response)) == [
        ("frame", {"tick": 1, "alpha": 0.9}),
        ("done", {"ticks": 1}),
    ]
    response.iter_lines.assert_called_once_with(decode_unicode=True)
