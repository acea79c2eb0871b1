"""Reader for the live layout SSE stream (``frame`` events, then one ``done``)."""

from __future__ import annotations

import json
from typing import Any, Iterable, Iterator


def _field(line: str) -> tuple[str, str]:
    name, _, value = line.partition(":")
    # One space after the colon belongs to the framing, not the value.
    return name, value[1:] if value.startswith(" ") else value


def parse_sse_stream(response) -> Iterator[tuple[str, str]]:
    """Yield (event_type, data) pairs from a requests Response opened with stream=True."""
    yield from parse_sse_lines(response.iter_lines(decode_unicode=True))


def parse_sse_lines(lines: Iterable[str | None]) -> Iterator[tuple[str, str]]:
    event_type = "message"
    data_buf: list[str] = []

    for line in lines:
        if line is None or line.startswith(":"):
            continue
        if line == "":
            if data_buf:
                yield event_type, "\n".join(data_buf)
            event_type, data_buf = "message", []
            continue
        name, value = _field(line)
        if name == "event":
            event_type = value
        elif name == "data":
            data_buf.append(value)

    if data_buf:
        yield event_type, "\n".join(data_buf)


def layout_events(response) -> Iterator[tuple[str, dict[str, Any]]]:
    """Decoded layout events; stops after ``done``."""
    for event_type, data in parse_sse_stream(response):
        yield event_type, json.loads(data) if data else {}
        if event_type == "done":
            return
