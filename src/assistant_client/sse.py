"""Minimal Server-Sent Events reader for the agent's ``message/stream`` responses."""

from __future__ import annotations

import json
from typing import Any, AsyncIterable, AsyncIterator, List, Optional

from assistant_client import a2a_client_logger as logger


def _decode_frame(data_lines: List[str]) -> Optional[Any]:
    raw = "\n".join(data_lines)
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.warning("[Streaming Event] Error parsing event: %s (data=%r)", exc, raw[:200])
        return None


async def iter_sse_events(lines: AsyncIterable[str]) -> AsyncIterator[Any]:
    """Yield the JSON payload of every blank-line delimited SSE frame.

    Multiple ``data:`` lines of one frame are joined with newlines, comment
    lines (keep-alives) and other fields are ignored, and frames that are not
    valid JSON are logged and skipped.
    """
    data_lines: List[str] = []
    async for raw_line in lines:
        line = raw_line.rstrip("\r\n")
        if not line:
            if data_lines:
                payload = _decode_frame(data_lines)
                data_lines = []
                if payload is not None:
                    yield payload
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field != "data":
            continue
        if value.startswith(" "):
            value = value[1:]
        data_lines.append(value)

    # Stream ended without the trailing blank line
    if data_lines:
        payload = _decode_frame(data_lines)
        if payload is not None:
            yield payload
