"""
NDJSON stream multiplexing.

Every request produces an append-only sequence of events, one JSON object per line.  ``step`` and
``text`` events may repeat freely; exactly one terminal event (``done``, ``error`` or
``pending_tool_calls``) closes the stream.  :func:`guard_terminal` enforces that rule around any
event source, so the orchestrator cannot emit a second terminal or end without one.
"""

import logging
from typing import (
    AsyncIterator,
    Dict,
)

from fastapi.responses import StreamingResponse

from hrpilot.core.schema import (
    DoneEvent,
    ErrorEvent,
    StreamEvent,
    is_terminal,
)

logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"

STREAM_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-cache, no-store",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: StreamEvent) -> str:
    """Serialise *event* as a single NDJSON line."""
    return event.model_dump_json() + "\n"


async def guard_terminal(
    events: AsyncIterator[StreamEvent], fallback_text: str = "Done."
) -> AsyncIterator[StreamEvent]:
    """
    Relay *events*, guaranteeing exactly one terminal event.

    - anything after the first terminal event is dropped;
    - an exception from the source becomes an ``error`` event;
    - a source that ends without a terminal event is closed with ``done(fallback_text)``.
    """
    finished = False
    try:
        async for event in events:
            if finished:
                logger.warning("Dropping %s event emitted after the terminal event", event.type)
                continue
            if is_terminal(event):
                finished = True
            yield event
    except Exception as exc:  # pylint: disable=broad-except
        if finished:
            logger.exception("Event source failed after its terminal event")
        else:
            logger.exception("Event source failed mid-stream")
            finished = True
            yield ErrorEvent(error=str(exc) or "Request failed")
    if not finished:
        yield DoneEvent(text=fallback_text)


async def _encode_stream(events: AsyncIterator[StreamEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield encode_event(event)


def ndjson_response(
    events: AsyncIterator[StreamEvent], fallback_text: str = "Done."
) -> StreamingResponse:
    """Wrap *events* in a streaming HTTP response."""
    return StreamingResponse(
        _encode_stream(guard_terminal(events, fallback_text)),
        media_type=NDJSON_MEDIA_TYPE,
        headers=STREAM_HEADERS,
    )
