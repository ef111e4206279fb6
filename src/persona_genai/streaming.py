from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from fastapi.responses import StreamingResponse

from persona_genai.events import TERMINAL_EVENT_TYPES, RefinementEvent

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def encode_event(event: RefinementEvent) -> str:
    return f"data: {json.dumps(event.payload())}\n\n"


async def sse_lines(events: AsyncIterable[RefinementEvent]) -> AsyncIterator[str]:
    """Forward events in order, one SSE frame each."""
    sent = 0
    async for event in events:
        sent += 1
        if event.type in TERMINAL_EVENT_TYPES:
            logger.info("stream finished with %s after %s event(s)", event.type, sent)
        yield encode_event(event)


def event_stream_response(events: AsyncIterable[RefinementEvent]) -> StreamingResponse:
    return StreamingResponse(sse_lines(events), media_type="text/event-stream", headers=SSE_HEADERS)
