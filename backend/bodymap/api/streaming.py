"""Server-Sent Events for job channels.

A job generator runs in a worker thread; its messages are handed to the event
loop through an ``asyncio.Queue`` and flushed as SSE events as they arrive.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Callable, Iterator

from fastapi.responses import StreamingResponse

from bodymap.engine.progress import JobMessage

logger = logging.getLogger(__name__)

_SENTINEL = object()  # marks end of queue

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def sse_event(event: str, payload) -> str:
    return f"event: {event}\ndata: {json.dumps(payload)}\n\n"


async def stream_job(start_job: Callable[[], Iterator[JobMessage]]) -> AsyncGenerator[str, None]:
    """Drive a job in a thread, yielding one SSE event per job message.

    A failing job ends the stream with an ``error`` event; no result event is
    sent in that case.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _run_job() -> None:
        try:
            for message in start_job():
                loop.call_soon_threadsafe(queue.put_nowait, message)
        except Exception as e:
            logger.exception("Job failed")
            loop.call_soon_threadsafe(queue.put_nowait, e)
        loop.call_soon_threadsafe(queue.put_nowait, _SENTINEL)

    loop.run_in_executor(None, _run_job)

    while True:
        item = await queue.get()
        if item is _SENTINEL:
            break
        if isinstance(item, Exception):
            yield sse_event("error", {"type": "error", "message": str(item)})
            return
        yield sse_event(item.event, item.params)

    yield sse_event("done", {"type": "done"})


def job_stream_response(start_job: Callable[[], Iterator[JobMessage]]) -> StreamingResponse:
    return StreamingResponse(
        stream_job(start_job),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
