"""
PromptSketch Backend - Streaming Response Helper
==================================================

What:  Turns a StreamRelay into an HTTP response that writes each fragment
       to the client as soon as it is relayed.
How:   Starlette StreamingResponse over the relay's async iterator. On client
       disconnect Starlette cancels the body task; the relay's own cleanup
       (and the background close hook, for a body that never started) stops
       the upstream read and releases the connection.
"""

from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from promptsketch.services.relay import StreamRelay

STREAM_MEDIA_TYPE = "text/plain; charset=utf-8"


def relay_response(relay: StreamRelay) -> StreamingResponse:
    """Incremental text/plain response carrying the relay's fragments in order."""
    return StreamingResponse(
        relay.__aiter__(),
        media_type=STREAM_MEDIA_TYPE,
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
        background=BackgroundTask(relay.aclose),
    )
