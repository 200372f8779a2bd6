"""
PromptSketch Backend - Streaming Relay
========================================

What:  Forwards text fragments from an upstream stream to the client, in
       order, as they arrive.
How:   Explicit producer/consumer channel. A producer task pulls fragments
       from the upstream source and puts them on a bounded asyncio.Queue;
       the consumer (the StreamingResponse body) iterates the queue.

    upstream ──▶ [producer task] ──▶ Queue(maxsize=N) ──▶ [consumer] ──▶ client

Backpressure:
    The producer blocks on `put` while the queue is full, so it never reads
    more than N fragments ahead of what the client has accepted.

Cancellation:
    Closing the consumer side (client disconnect cancels the response body,
    or `aclose()` is called) cancels the producer task and runs the source's
    close hook, which releases the upstream connection without draining it.
    The source ending closes the channel with a sentinel; the consumer stops
    after the last fragment with nothing trailing.

A relay is single-use. Iterating it a second time raises RuntimeError.
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Optional

from promptsketch.exceptions import PromptSketchError

logger = logging.getLogger(__name__)

# Marks the end of the stream on the queue.
_CLOSED = object()


class StreamRelay:
    """
    Bounded channel between an async fragment source and one consumer.

    Args:
        source:      Async iterator of text fragments from the provider.
        on_close:    Awaitable hook releasing the upstream connection
                     (e.g. httpx.Response.aclose). Always called exactly once.
        buffer_size: Queue capacity (>= 1).
        name:        Label for log lines.
    """

    def __init__(
        self,
        source: AsyncIterator[str],
        on_close: Optional[Callable[[], Awaitable[None]]] = None,
        buffer_size: int = 1,
        name: str = "relay",
    ):
        self._source = source
        self._on_close = on_close
        self._queue: "asyncio.Queue[object]" = asyncio.Queue(maxsize=max(1, buffer_size))
        self._producer: Optional["asyncio.Task[None]"] = None
        self._started = False
        self._closing: Optional["asyncio.Future[None]"] = None
        self.name = name
        self.fragments_received = 0
        self.fragments_sent = 0

    @property
    def closed(self) -> bool:
        return self._closing is not None

    async def _produce(self) -> None:
        """Pump fragments from the source onto the queue, then the sentinel."""
        try:
            async for fragment in self._source:
                if not fragment:
                    continue
                self.fragments_received += 1
                await self._queue.put(fragment)
        except PromptSketchError as e:
            # Headers are already sent; the stream can only be ended early.
            logger.error("[%s] upstream stream failed: %s | %s", self.name, e.message, e.context)
        except Exception as e:
            logger.error("[%s] upstream stream failed: %s", self.name, str(e), exc_info=True)
        await self._queue.put(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[str]:
        if self._started:
            raise RuntimeError("StreamRelay can only be consumed once")
        self._started = True
        self._producer = asyncio.create_task(self._produce())
        try:
            while True:
                item = await self._queue.get()
                if item is _CLOSED:
                    break
                self.fragments_sent += 1
                yield item  # type: ignore[misc]
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        """
        Stop the producer and release the upstream connection.

        Safe to call more than once and from either side. After it returns
        the producer has finished and no further fragments are read.

        The shutdown runs as its own task: a caller cancelled half-way (the
        body task on client disconnect) leaves it running, and every later
        caller waits for the same shutdown to finish.
        """
        if self._closing is None:
            self._closing = asyncio.ensure_future(self._shutdown())
        await asyncio.shield(self._closing)

    async def _shutdown(self) -> None:
        producer = self._producer
        try:
            if producer is not None and not producer.done():
                producer.cancel()
                await asyncio.wait({producer})
        finally:
            close_source = getattr(self._source, "aclose", None)
            try:
                if close_source is not None:
                    await close_source()
            finally:
                if self._on_close is not None:
                    await self._on_close()

        if self.fragments_sent < self.fragments_received:
            logger.info(
                "[%s] closed early after %d fragments",
                self.name,
                self.fragments_sent,
            )
        else:
            logger.debug("[%s] finished after %d fragments", self.name, self.fragments_sent)
