"""
PromptSketch Backend - Streaming Relay Unit Tests
===================================================

What:  Tests for StreamRelay, the bounded channel between an upstream
       fragment source and the response body.
How:   Async generator sources stand in for the OpenAI event stream; an
       AsyncMock stands in for httpx.Response.aclose.

What we test:
    ✅ Fragments arrive in order with nothing trailing
    ✅ Producer never runs more than the buffer ahead of the consumer
    ✅ Closing the consumer stops the producer and releases the upstream
    ✅ A source failure ends the stream after the fragments already sent
    ✅ Single-use
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from promptsketch.exceptions import UpstreamShapeError
from promptsketch.services.relay import StreamRelay


async def fragments(*items):
    for item in items:
        yield item


class CountingSource:
    """Endless fragment source that records how far it was read and whether it was closed."""

    def __init__(self):
        self.pulled = 0
        self.closed = False

    async def generate(self):
        try:
            while True:
                self.pulled += 1
                yield f"chunk-{self.pulled} "
                await asyncio.sleep(0)
        finally:
            self.closed = True


class TestStreamRelay:

    @pytest.mark.asyncio
    async def test_relays_fragments_in_order(self):
        """Every fragment is delivered once, in upstream order, then the stream ends."""
        on_close = AsyncMock()
        relay = StreamRelay(fragments("Hel", "lo", ", ", "world"), on_close=on_close)

        received = [fragment async for fragment in relay]

        assert received == ["Hel", "lo", ", ", "world"]
        assert "".join(received) == "Hello, world"
        assert relay.closed
        assert relay.fragments_sent == 4
        on_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_fragments_are_skipped(self):
        relay = StreamRelay(fragments("", "a", "", "b", ""))
        assert [fragment async for fragment in relay] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_source(self):
        on_close = AsyncMock()
        relay = StreamRelay(fragments(), on_close=on_close)
        assert [fragment async for fragment in relay] == []
        on_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_backpressure_bounds_read_ahead(self):
        """With a buffer of 1 a stalled consumer holds the producer at most two fragments ahead."""
        source = CountingSource()
        relay = StreamRelay(source.generate(), buffer_size=1)
        body = relay.__aiter__()

        first = await body.__anext__()
        await asyncio.sleep(0.05)

        assert first == "chunk-1 "
        assert source.pulled <= 3
        await body.aclose()

    @pytest.mark.asyncio
    async def test_consumer_close_stops_upstream(self):
        """Closing the response body cancels the producer and closes the source."""
        source = CountingSource()
        on_close = AsyncMock()
        relay = StreamRelay(source.generate(), on_close=on_close, buffer_size=2)
        body = relay.__aiter__()

        await body.__anext__()
        await body.__anext__()
        await body.aclose()

        pulled_at_close = source.pulled
        await asyncio.sleep(0.05)

        assert relay.closed
        assert source.closed
        assert source.pulled == pulled_at_close
        on_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cancelled_consumer_stops_upstream(self):
        """
        A client disconnect cancels the task writing the body; the response's
        background hook then closes the relay.
        """
        source = CountingSource()
        on_close = AsyncMock()
        relay = StreamRelay(source.generate(), on_close=on_close)
        first_fragment = asyncio.Event()

        async def consume():
            async for _ in relay:
                first_fragment.set()
                await asyncio.sleep(3600)

        task = asyncio.create_task(consume())
        await asyncio.wait_for(first_fragment.wait(), timeout=1)
        task.cancel()
        await asyncio.wait({task})
        assert source.pulled <= 3

        await relay.aclose()

        assert relay.closed
        assert source.closed
        on_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_close_before_iteration_releases_upstream(self):
        """A response that never started its body still closes the upstream."""
        on_close = AsyncMock()
        relay = StreamRelay(fragments("never", "read"), on_close=on_close)

        await relay.aclose()
        await relay.aclose()

        assert relay.closed
        on_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_source_failure_ends_stream(self):
        """Fragments sent before the failure are kept; the stream then ends cleanly."""

        async def failing():
            yield "partial "
            yield "answer"
            raise UpstreamShapeError("OpenAI", reason="stream error event")

        on_close = AsyncMock()
        relay = StreamRelay(failing(), on_close=on_close)

        assert [fragment async for fragment in relay] == ["partial ", "answer"]
        on_close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_single_use(self):
        relay = StreamRelay(fragments("once"))
        assert [fragment async for fragment in relay] == ["once"]

        with pytest.raises(RuntimeError, match="only be consumed once"):
            async for _ in relay:
                pass
