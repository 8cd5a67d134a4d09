"""Tests for the in-memory and TCP channels"""

import asyncio

import pytest

from filestream.channel import ChannelServer, MemoryChannel, connect_channel, frame_size
from filestream.channel.stream import FRAME_HEADER, KIND_BINARY, KIND_TEXT, encode_frame
from filestream.errors import ChannelClosed


class TestMemoryChannel:
    """Test linked in-process endpoints"""

    @pytest.mark.asyncio
    async def test_frames_arrive_in_order(self):
        a, b = MemoryChannel.pair()
        a.send('{"type":"complete"}')
        a.send(b"\x00\x01")
        a.send("text")

        assert await b.receive() == '{"type":"complete"}'
        assert await b.receive() == b"\x00\x01"
        assert await b.receive() == "text"

    @pytest.mark.asyncio
    async def test_buffered_amount_until_flushed(self):
        """Frames count as buffered until handed to the peer"""
        a, b = MemoryChannel.pair(auto_flush=False)
        a.send(b"x" * 100)
        a.send("héllo")
        assert a.buffered_amount == 100 + frame_size("héllo")

        assert a.flush(max_bytes=1) == 100
        assert a.buffered_amount == frame_size("héllo")
        a.flush()
        assert a.buffered_amount == 0
        assert await b.receive() == b"x" * 100

    @pytest.mark.asyncio
    async def test_auto_flush_drains_on_next_iteration(self):
        a, b = MemoryChannel.pair()
        a.send(b"x" * 10)
        assert a.buffered_amount == 10
        await asyncio.sleep(0)
        assert a.buffered_amount == 0

    @pytest.mark.asyncio
    async def test_low_watermark_fires_on_drain(self):
        """Waiting on the low-watermark returns once the buffer drains"""
        a, b = MemoryChannel.pair(auto_flush=False)
        a.send(b"x" * 1000)
        a.buffered_amount_low_threshold = 100

        waiter = asyncio.create_task(a.wait_buffered_amount_low())
        await asyncio.sleep(0)
        assert not waiter.done()

        a.flush()
        await asyncio.wait_for(waiter, timeout=1.0)
        assert a.buffered_amount == 0

    @pytest.mark.asyncio
    async def test_wait_returns_immediately_when_low(self):
        a, _ = MemoryChannel.pair(auto_flush=False)
        a.buffered_amount_low_threshold = 10
        await asyncio.wait_for(a.wait_buffered_amount_low(), timeout=1.0)

    @pytest.mark.asyncio
    async def test_close(self):
        """Close delivers queued frames, then both sides see the end"""
        a, b = MemoryChannel.pair(auto_flush=False)
        a.send(b"last")
        await a.close()

        assert not a.is_open
        assert not b.is_open
        assert await b.receive() == b"last"
        assert await b.receive() is None
        assert await b.receive() is None
        with pytest.raises(ChannelClosed):
            a.send(b"more")


class TestFraming:
    """Test length-prefixed stream framing"""

    def test_text_frame(self):
        encoded = encode_frame("hi")
        length, kind = FRAME_HEADER.unpack(encoded[:FRAME_HEADER.size])
        assert (length, kind) == (2, KIND_TEXT)
        assert encoded[FRAME_HEADER.size:] == b"hi"

    def test_binary_frame(self):
        encoded = encode_frame(b"\x00" * 5)
        length, kind = FRAME_HEADER.unpack(encoded[:FRAME_HEADER.size])
        assert (length, kind) == (5, KIND_BINARY)


class TestStreamChannel:
    """Test the TCP channel over loopback"""

    @pytest.mark.asyncio
    async def test_frames_over_tcp(self):
        received = []
        got_all = asyncio.Event()

        async def handler(channel):
            while True:
                frame = await channel.receive()
                if frame is None:
                    break
                received.append(frame)
            got_all.set()

        server = ChannelServer(handler, host='127.0.0.1', port=0)
        await server.start()
        try:
            host, port = server.address
            channel = await connect_channel(host, port, timeout=5.0)
            assert channel is not None
            assert channel.is_open

            channel.send('{"type":"complete"}')
            channel.send(b"\x01\x02\x03")
            channel.send(b"")
            await channel.close()
            assert not channel.is_open

            await asyncio.wait_for(got_all.wait(), timeout=5.0)
        finally:
            await server.stop()

        assert received == ['{"type":"complete"}', b"\x01\x02\x03", b""]

    @pytest.mark.asyncio
    async def test_connect_failure_returns_none(self):
        server = ChannelServer(lambda channel: asyncio.sleep(0), host='127.0.0.1', port=0)
        await server.start()
        host, port = server.address
        await server.stop()

        assert await connect_channel(host, port, timeout=2.0) is None
