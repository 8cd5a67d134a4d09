"""Tests for the backpressure governor"""

import asyncio

import pytest

from filestream.channel import MemoryChannel
from filestream.errors import ChannelClosed, DrainTimeout
from filestream.transfer import BUFFER_THRESHOLD, BackpressureGovernor


class PollingChannel(MemoryChannel):
    """Memory channel without a low-watermark notification"""
    supports_low_watermark = False


class TestShouldDrain:
    """Test the threshold check"""

    def test_default_threshold(self):
        assert BUFFER_THRESHOLD == 1024 * 1024
        assert BackpressureGovernor().threshold == BUFFER_THRESHOLD

    def test_strictly_greater(self):
        """Waits only when the buffer is above the threshold"""
        governor = BackpressureGovernor(threshold=1000)
        assert not governor.should_drain(999)
        assert not governor.should_drain(1000)
        assert governor.should_drain(1001)
        assert governor.should_drain(10, threshold=5)


class TestRegulate:
    """Test suspending the sender"""

    @pytest.mark.asyncio
    async def test_no_wait_under_threshold(self):
        a, _ = MemoryChannel.pair(auto_flush=False)
        a.send(b"x" * 500)
        governor = BackpressureGovernor(threshold=1000)

        assert await governor.regulate(a) is False
        assert governor.drain_waits == 0

    @pytest.mark.asyncio
    async def test_waits_for_low_watermark(self):
        """Resumes once the buffer drains to the threshold"""
        a, _ = MemoryChannel.pair(auto_flush=False)
        a.send(b"x" * 600)
        a.send(b"y" * 600)
        governor = BackpressureGovernor(threshold=1000)

        task = asyncio.create_task(governor.regulate(a))
        await asyncio.sleep(0)
        assert not task.done()
        assert a.buffered_amount_low_threshold == 1000

        a.flush(max_bytes=1)
        assert await asyncio.wait_for(task, timeout=1.0) is True
        assert a.buffered_amount == 600
        assert governor.drain_waits == 1

    @pytest.mark.asyncio
    async def test_polls_without_notification(self):
        """Falls back to polling when the channel cannot notify"""
        a = PollingChannel('poll', auto_flush=False)
        b = PollingChannel('peer', auto_flush=False)
        a.peer, b.peer = b, a
        a.send(b"x" * 2000)
        governor = BackpressureGovernor(threshold=1000, poll_interval=0.005)

        asyncio.get_running_loop().call_later(0.02, a.flush)
        assert await asyncio.wait_for(governor.regulate(a), timeout=1.0) is True
        assert a.buffered_amount == 0

    @pytest.mark.asyncio
    async def test_channel_closed_while_waiting(self):
        a, _ = MemoryChannel.pair(auto_flush=False)
        a.send(b"x" * 2000)
        governor = BackpressureGovernor(threshold=1000)

        task = asyncio.create_task(governor.regulate(a))
        await asyncio.sleep(0)
        await a.close()

        with pytest.raises(ChannelClosed):
            await asyncio.wait_for(task, timeout=1.0)

    @pytest.mark.asyncio
    async def test_drain_timeout(self):
        """Buffer that never drains raises DrainTimeout"""
        a, _ = MemoryChannel.pair(auto_flush=False)
        a.send(b"x" * 2000)
        governor = BackpressureGovernor(threshold=1000, timeout=0.05)

        with pytest.raises(DrainTimeout):
            await governor.regulate(a)
