"""
Backpressure Governor

Design Decision: How to Wait
============================

Options Considered:
1. Poll ``buffered_amount`` on a timer
   - Works on any channel, wastes wakeups, adds latency
2. Low-watermark notification
   - One wakeup exactly when the buffer drains
   - Needs channel support (RTCDataChannel.onbufferedamountlow,
     asyncio transport write-buffer limits)

Decision: Notification when the channel supports it, polling otherwise.

The check runs after every chunk, not once per transfer, because the
buffer fills again as soon as the sender resumes.
"""

import asyncio
import logging
from typing import Optional

from ..channel.base import Channel
from ..errors import ChannelClosed, DrainTimeout

logger = logging.getLogger(__name__)

# Wait if the outbound buffer holds more than this
BUFFER_THRESHOLD = 1024 * 1024  # 1MB


class BackpressureGovernor:
    """Suspends the sender while the channel's outbound buffer is too full."""

    def __init__(self, threshold: int = BUFFER_THRESHOLD,
                 poll_interval: float = 0.01,
                 timeout: Optional[float] = None):
        self.threshold = threshold
        self.poll_interval = poll_interval
        self.timeout = timeout

        # Statistics
        self.drain_waits = 0

    def should_drain(self, buffered_amount: int, threshold: Optional[int] = None) -> bool:
        if threshold is None:
            threshold = self.threshold
        return buffered_amount > threshold

    async def await_drain(self, channel: Channel, threshold: Optional[int] = None):
        """
        Wait until ``channel.buffered_amount <= threshold``.

        Raises:
            ChannelClosed: channel closed while waiting
            DrainTimeout: buffer did not drain within ``timeout``
        """
        if threshold is None:
            threshold = self.threshold

        try:
            if self.timeout is None:
                await self._wait(channel, threshold)
            else:
                await asyncio.wait_for(self._wait(channel, threshold), timeout=self.timeout)
        except asyncio.TimeoutError:
            raise DrainTimeout(
                f"Buffer still at {channel.buffered_amount:,} bytes after {self.timeout}s"
            ) from None

    async def _wait(self, channel: Channel, threshold: int):
        while channel.buffered_amount > threshold:
            if not channel.is_open:
                raise ChannelClosed("Channel closed while waiting for buffer to drain")

            if channel.supports_low_watermark:
                channel.buffered_amount_low_threshold = threshold
                await channel.wait_buffered_amount_low()
            else:
                await asyncio.sleep(self.poll_interval)

        if not channel.is_open:
            raise ChannelClosed("Channel closed while waiting for buffer to drain")

    async def regulate(self, channel: Channel) -> bool:
        """
        Wait for the buffer to drain if it is over the threshold.

        Returns:
            True if the caller was suspended
        """
        buffered = channel.buffered_amount
        if not self.should_drain(buffered):
            return False

        self.drain_waits += 1
        logger.info(f"Buffer full ({buffered:,} bytes), waiting to drain...")
        await self.await_drain(channel)
        return True
