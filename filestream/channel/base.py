"""
Channel Interface

The transfer core needs very little from a transport:

- ``send(frame)``: queue a text or binary frame without blocking
- ``is_open``: readiness predicate
- ``buffered_amount``: bytes queued but not yet handed to the network
- a low-watermark notification (``wait_buffered_amount_low``) that fires
  when ``buffered_amount`` falls to ``buffered_amount_low_threshold``
- ``receive()``: the next inbound frame, in send order, or None once closed

This mirrors a WebRTC RTCDataChannel (bufferedAmount,
bufferedAmountLowThreshold, onbufferedamountlow).
"""

import asyncio
from typing import Optional, Union

Frame = Union[str, bytes]


def frame_size(frame: Frame) -> int:
    """Bytes a frame occupies on the wire."""
    if isinstance(frame, str):
        return len(frame.encode('utf-8'))
    return len(frame)


class Channel:
    """
    Base class for message channels.

    Subclasses call ``_update_buffered_amount`` whenever their outbound
    queue shrinks; the base class turns that into an edge-triggered
    low-watermark event.
    """

    supports_low_watermark = True

    def __init__(self):
        self.buffered_amount_low_threshold = 0
        self._low_event = asyncio.Event()
        self._low_event.set()

    @property
    def is_open(self) -> bool:
        raise NotImplementedError

    @property
    def buffered_amount(self) -> int:
        raise NotImplementedError

    def send(self, frame: Frame) -> None:
        raise NotImplementedError

    async def receive(self) -> Optional[Frame]:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    def _update_buffered_amount(self, previous: int, current: int):
        """Fire the low-watermark event on a downward crossing."""
        threshold = self.buffered_amount_low_threshold
        if current <= threshold:
            if previous > threshold:
                self._low_event.set()
        else:
            self._low_event.clear()

    def _wake_waiters(self):
        """Release anyone waiting on the low-watermark (used on close)."""
        self._low_event.set()

    async def wait_buffered_amount_low(self) -> None:
        """Wait until buffered_amount drops to the low threshold."""
        if self.buffered_amount <= self.buffered_amount_low_threshold:
            return
        self._low_event.clear()
        await self._low_event.wait()
