"""
In-Process Channel

Two linked endpoints inside one event loop. Frames sent on one side are
queued (and counted in ``buffered_amount``) until they are handed to the
other side, either on the next loop iteration (``auto_flush=True``) or
when the test calls ``flush()``.
"""

import asyncio
from collections import deque
from typing import Deque, Optional, Tuple

from .base import Channel, Frame, frame_size
from ..errors import ChannelClosed


class MemoryChannel(Channel):
    """One endpoint of an in-memory channel pair."""

    def __init__(self, label: str = 'memory', auto_flush: bool = True):
        super().__init__()
        self.label = label
        self.auto_flush = auto_flush
        self.peer: Optional['MemoryChannel'] = None
        self._open = True
        self._outbound: Deque[Frame] = deque()
        self._buffered = 0
        self._inbound: 'asyncio.Queue[Optional[Frame]]' = asyncio.Queue()

        # Statistics
        self.frames_sent = 0
        self.bytes_sent = 0
        self.max_buffered = 0

    @classmethod
    def pair(cls, auto_flush: bool = True) -> Tuple['MemoryChannel', 'MemoryChannel']:
        """Create two connected endpoints."""
        a = cls('a', auto_flush=auto_flush)
        b = cls('b', auto_flush=auto_flush)
        a.peer = b
        b.peer = a
        return a, b

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def buffered_amount(self) -> int:
        return self._buffered

    def send(self, frame: Frame) -> None:
        if not self._open:
            raise ChannelClosed(f"Channel {self.label} is closed")
        if not isinstance(frame, (str, bytes)):
            frame = bytes(frame)

        previous = self._buffered
        self._outbound.append(frame)
        self._buffered += frame_size(frame)
        self.max_buffered = max(self.max_buffered, self._buffered)
        self._update_buffered_amount(previous, self._buffered)

        self.frames_sent += 1
        self.bytes_sent += frame_size(frame)

        if self.auto_flush:
            asyncio.get_running_loop().call_soon(self._deliver_one)

    def _deliver_one(self) -> bool:
        if not self._outbound:
            return False
        frame = self._outbound.popleft()
        previous = self._buffered
        self._buffered -= frame_size(frame)
        if self.peer is not None and self.peer._open:
            self.peer._inbound.put_nowait(frame)
        self._update_buffered_amount(previous, self._buffered)
        return True

    def flush(self, max_bytes: Optional[int] = None) -> int:
        """
        Hand queued frames to the peer.

        Args:
            max_bytes: stop once at least this many bytes were delivered

        Returns:
            Number of bytes delivered
        """
        delivered = 0
        while self._outbound:
            if max_bytes is not None and delivered >= max_bytes:
                break
            delivered += frame_size(self._outbound[0])
            self._deliver_one()
        return delivered

    async def receive(self) -> Optional[Frame]:
        if not self._open and self._inbound.empty():
            return None
        return await self._inbound.get()

    async def close(self) -> None:
        """Close both endpoints; frames already queued are still delivered."""
        if not self._open:
            return
        self.flush()
        self._open = False
        self._inbound.put_nowait(None)
        self._wake_waiters()
        if self.peer is not None and self.peer._open:
            await self.peer.close()
