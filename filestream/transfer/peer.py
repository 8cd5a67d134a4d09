"""
Transfer Peer

Ties one channel to a sender and a receiver.

The channel's inbound frames are consumed by a single dispatch loop
(``run``): each frame is fully processed, including handing a finished
payload to the delivery sink, before the next frame is read. A sink that
fails is logged and recorded in ``delivery_errors``; later frames are
still dispatched.
"""

import logging
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from ..channel.base import Channel
from ..compression.adapter import CompressionAdapter
from ..file.chunker import CHUNK_SIZE
from .backpressure import BackpressureGovernor
from .receiver import CompletedTransfer, TransferReceiver
from .sender import TransferSender
from .session import ProgressCallback, TransferSession

logger = logging.getLogger(__name__)

CompletionCallback = Callable[[CompletedTransfer], None]


class DeliverySink:
    """Anything with ``async deliver(name, mime_type, data)``."""

    def deliver(self, name: str, mime_type: str, data: bytes) -> Awaitable:
        raise NotImplementedError


class TransferPeer:
    """
    One end of a file-transfer channel.

    - send(payload) / send_file(path): outbound transfers
    - run(): dispatch loop for inbound frames
    """

    def __init__(self, channel: Channel,
                 compression: Optional[CompressionAdapter] = None,
                 sink: Optional[DeliverySink] = None,
                 chunk_size: int = CHUNK_SIZE,
                 governor: Optional[BackpressureGovernor] = None,
                 indexed_payloads: bool = False,
                 receive_progress: Optional[ProgressCallback] = None,
                 on_complete: Optional[CompletionCallback] = None):
        self.channel = channel
        self.sink = sink
        self.on_complete = on_complete
        self.sender = TransferSender(
            channel,
            compression=compression,
            chunk_size=chunk_size,
            governor=governor,
            indexed_payloads=indexed_payloads,
        )
        self.receiver = TransferReceiver(
            compression=compression,
            progress_callback=receive_progress,
        )
        self.completed: List[CompletedTransfer] = []
        self.delivery_errors: List[Exception] = []
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def send(self, payload: bytes, name: str, **kwargs) -> TransferSession:
        return await self.sender.send(payload, name, **kwargs)

    async def send_file(self, file_path: Path, **kwargs) -> TransferSession:
        return await self.sender.send_file(file_path, **kwargs)

    async def run(self, max_transfers: Optional[int] = None) -> List[CompletedTransfer]:
        """
        Process inbound frames until the channel closes.

        Args:
            max_transfers: stop after this many completed transfers

        Returns:
            Transfers completed during this run
        """
        finished: List[CompletedTransfer] = []
        self._running = True
        try:
            while self._running:
                frame = await self.channel.receive()
                if frame is None:
                    break

                result = self.receiver.handle_frame(frame)
                if result is None:
                    continue

                await self._deliver(result)
                finished.append(result)
                if max_transfers is not None and len(finished) >= max_transfers:
                    break
        finally:
            self._running = False
            if self.receiver.incoming is not None:
                logger.warning(
                    f"Channel closed during transfer of {self.receiver.incoming.metadata.name}"
                )
                self.receiver.cancel()

        return finished

    def stop(self):
        """Stop the dispatch loop after the current frame."""
        self._running = False

    async def _deliver(self, result: CompletedTransfer):
        self.completed.append(result)
        if self.sink is not None:
            try:
                await self.sink.deliver(result.name, result.mime_type, result.data)
            except Exception as e:
                logger.error(f"Failed to deliver {result.name}: {e}")
                self.delivery_errors.append(e)
        if self.on_complete:
            self.on_complete(result)

    def get_stats(self) -> dict:
        """Get peer statistics."""
        return {
            'transfers_sent': self.sender.transfers_sent,
            'bytes_sent': self.sender.bytes_sent,
            'transfers_received': self.receiver.transfers_received,
            'bytes_received': self.receiver.bytes_received,
            'drain_waits': self.sender.governor.drain_waits,
            'errors': len(self.receiver.errors),
            'delivery_errors': len(self.delivery_errors),
        }

