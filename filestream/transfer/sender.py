"""
Transfer Sender

Streams one payload over a channel:

1. Check the channel is open (once, at entry)
2. Send metadata
3. For every chunk: compress (optional), send header, send payload,
   report progress, let the backpressure governor pause us
4. Send completion

The sender state is linear:
IDLE -> METADATA_SENT -> SENDING_CHUNK* -> COMPLETION_SENT -> IDLE

There is no retry. A channel that closes mid-transfer aborts the send
with ChannelClosed.
"""

import logging
import mimetypes
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional, Tuple

from ..channel.base import Channel
from ..compression.adapter import CompressionAdapter
from ..errors import ChannelNotReady, CodecUnavailable, TransferCancelled
from ..file.chunker import Chunker, CHUNK_SIZE
from .backpressure import BackpressureGovernor
from .benchmark import format_size
from .protocol import (
    ChunkHeader, TransferMetadata,
    encode_cancel, encode_chunk_header, encode_completion, encode_metadata,
    pack_payload,
)
from .session import ProgressCallback, TransferProgress, TransferSession, SEND

logger = logging.getLogger(__name__)


class SenderState(Enum):
    IDLE = "idle"
    METADATA_SENT = "metadata_sent"
    SENDING_CHUNK = "sending_chunk"
    COMPLETION_SENT = "completion_sent"


async def _iterate(chunks: Iterable[Tuple[int, bytes]]) -> AsyncIterator[Tuple[int, bytes]]:
    for item in chunks:
        yield item


class TransferSender:
    """
    Sends payloads over a single channel, one transfer at a time.
    """

    def __init__(self, channel: Channel,
                 compression: Optional[CompressionAdapter] = None,
                 chunk_size: int = CHUNK_SIZE,
                 governor: Optional[BackpressureGovernor] = None,
                 indexed_payloads: bool = False):
        self.channel = channel
        self.compression = compression
        self.chunker = Chunker(chunk_size)
        self.governor = governor or BackpressureGovernor()
        self.indexed_payloads = indexed_payloads
        self.state = SenderState.IDLE

        # Statistics
        self.transfers_sent = 0
        self.bytes_sent = 0

    @property
    def chunk_size(self) -> int:
        return self.chunker.chunk_size

    async def send(self, payload: bytes, name: str,
                   mime_type: str = '',
                   compress: bool = False,
                   level: int = 3,
                   session: Optional[TransferSession] = None,
                   progress_callback: Optional[ProgressCallback] = None) -> TransferSession:
        """
        Send an in-memory payload.

        Returns:
            The session, with its benchmark filled in

        Raises:
            ChannelNotReady: channel not open
            CodecUnavailable: compression requested but codec not ready
            TransferCancelled: session cancelled between chunks
            ChannelClosed: channel closed mid-transfer
        """
        payload = bytes(payload)
        return await self._transmit(
            _iterate(self.chunker.split(payload)), len(payload), name,
            mime_type, compress, level, session, progress_callback,
        )

    async def send_file(self, file_path: Path,
                        name: Optional[str] = None,
                        mime_type: Optional[str] = None,
                        compress: bool = False,
                        level: int = 3,
                        session: Optional[TransferSession] = None,
                        progress_callback: Optional[ProgressCallback] = None) -> TransferSession:
        """Stream a file from disk without loading it whole."""
        file_path = Path(file_path)
        if name is None:
            name = file_path.name
        if mime_type is None:
            mime_type = mimetypes.guess_type(file_path.name)[0] or ''

        return await self._transmit(
            self.chunker.chunk_file(file_path), file_path.stat().st_size, name,
            mime_type, compress, level, session, progress_callback,
        )

    async def _transmit(self, chunks: AsyncIterator[Tuple[int, bytes]],
                        total_size: int, name: str, mime_type: str,
                        compress: bool, level: int,
                        session: Optional[TransferSession],
                        progress_callback: Optional[ProgressCallback]) -> TransferSession:
        if not self.channel.is_open:
            raise ChannelNotReady("Data channel not ready")
        if compress and (self.compression is None or not self.compression.ready):
            raise CodecUnavailable("Compression requested but codec is not ready")

        session = session or TransferSession()
        session.name = name
        session.direction = SEND
        benchmark = session.benchmark
        benchmark.reset(original_size=total_size)

        total_chunks = self.chunker.chunk_count(total_size)
        progress = TransferProgress(name=name, total_chunks=total_chunks, total_bytes=total_size)
        session.progress = progress

        metadata = TransferMetadata(
            name=name,
            size=total_size,
            mime_type=mime_type,
            compressed=compress,
            compression_level=level,
            total_chunks=total_chunks,
            indexed_payloads=self.indexed_payloads,
        )

        logger.info(f"Starting transfer: {name} ({format_size(total_size)})")
        if compress:
            logger.info(f"Compression: ENABLED ({self.compression.name} level {level})")
        else:
            logger.info("Compression: DISABLED")

        try:
            self.channel.send(encode_metadata(metadata))
            self.state = SenderState.METADATA_SENT

            async for index, chunk in chunks:
                if session.cancelled:
                    self._abort(session)

                self.state = SenderState.SENDING_CHUNK
                wire_data = chunk
                ratio_text = ''

                if compress:
                    result = self.compression.compress(chunk, level)
                    wire_data = result.data
                    benchmark.compression_time += result.elapsed
                    ratio_text = (
                        f" -> {format_size(result.output_size)} ({result.ratio:.1f}x)"
                        f" [compress: {result.elapsed * 1000:.1f}ms]"
                    )
                benchmark.wire_size += len(wire_data)

                header = ChunkHeader(
                    index=index,
                    original_size=len(chunk),
                    wire_size=len(wire_data),
                )
                self.channel.send(encode_chunk_header(header))
                if self.indexed_payloads:
                    self.channel.send(pack_payload(index, wire_data))
                else:
                    self.channel.send(wire_data)
                benchmark.chunks_sent += 1

                logger.debug(
                    f"Chunk {index + 1}/{total_chunks}: {format_size(len(chunk))}{ratio_text}"
                )

                progress.chunks_done += 1
                progress.bytes_done += len(chunk)
                if progress_callback:
                    progress_callback(progress)

                await self.governor.regulate(self.channel)

            if session.cancelled:
                self._abort(session)

            self.channel.send(encode_completion())
            self.state = SenderState.COMPLETION_SENT
        finally:
            self.state = SenderState.IDLE

        benchmark.finish()
        session.completed = True

        self.transfers_sent += 1
        self.bytes_sent += total_size
        benchmark.log_summary(SEND)
        return session

    def _abort(self, session: TransferSession):
        """Tell the receiver to drop the transfer and stop sending."""
        logger.warning(f"Transfer cancelled: {session.name}")
        if self.channel.is_open:
            self.channel.send(encode_cancel())
        session.benchmark.finish()
        raise TransferCancelled(f"Transfer of {session.name} cancelled")
