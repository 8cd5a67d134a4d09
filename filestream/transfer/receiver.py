"""
Transfer Receiver

Reassembles inbound transfers, one frame at a time.

States:
```
IDLE --metadata--> AWAITING_CHUNK --header--> HAVE_HEADER
                        ^                         |
                        +-------- payload --------+
AWAITING_CHUNK --complete--> IDLE (payload assembled)
```

The receiver never blocks and never raises on bad input. Problems are
logged, collected in ``errors`` and passed to ``on_error``:

- ProtocolViolation: frame not valid in the current state; it is ignored
  and the state is kept
- SequenceAnomaly: header index is not the expected one; the chunk is
  still accepted (there is no retransmission to repair it)
- CodecError: a chunk failed to decompress, or decoded to more than its
  header declared; it is dropped and the transfer continues with a gap
- SizeMismatch: assembled length differs from the declared size; the
  transfer is still finalized
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from ..channel.base import Frame
from ..compression.adapter import CompressionAdapter
from ..errors import (
    CodecError, CodecUnavailable, ProtocolViolation, SequenceAnomaly,
    SizeMismatch, TransferError,
)
from .benchmark import TransferBenchmark, format_size
from .protocol import (
    Cancel, ChunkHeader, Completion, TransferMetadata, decode, unpack_payload,
)
from .session import ProgressCallback, TransferProgress, RECEIVE

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[TransferError], None]

# Largest chunk a compressed payload may decode to, whatever its header says
MAX_CHUNK_SIZE = 16 * 1024 * 1024  # 16MB


class ReceiverState(Enum):
    IDLE = "idle"
    AWAITING_CHUNK = "awaiting_chunk"
    HAVE_HEADER = "have_header"


@dataclass
class IncomingTransfer:
    """State of the transfer currently being received."""
    metadata: TransferMetadata
    pending_header: Optional[ChunkHeader] = None
    accumulated: List[bytes] = field(default_factory=list)
    received_bytes: int = 0
    received_chunks: int = 0
    expected_index: int = 0
    errors: List[TransferError] = field(default_factory=list)
    benchmark: TransferBenchmark = field(default_factory=TransferBenchmark)
    progress: Optional[TransferProgress] = None


@dataclass
class CompletedTransfer:
    """A finalized inbound transfer."""
    metadata: TransferMetadata
    data: bytes
    benchmark: TransferBenchmark
    errors: List[TransferError] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def mime_type(self) -> str:
        return self.metadata.mime_type or 'application/octet-stream'

    @property
    def intact(self) -> bool:
        """True if the payload has the declared size and nothing went wrong."""
        return not self.errors and len(self.data) == self.metadata.size


class TransferReceiver:
    """
    Receiver state machine for a single channel.

    At most one inbound transfer is active. A second metadata frame while
    one is in progress is rejected; the transfer in progress is kept.
    """

    def __init__(self, compression: Optional[CompressionAdapter] = None,
                 on_error: Optional[ErrorCallback] = None,
                 progress_callback: Optional[ProgressCallback] = None,
                 max_chunk_size: int = MAX_CHUNK_SIZE):
        self.compression = compression
        self.max_chunk_size = max_chunk_size
        self.on_error = on_error
        self.progress_callback = progress_callback
        self.state = ReceiverState.IDLE
        self.incoming: Optional[IncomingTransfer] = None
        self.errors: List[TransferError] = []

        # Statistics
        self.transfers_received = 0
        self.bytes_received = 0

    def handle_frame(self, frame: Frame) -> Optional[CompletedTransfer]:
        """
        Process one inbound frame.

        Returns:
            The finished transfer when this frame completed one, else None
        """
        if isinstance(frame, str):
            try:
                message = decode(frame)
            except ProtocolViolation as e:
                self._report(e)
                return None
            return self._handle_control(message)
        return self._handle_payload(bytes(frame))

    def cancel(self):
        """Drop the inbound transfer, if any."""
        if self.incoming is not None:
            logger.warning(f"Inbound transfer cancelled: {self.incoming.metadata.name}")
        self._reset()

    def _reset(self):
        self.incoming = None
        self.state = ReceiverState.IDLE

    def _report(self, error: TransferError, attach: bool = True):
        if isinstance(error, SequenceAnomaly):
            logger.warning(str(error))
        else:
            logger.error(f"{type(error).__name__}: {error}")
        self.errors.append(error)
        if attach and self.incoming is not None:
            self.incoming.errors.append(error)
        if self.on_error:
            self.on_error(error)

    def _handle_control(self, message) -> Optional[CompletedTransfer]:
        if isinstance(message, TransferMetadata):
            self._on_metadata(message)
        elif isinstance(message, ChunkHeader):
            self._on_header(message)
        elif isinstance(message, Completion):
            return self._on_complete()
        elif isinstance(message, Cancel):
            self.cancel()
        return None

    def _on_metadata(self, metadata: TransferMetadata):
        if self.state != ReceiverState.IDLE:
            self._report(ProtocolViolation(
                f"Metadata for {metadata.name!r} while receiving "
                f"{self.incoming.metadata.name!r}; ignored"
            ), attach=False)
            return

        logger.info(f"Receiving: {metadata.name} ({format_size(metadata.size)})")
        if metadata.compressed:
            logger.info(f"Compression: ENABLED (level {metadata.compression_level})")
        else:
            logger.info("Compression: DISABLED")

        benchmark = TransferBenchmark()
        benchmark.reset(original_size=metadata.size)
        self.incoming = IncomingTransfer(
            metadata=metadata,
            benchmark=benchmark,
            progress=TransferProgress(
                name=metadata.name,
                total_chunks=metadata.total_chunks,
                total_bytes=metadata.size,
            ),
        )
        self.state = ReceiverState.AWAITING_CHUNK

        if metadata.compressed and (self.compression is None or not self.compression.ready):
            # Chunks will fail to decompress; each one is reported as it arrives
            self._report(CodecUnavailable(
                f"{metadata.name!r} is compressed but no codec is ready"
            ))

    def _on_header(self, header: ChunkHeader):
        if self.state != ReceiverState.AWAITING_CHUNK:
            self._report(ProtocolViolation(
                f"Chunk header {header.index} in state {self.state.value}; ignored"
            ))
            return

        incoming = self.incoming
        if header.index != incoming.expected_index:
            self._report(SequenceAnomaly(
                f"Chunk index {header.index}, expected {incoming.expected_index}"
            ))
        if not incoming.metadata.compressed and header.wire_size != header.original_size:
            logger.warning(
                f"Chunk {header.index}: wire size {header.wire_size} != "
                f"original size {header.original_size} on uncompressed transfer"
            )

        incoming.pending_header = header
        incoming.expected_index = header.index + 1
        self.state = ReceiverState.HAVE_HEADER

    def _on_payload_error(self, error: TransferError):
        self._report(error)
        self.incoming.pending_header = None
        self.state = ReceiverState.AWAITING_CHUNK

    def _handle_payload(self, data: bytes) -> None:
        if self.state != ReceiverState.HAVE_HEADER:
            self._report(ProtocolViolation(
                f"Binary frame ({len(data)} bytes) without a pending chunk header; ignored"
            ))
            return

        incoming = self.incoming
        header = incoming.pending_header

        if incoming.metadata.indexed_payloads:
            try:
                index, data = unpack_payload(data)
            except ProtocolViolation as e:
                self._report(e)
                return
            if index != header.index:
                self._report(ProtocolViolation(
                    f"Binary frame for chunk {index} but pending header is {header.index}; ignored"
                ))
                return

        incoming.benchmark.wire_size += len(data)
        if len(data) != header.wire_size:
            logger.warning(
                f"Chunk {header.index}: got {len(data)} bytes, header said {header.wire_size}"
            )

        chunk = data
        decompression_text = ''
        if incoming.metadata.compressed:
            if self.compression is None:
                self._on_payload_error(CodecUnavailable(
                    f"Chunk {header.index} dropped: no codec to decompress it"
                ))
                return
            limit = min(header.original_size, self.max_chunk_size)
            try:
                result = self.compression.decompress(data, max_size=limit)
            except (CodecError, CodecUnavailable) as e:
                self._on_payload_error(type(e)(f"Chunk {header.index} dropped: {e}"))
                return
            chunk = result.data
            incoming.benchmark.decompression_time += result.elapsed
            decompression_text = f" [decompress: {result.elapsed * 1000:.1f}ms]"

        if len(chunk) != header.original_size:
            logger.warning(
                f"Chunk {header.index}: decoded {len(chunk)} bytes, header said {header.original_size}"
            )

        incoming.accumulated.append(chunk)
        incoming.received_bytes += len(chunk)
        incoming.received_chunks += 1
        incoming.benchmark.chunks_received += 1
        incoming.pending_header = None
        self.state = ReceiverState.AWAITING_CHUNK

        logger.debug(
            f"Chunk {header.index + 1}/{incoming.metadata.total_chunks}: received{decompression_text}"
        )

        progress = incoming.progress
        progress.chunks_done = incoming.received_chunks
        progress.bytes_done = incoming.received_bytes
        if self.progress_callback:
            self.progress_callback(progress)

    def _on_complete(self) -> Optional[CompletedTransfer]:
        if self.state != ReceiverState.AWAITING_CHUNK:
            self._report(ProtocolViolation(
                f"Completion in state {self.state.value}; ignored"
            ))
            return None

        incoming = self.incoming
        metadata = incoming.metadata
        data = b''.join(incoming.accumulated)

        if len(data) != metadata.size:
            self._report(SizeMismatch(expected=metadata.size, actual=len(data)))
        if incoming.received_chunks != metadata.total_chunks:
            logger.warning(
                f"Received {incoming.received_chunks} chunks, expected {metadata.total_chunks}"
            )

        incoming.benchmark.finish()
        incoming.benchmark.log_summary(RECEIVE)

        completed = CompletedTransfer(
            metadata=metadata,
            data=data,
            benchmark=incoming.benchmark,
            errors=list(incoming.errors),
        )
        self.transfers_received += 1
        self.bytes_received += len(data)
        self._reset()
        return completed
