"""
Transfer Module - Streaming send/receive

Framing, backpressure and the sender/receiver state machines.
"""

from .protocol import (
    MessageType, TransferMetadata, ChunkHeader, Completion, Cancel,
    encode_metadata, encode_chunk_header, encode_completion, encode_cancel,
    decode, pack_payload, unpack_payload,
)
from .backpressure import BackpressureGovernor, BUFFER_THRESHOLD
from .benchmark import TransferBenchmark, format_size
from .session import TransferSession, TransferProgress
from .sender import TransferSender, SenderState
from .receiver import TransferReceiver, ReceiverState, IncomingTransfer, CompletedTransfer
from .peer import TransferPeer

__all__ = [
    'MessageType',
    'TransferMetadata',
    'ChunkHeader',
    'Completion',
    'Cancel',
    'encode_metadata',
    'encode_chunk_header',
    'encode_completion',
    'encode_cancel',
    'decode',
    'pack_payload',
    'unpack_payload',
    'BackpressureGovernor',
    'BUFFER_THRESHOLD',
    'TransferBenchmark',
    'format_size',
    'TransferSession',
    'TransferProgress',
    'TransferSender',
    'SenderState',
    'TransferReceiver',
    'ReceiverState',
    'IncomingTransfer',
    'CompletedTransfer',
    'TransferPeer',
]
