"""
Transfer Frame Codec

Design Decision: Control vs Data Frames
=======================================

Options Considered:
1. One binary frame per chunk with an embedded header
   - Self-describing, but needs a custom binary layout on both peers
2. JSON control frames + raw binary payload frames
   - Readable, trivial to produce from a browser
   - Payload is paired with its header by position only

Decision: JSON control frames, raw binary payloads
- Compatible with the browser peer
- A chunk is always sent as the pair (header, payload)
- Optional hardening: with ``indexed_payloads`` the binary frame carries
  the chunk index as a 4-byte big-endian prefix, so the receiver can
  detect a payload that does not belong to the pending header

Control Frames:
```
{"type": "metadata", "name": "...", "size": 200000, "mimeType": "...",
 "compressed": true, "compressionLevel": 3, "totalChunks": 4}
{"type": "chunk", "index": 0, "originalSize": 65536, "compressedSize": 1234}
{"type": "complete"}
{"type": "cancel"}
```
"""

import json
import struct
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Tuple, Union

from ..errors import FrameDecodeError

INDEX_PREFIX = struct.Struct('>I')


class MessageType(Enum):
    """Control frame types."""
    METADATA = "metadata"
    CHUNK = "chunk"
    COMPLETE = "complete"
    CANCEL = "cancel"


@dataclass(frozen=True)
class TransferMetadata:
    """Describes a whole transfer; sent once before any chunk."""
    name: str
    size: int
    mime_type: str = ''
    compressed: bool = False
    compression_level: int = 0
    total_chunks: int = 0
    indexed_payloads: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'type': MessageType.METADATA.value,
            'name': self.name,
            'size': self.size,
            'mimeType': self.mime_type,
            'compressed': self.compressed,
            'compressionLevel': self.compression_level,
            'totalChunks': self.total_chunks,
        }
        if self.indexed_payloads:
            data['indexedPayloads'] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransferMetadata':
        return cls(
            name=str(data['name']),
            size=_uint(data, 'size'),
            mime_type=str(data.get('mimeType') or ''),
            compressed=bool(data.get('compressed', False)),
            compression_level=int(data.get('compressionLevel') or 0),
            total_chunks=_uint(data, 'totalChunks'),
            indexed_payloads=bool(data.get('indexedPayloads', False)),
        )


@dataclass(frozen=True)
class ChunkHeader:
    """Precedes each binary chunk payload."""
    index: int
    original_size: int
    wire_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': MessageType.CHUNK.value,
            'index': self.index,
            'originalSize': self.original_size,
            'compressedSize': self.wire_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChunkHeader':
        return cls(
            index=_uint(data, 'index'),
            original_size=_uint(data, 'originalSize'),
            wire_size=_uint(data, 'compressedSize'),
        )


@dataclass(frozen=True)
class Completion:
    """Sent once after the last chunk."""


@dataclass(frozen=True)
class Cancel:
    """Tells the receiver to drop the transfer in flight."""


ControlMessage = Union[TransferMetadata, ChunkHeader, Completion, Cancel]


def _uint(data: Dict[str, Any], key: str) -> int:
    value = data[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"'{key}' must be a number, got {value!r}")
    if value < 0 or int(value) != value:
        raise ValueError(f"'{key}' must be a non-negative integer, got {value!r}")
    return int(value)


def encode_metadata(metadata: TransferMetadata) -> str:
    return json.dumps(metadata.to_dict())


def encode_chunk_header(header: ChunkHeader) -> str:
    return json.dumps(header.to_dict())


def encode_completion() -> str:
    return json.dumps({'type': MessageType.COMPLETE.value})


def encode_cancel() -> str:
    return json.dumps({'type': MessageType.CANCEL.value})


def decode(frame: str) -> ControlMessage:
    """
    Parse a control frame.

    Raises:
        FrameDecodeError: malformed JSON, unknown type or bad fields
    """
    try:
        data = json.loads(frame)
    except (json.JSONDecodeError, TypeError) as e:
        raise FrameDecodeError(f"Invalid control frame: {e}") from e

    if not isinstance(data, dict) or 'type' not in data:
        raise FrameDecodeError("Control frame has no 'type'")

    try:
        msg_type = MessageType(data['type'])
    except ValueError:
        raise FrameDecodeError(f"Unknown frame type: {data['type']!r}") from None

    try:
        if msg_type == MessageType.METADATA:
            return TransferMetadata.from_dict(data)
        if msg_type == MessageType.CHUNK:
            return ChunkHeader.from_dict(data)
    except (KeyError, ValueError, TypeError, OverflowError) as e:
        raise FrameDecodeError(f"Bad {msg_type.value} frame: {e}") from e

    if msg_type == MessageType.COMPLETE:
        return Completion()
    return Cancel()


def pack_payload(index: int, data: bytes) -> bytes:
    """Prefix a chunk payload with its index."""
    return INDEX_PREFIX.pack(index) + data


def unpack_payload(frame: bytes) -> Tuple[int, bytes]:
    """
    Split an index-prefixed chunk payload.

    Raises:
        FrameDecodeError: frame shorter than the prefix
    """
    if len(frame) < INDEX_PREFIX.size:
        raise FrameDecodeError(f"Binary frame too short for index prefix ({len(frame)} bytes)")
    (index,) = INDEX_PREFIX.unpack_from(frame)
    return index, frame[INDEX_PREFIX.size:]
